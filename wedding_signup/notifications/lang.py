# wedding_signup/notifications/lang.py
from typing import Iterable, List, Optional, Tuple

from ..settings import settings


def _parse_accept_language(header: str) -> List[Tuple[str, float]]:
    entries: List[Tuple[str, float]] = []
    for raw in header.split(","):
        raw = raw.strip()
        if not raw:
            continue
        tag, _, quality = raw.partition(";q=")
        try:
            q = float(quality) if quality else 1.0
        except ValueError:
            q = 0.0
        # "fr-FR" -> "fr"
        entries.append((tag.strip().split("-")[0].lower(), q))
    return entries


def detect_locale(
    accept_language: Optional[str],
    supported: Optional[Iterable[str]] = None,
    default: Optional[str] = None,
) -> str:
    """
    Pick the email locale from an Accept-Language header.

    Entries are ordered by quality, highest first; ties keep header order.
    The first supported primary subtag wins, otherwise the default locale.
    """
    supported_locales = list(supported if supported is not None else settings.supported_locales)
    fallback = default or settings.default_locale
    if not accept_language:
        return fallback

    ranked = sorted(_parse_accept_language(accept_language), key=lambda e: e[1], reverse=True)
    for lang, _ in ranked:
        if lang in supported_locales:
            return lang
    return fallback
