# wedding_signup/dependencies.py
import logging
import httpx
from fastapi import HTTPException, status, Header, Request
from typing import Awaitable, Callable, Optional, Annotated

from .settings import settings
from .signup.errors import RateLimitExceededError, ServiceNotConfiguredError
from .utils.rate_limit import RateLimitConfig, get_client_ip, get_rate_limiter
from .utils.security import FernetEncryptor
from .payments.gateway import AbstractPaymentGateway, StripePaymentGateway
from .identity.provider import AbstractIdentityProvider, SupabaseIdentityProvider
from .notifications.dispatcher import NotificationDispatcher
from .notifications.email_client import ResendEmailClient
from .notifications.lang import detect_locale

logger = logging.getLogger(__name__)

_http_client: Optional[httpx.AsyncClient] = None
_credential_encryptor: Optional[FernetEncryptor] = None
_notification_dispatcher: Optional[NotificationDispatcher] = None


async def get_admin_api_key(
    x_admin_api_key: Annotated[
        Optional[str],
        Header(description="The API Key for accessing admin routes.")
    ] = None
) -> str:
    """
    Validates admin API key authentication for protected admin endpoints.

    Returns the validated API key if authentication succeeds.
    """
    if not settings.admin_api_key:
        logger.critical("ADMIN_API_KEY is not configured on the server. Admin endpoints are effectively disabled.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API service is not configured properly (API Key missing on server).",
        )

    if not x_admin_api_key:
        logger.warning("Admin API: Missing X-Admin-API-Key header.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated: X-Admin-API-Key header missing.",
            headers={"WWW-Authenticate": 'Basic realm="Admin Area"'},
        )

    if x_admin_api_key != settings.admin_api_key:
        logger.warning("Admin API: Invalid X-Admin-API-Key provided.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Invalid API Key.",
            headers={"WWW-Authenticate": 'Basic realm="Admin Area"'},
        )

    return x_admin_api_key


# --- Configuration guards: reject before any part of a flow runs ---

async def require_payment_configured() -> None:
    if not settings.is_payment_configured():
        logger.error("API: payment provider is not configured.")
        raise ServiceNotConfiguredError("Payment system not configured", "The payment provider is not configured.")


async def require_identity_configured() -> None:
    if not settings.is_identity_configured():
        logger.error("API: identity provider is not configured.")
        raise ServiceNotConfiguredError("Identity service not configured", "The identity provider is not configured.")


async def require_credential_vault_configured() -> None:
    if not settings.is_credential_vault_configured():
        logger.error("API: credential encryption key is not configured.")
        raise ServiceNotConfiguredError(
            "Credential vault not configured",
            "Paid signup requires a credential encryption key.",
        )


def rate_limit(config: RateLimitConfig) -> Callable[[Request], Awaitable[None]]:
    """Build a dependency enforcing a per-client-IP limit for one endpoint family."""

    async def _enforce(request: Request) -> None:
        limiter = await get_rate_limiter()
        client_ip = get_client_ip(request)
        result = await limiter.hit(client_ip, config)
        if not result.allowed:
            logger.warning(f"API: rate limit '{config.prefix}' exceeded for {client_ip}.")
            raise RateLimitExceededError(result.retry_after_seconds or config.window_seconds, result.reset_at_iso)

    return _enforce


async def get_locale(
    accept_language: Annotated[Optional[str], Header()] = None
) -> str:
    return detect_locale(accept_language)


# --- Shared clients ---

async def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=settings.external_call_timeout_seconds)
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


async def get_credential_encryptor() -> FernetEncryptor:
    global _credential_encryptor
    if _credential_encryptor is None:
        _credential_encryptor = FernetEncryptor(settings.credential_encryption_key)
    return _credential_encryptor


async def get_payment_gateway() -> AbstractPaymentGateway:
    return StripePaymentGateway(
        secret_key=settings.payment_secret_key or "",
        max_network_retries=settings.external_call_retry_attempts,
    )


async def get_identity_provider() -> AbstractIdentityProvider:
    return SupabaseIdentityProvider(
        client=await get_http_client(),
        service_url=settings.identity_service_url or "",
        service_key=settings.identity_service_key or "",
        retry_attempts=settings.external_call_retry_attempts,
    )


async def get_notification_dispatcher() -> NotificationDispatcher:
    global _notification_dispatcher
    if _notification_dispatcher is None:
        email_client = None
        if settings.is_email_configured():
            email_client = ResendEmailClient(
                client=await get_http_client(),
                api_key=settings.email_api_key,
                sender=settings.email_sender,
                api_base=settings.email_api_base,
            )
        else:
            logger.warning("Email API key not set; welcome emails will be skipped.")
        _notification_dispatcher = NotificationDispatcher(email_client)
    return _notification_dispatcher


async def close_notification_dispatcher() -> None:
    global _notification_dispatcher
    if _notification_dispatcher is not None:
        await _notification_dispatcher.aclose()
        _notification_dispatcher = None
