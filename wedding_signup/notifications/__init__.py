# wedding_signup/notifications/__init__.py
"""
Best-effort transactional email sent after an account is committed.
"""

from .lang import detect_locale
from .models import WelcomeContext, EmailMessage
from .templates import render_welcome_email
from .email_client import AbstractEmailClient, ResendEmailClient, EmailDeliveryError
from .dispatcher import NotificationDispatcher

__all__ = [
    "detect_locale",
    "WelcomeContext",
    "EmailMessage",
    "render_welcome_email",
    "AbstractEmailClient",
    "ResendEmailClient",
    "EmailDeliveryError",
    "NotificationDispatcher",
]
