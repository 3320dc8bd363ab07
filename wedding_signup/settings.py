# wedding_signup/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List, Optional
import logging
from pathlib import Path

logger = logging.getLogger(__name__)
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s SETTINGS.PY - [%(levelname)s] - %(message)s'
    )

# This settings.py file is at <project>/wedding_signup/settings.py
# Two .parent calls get to the project root directory
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
DOTENV_PATH = PROJECT_ROOT / ".env"

if DOTENV_PATH.exists():
    logger.info(f"SETTINGS.PY: .env file FOUND at explicit path: {DOTENV_PATH}")
else:
    logger.warning(
        f"SETTINGS.PY: .env file NOT FOUND at explicit path: {DOTENV_PATH}. "
        "Will rely on OS env vars or defaults."
    )


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    app_name: str = "Wedding Signup"
    debug_mode: bool = False
    public_site_url: str = "http://localhost:4321"

    # SQLite configuration
    sqlite_db_path: str = "./wedding_signup_data.sqlite3"

    # Payment provider (Stripe)
    payment_secret_key: Optional[str] = Field(
        default=None,
        description="Secret key for the payment provider. Must start with 'sk_'."
    )
    payment_currency: str = "eur"
    product_name: str = "Wedding Photo Platform"
    product_description: str = "Unlimited photos & videos, wedding website, guestbook, and more."
    product_price_cents: int = 19900
    paid_period_years: int = 2
    trial_period_days: int = 30

    # Identity provider (Supabase-compatible admin auth API)
    identity_service_url: Optional[str] = None
    identity_service_key: Optional[str] = Field(
        default=None,
        description="Service-role key used for the identity provider admin API."
    )

    # Transactional email (Resend-compatible REST API)
    email_api_key: Optional[str] = None
    email_api_base: str = "https://api.resend.com"
    email_sender: str = "Wedding Signup <noreply@example.com>"

    # Key sealing the signup credential while a paid checkout is in flight
    credential_encryption_key: Optional[str] = Field(
        default=None,
        description="Fernet key for sealing credentials in pending reservations. MUST be set for the paid flow."
    )

    # Reservation lifecycle
    reservation_ttl_hours: int = 24
    reservation_cleanup_interval_seconds: int = 6 * 3600

    # External call policy
    external_call_timeout_seconds: float = 10.0
    provisioning_timeout_seconds: float = 10.0
    # How long a timed-out identity creation may still answer before it is looked up by email
    identity_grace_seconds: float = 5.0
    external_call_retry_attempts: int = 3

    # Rate limiting: "memory" or "redis"
    rate_limit_backend: str = "memory"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None
    redis_ssl: bool = False

    # Locales for transactional email
    default_locale: str = "fr"
    supported_locales: List[str] = ["fr", "en", "es"]

    admin_api_key: Optional[str] = Field(
        default=None,
        description="API Key for accessing admin routes."
    )

    model_config = SettingsConfigDict(
        env_file=DOTENV_PATH if DOTENV_PATH.exists() else None,
        extra="ignore",
        env_file_encoding='utf-8'
    )

    def is_payment_configured(self) -> bool:
        return bool(self.payment_secret_key and self.payment_secret_key.startswith("sk_"))

    def is_identity_configured(self) -> bool:
        return bool(self.identity_service_url and self.identity_service_key)

    def is_credential_vault_configured(self) -> bool:
        return bool(self.credential_encryption_key)

    def is_email_configured(self) -> bool:
        return bool(self.email_api_key)


settings = Settings()

# Sensitive values are masked
logger.info(
    f"SETTINGS.PY: payment_secret_key: {'********' if settings.payment_secret_key else 'None'}, "
    f"identity_service_key: {'********' if settings.identity_service_key else 'None'}, "
    f"admin_api_key: {'********' if settings.admin_api_key else 'None'}"
)
logger.info(
    f"SETTINGS.PY: sqlite_db_path: '{settings.sqlite_db_path}', "
    f"rate_limit_backend: '{settings.rate_limit_backend}', "
    f"reservation_ttl_hours: {settings.reservation_ttl_hours}"
)
