# wedding_signup/main.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import asyncio
import logging
from typing import Dict, List, Optional
from dotenv import load_dotenv
load_dotenv()

from .settings import settings
from .dependencies import (
    get_http_client,
    close_http_client,
    get_notification_dispatcher,
    close_notification_dispatcher,
)
from .reservations.endpoints import reservations_admin_router
from .reservations.service import ReservationService, run_cleanup_loop
from .reservations.sqlite_reservation_store import get_sqlite_reservation_store
from .signup.endpoints import signup_router
from .signup.errors import SignupError
from .slugs.endpoints import weddings_router
from .storage.sqlite_base import close_sqlite_db_connection, get_sqlite_db_connection
from .tenants.endpoints import weddings_admin_router
from .tenants.sqlite_tenant_store import get_sqlite_tenant_store
from .utils.rate_limit import RedisRateLimiter, close_rate_limiter, get_rate_limiter

# Configure logging based on debug mode setting
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level="DEBUG" if settings.debug_mode else "INFO",
        format='%(asctime)s - %(name)s [%(levelname)s] - %(message)s'
    )

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG if settings.debug_mode else logging.INFO)

cleanup_task: Optional[asyncio.Task] = None


@asynccontextmanager
async def signup_app_lifespan(app_instance: FastAPI):
    """
    Initializes storage, shared clients, the rate limiter, the notification
    dispatcher and the reservation cleanup loop, and tears them down in
    reverse order on shutdown.
    """
    global cleanup_task

    logger.info("Application startup initiated.")
    initialized: List[object] = []

    try:
        await get_sqlite_db_connection()
        initialized.append("sqlite_db_connection")
        logger.info("SQLite connection initialized.")
    except Exception as e:
        logger.error(f"Error during storage initialization: {e}", exc_info=True)
        raise

    reservation_store = await get_sqlite_reservation_store()
    tenant_store = await get_sqlite_tenant_store()
    initialized.extend([tenant_store, reservation_store])
    logger.info("Tenant and reservation stores initialized.")

    await get_rate_limiter()
    initialized.append("rate_limiter")
    logger.info(f"Rate limiter initialized ({settings.rate_limit_backend}).")

    await get_http_client()
    initialized.append("http_client")
    await get_notification_dispatcher()
    initialized.append("notification_dispatcher")

    cleanup_task = asyncio.create_task(
        run_cleanup_loop(ReservationService(reservation_store), settings.reservation_cleanup_interval_seconds)
    )

    yield

    logger.info("Application shutdown initiated.")
    if cleanup_task is not None:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass
        cleanup_task = None

    for component in reversed(initialized):
        try:
            if component == "sqlite_db_connection":
                await close_sqlite_db_connection()
            elif component == "rate_limiter":
                await close_rate_limiter()
            elif component == "http_client":
                await close_http_client()
            elif component == "notification_dispatcher":
                await close_notification_dispatcher()
            elif hasattr(component, "teardown"):
                await component.teardown()
        except Exception as e_td:
            logger.error(f"Teardown error: {e_td}", exc_info=True)
    logger.info("All components torn down.")


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug_mode,
    version="0.1.0",
    lifespan=signup_app_lifespan
)


@app.exception_handler(SignupError)
async def signup_error_handler(request: Request, exc: SignupError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=exc.headers)


@app.get("/")
async def root_api():
    return {"message": f"Welcome to {settings.app_name}!"}


@app.get("/health")
async def health_api():
    """Health check endpoint that validates storage and rate limiter connectivity."""
    statuses: Dict[str, str] = {}
    all_healthy = True

    try:
        conn = await get_sqlite_db_connection()
        conn.execute("SELECT 1")
        statuses["sqlite_main_db"] = "healthy"
    except Exception as e:
        statuses["sqlite_main_db"] = f"unhealthy: {e}"
        all_healthy = False

    limiter = await get_rate_limiter()
    if isinstance(limiter, RedisRateLimiter):
        try:
            await limiter.ping()
            statuses["rate_limiter_redis"] = "healthy"
        except Exception as e:
            statuses["rate_limiter_redis"] = f"unhealthy: {e}"
            all_healthy = False

    return {
        "status": "healthy" if all_healthy else "degraded",
        "rate_limit_backend": settings.rate_limit_backend,
        "services": {
            "payment": settings.is_payment_configured(),
            "identity": settings.is_identity_configured(),
            "credential_vault": settings.is_credential_vault_configured(),
            "email": settings.is_email_configured(),
        },
        "details": statuses
    }


# Mount all routers
app.include_router(signup_router)
app.include_router(weddings_router)
app.include_router(weddings_admin_router)
app.include_router(reservations_admin_router)
