import uvicorn
from dotenv import load_dotenv
import os
from pathlib import Path
import logging

# Configure logging before any application imports
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s RUN_DEV.PY - [%(levelname)s] - %(message)s'
)
logger = logging.getLogger("run_dev_script")

_TRUTHY = ["true", "1", "yes", "on", "t"]


def _masked(name: str) -> str:
    return "********" if os.getenv(name) else "None"


if __name__ == "__main__":
    project_root = Path(__file__).parent.resolve()
    dotenv_path_explicit = project_root / ".env"

    logger.info(f"Current working directory: {os.getcwd()}")
    logger.info(f"Expected .env path for load_dotenv: {dotenv_path_explicit}")

    if dotenv_path_explicit.exists():
        logger.info(f".env file FOUND at: {dotenv_path_explicit}")
        load_dotenv(dotenv_path=dotenv_path_explicit, override=True)
    else:
        logger.warning(f".env file NOT FOUND at: {dotenv_path_explicit}. "
                       "Will rely on OS environment variables or pydantic-settings defaults.")

    # Secrets are only reported as present or absent
    logger.info(f"PAYMENT_SECRET_KEY: {_masked('PAYMENT_SECRET_KEY')}")
    logger.info(f"IDENTITY_SERVICE_KEY: {_masked('IDENTITY_SERVICE_KEY')}")
    logger.info(f"CREDENTIAL_ENCRYPTION_KEY: {_masked('CREDENTIAL_ENCRYPTION_KEY')}")
    logger.info(f"EMAIL_API_KEY: {_masked('EMAIL_API_KEY')}")
    logger.info(f"DEBUG_MODE: {os.getenv('DEBUG_MODE')}")
    logger.info(f"RATE_LIMIT_BACKEND: {os.getenv('RATE_LIMIT_BACKEND')}")
    logger.info(f"REDIS_HOST: {os.getenv('REDIS_HOST')}")

    host = os.getenv("DEV_SERVER_HOST", "127.0.0.1")
    port = int(os.getenv("DEV_SERVER_PORT", "8000"))
    uvicorn_log_level = os.getenv("DEV_SERVER_LOG_LEVEL", "info").lower()

    debug_mode_env_val = os.getenv("DEBUG_MODE", "False").lower()
    debug_mode_bool_for_reload = debug_mode_env_val in _TRUTHY

    # Reload follows debug mode unless set explicitly
    reload_env_val = os.getenv("DEV_SERVER_RELOAD", str(debug_mode_bool_for_reload)).lower()
    reload_bool = reload_env_val in _TRUTHY

    logger.info(f"Starting Uvicorn server on {host}:{port}")
    logger.info(f"Uvicorn log level: {uvicorn_log_level}")
    logger.info(f"Reload: {reload_bool}")
    logger.info("App module: wedding_signup.main:app")

    uvicorn.run(
        "wedding_signup.main:app",
        host=host,
        port=port,
        log_level=uvicorn_log_level,
        reload=reload_bool
    )
