# wedding_signup/cli/config.py
import os
from dotenv import load_dotenv
from pathlib import Path

# cli/config.py sits two levels below the project root
project_root = Path(__file__).parent.parent.parent.resolve()

load_dotenv(dotenv_path=project_root / '.env', override=True)

WEDDING_SIGNUP_CLI_API_BASE_URL = os.getenv("WEDDING_SIGNUP_CLI_API_BASE_URL", "http://127.0.0.1:8000")

WEDDING_SIGNUP_CLI_ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")
