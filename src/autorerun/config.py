import os
import dotenv
import logging

dotenv.load_dotenv()

GITHUB_TOKEN = os.environ.get("GITHUB_TOKEN")

GITHUB_APP_ID = os.environ.get("GITHUB_APP_ID")
if GITHUB_APP_ID is not None:
    GITHUB_APP_ID = int(GITHUB_APP_ID)
GITHUB_PRIVATE_KEY = os.environ.get("GITHUB_PRIVATE_KEY")
GITHUB_INSTALLATION_ID = os.environ.get("GITHUB_INSTALLATION_ID")
if GITHUB_INSTALLATION_ID is not None:
    GITHUB_INSTALLATION_ID = int(GITHUB_INSTALLATION_ID)

GITHUB_REPOSITORY = os.environ.get("GITHUB_REPOSITORY")
GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com")

OVERRIDE_LOGGING = logging.getLevelName(os.environ.get("OVERRIDE_LOGGING", "WARNING"))

TELEGRAM_TOKEN = os.environ.get("TELEGRAM_TOKEN")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")
NOTIFY_LOGGING = logging.getLevelName(os.environ.get("NOTIFY_LOGGING", "ERROR"))

DEVOPS_TOKEN = os.environ.get("DEVOPS_TOKEN")
DEVOPS_ORGANIZATION_URL = os.environ.get("DEVOPS_ORGANIZATION_URL")

DEVOPS_POOL_IDS = os.environ.get("DEVOPS_POOL_IDS")
if DEVOPS_POOL_IDS is not None:
    DEVOPS_POOL_IDS = [p.strip() for p in DEVOPS_POOL_IDS.split(",") if p.strip()]

AUTORERUN_CONFIG = os.environ.get("AUTORERUN_CONFIG") or None

# action inputs, as exposed to the step environment
INPUT_PR = os.environ.get("INPUT_PR", "")
INPUT_APPROVALS_REQUIRED = os.environ.get("INPUT_APPROVALSREQUIRED", "")

PUSH_GATEWAY = os.environ.get("PUSH_GATEWAY")
