import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file)
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./ledger.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))

    # Status-change events; unset means log only
    EVENT_WEBHOOK_URL = data.get("EVENT_WEBHOOK_URL", None)

    # Native currency per credit, used for purchase quotes
    COMPUTE_CREDIT_PRICE = str(data.get("COMPUTE_CREDIT_PRICE", "0.000001"))
    STORAGE_CREDIT_PRICE = str(data.get("STORAGE_CREDIT_PRICE", "0.0000001"))

    # Balance reconciliation
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily

    # Pending purchase expiry
    PENDING_PURCHASE_EXPIRY_ENABLED = bool(data.get("PENDING_PURCHASE_EXPIRY_ENABLED", True))
    PENDING_PURCHASE_TIMEOUT_SECONDS = data.get("PENDING_PURCHASE_TIMEOUT_SECONDS", 3600)
    PENDING_PURCHASE_CHECK_INTERVAL_SECONDS = data.get("PENDING_PURCHASE_CHECK_INTERVAL_SECONDS", 300)
