# file: ILIOS/core/config.py
import os
import logging

logger = logging.getLogger("core.config")

# ==============================
# Server
# ==============================
ENVIRONMENT = os.getenv("APP_ENV", "development")
IS_PRODUCTION = ENVIRONMENT == "production"
PORT = int(os.getenv("PORT", "3001"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_TO_CLOUD = os.getenv("LOG_TO_CLOUD", "").lower() in {"1", "true", "yes"}
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() in {"1", "true", "yes"}
API_VERSION = "1.0.0"

# ==============================
# Y-Note / Paynote API Settings
# ==============================
YNOTE_TOKEN_URL = os.getenv("YNOTE_TOKEN_URL", "https://omapi-token.ynote.africa/oauth2/token")
YNOTE_BASE_URL = os.getenv("YNOTE_BASE_URL", "https://omapi.ynote.africa/prod")
YNOTE_CURRENCY = "XAF"
YNOTE_TIMEOUT = float(os.getenv("YNOTE_TIMEOUT", "30"))

YNOTE_CLIENT_ID = os.getenv("YNOTE_CLIENT_ID", "")
YNOTE_CLIENT_SECRET = os.getenv("YNOTE_CLIENT_SECRET", "")
YNOTE_CUSTOMER_KEY = os.getenv("YNOTE_CUSTOMER_KEY", "")
YNOTE_SUBSCRIPTION_KEY = os.getenv("YNOTE_SUBSCRIPTION_KEY", "")

# ==============================
# Firebase
# ==============================
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "ilios-pub-c2eee")
# Either a path to the service account file or the raw JSON itself
CREDENTIAL_SOURCE = os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "")

# ==============================
# CORS
# ==============================
CORS_ALLOWED_ORIGINS = [
    origin
    for origin in [
        "http://localhost:5173",
        "http://localhost:8080",
        "http://localhost:3000",
        "http://localhost:3001",
        "https://ilios-pub-c2eee.web.app",
        "https://ilios-pub-c2eee.firebaseapp.com",
        *os.getenv("ADDITIONAL_CORS_ORIGINS", "").split(","),
    ]
    if origin.strip()
]

# ==============================
# Vendor callback
# ==============================
CALLBACK_HOST = os.getenv("CALLBACK_HOST", "http://localhost:3001")
CALLBACK_PATH = "/api/webhooks/ynote-callback"
CALLBACK_URL = f"{CALLBACK_HOST.rstrip('/')}{CALLBACK_PATH}"


def missing_credentials() -> list:
    required = {
        "YNOTE_CLIENT_ID": YNOTE_CLIENT_ID,
        "YNOTE_CLIENT_SECRET": YNOTE_CLIENT_SECRET,
        "YNOTE_CUSTOMER_KEY": YNOTE_CUSTOMER_KEY,
        "YNOTE_SUBSCRIPTION_KEY": YNOTE_SUBSCRIPTION_KEY,
    }
    return [key for key, value in required.items() if not value]


def validate_env() -> None:
    """
    Check that the Y-Note credentials are present.
    Production refuses to start without them; development only warns.
    """
    missing = missing_credentials()
    if not missing:
        return

    missing_keys = ", ".join(missing)
    logger.error("Missing environment variables: %s", missing_keys)
    if IS_PRODUCTION:
        raise RuntimeError(f"Missing environment variables: {missing_keys}")
    logger.warning("Development mode: continuing without all Y-Note credentials")


def log_config() -> None:
    logger.info("Configuration loaded:")
    logger.info("   - Port: %s", PORT)
    logger.info("   - Environment: %s", ENVIRONMENT)
    logger.info("   - Y-Note base URL: %s", YNOTE_BASE_URL)
    logger.info("   - Firebase project: %s", FIREBASE_PROJECT_ID)
    logger.info("   - Callback URL: %s", CALLBACK_URL)
    logger.info("   - CORS origins: %d", len(CORS_ALLOWED_ORIGINS))
    logger.info("   - Y-Note credentials: %s", "present" if YNOTE_CLIENT_ID else "missing")
