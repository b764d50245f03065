from slowapi import Limiter
from slowapi.util import get_remote_address

from ILIOS.core.config import RATE_LIMIT_ENABLED

# Shared by the unauthenticated endpoints (phone validation, vendor webhook)
limiter = Limiter(
    key_func=get_remote_address,
    enabled=RATE_LIMIT_ENABLED,
)

PUBLIC_LIMIT = "60/minute"
WEBHOOK_LIMIT = "300/minute"
