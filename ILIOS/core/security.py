# file: ILIOS/core/security.py
import logging
from fastapi import Depends, Request
from fastapi.security import HTTPBearer
from firebase_admin import auth
from google.api_core.exceptions import GoogleAPIError

from ILIOS.core.errors import ErrorKind, PaymentError

# ---------------------------
# Logging
# ---------------------------
logger = logging.getLogger("core.security")

ADMIN_ROLES = {"admin", "both"}

security = HTTPBearer(auto_error=False)


# ---------------------------
# Dependency: Current User (Firebase ID token)
# ---------------------------
async def get_current_user(request: Request, credentials=Depends(security)):
    if credentials is None or not credentials.credentials:
        raise PaymentError(ErrorKind.UNAUTHENTICATED, "Missing authentication token")

    verify_token = request.app.state.verify_token
    try:
        decoded = verify_token(credentials.credentials)
    except auth.ExpiredIdTokenError:
        logger.warning("Expired Firebase ID token")
        raise PaymentError(ErrorKind.TOKEN_EXPIRED, "Token expired, please sign in again")
    except (auth.InvalidIdTokenError, auth.UserDisabledError, auth.CertificateFetchError, ValueError) as e:
        logger.warning("Token verification failed: %s", e)
        raise PaymentError(ErrorKind.INVALID_TOKEN, "Invalid token")

    user = {
        "uid": decoded["uid"],
        "email": decoded.get("email"),
        "role": None,
    }

    # The role lives in Firestore; a lookup failure leaves the user without one
    try:
        profile = request.app.state.store.get("users", user["uid"])
    except GoogleAPIError as e:
        logger.warning("Could not load role for uid=%s: %s", user["uid"], e)
        profile = None
    if profile:
        user["role"] = profile.get("role")

    request.scope["user"] = user
    logger.debug("Authenticated user context: %s", user)
    return user


# ---------------------------
# Role-Based Dependencies
# ---------------------------
async def get_current_admin(current_user: dict = Depends(get_current_user)):
    if current_user.get("role") not in ADMIN_ROLES:
        raise PaymentError(ErrorKind.FORBIDDEN, "Access restricted to administrators")
    return current_user
