# file: ILIOS/core/firebase.py

import os
import json
import logging
import firebase_admin
from firebase_admin import credentials, firestore

from ILIOS.core.config import CREDENTIAL_SOURCE, FIREBASE_PROJECT_ID

logger = logging.getLogger("core.firebase")

# ------------------------------
# Firestore (Firebase Admin)
# ------------------------------
_db = None


def _load_credential():
    if not CREDENTIAL_SOURCE:
        return None

    # Case 1: it's a file path
    if os.path.exists(CREDENTIAL_SOURCE):
        logger.info("Loading Firebase credentials from file: %s", CREDENTIAL_SOURCE)
        return credentials.Certificate(CREDENTIAL_SOURCE)

    # Case 2: it's a raw JSON string
    logger.info("Loading Firebase credentials from raw JSON string")
    try:
        cred_dict = json.loads(CREDENTIAL_SOURCE)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in 'GOOGLE_APPLICATION_CREDENTIALS': {str(e)}")
    return credentials.Certificate(cred_dict)


def initialize_firebase() -> None:
    """Initialize the Firebase Admin app once per process."""
    if firebase_admin._apps:
        return

    cred = _load_credential()
    if cred is None:
        # Application default credentials or the emulator (FIRESTORE_EMULATOR_HOST)
        app = firebase_admin.initialize_app(options={"projectId": FIREBASE_PROJECT_ID})
    else:
        app = firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
    logger.info("🔥 Firebase initialized with project: %s", app.project_id)


def get_db():
    global _db
    if _db is None:
        initialize_firebase()
        _db = firestore.client()
        logger.info("🔥 Firestore client project: %s", _db.project)
    return _db


__all__ = ["initialize_firebase", "get_db"]
