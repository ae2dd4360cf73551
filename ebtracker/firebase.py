"""Firebase Admin SDK bootstrap"""

import base64
import json
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials

from .config import (
    FIREBASE_CLIENT_EMAIL,
    FIREBASE_PRIVATE_KEY,
    FIREBASE_PROJECT_ID,
    FIREBASE_SERVICE_ACCOUNT_KEY_BASE64,
    FIREBASE_STORAGE_BUCKET,
)

logger = logging.getLogger(__name__)

REQUIRED_SERVICE_ACCOUNT_FIELDS = ("project_id", "client_email", "private_key")


def load_service_account() -> dict:
    """
    Build the service account dict from the environment.

    Prefers FIREBASE_SERVICE_ACCOUNT_KEY_BASE64 (a base64 encoded JSON key file),
    otherwise falls back to FIREBASE_PROJECT_ID / FIREBASE_CLIENT_EMAIL /
    FIREBASE_PRIVATE_KEY.

    Raises:
        ValueError: If neither form is configured or required fields are missing
    """
    if FIREBASE_SERVICE_ACCOUNT_KEY_BASE64:
        try:
            decoded = base64.b64decode(FIREBASE_SERVICE_ACCOUNT_KEY_BASE64).decode("utf-8")
            service_account = json.loads(decoded)
        except (ValueError, UnicodeDecodeError) as e:
            raise ValueError(f"Invalid FIREBASE_SERVICE_ACCOUNT_KEY_BASE64: {e}") from e

        missing = [f for f in REQUIRED_SERVICE_ACCOUNT_FIELDS if not service_account.get(f)]
        if missing:
            raise ValueError(f"Service account is missing fields: {', '.join(missing)}")
        return service_account

    if FIREBASE_PROJECT_ID and FIREBASE_CLIENT_EMAIL and FIREBASE_PRIVATE_KEY:
        return {
            "type": "service_account",
            "project_id": FIREBASE_PROJECT_ID,
            "client_email": FIREBASE_CLIENT_EMAIL,
            # .env files carry the key on one line with literal \n sequences
            "private_key": FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        }

    raise ValueError(
        "Firebase credentials not configured. Set FIREBASE_SERVICE_ACCOUNT_KEY_BASE64 "
        "or FIREBASE_PROJECT_ID, FIREBASE_CLIENT_EMAIL and FIREBASE_PRIVATE_KEY"
    )


def init_firebase() -> Optional[firebase_admin.App]:
    """Initialize the default Firebase app once. Errors are logged, never raised."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    try:
        service_account = load_service_account()
        cred = credentials.Certificate(service_account)
        options = {"projectId": service_account["project_id"]}
        if FIREBASE_STORAGE_BUCKET:
            options["storageBucket"] = FIREBASE_STORAGE_BUCKET
        app = firebase_admin.initialize_app(cred, options)
        logger.info(f"✅ Firebase Admin initialized for project {service_account['project_id']}")
        return app
    except Exception as e:
        # Let the API start so /health still answers; requests will fail at the store
        logger.error(f"❌ Firebase Admin initialization failed: {e}")
        return None
