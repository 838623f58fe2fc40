"""Firebase Admin SDK setup for verifying sign-in tokens."""

import logging
import os
from functools import lru_cache

import firebase_admin
from firebase_admin import auth, credentials

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def initialize_firebase() -> firebase_admin.App:
    """Initialize Firebase Admin SDK once per process.

    Raises:
        ValueError: If FIREBASE_PROJECT_ID is not set
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass  # Not initialized yet

    project_id = os.environ.get("FIREBASE_PROJECT_ID")
    service_account_path = os.environ.get("FIREBASE_SERVICE_ACCOUNT_KEY_PATH")

    if not project_id:
        raise ValueError("FIREBASE_PROJECT_ID environment variable is required")

    if service_account_path and os.path.exists(service_account_path):
        logger.info("Initializing Firebase with service account %s", service_account_path)
        cred = credentials.Certificate(service_account_path)
        return firebase_admin.initialize_app(cred, {"projectId": project_id})

    # Application Default Credentials (local development, emulator)
    logger.info("Initializing Firebase for project %s with default credentials", project_id)
    cred = credentials.ApplicationDefault()
    return firebase_admin.initialize_app(cred, {"projectId": project_id})


def get_firebase_auth() -> auth:
    """Return the firebase_admin.auth module after making sure the app exists."""
    initialize_firebase()
    return auth
