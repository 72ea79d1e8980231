"""
Lazy Firebase Admin initialization.

The app is created on first use so the API can start before the hosting
environment provides credentials. Credential sources, first match wins:
1. GOOGLE_APPLICATION_CREDENTIALS (application default credentials)
2. the first *.json file in CREDENTIALS_DIR (dist/credentials)
3. FIREBASE_SERVICE_ACCOUNT_BASE64 (base64 encoded JSON)
4. FIREBASE_SERVICE_ACCOUNT (JSON string)
5. FIREBASE_PROJECT_ID + FIREBASE_CLIENT_EMAIL + FIREBASE_PRIVATE_KEY

SECURITY: never log credential contents.
"""

import base64
import glob
import json
import logging
import os
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.auth.exceptions import GoogleAuthError

from backoffice.config import settings
from backoffice.services.errors import ServiceNotConfiguredError

logger = logging.getLogger(__name__)


def _service_account_from_dir() -> Optional[Dict[str, Any]]:
    candidates = sorted(glob.glob(os.path.join(settings.CREDENTIALS_DIR, "*.json")))
    if not candidates:
        return None
    try:
        with open(candidates[0], encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        # Fall through to the environment-based sources
        logger.warning(f"Firebase fallback credential read failed: {e}")
        return None


def _resolve_credential() -> credentials.Base:
    """
    Pick the first available credential source.

    Raises:
        ServiceNotConfiguredError: If no source is configured or a JSON
            source cannot be parsed.
    """
    if settings.GOOGLE_APPLICATION_CREDENTIALS:
        return credentials.ApplicationDefault()

    info = _service_account_from_dir()
    if info:
        return credentials.Certificate(info)

    if settings.FIREBASE_SERVICE_ACCOUNT_BASE64:
        try:
            decoded = base64.b64decode(settings.FIREBASE_SERVICE_ACCOUNT_BASE64).decode("utf-8")
            return credentials.Certificate(json.loads(decoded))
        except (ValueError, UnicodeDecodeError) as e:
            raise ServiceNotConfiguredError("FIREBASE_SERVICE_ACCOUNT_BASE64 is not valid base64 JSON") from e

    if settings.FIREBASE_SERVICE_ACCOUNT:
        try:
            return credentials.Certificate(json.loads(settings.FIREBASE_SERVICE_ACCOUNT))
        except ValueError as e:
            raise ServiceNotConfiguredError("FIREBASE_SERVICE_ACCOUNT must be a valid JSON string") from e

    if settings.FIREBASE_PRIVATE_KEY and settings.FIREBASE_CLIENT_EMAIL and settings.FIREBASE_PROJECT_ID:
        return credentials.Certificate({
            "type": "service_account",
            "project_id": settings.FIREBASE_PROJECT_ID,
            "client_email": settings.FIREBASE_CLIENT_EMAIL,
            "private_key": settings.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        })

    raise ServiceNotConfiguredError(
        "Firebase admin credentials not found. Provide GOOGLE_APPLICATION_CREDENTIALS, "
        "FIREBASE_SERVICE_ACCOUNT_BASE64, FIREBASE_SERVICE_ACCOUNT, or the individual FIREBASE_* vars."
    )


def get_firebase_app() -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first call."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    app = firebase_admin.initialize_app(_resolve_credential(), options)
    logger.info("Firebase Admin initialized")
    return app


def get_firestore_client():
    """
    Firestore client bound to the default Firebase app.

    Raises:
        ServiceNotConfiguredError: If no credentials are configured or the
            configured ones cannot be loaded.
    """
    try:
        return firestore.client(get_firebase_app())
    except (GoogleAuthError, ValueError) as e:
        logger.error(f"Firestore client could not be created: {type(e).__name__}")
        raise ServiceNotConfiguredError(f"Firebase credentials could not be loaded: {e}") from e
