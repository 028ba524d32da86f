"""
Firebase Admin integration for verifying client ID tokens
"""
import json
import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth, credentials

from config import settings

logger = logging.getLogger(__name__)


class FirebaseTokenError(Exception):
    """The Firebase ID token could not be verified."""


def _load_credentials() -> Optional[credentials.Certificate]:
    # Try the service account file first, then the FIREBASE_CREDENTIALS env var
    if os.path.exists(settings.firebase_credentials_path):
        return credentials.Certificate(settings.firebase_credentials_path)
    if settings.firebase_credentials:
        return credentials.Certificate(json.loads(settings.firebase_credentials))
    return None


def initialize_firebase() -> firebase_admin.App:
    """Initialize the default Firebase app once per process."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    cred = _load_credentials()
    if cred is None:
        raise RuntimeError("Firebase credentials not found!")
    app = firebase_admin.initialize_app(cred)
    logger.info("Firebase Admin initialized")
    return app


class FirebaseAuthService:

    def __init__(self):
        self._app = None

    def _get_app(self) -> firebase_admin.App:
        if self._app is None:
            self._app = initialize_firebase()
        return self._app

    def verify_id_token(self, token: str) -> dict:
        """
        Verify a client ID token.

        Returns:
            Decoded token claims (uid, email, name, picture, email_verified, ...)

        Raises:
            FirebaseTokenError: if the token is invalid, expired or revoked
        """
        try:
            return firebase_auth.verify_id_token(token, app=self._get_app())
        except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
                firebase_auth.RevokedIdTokenError) as e:
            raise FirebaseTokenError(str(e)) from e

    def get_user(self, uid: str) -> firebase_auth.UserRecord:
        return firebase_auth.get_user(uid, app=self._get_app())


_firebase_service: Optional[FirebaseAuthService] = None


def get_firebase_service() -> FirebaseAuthService:
    """FastAPI dependency; overridden in tests."""
    global _firebase_service
    if _firebase_service is None:
        _firebase_service = FirebaseAuthService()
    return _firebase_service
