"""
JWT helpers for the API tokens issued after Firebase sign-in
"""

import jwt
from datetime import datetime, timedelta
from typing import Optional
from config import settings

ALGORITHM = "HS256"


def _signing_key() -> str:
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot sign or verify JWT tokens.")
    return settings.jwt_secret_key


def _encode(user_id: str, expires_at: datetime, super_admin: bool = False) -> str:
    claims = {"sub": user_id, "exp": expires_at}
    if super_admin:
        claims["super_admin"] = True
    return jwt.encode(claims, _signing_key(), algorithm=ALGORITHM)


def create_jwt(user_id: str, super_admin: bool = False, expires_days: Optional[int] = None) -> str:
    """
    Token for a user id. Valid for JWT_EXPIRES_DAYS unless expires_days is given;
    super_admin adds the claim that unlocks the admin surface.
    """
    expires_at = datetime.utcnow() + timedelta(days=expires_days or settings.jwt_expires_days)
    return _encode(user_id, expires_at, super_admin=super_admin)


def create_expired_jwt(user_id: str, expired_seconds_ago: int = 1) -> str:
    """Already-expired token, for exercising rejection paths in tests."""
    return _encode(user_id, datetime.utcnow() - timedelta(seconds=expired_seconds_ago))


def decode_jwt(token: str) -> Optional[dict]:
    """Claims of a valid token; None when expired, tampered or malformed."""
    try:
        return jwt.decode(token, _signing_key(), algorithms=[ALGORITHM])
    except jwt.InvalidTokenError:
        return None


def user_id_from_claims(claims: Optional[dict]) -> Optional[int]:
    if not claims:
        return None
    try:
        return int(claims.get("sub"))
    except (TypeError, ValueError):
        return None


def is_super_admin_email(email: Optional[str]) -> bool:
    return bool(email) and email.strip().lower() in settings.super_admin_email_list


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None
