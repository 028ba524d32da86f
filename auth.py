"""
Authentication routes and dependencies
"""

from typing import Optional
from fastapi import APIRouter, HTTPException, Header, Depends, Cookie
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from database import get_db
from database_models import User
from crud.user import UserRepository
from auth_utils import create_jwt, decode_jwt, extract_bearer_token, is_super_admin_email, user_id_from_claims
from backend.utils.errors import AppError
from services.firebase_service import FirebaseAuthService, FirebaseTokenError, get_firebase_service
from services.institution_plan_service import InstitutionPlanService
from services.settings_service import SettingsService
from config import settings

logger = logging.getLogger(__name__)

ANONYMOUS_DISPLAY_NAME = "Anonymous User"

# Create auth router
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


# Request models
class FirebaseAuthRequest(BaseModel):
    firebase_token: Optional[str] = None


def _token_response(content: dict, token: str) -> JSONResponse:
    """JSON response that also carries the token as an httpOnly cookie."""
    response = JSONResponse(content=jsonable_encoder(content))
    response.set_cookie(
        key="auth_token",
        value=token,
        httponly=True,
        secure=True,
        samesite="Lax",
        max_age=settings.jwt_expires_days * 86400,
    )
    return response


def _issue_token(user: User) -> str:
    return create_jwt(str(user.id), super_admin=is_super_admin_email(user.email))


async def resolve_subscription_payload(user: User, db: AsyncSession) -> dict:
    """
    Stored subscription, with plan/status/end date replaced by the effective
    plan for institution users. Falls back to the stored values on error.
    """
    subscription = user.subscription.model_dump()
    if user.is_institution_user and user.institution_id:
        try:
            effective = await InstitutionPlanService(db).get_effective_plan(user)
            subscription.update(
                plan=effective.plan,
                status=effective.status,
                end_date=effective.end_date,
            )
        except Exception as e:
            logger.error(f"Error getting effective plan for user {user.id}: {e}", exc_info=True)
    return subscription


async def build_user_payload(user: User, db: AsyncSession, include_created_at: bool = False) -> dict:
    payload = {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "photo_url": user.photo_url,
        "subscription": await resolve_subscription_payload(user, db),
        "is_institution_user": user.is_institution_user,
        "institution_id": user.institution_id,
    }
    if include_created_at:
        payload["created_at"] = user.created_at
    return payload


@auth_router.post("/firebase")
async def authenticate_with_firebase(
    request: FirebaseAuthRequest,
    db: AsyncSession = Depends(get_db),
    firebase_service: FirebaseAuthService = Depends(get_firebase_service),
):
    """Register or log in with a Firebase ID token and receive an API JWT"""
    if not request.firebase_token:
        raise AppError("Firebase token is required", 400, "MISSING_TOKEN")

    try:
        decoded_token = firebase_service.verify_id_token(request.firebase_token)
    except FirebaseTokenError as e:
        logger.warning(f"Firebase token rejected: {e}")
        raise AppError("Invalid or expired Firebase token", 401, "INVALID_FIREBASE_TOKEN")

    uid = decoded_token["uid"]
    email = decoded_token.get("email")
    picture = decoded_token.get("picture")

    firebase_user = firebase_service.get_user(uid)
    display_name = firebase_user.display_name or decoded_token.get("name") or ANONYMOUS_DISPLAY_NAME

    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_firebase_uid(uid)

    if user is None:
        settings_service = SettingsService(db)
        if not await settings_service.is_registration_enabled():
            raise AppError(
                "Registration is currently disabled. Please contact support for assistance.",
                403,
                "REGISTRATION_DISABLED",
            )

        if await settings_service.is_email_verification_required() and not decoded_token.get("email_verified"):
            raise AppError(
                "Email verification is required. Please verify your email address before accessing the platform.",
                403,
                "EMAIL_NOT_VERIFIED",
            )

        existing_user = await user_repo.get_user_by_email(email) if email else None
        if existing_user:
            # Link the Firebase identity to the account registered with this email
            updates = {"firebase_uid": uid}
            if not existing_user.display_name or existing_user.display_name == ANONYMOUS_DISPLAY_NAME:
                updates["display_name"] = display_name
            if not existing_user.photo_url and picture:
                updates["photo_url"] = picture
            user = await user_repo.update_user(existing_user, updates)
        else:
            user = await user_repo.create_user({
                "firebase_uid": uid,
                "email": email or f"{uid}@firebase.user",
                "display_name": display_name,
                "photo_url": picture or firebase_user.photo_url,
            })
            logger.info(f"Registered new user {user.id} via Firebase")
    elif (not user.display_name or user.display_name == ANONYMOUS_DISPLAY_NAME) and display_name != ANONYMOUS_DISPLAY_NAME:
        user = await user_repo.update_user(user, {"display_name": display_name})

    token = _issue_token(user)

    return _token_response(
        {
            "success": True,
            "message": "Authentication successful",
            "token": token,
            "user": await build_user_payload(user, db),
        },
        token,
    )


# Dependency for protected routes
async def get_token_payload(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> dict:
    """
    Decode the caller's JWT.

    Authentication priority:
    1. auth_token cookie (httpOnly cookie set by the auth endpoints)
    2. Authorization header (Bearer token) for API consumers
    """
    token = auth_token or extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing authentication token")

    try:
        payload = decode_jwt(token)
    except ValueError as e:
        logger.warning(f"Cannot verify token: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = user_id_from_claims(payload)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid user ID in token")
    payload["user_id"] = user_id

    return payload


async def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await UserRepository(db).get_user_by_id(payload["user_id"])
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def get_optional_user(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Current user when a valid token is present, otherwise None."""
    token = auth_token or extract_bearer_token(authorization)
    if not token:
        return None
    try:
        user_id = user_id_from_claims(decode_jwt(token))
    except ValueError as e:
        logger.warning(f"Cannot verify token: {e}")
        return None
    if user_id is None:
        return None
    return await UserRepository(db).get_user_by_id(user_id)


async def require_super_admin(payload: dict = Depends(get_token_payload)) -> dict:
    if payload.get("super_admin") is not True:
        raise HTTPException(status_code=403, detail="Super admin access required")
    return payload


@auth_router.get("/me")
async def get_current_user_info(
    payload: dict = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db),
):
    """Get current user information from JWT token"""
    user = await UserRepository(db).get_user_by_id(payload["user_id"])
    if not user:
        raise AppError("User not found", 404, "USER_NOT_FOUND")

    return jsonable_encoder({
        "success": True,
        "user": await build_user_payload(user, db, include_created_at=True),
    })


@auth_router.post("/refresh")
async def refresh_token(
    payload: dict = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db),
):
    """Issue a fresh JWT for the current user"""
    user = await UserRepository(db).get_user_by_id(payload["user_id"])
    if not user:
        raise AppError("User not found", 404, "USER_NOT_FOUND")

    token = _issue_token(user)
    return _token_response(
        {"success": True, "message": "Token refreshed successfully", "token": token},
        token,
    )


@auth_router.post("/logout")
async def logout():
    """Logout and clear auth token cookie"""
    response = JSONResponse(
        content={
            "success": True,
            "message": "Logged out successfully"
        }
    )
    # Clear the auth_token cookie by setting max_age=0
    response.set_cookie(
        key="auth_token",
        value="",
        httponly=True,
        secure=True,
        samesite="Lax",
        max_age=0
    )
    return response
