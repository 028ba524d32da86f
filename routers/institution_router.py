"""
Institution Router - super admin management of institutions and their members
"""
import logging
from datetime import datetime
from typing import Optional, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_super_admin
from config import STATUS_ACTIVE
from crud.institution import InstitutionRepository
from crud.user import UserRepository
from database import get_db
from database_models import Institution
from models.contact import validate_email
from services.institution_plan_service import InstitutionPlanService, is_institution_subscription_active
from services.settings_service import SettingsService
from services.subscription_service import SubscriptionService
from backend.utils.errors import AppError
from backend.utils.responses import success_response

logger = logging.getLogger(__name__)

# Create router
institution_router = APIRouter(prefix="/api/super-admin", tags=["institutions"])

SubscriptionStatusValue = Literal["active", "expired", "cancelled"]


# Request models
class InstitutionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    admin_email: Optional[str] = None
    subscription_status: SubscriptionStatusValue = STATUS_ACTIVE
    subscription_end_date: Optional[datetime] = None


class InstitutionSubscriptionUpdate(BaseModel):
    status: Optional[SubscriptionStatusValue] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class InstitutionMemberRequest(BaseModel):
    email: str


def institution_payload(institution: Institution, user_count: Optional[int] = None) -> dict:
    payload = {
        "id": institution.id,
        "name": institution.name,
        "email": institution.email,
        "admin_email": institution.admin_email,
        "subscription": {
            "plan": institution.subscription_plan,
            "status": institution.subscription_status,
            "start_date": institution.subscription_start_date,
            "end_date": institution.subscription_end_date,
        },
        "is_active": is_institution_subscription_active(institution),
    }
    if user_count is not None:
        payload["user_count"] = user_count
    return payload


async def _get_institution_or_404(db: AsyncSession, institution_id: int) -> Institution:
    institution = await InstitutionRepository(db).get_by_id(institution_id)
    if institution is None:
        raise AppError("Institution not found", 404, "INSTITUTION_NOT_FOUND")
    return institution


@institution_router.post("/institutions", status_code=201)
async def create_institution(
    request: InstitutionCreate,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    data = request.model_dump()
    for key in ("email", "admin_email"):
        if data[key] and not validate_email(data[key]):
            raise AppError(f"Invalid {key.replace('_', ' ')}", 400, "VALIDATION_ERROR")
        if data[key]:
            data[key] = data[key].strip().lower()

    institution = await InstitutionRepository(db).create(data)
    logger.info(f"Institution {institution.id} created")
    return success_response(
        data={"institution": institution_payload(institution, user_count=0)},
        message="Institution created",
        status=201,
    )


@institution_router.get("/institutions/{institution_id}")
async def get_institution(
    institution_id: int,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    institution = await _get_institution_or_404(db, institution_id)
    user_count = await UserRepository(db).count_institution_users(institution.id)
    return success_response(
        data={"institution": institution_payload(institution, user_count=user_count)},
        message="Institution retrieved",
    )


@institution_router.put("/institutions/{institution_id}/subscription")
async def update_institution_subscription(
    institution_id: int,
    request: InstitutionSubscriptionUpdate,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """Change an institution's subscription, then reconcile every member's plan"""
    institution = await _get_institution_or_404(db, institution_id)

    changes = request.model_dump(exclude_unset=True)
    if "status" in changes and changes["status"] is not None:
        institution.subscription_status = changes["status"]
    if "start_date" in changes:
        institution.subscription_start_date = changes["start_date"]
    if "end_date" in changes:
        institution.subscription_end_date = changes["end_date"]
    institution = await InstitutionRepository(db).save(institution)

    sync = await InstitutionPlanService(db).update_institution_users_plans(institution.id)
    if not sync.success:
        logger.warning(f"Plan reconciliation failed for institution {institution.id}: {sync.error}")

    return success_response(
        data={
            "institution": institution_payload(institution),
            "sync": sync.model_dump(),
        },
        message="Institution subscription updated",
    )


@institution_router.post("/institutions/{institution_id}/users")
async def add_institution_member(
    institution_id: int,
    request: InstitutionMemberRequest,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    institution = await _get_institution_or_404(db, institution_id)
    user_repo = UserRepository(db)

    user = await user_repo.get_user_by_email(request.email)
    if user is None:
        raise AppError("User not found", 404, "USER_NOT_FOUND")

    if user.institution_id and user.institution_id != institution.id:
        raise AppError("User already belongs to another institution", 400, "USER_IN_OTHER_INSTITUTION")

    if user.institution_id != institution.id:
        max_users = await SettingsService(db).get_max_users_per_institution()
        user_count = await user_repo.count_institution_users(institution.id)
        if user_count >= max_users:
            raise AppError(
                f"Institution has reached the maximum of {max_users} users",
                400,
                "INSTITUTION_USER_LIMIT",
            )

    user = await InstitutionPlanService(db, user_repo).apply_institution_plan(user, institution)
    logger.info(f"User {user.id} added to institution {institution.id}")
    return success_response(
        data={"user": {"id": user.id, "email": user.email, "subscription": user.subscription.model_dump()}},
        message="User added to institution",
    )


@institution_router.delete("/institutions/{institution_id}/users/{user_id}")
async def remove_institution_member(
    institution_id: int,
    user_id: int,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    await _get_institution_or_404(db, institution_id)
    user_repo = UserRepository(db)

    user = await user_repo.get_user_by_id(user_id)
    if user is None or user.institution_id != institution_id:
        raise AppError("User is not a member of this institution", 404, "USER_NOT_FOUND")

    user = await InstitutionPlanService(db, user_repo).remove_institution_plan(user)
    logger.info(f"User {user.id} removed from institution {institution_id}")
    return success_response(
        data={"user": {"id": user.id, "email": user.email, "subscription": user.subscription.model_dump()}},
        message="User removed from institution",
    )


@institution_router.post("/subscriptions/check-expired")
async def check_expired_subscriptions(
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """Run the institution and personal expiry sweeps on demand"""
    institutions = await InstitutionPlanService(db).check_expired_institution_subscriptions()
    personal = await SubscriptionService(db).update_expired_subscriptions()
    return success_response(
        data={"institutions": institutions.model_dump(), "personal": personal},
        message="Expired subscriptions checked",
    )
