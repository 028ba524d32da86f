"""
Plan inspection for support: everything that decides what a user sees.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from crud.institution import InstitutionRepository
from crud.user import UserRepository
from services.institution_plan_service import InstitutionPlanService, is_institution_subscription_active
from utils.subscription_utils import get_display_plan, get_display_status, is_plan_active


async def check_user_plan_details(db: AsyncSession, email: str) -> Optional[dict]:
    """
    Collect the stored, original, effective and display plans for a user.

    Returns:
        Report dict, or None when no user has this email
    """
    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_email(email)
    if user is None:
        return None

    subscription = user.subscription
    effective = await InstitutionPlanService(db, user_repo).get_effective_plan(user)

    institution_details = None
    if user.institution_id:
        institution = await InstitutionRepository(db).get_by_id(user.institution_id)
        if institution is not None:
            institution_details = {
                "id": institution.id,
                "name": institution.name,
                "status": institution.subscription_status,
                "end_date": institution.subscription_end_date,
                "is_active": is_institution_subscription_active(institution),
            }

    original = user.original_plan_snapshot

    return {
        "user": {
            "id": user.id,
            "email": user.email,
            "display_name": user.display_name,
            "is_institution_user": user.is_institution_user,
            "institution_id": user.institution_id,
        },
        "subscription": subscription.model_dump(),
        "original_plan": original.model_dump() if original else None,
        "institution_plan": {
            "institution_id": user.institution_plan_institution_id,
            "inherited_from": user.institution_plan_inherited_from,
            "status": user.institution_plan_status,
        },
        "effective_plan": effective.model_dump(),
        "effective_plan_active": is_plan_active(effective.plan, effective.status, effective.end_date),
        "display_plan": get_display_plan(subscription, user.is_institution_user, user.institution_id),
        "display_status": get_display_status(subscription),
        "institution": institution_details,
    }
