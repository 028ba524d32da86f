"""
Subscription Router - the caller's subscription status and effective plan
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from database import get_db
from database_models import User
from services.subscription_service import SubscriptionService
from services.institution_plan_service import InstitutionPlanService
from backend.utils.responses import success_response

# Create router
subscription_router = APIRouter(prefix="/api/subscription", tags=["subscription"])


@subscription_router.get("/status")
async def get_subscription_status(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    status = await SubscriptionService(db).get_subscription_status(current_user.subscription, current_user)
    return success_response(data={"subscription": status.model_dump()}, message="Subscription status retrieved")


@subscription_router.get("/effective-plan")
async def get_effective_plan(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    effective = await InstitutionPlanService(db).get_effective_plan(current_user)
    return success_response(data={"plan": effective.model_dump()}, message="Effective plan retrieved")
