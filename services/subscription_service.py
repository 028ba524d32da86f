"""
Subscription Service - personal subscription expiry and status reporting
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import (
    PLAN_FREE,
    PLAN_INSTITUTION,
    PLAN_LIFETIME,
    PLAN_PRO,
    SOURCE_INSTITUTION,
    SOURCE_PERSONAL,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
)
from crud.user import UserRepository
from database_models import User
from models.subscription import Subscription, SubscriptionStatus
from services.institution_plan_service import InstitutionPlanService
from utils.subscription_utils import is_plan_active, calculate_days_remaining

logger = logging.getLogger(__name__)


def _is_linked_institution_user(user: Optional[User]) -> bool:
    return bool(user is not None and user.is_institution_user and user.institution_id)


class SubscriptionService:
    """
    Answers "is this subscription usable right now" for personal and
    institution-backed plans.
    """

    def __init__(self, db: AsyncSession, user_repo: Optional[UserRepository] = None,
                 plan_service: Optional[InstitutionPlanService] = None):
        self.db = db
        self.user_repo = user_repo or UserRepository(db)
        self.plan_service = plan_service or InstitutionPlanService(db, self.user_repo)

    async def update_expired_subscriptions(self) -> dict:
        """
        Flip lapsed personal subscriptions to expired.

        Returns:
            {"success": True, "updated_count": n, "message": str} or {"success": False, "error": str}
        """
        try:
            now = datetime.utcnow()
            expired_users = await self.user_repo.list_expired_personal_subscriptions(now)

            updated_count = 0
            for user in expired_users:
                user.subscription_status = STATUS_EXPIRED
                await self.user_repo.save(user)
                updated_count += 1

            return {
                "success": True,
                "updated_count": updated_count,
                "message": f"Updated {updated_count} expired subscription(s)",
            }
        except Exception as e:
            logger.error(f"Error updating expired subscriptions: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    async def is_subscription_active(self, subscription: Optional[Subscription], user: Optional[User] = None) -> bool:
        """
        Check whether a subscription is active, honouring institution inheritance.

        Args:
            subscription: The stored subscription
            user: Full user, needed to resolve institution plans

        Returns:
            True if the plan currently grants paid access
        """
        if _is_linked_institution_user(user):
            try:
                effective = await self.plan_service.get_effective_plan(user)
                # Members are judged on the plan name alone
                return effective.plan in (PLAN_PRO, PLAN_INSTITUTION, PLAN_LIFETIME)
            except Exception as e:
                logger.error(f"Error checking institution plan for user {user.id}: {e}", exc_info=True)

        if subscription is None:
            return False

        return is_plan_active(subscription.plan, subscription.status, subscription.end_date)

    async def get_subscription_status(self, subscription: Optional[Subscription], user: Optional[User] = None) -> SubscriptionStatus:
        """
        Summarize a subscription for clients.

        days_remaining is rounded up to whole days and never negative; it is
        None for lifetime plans and plans without an end date.
        """
        is_active = await self.is_subscription_active(subscription, user)

        plan = subscription.plan if subscription else PLAN_FREE
        status = subscription.status if subscription else STATUS_ACTIVE
        end_date = subscription.end_date if subscription else None
        source = SOURCE_INSTITUTION if user is not None and user.is_institution_user else SOURCE_PERSONAL

        if _is_linked_institution_user(user):
            try:
                effective = await self.plan_service.get_effective_plan(user)
                plan = effective.plan
                end_date = effective.end_date
            except Exception as e:
                logger.error(f"Error getting effective plan for user {user.id}: {e}", exc_info=True)

        days_remaining = None
        if end_date and plan != PLAN_LIFETIME:
            days_remaining = calculate_days_remaining(end_date)

        return SubscriptionStatus(
            is_active=is_active,
            plan=plan,
            status=status,
            start_date=subscription.start_date if subscription else None,
            end_date=end_date,
            days_remaining=days_remaining,
            is_expired=bool(end_date and end_date < datetime.utcnow()),
            is_lifetime=plan == PLAN_LIFETIME,
            source=source,
        )
