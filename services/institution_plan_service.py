"""
Institution Plan Service - plan inheritance for institution members
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import (
    PLAN_FREE,
    PLAN_PRO,
    PLAN_INSTITUTION,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    SOURCE_PERSONAL,
    SOURCE_ORIGINAL,
    SOURCE_INSTITUTION,
)
from crud.institution import InstitutionRepository
from crud.user import UserRepository
from database_models import Institution, User
from models.subscription import EffectivePlan, InstitutionSyncResult, ExpirySweepResult

logger = logging.getLogger(__name__)


def is_institution_subscription_active(institution: Optional[Institution], now: Optional[datetime] = None) -> bool:
    """
    An institution subscription is active when its status is active and,
    if it has an end date, that date is not in the past.
    """
    if institution is None:
        return False

    if institution.subscription_status != STATUS_ACTIVE:
        return False

    if institution.subscription_end_date:
        now = now or datetime.utcnow()
        if institution.subscription_end_date < now:
            return False

    return True


def _original_plan(user: User) -> EffectivePlan:
    return EffectivePlan(
        plan=user.original_plan or PLAN_FREE,
        status=user.original_status or STATUS_ACTIVE,
        end_date=user.original_end_date,
        source=SOURCE_ORIGINAL,
    )


class InstitutionPlanService:
    """
    Resolves and applies the plan institution members inherit.

    Active institution members get Pro benefits: the synthesized plan is
    'pro', never 'institution'.
    """

    def __init__(self, db: AsyncSession, user_repo: Optional[UserRepository] = None,
                 institution_repo: Optional[InstitutionRepository] = None):
        """
        Args:
            db: AsyncSession instance for database operations
            user_repo: UserRepository instance (created from db when omitted)
            institution_repo: InstitutionRepository instance (created from db when omitted)
        """
        self.db = db
        self.user_repo = user_repo or UserRepository(db)
        self.institution_repo = institution_repo or InstitutionRepository(db)

    async def get_effective_plan(self, user: User) -> EffectivePlan:
        """
        Get the plan that should gate feature access right now.

        Args:
            user: User to resolve

        Returns:
            EffectivePlan with source personal, original or institution
        """
        if not user.is_institution_user or not user.institution_id:
            subscription = user.subscription
            return EffectivePlan(
                plan=subscription.plan,
                status=subscription.status,
                end_date=subscription.end_date,
                source=SOURCE_PERSONAL,
            )

        institution = await self.institution_repo.get_by_id(user.institution_id)
        if institution is None:
            return _original_plan(user)

        if is_institution_subscription_active(institution):
            return EffectivePlan(
                plan=PLAN_PRO,
                status=STATUS_ACTIVE,
                end_date=institution.subscription_end_date,
                source=SOURCE_INSTITUTION,
                institution_id=institution.id,
            )

        return _original_plan(user)

    async def apply_institution_plan(self, user: Optional[User], institution: Optional[Institution]) -> User:
        """
        Attach a user to an institution and give them the inherited plan.

        The personal plan is saved to original_plan only when none is
        recorded yet, so repeated calls never clobber it.

        Raises:
            ValueError: if user or institution is missing
        """
        if user is None or institution is None:
            raise ValueError("User and institution are required")

        if not user.original_plan:
            current_plan = user.subscription_plan or PLAN_FREE
            user.original_plan = PLAN_FREE if current_plan == PLAN_INSTITUTION else current_plan
            user.original_status = user.subscription_status
            user.original_end_date = user.subscription_end_date

        is_active = is_institution_subscription_active(institution)
        user.subscription_plan = PLAN_PRO
        user.subscription_status = STATUS_ACTIVE if is_active else STATUS_EXPIRED
        user.subscription_end_date = institution.subscription_end_date
        user.institution_plan_institution_id = institution.id
        user.institution_plan_inherited_from = "institution"
        user.institution_plan_status = institution.subscription_status
        user.institution_id = institution.id
        user.is_institution_user = True

        return await self.user_repo.save(user)

    async def remove_institution_plan(self, user: Optional[User]) -> Optional[User]:
        """
        Detach a user from their institution and restore the personal plan.
        Users that are not institution members are returned untouched.
        """
        if user is None or not user.is_institution_user:
            return user

        if user.original_plan:
            user.subscription_plan = user.original_plan
            user.subscription_status = user.original_status or STATUS_ACTIVE
            user.subscription_end_date = user.original_end_date
        else:
            user.subscription_plan = PLAN_FREE
            user.subscription_status = STATUS_ACTIVE
            user.subscription_end_date = None

        user.institution_plan_institution_id = None
        user.institution_plan_inherited_from = None
        user.institution_plan_status = None
        user.institution_id = None
        user.is_institution_user = False

        return await self.user_repo.save(user)

    async def update_institution_users_plans(self, institution_id: int, notify_users: bool = True) -> InstitutionSyncResult:
        """
        Re-apply or revoke the inherited plan for every member of an institution.

        Users are processed one at a time and saved individually. A failure
        stops the loop; users already saved stay updated.

        Args:
            institution_id: Institution whose members should be reconciled
            notify_users: Kept for callers that distinguish sweeps from manual changes

        Returns:
            InstitutionSyncResult summary
        """
        updated_count = 0
        try:
            institution = await self.institution_repo.get_by_id(institution_id)
            if institution is None:
                logger.warning(f"Institution {institution_id} not found for plan update")
                return InstitutionSyncResult(success=False, error="Institution not found")

            is_active = is_institution_subscription_active(institution)
            users = await self.user_repo.list_institution_users(institution.id)

            updated_users = []
            for user in users:
                if is_active:
                    await self.apply_institution_plan(user, institution)
                else:
                    await self.remove_institution_plan(user)
                updated_users.append(user.id)
                updated_count += 1

            logger.info(f"Updated plans for {updated_count} users in institution {institution_id}")

            return InstitutionSyncResult(
                success=True,
                updated_count=updated_count,
                user_ids=updated_users,
                institution_status=institution.subscription_status,
                is_active=is_active,
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(
                f"Error updating institution users plans for institution {institution_id} "
                f"after {updated_count} users: {e}",
                exc_info=True,
            )
            return InstitutionSyncResult(success=False, updated_count=updated_count, error=str(e))

    async def check_expired_institution_subscriptions(self) -> ExpirySweepResult:
        """
        Mark lapsed institution subscriptions as expired and revert their members.
        """
        try:
            now = datetime.utcnow()
            expired_institutions = await self.institution_repo.list_expired_active(now)

            updated_institutions = 0
            updated_users = 0

            for institution in expired_institutions:
                institution.subscription_status = STATUS_EXPIRED
                await self.institution_repo.save(institution)
                updated_institutions += 1

                result = await self.update_institution_users_plans(institution.id, notify_users=False)
                if result.success:
                    updated_users += result.updated_count

            logger.info(
                f"Checked expired subscriptions: {updated_institutions} institutions expired, "
                f"{updated_users} users updated"
            )

            return ExpirySweepResult(
                success=True,
                expired_institutions=updated_institutions,
                updated_users=updated_users,
            )
        except Exception as e:
            logger.error(f"Error checking expired institution subscriptions: {e}", exc_info=True)
            return ExpirySweepResult(success=False, error=str(e))
