"""
Periodic expiry sweep for institution and personal subscriptions
"""
import asyncio
from typing import Optional
import logging

from services.institution_plan_service import InstitutionPlanService
from services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


class SubscriptionSweeper:
    """
    Background task that expires lapsed subscriptions every interval_seconds.
    An interval of 0 disables the sweeper.
    """

    def __init__(self, session_factory, interval_seconds: int = 3600):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> dict:
        """Institution expiry first, then personal expiry, each in its own session."""
        async with self.session_factory() as db:
            institutions = await InstitutionPlanService(db).check_expired_institution_subscriptions()

        async with self.session_factory() as db:
            personal = await SubscriptionService(db).update_expired_subscriptions()

        logger.info(
            f"Subscription sweep: {institutions.expired_institutions} institutions expired, "
            f"{institutions.updated_users} institution users updated, "
            f"{personal.get('updated_count', 0)} personal subscriptions expired"
        )
        return {"institutions": institutions.model_dump(), "personal": personal}

    async def _loop(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Subscription sweep failed: {e}", exc_info=True)

    def start(self) -> bool:
        if self.interval_seconds <= 0:
            logger.info("Subscription sweeper disabled")
            return False
        if self.running:
            return True
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Subscription sweeper started (every {self.interval_seconds}s)")
        return True

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Subscription sweeper stopped")
