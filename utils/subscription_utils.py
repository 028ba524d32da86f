"""
Pure subscription helpers shared by services, routers and admin tooling.
"""
import math
from datetime import datetime
from typing import Optional

from config import (
    PLAN_FREE,
    PLAN_LIFETIME,
    PLAN_INSTITUTION,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    STATUS_CANCELLED,
)
from models.subscription import Subscription

SECONDS_PER_DAY = 86400


def is_plan_active(plan: Optional[str], status: Optional[str], end_date: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Whether a plan is currently usable.

    Free plans are never active, lifetime and institution plans ignore the
    end date, everything else is compared against now.
    """
    if not plan or plan == PLAN_FREE:
        return False

    if status != STATUS_ACTIVE:
        return False

    if plan in (PLAN_LIFETIME, PLAN_INSTITUTION):
        return True

    now = now or datetime.utcnow()
    if end_date and end_date < now:
        return False

    return True


def calculate_days_remaining(end_date: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """
    Whole days left until end_date, rounded up and clamped to 0.

    Returns:
        None when there is no end date
    """
    if end_date is None:
        return None
    now = now or datetime.utcnow()
    diff_days = (end_date - now).total_seconds() / SECONDS_PER_DAY
    return max(0, math.ceil(diff_days))


def get_display_plan(subscription: Optional[Subscription], is_institution_user: bool = False,
                     institution_id: Optional[int] = None, now: Optional[datetime] = None) -> str:
    """
    Plan a client should display: expired or past-dated plans show as free,
    lifetime and institution plans are shown as stored.
    """
    if subscription is None:
        if is_institution_user and institution_id:
            return PLAN_INSTITUTION
        return PLAN_FREE

    if subscription.plan in (PLAN_INSTITUTION, PLAN_LIFETIME):
        return subscription.plan

    if subscription.status == STATUS_EXPIRED:
        return PLAN_FREE

    now = now or datetime.utcnow()
    if subscription.end_date and subscription.end_date < now:
        return PLAN_FREE

    return subscription.plan or PLAN_FREE


def get_display_status(subscription: Optional[Subscription], now: Optional[datetime] = None) -> str:
    if subscription is None:
        return STATUS_ACTIVE

    if subscription.status in (STATUS_EXPIRED, STATUS_CANCELLED):
        return subscription.status

    if subscription.end_date and subscription.plan not in (PLAN_LIFETIME, PLAN_INSTITUTION):
        now = now or datetime.utcnow()
        if subscription.end_date < now:
            return STATUS_EXPIRED

    return subscription.status or STATUS_ACTIVE
