"""
Unit tests for the pure subscription helpers
"""
from datetime import datetime, timedelta

from models.subscription import Subscription
from utils.subscription_utils import (
    is_plan_active,
    calculate_days_remaining,
    get_display_plan,
    get_display_status,
)

NOW = datetime(2025, 6, 1, 12, 0, 0)


def test_free_plan_is_never_active():
    assert is_plan_active("free", "active", None, now=NOW) is False
    assert is_plan_active(None, "active", None, now=NOW) is False


def test_non_active_status_is_inactive():
    assert is_plan_active("pro", "expired", NOW + timedelta(days=5), now=NOW) is False
    assert is_plan_active("lifetime", "cancelled", None, now=NOW) is False


def test_lifetime_and_institution_ignore_end_date():
    past = NOW - timedelta(days=400)
    assert is_plan_active("lifetime", "active", past, now=NOW) is True
    assert is_plan_active("institution", "active", past, now=NOW) is True


def test_pro_plan_respects_end_date():
    assert is_plan_active("pro", "active", NOW + timedelta(seconds=1), now=NOW) is True
    assert is_plan_active("pro", "active", NOW - timedelta(seconds=1), now=NOW) is False
    assert is_plan_active("pro", "active", None, now=NOW) is True


def test_days_remaining_rounds_up():
    assert calculate_days_remaining(NOW + timedelta(days=2, hours=1), now=NOW) == 3
    assert calculate_days_remaining(NOW + timedelta(hours=1), now=NOW) == 1
    assert calculate_days_remaining(NOW + timedelta(days=7), now=NOW) == 7


def test_days_remaining_never_negative():
    assert calculate_days_remaining(NOW - timedelta(days=3), now=NOW) == 0


def test_days_remaining_without_end_date():
    assert calculate_days_remaining(None, now=NOW) is None


def test_display_plan_shows_free_for_lapsed_pro():
    expired = Subscription(plan="pro", status="expired")
    past_due = Subscription(plan="pro", status="active", end_date=NOW - timedelta(days=1))
    current = Subscription(plan="pro", status="active", end_date=NOW + timedelta(days=1))

    assert get_display_plan(expired, now=NOW) == "free"
    assert get_display_plan(past_due, now=NOW) == "free"
    assert get_display_plan(current, now=NOW) == "pro"


def test_display_plan_keeps_lifetime_and_institution():
    lifetime = Subscription(plan="lifetime", status="expired")
    institution = Subscription(plan="institution", status="active", end_date=NOW - timedelta(days=1))

    assert get_display_plan(lifetime, now=NOW) == "lifetime"
    assert get_display_plan(institution, now=NOW) == "institution"


def test_display_plan_without_subscription():
    assert get_display_plan(None) == "free"
    assert get_display_plan(None, is_institution_user=True, institution_id=1) == "institution"


def test_display_status():
    assert get_display_status(None) == "active"
    assert get_display_status(Subscription(plan="pro", status="cancelled"), now=NOW) == "cancelled"
    assert get_display_status(
        Subscription(plan="pro", status="active", end_date=NOW - timedelta(days=1)), now=NOW
    ) == "expired"
    assert get_display_status(
        Subscription(plan="lifetime", status="active", end_date=NOW - timedelta(days=1)), now=NOW
    ) == "active"
