"""
Unit tests for SubscriptionService
"""
from datetime import datetime, timedelta

import pytest

from models.subscription import Subscription
from services.institution_plan_service import InstitutionPlanService
from services.subscription_service import SubscriptionService


@pytest.mark.asyncio
async def test_is_subscription_active_for_personal_plans(test_db):
    service = SubscriptionService(test_db)

    assert await service.is_subscription_active(None) is False
    assert await service.is_subscription_active(Subscription(plan="free")) is False
    assert await service.is_subscription_active(Subscription(plan="lifetime")) is True
    assert await service.is_subscription_active(
        Subscription(plan="pro", end_date=datetime.utcnow() + timedelta(days=1))
    ) is True
    assert await service.is_subscription_active(
        Subscription(plan="pro", end_date=datetime.utcnow() - timedelta(days=1))
    ) is False


@pytest.mark.asyncio
async def test_is_subscription_active_uses_institution_plan(test_db, make_user, make_institution):
    """
    A free member of an active institution is active; once the institution
    lapses the original free plan applies again.
    """
    institution = await make_institution()
    user = await make_user()
    await InstitutionPlanService(test_db).apply_institution_plan(user, institution)

    service = SubscriptionService(test_db)
    assert await service.is_subscription_active(user.subscription, user) is True

    institution.subscription_status = "expired"
    await test_db.commit()

    assert await service.is_subscription_active(user.subscription, user) is False


@pytest.mark.asyncio
async def test_is_subscription_active_falls_back_when_resolution_fails(test_db, make_user, monkeypatch):
    user = await make_user(
        subscription_plan="pro",
        subscription_end_date=datetime.utcnow() + timedelta(days=2),
        is_institution_user=True,
        institution_id=7,
    )
    service = SubscriptionService(test_db)

    async def broken(_user):
        raise RuntimeError("lookup failed")

    monkeypatch.setattr(service.plan_service, "get_effective_plan", broken)

    assert await service.is_subscription_active(user.subscription, user) is True


@pytest.mark.asyncio
async def test_get_subscription_status_for_pro(test_db, make_user):
    end_date = datetime.utcnow() + timedelta(days=10, hours=2)
    user = await make_user(subscription_plan="pro", subscription_end_date=end_date, billing_cycle="monthly")

    status = await SubscriptionService(test_db).get_subscription_status(user.subscription, user)

    assert status.is_active is True
    assert status.plan == "pro"
    assert status.status == "active"
    assert status.end_date == end_date
    assert status.days_remaining == 11
    assert status.is_expired is False
    assert status.is_lifetime is False
    assert status.source == "personal"


@pytest.mark.asyncio
async def test_get_subscription_status_for_lifetime(test_db, make_user):
    user = await make_user(
        subscription_plan="lifetime",
        subscription_end_date=datetime.utcnow() + timedelta(days=5),
    )

    status = await SubscriptionService(test_db).get_subscription_status(user.subscription, user)

    assert status.is_active is True
    assert status.is_lifetime is True
    assert status.days_remaining is None


@pytest.mark.asyncio
async def test_get_subscription_status_for_expired_pro(test_db, make_user):
    user = await make_user(
        subscription_plan="pro",
        subscription_end_date=datetime.utcnow() - timedelta(days=2),
    )

    status = await SubscriptionService(test_db).get_subscription_status(user.subscription, user)

    assert status.is_active is False
    assert status.is_expired is True
    assert status.days_remaining == 0


@pytest.mark.asyncio
async def test_get_subscription_status_for_institution_member(test_db, make_user, make_institution):
    institution_end = datetime.utcnow() + timedelta(days=90)
    institution = await make_institution(subscription_end_date=institution_end)
    user = await make_user()
    await InstitutionPlanService(test_db).apply_institution_plan(user, institution)

    status = await SubscriptionService(test_db).get_subscription_status(user.subscription, user)

    assert status.is_active is True
    assert status.plan == "pro"
    assert status.source == "institution"
    assert status.end_date == institution_end
    assert status.days_remaining == 90


@pytest.mark.asyncio
async def test_member_of_expired_institution_falls_back_to_original_plan_name(test_db, make_user, make_institution):
    institution = await make_institution(subscription_status="expired")
    user = await make_user(
        subscription_plan="free",
        original_plan="pro",
        original_status="expired",
        is_institution_user=True,
        institution_id=institution.id,
    )
    service = SubscriptionService(test_db)

    assert await service.is_subscription_active(user.subscription, user) is True

    status = await service.get_subscription_status(user.subscription, user)

    assert status.is_active is True
    assert status.plan == "pro"
    assert status.status == "active"
    assert status.source == "institution"


@pytest.mark.asyncio
async def test_get_subscription_status_without_subscription(test_db):
    status = await SubscriptionService(test_db).get_subscription_status(None)

    assert status.is_active is False
    assert status.plan == "free"
    assert status.days_remaining is None
    assert status.source == "personal"


@pytest.mark.asyncio
async def test_update_expired_subscriptions(test_db, make_user):
    past = datetime.utcnow() - timedelta(days=1)
    lapsed = await make_user(email="lapsed@example.com", subscription_plan="pro", subscription_end_date=past)
    current = await make_user(
        email="current@example.com",
        subscription_plan="pro",
        subscription_end_date=datetime.utcnow() + timedelta(days=1),
    )
    lifetime = await make_user(email="lifetime@example.com", subscription_plan="lifetime", subscription_end_date=past)
    free = await make_user(email="free@example.com", subscription_end_date=past)
    institution_plan = await make_user(
        email="member@example.com",
        subscription_plan="institution",
        subscription_end_date=past,
    )

    result = await SubscriptionService(test_db).update_expired_subscriptions()

    assert result["success"] is True
    assert result["updated_count"] == 1
    assert lapsed.subscription_status == "expired"
    assert current.subscription_status == "active"
    assert lifetime.subscription_status == "active"
    assert free.subscription_status == "active"
    assert institution_plan.subscription_status == "active"
