"""
Tests for the periodic subscription sweep
"""
import asyncio
from datetime import datetime, timedelta

import pytest

from crud.user import UserRepository
from jobs.subscription_sweeper import SubscriptionSweeper
from services.institution_plan_service import InstitutionPlanService


@pytest.mark.asyncio
async def test_run_once_expires_institutions_and_personal_plans(session_factory, test_db, make_user, make_institution):
    lapsed = await make_institution(subscription_end_date=datetime.utcnow() - timedelta(minutes=5))
    member = await make_user(email="member@acme.edu")
    await InstitutionPlanService(test_db).apply_institution_plan(member, lapsed)
    personal = await make_user(
        email="personal@example.com",
        subscription_plan="pro",
        subscription_end_date=datetime.utcnow() - timedelta(days=1),
    )

    result = await SubscriptionSweeper(session_factory, interval_seconds=60).run_once()

    assert result["institutions"]["expired_institutions"] == 1
    assert result["institutions"]["updated_users"] == 1
    assert result["personal"]["updated_count"] == 1

    async with session_factory() as session:
        repo = UserRepository(session)
        assert (await repo.get_user_by_id(member.id)).is_institution_user is False
        assert (await repo.get_user_by_id(personal.id)).subscription_status == "expired"


def test_zero_interval_disables_sweeper():
    sweeper = SubscriptionSweeper(session_factory=None, interval_seconds=0)

    assert sweeper.start() is False
    assert sweeper.running is False


@pytest.mark.asyncio
async def test_start_and_stop(session_factory):
    sweeper = SubscriptionSweeper(session_factory, interval_seconds=3600)

    assert sweeper.start() is True
    assert sweeper.running is True

    await sweeper.stop()
    assert sweeper.running is False


@pytest.mark.asyncio
async def test_loop_keeps_running_after_failure(session_factory, monkeypatch):
    sweeper = SubscriptionSweeper(session_factory, interval_seconds=0.01)
    calls = []

    async def failing_run_once():
        calls.append(1)
        raise RuntimeError("sweep failed")

    monkeypatch.setattr(sweeper, "run_once", failing_run_once)

    sweeper.start()
    await asyncio.sleep(0.1)
    await sweeper.stop()

    assert len(calls) >= 2
