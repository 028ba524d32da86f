"""
Unit tests for PaymentRepository
"""
import pytest

from crud.payment import PaymentRepository


@pytest.mark.asyncio
async def test_payment_lifecycle(test_db, make_user):
    user = await make_user()
    repo = PaymentRepository(test_db)

    payment = await repo.create_payment({
        "user_id": user.id,
        "razorpay_order_id": "order_123",
        "amount": 499.0,
        "plan": "pro",
        "payment_metadata": {"billing_cycle": "monthly"},
        "original_plan": "free",
    })

    assert payment.status == "created"
    assert payment.currency == "INR"
    assert payment.payment_metadata == {"billing_cycle": "monthly"}

    found = await repo.get_by_order_id("order_123")
    assert found.id == payment.id

    captured = await repo.mark_captured(found, "pay_456", "sig_789")
    assert captured.status == "captured"
    assert captured.razorpay_payment_id == "pay_456"
    assert captured.error is None


@pytest.mark.asyncio
async def test_payment_failure_is_recorded(test_db):
    repo = PaymentRepository(test_db)
    payment = await repo.create_payment({
        "razorpay_order_id": "order_fail",
        "amount": 9999.0,
        "plan": "institution",
    })

    failed = await repo.mark_failed(payment, {"code": "BAD_REQUEST_ERROR", "description": "Card declined"})

    assert failed.status == "failed"
    assert failed.error["description"] == "Card declined"


@pytest.mark.asyncio
async def test_unknown_order(test_db):
    assert await PaymentRepository(test_db).get_by_order_id("missing") is None


@pytest.mark.asyncio
async def test_invalid_payment_plan_rejected(test_db):
    with pytest.raises(ValueError):
        await PaymentRepository(test_db).create_payment({
            "razorpay_order_id": "order_bad",
            "amount": 1.0,
            "plan": "platinum",
        })
