"""
PaymentRepository for Razorpay order bookkeeping
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from database_models import Payment


class PaymentRepository:
    """
    Records order lifecycle only (created -> captured | failed).
    Talking to the payment gateway happens elsewhere.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_payment(self, payment_data: dict) -> Payment:
        """
        Args:
            payment_data: Must include razorpay_order_id, amount and plan.
                Optional: user_id, institution_id, currency, payment_metadata, original_plan
        """
        payment = Payment(**payment_data)
        self.db.add(payment)
        await self.db.commit()
        await self.db.refresh(payment)
        return payment

    async def get_by_order_id(self, razorpay_order_id: str) -> Optional[Payment]:
        result = await self.db.execute(
            select(Payment).where(Payment.razorpay_order_id == razorpay_order_id)
        )
        return result.scalar_one_or_none()

    async def mark_captured(self, payment: Payment, razorpay_payment_id: str, razorpay_signature: Optional[str] = None) -> Payment:
        payment.status = "captured"
        payment.razorpay_payment_id = razorpay_payment_id
        payment.razorpay_signature = razorpay_signature
        payment.error = None
        await self.db.commit()
        await self.db.refresh(payment)
        return payment

    async def mark_failed(self, payment: Payment, error: dict) -> Payment:
        payment.status = "failed"
        payment.error = error
        await self.db.commit()
        await self.db.refresh(payment)
        return payment
