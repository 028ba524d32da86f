"""
InstitutionRepository for database operations on Institution model
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from config import STATUS_ACTIVE
from database_models import Institution


class InstitutionRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, institution_id: Optional[int]) -> Optional[Institution]:
        if institution_id is None:
            return None
        result = await self.db.execute(
            select(Institution).where(Institution.id == institution_id)
        )
        return result.scalar_one_or_none()

    async def create(self, data: dict) -> Institution:
        institution = Institution(**data)
        self.db.add(institution)
        await self.db.commit()
        await self.db.refresh(institution)
        return institution

    async def save(self, institution: Institution) -> Institution:
        self.db.add(institution)
        await self.db.commit()
        await self.db.refresh(institution)
        return institution

    async def list_expired_active(self, now: datetime) -> List[Institution]:
        """Institutions still marked active although their end date has passed."""
        result = await self.db.execute(
            select(Institution).where(
                Institution.subscription_status == STATUS_ACTIVE,
                Institution.subscription_end_date.is_not(None),
                Institution.subscription_end_date < now,
            ).order_by(Institution.id)
        )
        return list(result.scalars().all())
