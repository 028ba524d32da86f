"""
SettingsRepository for the single platform settings row
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from database_models import PlatformSettings
from models.settings import SECTIONS, SettingsUpdate


class SettingsRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_create(self) -> PlatformSettings:
        """
        Return the settings row, creating it with defaults on first access.
        Only one row is ever expected to exist.
        """
        result = await self.db.execute(
            select(PlatformSettings).order_by(PlatformSettings.id).limit(1)
        )
        record = result.scalar_one_or_none()
        if record is None:
            record = PlatformSettings()
            self.db.add(record)
            await self.db.commit()
            await self.db.refresh(record)
        return record

    async def apply_update(self, update: SettingsUpdate) -> PlatformSettings:
        """Write only the fields present in the update, section by section."""
        record = await self.get_or_create()
        for section in SECTIONS:
            section_update = getattr(update, section)
            if section_update is None:
                continue
            for name, value in section_update.model_dump(exclude_unset=True).items():
                if value is None:
                    continue
                setattr(record, f"{section}_{name}", value)

        await self.db.commit()
        await self.db.refresh(record)
        return record
