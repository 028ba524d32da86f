"""
Settings Service - cached access to platform-wide settings
"""
import logging
import time
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from crud.settings import SettingsRepository
from models.settings import (
    PlatformSettingsSnapshot,
    PlatformInfo,
    SettingsUpdate,
    DEFAULT_ADMIN_EMAIL,
    DEFAULT_SITE_NAME,
    DEFAULT_SITE_DESCRIPTION,
    DEFAULT_SUPPORT_EMAIL,
    DEFAULT_SUPPORT_PHONE,
)

logger = logging.getLogger(__name__)

SETTINGS_CACHE_SECONDS = 60.0

# Process-wide cache; stale for at most SETTINGS_CACHE_SECONDS unless cleared
_settings_cache: Optional[PlatformSettingsSnapshot] = None
_cache_timestamp: Optional[float] = None


def clear_cache() -> None:
    """Drop the cached settings. Call after every settings write."""
    global _settings_cache, _cache_timestamp
    _settings_cache = None
    _cache_timestamp = None


class SettingsService:

    def __init__(self, db: AsyncSession, repo: Optional[SettingsRepository] = None):
        self.db = db
        self.repo = repo or SettingsRepository(db)

    async def get_settings(self) -> PlatformSettingsSnapshot:
        """
        Return the platform settings, served from cache for up to a minute.
        Falls back to default settings when the store cannot be read.
        """
        global _settings_cache, _cache_timestamp
        now = time.monotonic()

        if _settings_cache is not None and _cache_timestamp is not None \
                and (now - _cache_timestamp) < SETTINGS_CACHE_SECONDS:
            return _settings_cache

        try:
            record = await self.repo.get_or_create()
            snapshot = PlatformSettingsSnapshot.from_record(record)
        except Exception as e:
            logger.error(f"Error getting settings: {e}", exc_info=True)
            return PlatformSettingsSnapshot()

        _settings_cache = snapshot
        _cache_timestamp = now
        return snapshot

    async def update_settings(self, update: SettingsUpdate) -> PlatformSettingsSnapshot:
        record = await self.repo.apply_update(update)
        clear_cache()
        logger.info("Platform settings updated")
        return PlatformSettingsSnapshot.from_record(record)

    async def is_registration_enabled(self) -> bool:
        settings = await self.get_settings()
        return settings.system.registration_enabled is not False

    async def get_max_users_per_institution(self) -> int:
        settings = await self.get_settings()
        return settings.system.max_users_per_institution or 100

    async def get_password_min_length(self) -> int:
        settings = await self.get_settings()
        return settings.security.password_min_length or 8

    async def is_email_verification_required(self) -> bool:
        settings = await self.get_settings()
        return settings.security.require_email_verification is not False

    async def get_session_timeout(self) -> int:
        """Session timeout in minutes."""
        settings = await self.get_settings()
        return settings.security.session_timeout or 30

    async def get_max_login_attempts(self) -> int:
        settings = await self.get_settings()
        return settings.security.max_login_attempts or 5

    async def are_email_notifications_enabled(self) -> bool:
        settings = await self.get_settings()
        return settings.notifications.email_notifications is not False

    async def get_admin_email(self) -> str:
        settings = await self.get_settings()
        return settings.notifications.admin_email or DEFAULT_ADMIN_EMAIL

    async def get_platform_settings(self) -> PlatformInfo:
        settings = await self.get_settings()
        platform = settings.platform
        return PlatformInfo(
            site_name=platform.site_name or DEFAULT_SITE_NAME,
            site_description=platform.site_description or DEFAULT_SITE_DESCRIPTION,
            support_email=platform.support_email or DEFAULT_SUPPORT_EMAIL,
            support_phone=platform.support_phone or DEFAULT_SUPPORT_PHONE,
        )
