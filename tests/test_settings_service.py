"""
Unit tests for SettingsService and its cache
"""
import time

import pytest
from pydantic import ValidationError

from crud.settings import SettingsRepository
from models.settings import (
    SettingsUpdate,
    SystemSettingsUpdate,
    SecuritySettingsUpdate,
    NotificationSettingsUpdate,
    PlatformInfoUpdate,
)
from services import settings_service
from services.settings_service import SettingsService


@pytest.mark.asyncio
async def test_defaults_are_created_on_first_read(test_db):
    service = SettingsService(test_db)

    assert await service.is_registration_enabled() is True
    assert await service.get_max_users_per_institution() == 100
    assert await service.get_password_min_length() == 8
    assert await service.is_email_verification_required() is True
    assert await service.get_session_timeout() == 30
    assert await service.get_max_login_attempts() == 5
    assert await service.are_email_notifications_enabled() is True
    assert await service.get_admin_email() == "admin@inavora.com"

    platform = await service.get_platform_settings()
    assert platform.site_name == "Inavora"
    assert platform.support_email == "support@inavora.com"


@pytest.mark.asyncio
async def test_settings_row_is_a_singleton(test_db):
    repo = SettingsRepository(test_db)
    first = await repo.get_or_create()
    second = await repo.get_or_create()
    assert first.id == second.id


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields(test_db):
    service = SettingsService(test_db)

    updated = await service.update_settings(SettingsUpdate(
        system=SystemSettingsUpdate(maintenance_mode=True),
        notifications=NotificationSettingsUpdate(admin_email="  Ops@Inavora.com "),
    ))

    assert updated.system.maintenance_mode is True
    assert updated.system.registration_enabled is True
    assert updated.system.max_users_per_institution == 100
    assert updated.notifications.admin_email == "ops@inavora.com"
    assert updated.security.session_timeout == 30


@pytest.mark.asyncio
async def test_update_clears_cache(test_db):
    service = SettingsService(test_db)
    assert await service.get_max_users_per_institution() == 100

    await service.update_settings(SettingsUpdate(system=SystemSettingsUpdate(max_users_per_institution=5)))

    assert await service.get_max_users_per_institution() == 5


@pytest.mark.asyncio
async def test_cached_value_served_until_expiry(test_db):
    """
    Writes that bypass the service stay invisible until the cache ages out.
    """
    service = SettingsService(test_db)
    assert await service.is_registration_enabled() is True

    # Write straight through the repository: no cache invalidation
    await SettingsRepository(test_db).apply_update(
        SettingsUpdate(system=SystemSettingsUpdate(registration_enabled=False))
    )
    assert await service.is_registration_enabled() is True

    settings_service._cache_timestamp = time.monotonic() - settings_service.SETTINGS_CACHE_SECONDS - 1
    assert await service.is_registration_enabled() is False


@pytest.mark.asyncio
async def test_load_error_returns_defaults(test_db):
    class BrokenRepository:
        async def get_or_create(self):
            raise RuntimeError("settings table missing")

    service = SettingsService(test_db, repo=BrokenRepository())
    snapshot = await service.get_settings()

    assert snapshot.system.maintenance_mode is False
    assert snapshot.system.max_users_per_institution == 100
    # Defaults are not cached
    assert settings_service._settings_cache is None


def test_update_ranges_are_validated():
    with pytest.raises(ValidationError):
        SecuritySettingsUpdate(session_timeout=4)
    with pytest.raises(ValidationError):
        SecuritySettingsUpdate(session_timeout=481)
    with pytest.raises(ValidationError):
        SecuritySettingsUpdate(max_login_attempts=11)
    with pytest.raises(ValidationError):
        SecuritySettingsUpdate(password_min_length=5)
    with pytest.raises(ValidationError):
        SystemSettingsUpdate(max_users_per_institution=0)
    with pytest.raises(ValidationError):
        SystemSettingsUpdate(maintenance_message="x" * 501)
    with pytest.raises(ValidationError):
        PlatformInfoUpdate(support_phone="1" * 21)

    assert SecuritySettingsUpdate(session_timeout=480).session_timeout == 480
    assert SystemSettingsUpdate(max_users_per_institution=10000).max_users_per_institution == 10000
