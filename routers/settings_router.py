"""
Settings Router - platform settings for super admins and public platform info
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_super_admin
from database import get_db
from models.settings import SettingsUpdate
from services.settings_service import SettingsService
from backend.utils.responses import success_response

# Create router
settings_router = APIRouter(tags=["settings"])


@settings_router.get("/api/super-admin/settings")
async def get_platform_settings(
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    settings = await SettingsService(db).get_settings()
    return success_response(data={"settings": settings.model_dump()}, message="Settings retrieved")


@settings_router.put("/api/super-admin/settings")
async def update_platform_settings(
    update: SettingsUpdate,
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """Partial update of any settings section; ranges are enforced by SettingsUpdate"""
    settings = await SettingsService(db).update_settings(update)
    return success_response(data={"settings": settings.model_dump()}, message="Settings updated successfully")


@settings_router.get("/api/settings/public")
async def get_public_settings(db: AsyncSession = Depends(get_db)):
    settings_service = SettingsService(db)
    platform = await settings_service.get_platform_settings()
    return success_response(
        data={
            "platform": platform.model_dump(),
            "registration_enabled": await settings_service.is_registration_enabled(),
        },
        message="Public settings retrieved",
    )
