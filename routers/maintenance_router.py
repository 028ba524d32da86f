"""
Maintenance Router - public maintenance status
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.settings_service import SettingsService

logger = logging.getLogger(__name__)

# Create router
maintenance_router = APIRouter(prefix="/api/maintenance", tags=["maintenance"])


@maintenance_router.get("/status")
async def get_maintenance_status(db: AsyncSession = Depends(get_db)):
    try:
        settings = await SettingsService(db).get_settings()
        content = {"success": True, "maintenance": settings.system.maintenance_mode}
        if settings.system.maintenance_mode:
            content["message"] = settings.system.maintenance_message
        return content
    except Exception as e:
        logger.error(f"Error checking maintenance status: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "maintenance": False,
                "message": "Unable to check maintenance status",
            },
        )
