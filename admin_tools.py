"""
Admin Tools - internal plan inspection for support
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_super_admin
from database import get_db
from backend.utils.errors import AppError
from utils.check_user_plan import check_user_plan_details

# Create router with /internal prefix
admin_router = APIRouter(prefix="/internal", tags=["admin"])


@admin_router.get("/user-plan")
async def get_user_plan(
    email: str = Query(..., min_length=3),
    admin: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Show the stored, original, effective and display plan for a user.
    Super admin only.
    """
    report = await check_user_plan_details(db, email)
    if report is None:
        raise AppError(f"User with email {email} not found", 404, "USER_NOT_FOUND")

    return {"success": True, **report}
