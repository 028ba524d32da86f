"""
Maintenance mode middleware: blocks the API with 503 while the platform
setting is on. Super admins and the health and status endpoints always get through.
"""
import logging
from datetime import datetime

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from auth_utils import decode_jwt, extract_bearer_token
from database import AsyncSessionLocal
from services.settings_service import SettingsService

logger = logging.getLogger(__name__)

ALWAYS_ALLOWED_PATHS = ("/api/health", "/api/maintenance/status")


def is_super_admin_request(request: Request) -> bool:
    token = request.cookies.get("auth_token") or extract_bearer_token(request.headers.get("authorization"))
    if not token:
        return False
    try:
        payload = decode_jwt(token)
    except ValueError as e:
        logger.warning(f"Cannot check super admin token: {e}")
        return False
    return bool(payload) and payload.get("super_admin") is True


class MaintenanceModeMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, session_factory=None):
        super().__init__(app)
        self.session_factory = session_factory

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in ALWAYS_ALLOWED_PATHS or is_super_admin_request(request):
            return await call_next(request)

        try:
            session_factory = self.session_factory or AsyncSessionLocal
            async with session_factory() as db:
                settings = await SettingsService(db).get_settings()
        except Exception as e:
            # Fail open
            logger.error(f"Maintenance mode check failed: {e}", exc_info=True)
            return await call_next(request)

        if settings.system.maintenance_mode:
            return JSONResponse(
                status_code=503,
                content={
                    "success": False,
                    "maintenance": True,
                    "message": settings.system.maintenance_message,
                    "timestamp": datetime.utcnow().isoformat(),
                },
            )

        return await call_next(request)
