"""
Inavora API - accounts, institution plans, platform settings and support contact
"""

from datetime import datetime
from pathlib import Path
import logging
import traceback

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

# Import routers
from auth import auth_router
from admin_tools import admin_router
from routers.contact_router import contact_router
from routers.institution_router import institution_router
from routers.maintenance_router import maintenance_router
from routers.settings_router import settings_router
from routers.subscription_router import subscription_router
from utils.maintenance_mode import MaintenanceModeMiddleware
from utils.rate_limit import RateLimiterMiddleware, connect_redis
from jobs.subscription_sweeper import SubscriptionSweeper
from database import init_db, AsyncSessionLocal
from backend.utils.errors import AppError, app_error_handler, validation_error_handler
from config import settings

# ============================================================================
# LOGGING
# ============================================================================

# Logging setup - write ALL events to /logs/app.log
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI(title="Inavora API")

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)


# Enforce HTTPS in production (Render)
def _is_render_env() -> bool:
    """Check if running in Render.com environment"""
    return bool(settings.render or settings.render_external_url)


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception: {e}\n{traceback.format_exc()}")
            return JSONResponse(
                status_code=500,
                content={"success": False, "code": "INTERNAL_ERROR", "message": "Internal Server Error"}
            )


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses: CSP, HSTS, X-Frame-Options, X-Content-Type-Options"""
    async def dispatch(self, request, call_next):
        response = await call_next(request)

        # JSON API only; nothing should be rendered or framed
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # Only set in production (Render environment) where HTTPS is guaranteed
        if _is_render_env():
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"

        return response


rate_limit_redis = connect_redis(settings.redis_url)

app.add_middleware(UncaughtExceptionMiddleware)
app.add_middleware(MaintenanceModeMiddleware)
app.add_middleware(RateLimiterMiddleware, redis_client=rate_limit_redis)
app.add_middleware(SecurityHeadersMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

subscription_sweeper = SubscriptionSweeper(
    AsyncSessionLocal,
    interval_seconds=settings.subscription_sweep_interval_seconds,
)

# ============================================================================
# STARTUP / SHUTDOWN
# ============================================================================

@app.on_event("startup")
async def check_env_keys_on_startup():
    """Warn about missing environment variables (non-fatal)"""
    key_checks = {
        "JWT_SECRET_KEY": settings.jwt_secret_key,
        "RESEND_API_KEY": settings.resend_api_key,
        "SUPER_ADMIN_EMAILS": settings.super_admin_emails,
    }
    missing = [key for key, value in key_checks.items() if not value]
    if missing:
        logger.warning(f"Startup check: Missing environment variables: {', '.join(missing)}")
    else:
        logger.info("Startup check: All critical environment variables are set")


# Initialize database on startup
@app.on_event("startup")
async def initialize_database():
    """Create all tables."""
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


@app.on_event("startup")
async def start_subscription_sweeper():
    subscription_sweeper.start()


@app.on_event("shutdown")
async def stop_subscription_sweeper():
    await subscription_sweeper.stop()


@app.on_event("shutdown")
async def close_rate_limit_redis():
    if rate_limit_redis is not None:
        await rate_limit_redis.aclose()


@app.get("/api/health")
async def health():
    return {"success": True, "status": "ok", "timestamp": datetime.utcnow().isoformat()}

# ============================================================================
# INCLUDE ROUTERS
# ============================================================================
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(contact_router)
app.include_router(institution_router)
app.include_router(maintenance_router)
app.include_router(settings_router)
app.include_router(subscription_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
