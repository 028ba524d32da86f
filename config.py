"""
Centralized configuration using Pydantic BaseSettings.
All environment variables are optional to prevent application startup failure.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Normalized subscription vocabulary
PLAN_FREE = "free"
PLAN_PRO = "pro"
PLAN_LIFETIME = "lifetime"
PLAN_INSTITUTION = "institution"
PLANS = (PLAN_FREE, PLAN_PRO, PLAN_LIFETIME, PLAN_INSTITUTION)

STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"
STATUS_CANCELLED = "cancelled"
STATUSES = (STATUS_ACTIVE, STATUS_EXPIRED, STATUS_CANCELLED)

BILLING_CYCLES = ("monthly", "yearly", "lifetime", "one-time")

# Where an effective plan was resolved from
SOURCE_PERSONAL = "personal"
SOURCE_ORIGINAL = "original"
SOURCE_INSTITUTION = "institution"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Core authentication and security
    jwt_secret_key: Optional[str] = Field(default=None, alias="JWT_SECRET_KEY")
    jwt_expires_days: int = Field(default=7, alias="JWT_EXPIRES_DAYS")
    # Comma-separated list of emails that receive the super_admin claim
    super_admin_emails: str = Field(default="", alias="SUPER_ADMIN_EMAILS")

    # Firebase Admin credentials: JSON blob or path to a service account file
    firebase_credentials: Optional[str] = Field(default=None, alias="FIREBASE_CREDENTIALS")
    firebase_credentials_path: str = Field(default="serviceAccountKey.json", alias="FIREBASE_CREDENTIALS_PATH")

    # Transactional email (Resend)
    resend_api_key: Optional[str] = Field(default=None, alias="RESEND_API_KEY")
    resend_from_email: str = Field(default="Inavora <noreply@inavora.com>", alias="RESEND_FROM_EMAIL")

    # Infrastructure configuration
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    database_url: Optional[str] = Field(default="sqlite+aiosqlite:///./inavora.db", alias="DATABASE_URL")

    # Frontend configuration
    frontend_url: Optional[str] = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Background jobs and throttling
    subscription_sweep_interval_seconds: int = Field(default=3600, alias="SUBSCRIPTION_SWEEP_INTERVAL_SECONDS")
    rate_limit_per_minute: int = Field(default=30, alias="RATE_LIMIT_PER_MINUTE")

    # Render.com deployment configuration
    render: Optional[str] = Field(default=None, alias="RENDER")
    render_external_url: Optional[str] = Field(default=None, alias="RENDER_EXTERNAL_URL")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")

    @property
    def super_admin_email_list(self) -> list[str]:
        return [
            email.strip().lower()
            for email in self.super_admin_emails.split(",")
            if email.strip()
        ]


# Instantiate settings object
settings = Settings()

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.render) or (settings.env and settings.env.lower() == "production")
