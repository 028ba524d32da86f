"""
Platform settings sections as exposed to services and the admin panel.

Snapshots carry the defaults used when the settings row is created; the
update models are all-optional so the admin panel can send partial sections.
"""
from typing import Optional
from pydantic import BaseModel, Field, field_validator

DEFAULT_MAINTENANCE_MESSAGE = "The system is currently under maintenance. Please check back later."
DEFAULT_ADMIN_EMAIL = "admin@inavora.com"
DEFAULT_SITE_NAME = "Inavora"
DEFAULT_SITE_DESCRIPTION = "Professional presentation platform"
DEFAULT_SUPPORT_EMAIL = "support@inavora.com"
DEFAULT_SUPPORT_PHONE = "+91 9043411110"

SECTIONS = ("system", "notifications", "security", "platform")


def _normalize_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    return value.strip().lower()


class SystemSettings(BaseModel):
    maintenance_mode: bool = False
    registration_enabled: bool = True
    max_users_per_institution: int = 100
    maintenance_message: str = DEFAULT_MAINTENANCE_MESSAGE


class NotificationSettings(BaseModel):
    email_notifications: bool = True
    new_user_alerts: bool = True
    payment_alerts: bool = True
    system_alerts: bool = True
    admin_email: str = DEFAULT_ADMIN_EMAIL


class SecuritySettings(BaseModel):
    session_timeout: int = 30  # minutes
    require_email_verification: bool = True
    enable_2fa: bool = False
    max_login_attempts: int = 5
    password_min_length: int = 8


class PlatformInfo(BaseModel):
    site_name: str = DEFAULT_SITE_NAME
    site_description: str = DEFAULT_SITE_DESCRIPTION
    support_email: str = DEFAULT_SUPPORT_EMAIL
    support_phone: str = DEFAULT_SUPPORT_PHONE


class PlatformSettingsSnapshot(BaseModel):
    system: SystemSettings = Field(default_factory=SystemSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    platform: PlatformInfo = Field(default_factory=PlatformInfo)

    @classmethod
    def from_record(cls, record) -> "PlatformSettingsSnapshot":
        """Build a detached snapshot from a settings row (columns are `<section>_<field>`)."""
        sections = {}
        for section, model in (
            ("system", SystemSettings),
            ("notifications", NotificationSettings),
            ("security", SecuritySettings),
            ("platform", PlatformInfo),
        ):
            sections[section] = model(**{
                name: getattr(record, f"{section}_{name}")
                for name in model.model_fields
                if getattr(record, f"{section}_{name}") is not None
            })
        return cls(**sections)


class SystemSettingsUpdate(BaseModel):
    maintenance_mode: Optional[bool] = None
    registration_enabled: Optional[bool] = None
    max_users_per_institution: Optional[int] = Field(default=None, ge=1, le=10000)
    maintenance_message: Optional[str] = Field(default=None, max_length=500)


class NotificationSettingsUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    new_user_alerts: Optional[bool] = None
    payment_alerts: Optional[bool] = None
    system_alerts: Optional[bool] = None
    admin_email: Optional[str] = None

    @field_validator("admin_email")
    @classmethod
    def normalize_admin_email(cls, value):
        return _normalize_email(value)


class SecuritySettingsUpdate(BaseModel):
    session_timeout: Optional[int] = Field(default=None, ge=5, le=480)
    require_email_verification: Optional[bool] = None
    enable_2fa: Optional[bool] = None
    max_login_attempts: Optional[int] = Field(default=None, ge=3, le=10)
    password_min_length: Optional[int] = Field(default=None, ge=6, le=32)


class PlatformInfoUpdate(BaseModel):
    site_name: Optional[str] = Field(default=None, max_length=100)
    site_description: Optional[str] = Field(default=None, max_length=500)
    support_email: Optional[str] = None
    support_phone: Optional[str] = Field(default=None, max_length=20)

    @field_validator("support_email")
    @classmethod
    def normalize_support_email(cls, value):
        return _normalize_email(value)


class SettingsUpdate(BaseModel):
    system: Optional[SystemSettingsUpdate] = None
    notifications: Optional[NotificationSettingsUpdate] = None
    security: Optional[SecuritySettingsUpdate] = None
    platform: Optional[PlatformInfoUpdate] = None
