from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, JSON, ForeignKey
from sqlalchemy.orm import validates

from config import PLANS, STATUSES, BILLING_CYCLES, PLAN_FREE, PLAN_INSTITUTION, STATUS_ACTIVE
from database import Base
from models.settings import (
    DEFAULT_MAINTENANCE_MESSAGE,
    DEFAULT_ADMIN_EMAIL,
    DEFAULT_SITE_NAME,
    DEFAULT_SITE_DESCRIPTION,
    DEFAULT_SUPPORT_EMAIL,
    DEFAULT_SUPPORT_PHONE,
)
from models.subscription import Subscription, OriginalPlan

# Plans a user can hold personally before joining an institution
ORIGINAL_PLANS = tuple(plan for plan in PLANS if plan != PLAN_INSTITUTION)

PAYMENT_STATUSES = ("created", "captured", "failed")
PAYMENT_PLANS = ("pro", "lifetime", "institution", "additional_users")


def _check_choice(field: str, value, choices, nullable: bool = True):
    if value is None and nullable:
        return value
    if value not in choices:
        raise ValueError(f"Invalid {field}: {value!r} (expected one of {', '.join(choices)})")
    return value


class User(Base):
    """
    Presenter account.
    The subscription sub-document is flattened into subscription_* columns.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    display_name = Column(String, nullable=False)
    photo_url = Column(String, nullable=True)
    firebase_uid = Column(String, unique=True, nullable=True, index=True)

    subscription_plan = Column(String, nullable=False, default=PLAN_FREE)
    subscription_status = Column(String, nullable=False, default=STATUS_ACTIVE)
    subscription_start_date = Column(DateTime, nullable=True, default=datetime.utcnow)
    subscription_end_date = Column(DateTime, nullable=True)
    billing_cycle = Column(String, nullable=True)
    razorpay_customer_id = Column(String, nullable=True)

    # Personal plan saved on first institution join, restored on exit/expiry
    original_plan = Column(String, nullable=True)
    original_status = Column(String, nullable=True)
    original_end_date = Column(DateTime, nullable=True)

    # Institution plan inheritance record
    institution_plan_institution_id = Column(Integer, nullable=True)
    institution_plan_inherited_from = Column(String, nullable=True)
    institution_plan_status = Column(String, nullable=True)

    institution_id = Column(Integer, ForeignKey("institutions.id"), nullable=True, index=True)
    is_institution_user = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @validates("email")
    def _validate_email(self, key, value):
        return value.strip().lower() if value else value

    @validates("subscription_plan")
    def _validate_plan(self, key, value):
        return _check_choice("plan", value, PLANS, nullable=False)

    @validates("subscription_status")
    def _validate_status(self, key, value):
        return _check_choice("status", value, STATUSES, nullable=False)

    @validates("original_plan")
    def _validate_original_plan(self, key, value):
        return _check_choice("original plan", value, ORIGINAL_PLANS)

    @validates("original_status", "institution_plan_status")
    def _validate_optional_status(self, key, value):
        return _check_choice(key, value, STATUSES)

    @validates("billing_cycle")
    def _validate_billing_cycle(self, key, value):
        return _check_choice("billing cycle", value, BILLING_CYCLES)

    @property
    def subscription(self) -> Subscription:
        return Subscription(
            plan=self.subscription_plan or PLAN_FREE,
            status=self.subscription_status or STATUS_ACTIVE,
            start_date=self.subscription_start_date,
            end_date=self.subscription_end_date,
            billing_cycle=self.billing_cycle,
        )

    @property
    def original_plan_snapshot(self):
        if not self.original_plan:
            return None
        return OriginalPlan(
            plan=self.original_plan,
            status=self.original_status,
            end_date=self.original_end_date,
        )


class Institution(Base):
    """Organizational account whose active subscription extends Pro access to its members."""
    __tablename__ = "institutions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    admin_email = Column(String, nullable=True)

    subscription_plan = Column(String, nullable=False, default=PLAN_INSTITUTION)
    subscription_status = Column(String, nullable=False, default=STATUS_ACTIVE)
    subscription_start_date = Column(DateTime, nullable=True, default=datetime.utcnow)
    subscription_end_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @validates("subscription_status")
    def _validate_status(self, key, value):
        return _check_choice("status", value, STATUSES, nullable=False)


class Payment(Base):
    """Razorpay order bookkeeping record."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    institution_id = Column(Integer, ForeignKey("institutions.id"), nullable=True, index=True)
    razorpay_order_id = Column(String, unique=True, nullable=False)
    razorpay_payment_id = Column(String, nullable=True, index=True)
    razorpay_signature = Column(String, nullable=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="INR")
    status = Column(String, nullable=False, default="created", index=True)
    plan = Column(String, nullable=False)
    payment_metadata = Column(JSON, nullable=False, default=dict)
    original_plan = Column(String, nullable=True)
    error = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @validates("status")
    def _validate_status(self, key, value):
        return _check_choice("payment status", value, PAYMENT_STATUSES, nullable=False)

    @validates("plan")
    def _validate_plan(self, key, value):
        return _check_choice("payment plan", value, PAYMENT_PLANS, nullable=False)


class PlatformSettings(Base):
    """
    System-wide settings. Only one row is ever created (see SettingsRepository).
    Columns are named `<section>_<field>` to mirror the admin panel sections.
    """
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)

    system_maintenance_mode = Column(Boolean, nullable=False, default=False)
    system_registration_enabled = Column(Boolean, nullable=False, default=True)
    system_max_users_per_institution = Column(Integer, nullable=False, default=100)
    system_maintenance_message = Column(String(500), nullable=False, default=DEFAULT_MAINTENANCE_MESSAGE)

    notifications_email_notifications = Column(Boolean, nullable=False, default=True)
    notifications_new_user_alerts = Column(Boolean, nullable=False, default=True)
    notifications_payment_alerts = Column(Boolean, nullable=False, default=True)
    notifications_system_alerts = Column(Boolean, nullable=False, default=True)
    notifications_admin_email = Column(String, nullable=False, default=DEFAULT_ADMIN_EMAIL)

    security_session_timeout = Column(Integer, nullable=False, default=30)
    security_require_email_verification = Column(Boolean, nullable=False, default=True)
    security_enable_2fa = Column(Boolean, nullable=False, default=False)
    security_max_login_attempts = Column(Integer, nullable=False, default=5)
    security_password_min_length = Column(Integer, nullable=False, default=8)

    platform_site_name = Column(String(100), nullable=False, default=DEFAULT_SITE_NAME)
    platform_site_description = Column(String(500), nullable=False, default=DEFAULT_SITE_DESCRIPTION)
    platform_support_email = Column(String, nullable=False, default=DEFAULT_SUPPORT_EMAIL)
    platform_support_phone = Column(String(20), nullable=False, default=DEFAULT_SUPPORT_PHONE)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
