from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from config import PLAN_FREE, STATUS_ACTIVE


class Subscription(BaseModel):
    plan: str = PLAN_FREE
    status: str = STATUS_ACTIVE
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    billing_cycle: Optional[str] = None


class OriginalPlan(BaseModel):
    """Personal plan captured before the user joined an institution."""
    plan: str
    status: Optional[str] = None
    end_date: Optional[datetime] = None


class EffectivePlan(BaseModel):
    plan: str
    status: str
    end_date: Optional[datetime] = None
    source: str  # personal, original or institution
    institution_id: Optional[int] = None


class SubscriptionStatus(BaseModel):
    is_active: bool
    plan: str
    status: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    days_remaining: Optional[int] = None
    is_expired: bool = False
    is_lifetime: bool = False
    source: str


class InstitutionSyncResult(BaseModel):
    success: bool
    updated_count: int = 0
    user_ids: list[int] = Field(default_factory=list)
    institution_status: Optional[str] = None
    is_active: Optional[bool] = None
    error: Optional[str] = None


class ExpirySweepResult(BaseModel):
    success: bool
    expired_institutions: int = 0
    updated_users: int = 0
    error: Optional[str] = None
