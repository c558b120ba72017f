"""Application domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import parse_int

APPLICATION_STATUSES = ("new", "reviewed", "approved", "rejected")

MAX_SIMULATED_FAILURES = 4


class ApplicationResponse(BaseModel):
    """Schema for application response"""

    id: int
    typeform_response_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_preference: Optional[str] = None
    business_description: Optional[str] = None
    annual_revenue: Optional[str] = None
    revenue_trend: Optional[str] = None
    main_challenge: Optional[str] = None
    why_join: Optional[str] = None
    has_team: Optional[str] = None
    investment_readiness: Optional[str] = None
    decision_timeline: Optional[str] = None
    anything_else: Optional[str] = None
    referral_source: Optional[str] = None
    status: str
    emailed_at: Optional[datetime] = None
    replied_at: Optional[datetime] = None
    call_booked_at: Optional[datetime] = None
    purchased_at: Optional[datetime] = None
    onboarding_started_at: Optional[datetime] = None
    onboarding_completed_at: Optional[datetime] = None
    whatsapp_joined_at: Optional[datetime] = None
    slack_channel_id: Optional[str] = None
    slack_thread_ts: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApplicationListItem(ApplicationResponse):
    display_status: str = "new"
    status_timestamp: Optional[datetime] = None
    has_onboarding: bool = False
    note_count: int = 0


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationListItem]
    total: int
    status_counts: dict[str, int]
    truly_new_count: int
    limit: int
    offset: int


class LinkedMember(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    business_name: Optional[str] = None
    onboarding_status: Optional[str] = None
    whatsapp_joined: bool = False
    whatsapp_joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LinkedSubmission(BaseModel):
    id: int
    session_id: str
    progress_percentage: int = 0
    is_complete: bool = False
    data: Optional[dict] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LinkedCancellation(BaseModel):
    id: int
    reason: Optional[str] = None
    source: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApplicationDetail(ApplicationListItem):
    raw_data: Optional[Any] = None
    business_owner: Optional[LinkedMember] = None
    onboarding_submission: Optional[LinkedSubmission] = None
    cancellation: Optional[LinkedCancellation] = None


class ApplicationStatusUpdate(BaseModel):
    status: Optional[str] = None


class SubscriptionFailureRequest(BaseModel):
    """Number of simulated charge failures, clamped to 1..4"""

    count: Any = 1

    @field_validator("count", mode="before")
    @classmethod
    def clamp_count(cls, v):
        parsed = parse_int(v)
        if parsed is None:
            return 1
        return max(1, min(parsed, MAX_SIMULATED_FAILURES))
