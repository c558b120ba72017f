"""Member domain schemas - Pydantic models for business owners"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email
from ..applications.schemas import ApplicationResponse
from ..onboarding.schemas import SubmissionResponse
from ..team_members.schemas import TeamMemberResponse

MEMBER_SOURCES = ("chat_onboarding", "typeform", "csv_import", "manual")
ONBOARDING_STATUSES = ("pending", "in_progress", "completed")


class MemberFields(BaseModel):
    """Fields staff can set on a member"""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    business_name: Optional[str] = None
    business_overview: Optional[str] = None
    annual_revenue: Optional[str] = None
    team_count: Optional[str] = None
    traffic_sources: Optional[str] = None
    landing_pages: Optional[str] = None
    pain_point: Optional[str] = None
    massive_win: Optional[str] = None
    ai_skill_level: Optional[int] = None
    bio: Optional[str] = None
    headshot_url: Optional[str] = None
    whatsapp_number: Optional[str] = None
    whatsapp_joined: Optional[bool] = None
    mailing_address: Optional[Any] = None
    apparel_sizes: Optional[Any] = None
    anything_else: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v) if v else v

    @field_validator("ai_skill_level")
    @classmethod
    def check_skill(cls, v):
        if v is not None and not 1 <= v <= 10:
            raise ValueError("ai_skill_level must be between 1 and 10")
        return v


class MemberCreate(MemberFields):
    source: str = "chat_onboarding"

    @field_validator("source")
    @classmethod
    def check_source(cls, v):
        if v not in MEMBER_SOURCES:
            raise ValueError(f"source must be one of {', '.join(MEMBER_SOURCES)}")
        return v


class MemberUpdate(MemberFields):
    """Allow-listed update; keys outside this model are dropped"""

    onboarding_status: Optional[str] = None

    @field_validator("onboarding_status")
    @classmethod
    def check_status(cls, v):
        if v is not None and v not in ONBOARDING_STATUSES:
            raise ValueError(f"onboarding_status must be one of {', '.join(ONBOARDING_STATUSES)}")
        return v


class MemberResponse(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    business_name: Optional[str] = None
    business_overview: Optional[str] = None
    annual_revenue: Optional[str] = None
    team_count: Optional[str] = None
    traffic_sources: Optional[str] = None
    landing_pages: Optional[str] = None
    pain_point: Optional[str] = None
    massive_win: Optional[str] = None
    ai_skill_level: Optional[int] = None
    bio: Optional[str] = None
    headshot_url: Optional[str] = None
    whatsapp_number: Optional[str] = None
    whatsapp_joined: bool = False
    whatsapp_joined_at: Optional[datetime] = None
    mailing_address: Optional[Any] = None
    apparel_sizes: Optional[Any] = None
    anything_else: Optional[str] = None
    source: str
    onboarding_status: str
    onboarding_progress: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberListItem(MemberResponse):
    team_member_count: int = 0


class MemberListResponse(BaseModel):
    members: list[MemberListItem]
    total: int
    limit: int
    offset: int


class CLevelPartnerResponse(BaseModel):
    id: int
    business_owner_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    source: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SamcartOrderResponse(BaseModel):
    id: int
    samcart_order_id: Optional[str] = None
    event_type: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    product_name: Optional[str] = None
    product_id: Optional[str] = None
    order_total: Optional[float] = None
    currency: Optional[str] = None
    status: Optional[str] = None
    slack_channel_id: Optional[str] = None
    slack_thread_ts: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberDetail(MemberResponse):
    team_members: list[TeamMemberResponse] = []
    c_level_partners: list[CLevelPartnerResponse] = []
    onboarding_submissions: list[SubmissionResponse] = []


class UnifiedMember(MemberDetail):
    typeform_application: Optional[ApplicationResponse] = None
    samcart_order: Optional[SamcartOrderResponse] = None
