"""Team member domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email


def _skill(v):
    if v is not None and not 1 <= v <= 10:
        raise ValueError("Skill ratings must be between 1 and 10")
    return v


class TeamMemberBase(BaseModel):
    business_owner_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    title: Optional[str] = None
    copywriting_skill: Optional[int] = None
    cro_skill: Optional[int] = None
    ai_skill: Optional[int] = None
    business_summary: Optional[str] = None
    responsibilities: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v) if v else v

    @field_validator("copywriting_skill", "cro_skill", "ai_skill")
    @classmethod
    def check_skill(cls, v):
        return _skill(v)


class TeamMemberCreate(TeamMemberBase):
    source: str = "chat_onboarding"
    request_sync: bool = False


class TeamMemberUpdate(TeamMemberBase):
    """Allow-listed fields; anything else in the body is ignored"""


class TeamMemberResponse(BaseModel):
    id: int
    business_owner_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    title: Optional[str] = None
    copywriting_skill: Optional[int] = None
    cro_skill: Optional[int] = None
    ai_skill: Optional[int] = None
    business_summary: Optional[str] = None
    responsibilities: Optional[str] = None
    source: Optional[str] = None
    sync_requested_at: Optional[datetime] = None
    sync_attempts: int = 0
    last_sync_attempt_at: Optional[datetime] = None
    last_sync_error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TeamMemberWithOwner(TeamMemberResponse):
    business_name: Optional[str] = None
    owner_first_name: Optional[str] = None
    owner_last_name: Optional[str] = None
    owner_email: Optional[str] = None


class TeamMemberListResponse(BaseModel):
    team_members: list[TeamMemberWithOwner]
    total: int
    limit: int
    offset: int
