"""Onboarding domain schemas

The wizard posts camelCase keys, so request models keep them as-is.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class OnboardingPerson(BaseModel):
    """Team member or C-level partner entered in the wizard (old and new formats)"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None

    class Config:
        extra = "allow"


class SaveProgressRequest(BaseModel):
    sessionId: Optional[str] = None
    answers: dict[str, Any] = Field(default_factory=dict)
    teamMembers: list[OnboardingPerson] = Field(default_factory=list)
    cLevelPartners: list[OnboardingPerson] = Field(default_factory=list)
    currentQuestion: float = 0
    totalQuestions: float = 0
    isComplete: bool = False


class SubmitRequest(BaseModel):
    answers: dict[str, Any] = Field(default_factory=dict)
    teamMembers: list[OnboardingPerson] = Field(default_factory=list)
    cLevelPartners: list[OnboardingPerson] = Field(default_factory=list)


class SaveProgressResponse(BaseModel):
    success: bool = True
    sessionId: str
    submissionId: int
    businessOwnerId: Optional[int] = None
    progress: int
    isComplete: bool


class SubmissionResponse(BaseModel):
    id: int
    session_id: str
    business_owner_id: Optional[int] = None
    data: Optional[dict] = None
    progress_percentage: int = 0
    last_question: Optional[str] = None
    is_complete: bool = False
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionWithOwner(SubmissionResponse):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    business_name: Optional[str] = None


class SubmissionCounts(BaseModel):
    complete: int
    incomplete: int
    total: int


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionWithOwner]
    counts: SubmissionCounts
    limit: int
    offset: int


class TeamCountRequest(BaseModel):
    teamCount: Optional[Any] = None
