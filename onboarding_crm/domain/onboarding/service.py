"""Onboarding service - wizard persistence and member creation"""

import logging
import math
import uuid
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import BusinessOwner, CLevelPartner, OnboardingSubmission, TeamMember, TypeformApplication
from ...services.activity_log import log_activity
from ...services.identity import find_application_by_email
from ...shared.pagination import clamp_limit
from ...shared.validators import normalize_email, parse_int
from .repository import OnboardingRepository
from .schemas import (
    OnboardingPerson,
    SaveProgressRequest,
    SaveProgressResponse,
    SubmissionCounts,
    SubmissionListResponse,
    SubmissionWithOwner,
    SubmitRequest,
)

logger = logging.getLogger(__name__)

# Wizard answer key -> business_owners column
PROFILE_ANSWER_FIELDS = {
    "businessName": "business_name",
    "businessOverview": "business_overview",
    "teamCount": "team_count",
    "trafficSources": "traffic_sources",
    "landingPages": "landing_pages",
    "massiveWin": "massive_win",
    "bio": "bio",
    "headshotLink": "headshot_url",
    "whatsappNumber": "whatsapp_number",
    "anythingElse": "anything_else",
}

IDENTITY_ANSWER_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "phone": "phone",
}


def progress_percentage(current: float, total: float) -> int:
    """Rounded (half up) share of questions answered; 0 when total is 0"""
    if not total:
        return 0
    return int(math.floor(current / total * 100 + 0.5))


def submission_with_owner(submission: OnboardingSubmission) -> SubmissionWithOwner:
    item = SubmissionWithOwner.model_validate(submission)
    owner = submission.business_owner
    if owner is None:
        return item
    return item.model_copy(
        update={
            "first_name": owner.first_name,
            "last_name": owner.last_name,
            "email": owner.email,
            "business_name": owner.business_name,
        }
    )


def _text(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _person_name(person: dict) -> tuple[str, str]:
    """Old wizard format has firstName/lastName, the new one a single name"""
    first_name = person.get("firstName") or person.get("name") or ""
    last_name = person.get("lastName") or ""
    return first_name, last_name


class OnboardingService:
    """Service layer for onboarding submissions"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OnboardingRepository()

    # ------------------------------------------------------------------
    # Wizard persistence
    # ------------------------------------------------------------------

    @staticmethod
    def _submission_data(answers: dict, team_members: list, partners: list) -> dict:
        return {
            "answers": answers,
            "teamMembers": [p.model_dump(exclude_none=True) if isinstance(p, OnboardingPerson) else p for p in team_members],
            "cLevelPartners": [p.model_dump(exclude_none=True) if isinstance(p, OnboardingPerson) else p for p in partners],
        }

    def save_progress(self, data: SaveProgressRequest) -> SaveProgressResponse:
        """
        Upsert the session's submission. On completion the member, their team
        and partners are written in the same transaction.
        """
        session_id = data.sessionId or str(uuid.uuid4())
        progress = progress_percentage(data.currentQuestion, data.totalQuestions)
        answers = data.answers or {}
        submission_data = self._submission_data(answers, data.teamMembers, data.cLevelPartners)
        completed_at = datetime.utcnow() if data.isComplete else None

        try:
            submission = self.repo.get_by_session_id(self.db, session_id)
            if submission:
                submission.data = submission_data
                submission.progress_percentage = progress
                submission.last_question = answers.get("lastQuestionId")
                submission.is_complete = data.isComplete
                submission.completed_at = completed_at
            else:
                submission = self.repo.create_submission(
                    self.db,
                    session_id=session_id,
                    data=submission_data,
                    progress_percentage=progress,
                    last_question=answers.get("lastQuestionId"),
                    is_complete=data.isComplete,
                    completed_at=completed_at,
                )
                logger.info(f"🆕 Onboarding session started: {session_id}")

            self._mark_application(answers.get("email"), "onboarding_started_at")

            business_owner_id = submission.business_owner_id
            if data.isComplete:
                member = self._complete(submission, answers, submission_data)
                business_owner_id = member.id

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return SaveProgressResponse(
            sessionId=session_id,
            submissionId=submission.id,
            businessOwnerId=business_owner_id,
            progress=progress,
            isComplete=data.isComplete,
        )

    def submit(self, data: SubmitRequest) -> dict:
        """One-shot completion for clients that never saved progress"""
        answers = data.answers or {}
        submission_data = self._submission_data(answers, data.teamMembers, data.cLevelPartners)
        try:
            submission = self.repo.create_submission(
                self.db,
                session_id=str(uuid.uuid4()),
                data=submission_data,
                progress_percentage=100,
                is_complete=True,
                completed_at=datetime.utcnow(),
            )
            self._mark_application(answers.get("email"), "onboarding_started_at")
            member = self._complete(submission, answers, submission_data)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return {
            "success": True,
            "message": "Onboarding completed successfully",
            "business_owner_id": member.id,
        }

    def complete_submission(self, submission_id: int) -> dict:
        """Staff action: turn a stalled submission into a member"""
        submission = self.get_submission(submission_id)
        data = submission.data or {}
        try:
            member = self._complete(submission, data.get("answers") or {}, data)
            submission.is_complete = True
            submission.progress_percentage = 100
            submission.completed_at = datetime.utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return {
            "success": True,
            "message": "Submission marked as complete",
            "businessOwnerId": member.id,
        }

    def _complete(self, submission: OnboardingSubmission, answers: dict, data: dict) -> BusinessOwner:
        """Create or update the member from the answers; caller commits"""
        member = self._upsert_member(answers)
        submission.business_owner_id = member.id

        for person in data.get("teamMembers") or []:
            self._add_team_member(member, person)
        for person in data.get("cLevelPartners") or []:
            self._add_partner(member, person)

        log_activity(
            self.db,
            "onboarding_completed",
            "business_owner",
            member.id,
            {"business": answers.get("businessName"), "session_id": submission.session_id},
        )
        self._mark_application(member.email, "onboarding_started_at")
        self._mark_application(member.email, "onboarding_completed_at")
        logger.info(f"✅ Onboarding completed for member {member.id}")
        return member

    def _upsert_member(self, answers: dict) -> BusinessOwner:
        email = normalize_email(answers.get("email"))
        member = self.repo.get_member_by_email(self.db, email) if email else None

        profile = {
            column: _text(answers.get(key))
            for key, column in PROFILE_ANSWER_FIELDS.items()
            if _text(answers.get(key)) is not None
        }
        ai_skill_level = parse_int(answers.get("aiSkillLevel"))
        if ai_skill_level is not None:
            profile["ai_skill_level"] = ai_skill_level
        whatsapp_joined = answers.get("whatsappJoined") == "done"

        if member:
            for column, value in profile.items():
                setattr(member, column, value)
            for key, column in IDENTITY_ANSWER_FIELDS.items():
                if not getattr(member, column) and _text(answers.get(key)):
                    setattr(member, column, _text(answers.get(key)))
            member.whatsapp_joined = member.whatsapp_joined or whatsapp_joined
            member.onboarding_status = "completed"
            member.onboarding_progress = 100
            self.db.flush()
            return member

        member = BusinessOwner(
            email=email,
            whatsapp_joined=whatsapp_joined,
            source="chat_onboarding",
            onboarding_status="completed",
            onboarding_progress=100,
            **{column: _text(answers.get(key)) for key, column in IDENTITY_ANSWER_FIELDS.items()},
            **profile,
        )
        self.db.add(member)
        self.db.flush()
        return member

    def _add_team_member(self, member: BusinessOwner, person: dict) -> None:
        email = normalize_email(person.get("email"))
        if email and self.repo.team_member_exists(self.db, member.id, email):
            return
        first_name, last_name = _person_name(person)
        self.db.add(
            TeamMember(
                business_owner_id=member.id,
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=person.get("phone"),
                role=person.get("role"),
                source="chat_onboarding",
            )
        )
        self.db.flush()

    def _add_partner(self, member: BusinessOwner, person: dict) -> None:
        email = normalize_email(person.get("email"))
        if email and self.repo.partner_exists(self.db, member.id, email):
            return
        first_name, last_name = _person_name(person)
        self.db.add(
            CLevelPartner(
                business_owner_id=member.id,
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=person.get("phone"),
                source="chat_onboarding",
            )
        )
        self.db.flush()

    def _mark_application(self, email: Optional[str], column: str) -> bool:
        """Set a lifecycle timestamp on the applicant's application once"""
        application = find_application_by_email(self.db, email)
        if not application:
            return False
        attribute = getattr(TypeformApplication, column)
        updated = (
            self.db.query(TypeformApplication)
            .filter(TypeformApplication.id == application.id, attribute.is_(None))
            .update({attribute: datetime.utcnow()}, synchronize_session=False)
        )
        return updated > 0

    # ------------------------------------------------------------------
    # Staff views
    # ------------------------------------------------------------------

    def list_submissions(
        self, complete: Optional[bool], search: Optional[str], limit: Optional[int], offset: int
    ) -> SubmissionListResponse:
        limit = clamp_limit(limit)
        rows = self.repo.list_submissions(self.db, complete, search, limit, offset)
        complete_count, incomplete_count = self.repo.completion_counts(self.db)
        return SubmissionListResponse(
            submissions=[submission_with_owner(s) for s in rows],
            counts=SubmissionCounts(
                complete=complete_count,
                incomplete=incomplete_count,
                total=complete_count + incomplete_count,
            ),
            limit=limit,
            offset=offset,
        )

    def get_submission(self, submission_id: int) -> OnboardingSubmission:
        submission = self.repo.get_by_id(self.db, submission_id)
        if not submission:
            raise HTTPException(status_code=404, detail="Submission not found")
        return submission

    def get_session(self, session_id: str) -> OnboardingSubmission:
        submission = self.repo.get_by_session_id(self.db, session_id)
        if not submission:
            raise HTTPException(status_code=404, detail="Session not found")
        return submission

    def delete_submission(self, submission_id: int) -> dict:
        submission = self.get_submission(submission_id)
        self.repo.delete_submission(self.db, submission)
        return {"success": True, "message": "Submission deleted"}

    def status_summary(self) -> dict:
        member_status = {"pending": 0, "in_progress": 0, "completed": 0}
        member_status.update(self.repo.member_status_counts(self.db))
        complete, incomplete = self.repo.completion_counts(self.db)
        return {
            "member_status": member_status,
            "submissions": {"complete": complete, "incomplete": incomplete},
        }
