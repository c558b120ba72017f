"""Onboarding repository - submissions, and the members they create"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import BusinessOwner, CLevelPartner, OnboardingSubmission, TeamMember
from ...shared.pagination import like_pattern


class OnboardingRepository:
    """Repository for onboarding submission database operations"""

    @staticmethod
    def get_by_session_id(db: Session, session_id: str) -> Optional[OnboardingSubmission]:
        return db.query(OnboardingSubmission).filter(OnboardingSubmission.session_id == session_id).first()

    @staticmethod
    def get_by_id(db: Session, submission_id: int) -> Optional[OnboardingSubmission]:
        return (
            db.query(OnboardingSubmission)
            .options(joinedload(OnboardingSubmission.business_owner))
            .filter(OnboardingSubmission.id == submission_id)
            .first()
        )

    @staticmethod
    def create_submission(db: Session, **data) -> OnboardingSubmission:
        submission = OnboardingSubmission(**data)
        db.add(submission)
        db.flush()
        return submission

    @staticmethod
    def list_submissions(
        db: Session, complete: Optional[bool], search: Optional[str], limit: int, offset: int
    ) -> list[OnboardingSubmission]:
        query = (
            db.query(OnboardingSubmission)
            .outerjoin(BusinessOwner, OnboardingSubmission.business_owner_id == BusinessOwner.id)
            .options(joinedload(OnboardingSubmission.business_owner))
        )
        if complete is not None:
            query = query.filter(OnboardingSubmission.is_complete == complete)
        if search and search.strip():
            pattern = like_pattern(search)
            query = query.filter(
                or_(
                    BusinessOwner.first_name.ilike(pattern),
                    BusinessOwner.last_name.ilike(pattern),
                    BusinessOwner.email.ilike(pattern),
                    BusinessOwner.business_name.ilike(pattern),
                )
            )
        return (
            query.order_by(OnboardingSubmission.updated_at.desc(), OnboardingSubmission.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )

    @staticmethod
    def completion_counts(db: Session) -> tuple[int, int]:
        """(complete, incomplete) across all submissions"""
        rows = (
            db.query(OnboardingSubmission.is_complete, func.count(OnboardingSubmission.id))
            .group_by(OnboardingSubmission.is_complete)
            .all()
        )
        counts = {bool(is_complete): count for is_complete, count in rows}
        return counts.get(True, 0), counts.get(False, 0)

    @staticmethod
    def member_status_counts(db: Session) -> dict[str, int]:
        rows = (
            db.query(BusinessOwner.onboarding_status, func.count(BusinessOwner.id))
            .group_by(BusinessOwner.onboarding_status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def get_member_by_email(db: Session, email: str) -> Optional[BusinessOwner]:
        return (
            db.query(BusinessOwner)
            .filter(func.lower(BusinessOwner.email) == email.strip().lower())
            .first()
        )

    @staticmethod
    def team_member_exists(db: Session, business_owner_id: int, email: str) -> bool:
        return (
            db.query(TeamMember.id)
            .filter(
                TeamMember.business_owner_id == business_owner_id,
                func.lower(TeamMember.email) == email.strip().lower(),
            )
            .first()
            is not None
        )

    @staticmethod
    def partner_exists(db: Session, business_owner_id: int, email: str) -> bool:
        return (
            db.query(CLevelPartner.id)
            .filter(
                CLevelPartner.business_owner_id == business_owner_id,
                func.lower(CLevelPartner.email) == email.strip().lower(),
            )
            .first()
            is not None
        )

    @staticmethod
    def delete_submission(db: Session, submission: OnboardingSubmission) -> None:
        db.delete(submission)
        db.commit()
