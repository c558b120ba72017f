"""Application repository - Database operations for Typeform applications"""

from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ...models import (
    ApplicationNote,
    BusinessOwner,
    Cancellation,
    OnboardingSubmission,
    TypeformApplication,
)
from ...shared.pagination import like_pattern


def has_onboarding_clause():
    """EXISTS: a business owner with the application's email has an onboarding submission"""
    return (
        select(OnboardingSubmission.id)
        .join(BusinessOwner, OnboardingSubmission.business_owner_id == BusinessOwner.id)
        .where(func.lower(BusinessOwner.email) == func.lower(TypeformApplication.email))
        .correlate(TypeformApplication)
        .exists()
    )


def note_count_clause():
    return (
        select(func.count(ApplicationNote.id))
        .where(ApplicationNote.application_id == TypeformApplication.id)
        .correlate(TypeformApplication)
        .scalar_subquery()
    )


class ApplicationRepository:
    """Repository for application database operations"""

    @staticmethod
    def _filtered(db: Session, status: Optional[str], search: Optional[str]):
        query = db.query(TypeformApplication)
        if status:
            query = query.filter(TypeformApplication.status == status)
        if search and search.strip():
            pattern = like_pattern(search)
            query = query.filter(
                or_(
                    TypeformApplication.first_name.ilike(pattern),
                    TypeformApplication.last_name.ilike(pattern),
                    TypeformApplication.email.ilike(pattern),
                    TypeformApplication.business_description.ilike(pattern),
                )
            )
        return query

    @staticmethod
    def list_applications(
        db: Session, status: Optional[str], search: Optional[str], limit: int, offset: int
    ) -> tuple[list[tuple[TypeformApplication, bool, int]], int]:
        """
        Page of applications with their has_onboarding flag and note count.

        Returns:
            ([(application, has_onboarding, note_count), ...], total)
        """
        base = ApplicationRepository._filtered(db, status, search)
        total = base.count()

        rows = (
            base.add_columns(
                has_onboarding_clause().label("has_onboarding"),
                note_count_clause().label("note_count"),
            )
            .order_by(TypeformApplication.created_at.desc(), TypeformApplication.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [(app, bool(has_onboarding), int(note_count or 0)) for app, has_onboarding, note_count in rows], total

    @staticmethod
    def status_counts(db: Session) -> dict[str, int]:
        rows = (
            db.query(TypeformApplication.status, func.count(TypeformApplication.id))
            .group_by(TypeformApplication.status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def truly_new_count(db: Session) -> int:
        """Applications still ``new`` whose applicant has not started onboarding"""
        return (
            db.query(func.count(TypeformApplication.id))
            .filter(TypeformApplication.status == "new", ~has_onboarding_clause())
            .scalar()
            or 0
        )

    @staticmethod
    def get_application_by_id(db: Session, application_id: int) -> Optional[TypeformApplication]:
        return db.query(TypeformApplication).filter(TypeformApplication.id == application_id).first()

    @staticmethod
    def has_onboarding(db: Session, email: Optional[str]) -> bool:
        if not email:
            return False
        return (
            db.query(OnboardingSubmission.id)
            .join(BusinessOwner, OnboardingSubmission.business_owner_id == BusinessOwner.id)
            .filter(func.lower(BusinessOwner.email) == email.strip().lower())
            .first()
            is not None
        )

    @staticmethod
    def note_count(db: Session, application_id: int) -> int:
        return (
            db.query(func.count(ApplicationNote.id))
            .filter(ApplicationNote.application_id == application_id)
            .scalar()
            or 0
        )

    @staticmethod
    def latest_member_by_email(db: Session, email: Optional[str]) -> Optional[BusinessOwner]:
        if not email:
            return None
        return (
            db.query(BusinessOwner)
            .filter(func.lower(BusinessOwner.email) == email.strip().lower())
            .order_by(BusinessOwner.created_at.desc(), BusinessOwner.id.desc())
            .first()
        )

    @staticmethod
    def latest_submission_for_member(db: Session, member_id: int) -> Optional[OnboardingSubmission]:
        return (
            db.query(OnboardingSubmission)
            .filter(OnboardingSubmission.business_owner_id == member_id)
            .order_by(OnboardingSubmission.created_at.desc(), OnboardingSubmission.id.desc())
            .first()
        )

    @staticmethod
    def latest_cancellation_by_email(db: Session, email: Optional[str]) -> Optional[Cancellation]:
        if not email:
            return None
        return (
            db.query(Cancellation)
            .filter(func.lower(Cancellation.member_email) == email.strip().lower())
            .order_by(Cancellation.created_at.desc(), Cancellation.id.desc())
            .first()
        )

    @staticmethod
    def create_member(db: Session, **member_data) -> BusinessOwner:
        member = BusinessOwner(**member_data)
        db.add(member)
        db.flush()
        return member

    @staticmethod
    def delete_application(db: Session, application: TypeformApplication) -> None:
        """Delete an application; its notes go with it"""
        db.delete(application)
        db.commit()
