"""Member repository - Database operations for business owners"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import BusinessOwner, TeamMember
from ...shared.pagination import like_pattern


class MemberRepository:
    """Repository for business owner database operations"""

    @staticmethod
    def list_members(
        db: Session,
        source: Optional[str],
        status: Optional[str],
        search: Optional[str],
        limit: int,
        offset: int,
    ) -> tuple[list[tuple[BusinessOwner, int]], int]:
        """Page of members with their team member counts"""
        query = db.query(BusinessOwner)
        if source:
            query = query.filter(BusinessOwner.source == source)
        if status:
            query = query.filter(BusinessOwner.onboarding_status == status)
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

        total = query.count()

        team_counts = (
            db.query(TeamMember.business_owner_id, func.count(TeamMember.id).label("team_member_count"))
            .group_by(TeamMember.business_owner_id)
            .subquery()
        )
        rows = (
            query.outerjoin(team_counts, team_counts.c.business_owner_id == BusinessOwner.id)
            .add_columns(func.coalesce(team_counts.c.team_member_count, 0))
            .order_by(BusinessOwner.created_at.desc(), BusinessOwner.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [(member, int(count)) for member, count in rows], total

    @staticmethod
    def get_member_by_id(db: Session, member_id: int) -> Optional[BusinessOwner]:
        return db.query(BusinessOwner).filter(BusinessOwner.id == member_id).first()

    @staticmethod
    def get_member_by_email(db: Session, email: str) -> Optional[BusinessOwner]:
        return (
            db.query(BusinessOwner)
            .filter(func.lower(BusinessOwner.email) == email.strip().lower())
            .first()
        )

    @staticmethod
    def create_member(db: Session, **member_data) -> BusinessOwner:
        member = BusinessOwner(**member_data)
        db.add(member)
        db.flush()
        return member

    @staticmethod
    def update_member(db: Session, member: BusinessOwner, **updates) -> BusinessOwner:
        for key, value in updates.items():
            if hasattr(member, key):
                setattr(member, key, value)
        db.flush()
        return member

    @staticmethod
    def delete_member(db: Session, member: BusinessOwner) -> None:
        """Delete a member; team members and partners cascade, submissions are unlinked"""
        db.delete(member)
        db.flush()
