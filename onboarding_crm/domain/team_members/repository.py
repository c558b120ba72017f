"""Team member repository - Database operations for team members"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import BusinessOwner, TeamMember
from ...shared.pagination import like_pattern


class TeamMemberRepository:
    """Repository for team member database operations"""

    @staticmethod
    def list_team_members(
        db: Session,
        business_owner_id: Optional[int],
        source: Optional[str],
        search: Optional[str],
        limit: int,
        offset: int,
    ) -> tuple[list[TeamMember], int]:
        query = (
            db.query(TeamMember)
            .outerjoin(BusinessOwner, TeamMember.business_owner_id == BusinessOwner.id)
            .options(joinedload(TeamMember.business_owner))
        )
        if business_owner_id is not None:
            query = query.filter(TeamMember.business_owner_id == business_owner_id)
        if source:
            query = query.filter(TeamMember.source == source)
        if search and search.strip():
            pattern = like_pattern(search)
            query = query.filter(
                or_(
                    TeamMember.first_name.ilike(pattern),
                    TeamMember.last_name.ilike(pattern),
                    TeamMember.email.ilike(pattern),
                    TeamMember.role.ilike(pattern),
                    BusinessOwner.business_name.ilike(pattern),
                )
            )

        total = query.count()
        rows = (
            query.order_by(TeamMember.created_at.desc(), TeamMember.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return rows, total

    @staticmethod
    def get_team_member_by_id(db: Session, team_member_id: int) -> Optional[TeamMember]:
        return (
            db.query(TeamMember)
            .options(joinedload(TeamMember.business_owner))
            .filter(TeamMember.id == team_member_id)
            .first()
        )

    @staticmethod
    def find_for_owner(db: Session, business_owner_id: int, email: str) -> Optional[TeamMember]:
        return (
            db.query(TeamMember)
            .filter(
                TeamMember.business_owner_id == business_owner_id,
                func.lower(TeamMember.email) == email.strip().lower(),
            )
            .first()
        )

    @staticmethod
    def owner_exists(db: Session, business_owner_id: int) -> bool:
        return db.query(BusinessOwner.id).filter(BusinessOwner.id == business_owner_id).first() is not None

    @staticmethod
    def create_team_member(db: Session, **data) -> TeamMember:
        team_member = TeamMember(**data)
        db.add(team_member)
        db.flush()
        return team_member

    @staticmethod
    def update_team_member(db: Session, team_member: TeamMember, **updates) -> TeamMember:
        for key, value in updates.items():
            if hasattr(team_member, key):
                setattr(team_member, key, value)
        db.commit()
        db.refresh(team_member)
        return team_member

    @staticmethod
    def delete_team_member(db: Session, team_member: TeamMember) -> None:
        db.delete(team_member)
        db.commit()
