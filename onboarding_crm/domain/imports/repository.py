"""Import repository - upserts for CSV rows and the import history"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import BusinessOwner, ImportHistory, TeamMember


class ImportRepository:
    @staticmethod
    def get_member_by_email(db: Session, email: str) -> Optional[BusinessOwner]:
        return db.query(BusinessOwner).filter(func.lower(BusinessOwner.email) == email).first()

    @staticmethod
    def get_team_member_by_email(db: Session, email: str) -> Optional[TeamMember]:
        return (
            db.query(TeamMember)
            .filter(func.lower(TeamMember.email) == email)
            .order_by(TeamMember.id)
            .first()
        )

    @staticmethod
    def record_history(db: Session, **data) -> ImportHistory:
        history = ImportHistory(**data)
        db.add(history)
        db.flush()
        return history

    @staticmethod
    def list_history(db: Session, limit: int, offset: int) -> tuple[list[ImportHistory], int]:
        query = db.query(ImportHistory)
        total = query.count()
        rows = (
            query.order_by(ImportHistory.created_at.desc(), ImportHistory.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return rows, total
