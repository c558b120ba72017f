"""Team member service - Business logic for team member operations"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import TeamMember
from ...services.activity_log import log_activity
from ...shared.pagination import clamp_limit
from ...shared.validators import format_full_name
from .repository import TeamMemberRepository
from .schemas import (
    TeamMemberCreate,
    TeamMemberListResponse,
    TeamMemberUpdate,
    TeamMemberWithOwner,
)

logger = logging.getLogger(__name__)


def with_owner(team_member: TeamMember, include_email: bool = False) -> TeamMemberWithOwner:
    owner = team_member.business_owner
    item = TeamMemberWithOwner.model_validate(team_member)
    if owner is None:
        return item
    return item.model_copy(
        update={
            "business_name": owner.business_name,
            "owner_first_name": owner.first_name,
            "owner_last_name": owner.last_name,
            "owner_email": owner.email if include_email else None,
        }
    )


class TeamMemberService:
    """Service layer for team member business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TeamMemberRepository()

    def list_team_members(
        self,
        business_owner_id: Optional[int],
        source: Optional[str],
        search: Optional[str],
        limit: Optional[int],
        offset: int,
    ) -> TeamMemberListResponse:
        limit = clamp_limit(limit)
        rows, total = self.repo.list_team_members(
            self.db, business_owner_id, source, search, limit, offset
        )
        return TeamMemberListResponse(
            team_members=[with_owner(tm) for tm in rows], total=total, limit=limit, offset=offset
        )

    def get_team_member(self, team_member_id: int) -> TeamMember:
        team_member = self.repo.get_team_member_by_id(self.db, team_member_id)
        if not team_member:
            raise HTTPException(status_code=404, detail="Team member not found")
        return team_member

    def create_team_member(self, data: TeamMemberCreate) -> TeamMember:
        if not data.email:
            raise HTTPException(status_code=400, detail="Email is required")

        if data.business_owner_id is not None:
            if not self.repo.owner_exists(self.db, data.business_owner_id):
                raise HTTPException(status_code=404, detail="Business owner not found")
            if self.repo.find_for_owner(self.db, data.business_owner_id, data.email):
                raise HTTPException(
                    status_code=400, detail="Team member already exists for this business owner"
                )

        fields = data.model_dump(exclude={"request_sync"})
        if data.request_sync:
            # Picked up by the downstream sync cron
            fields.update(sync_requested_at=datetime.utcnow(), sync_attempts=0)

        team_member = self.repo.create_team_member(self.db, **fields)
        log_activity(
            self.db,
            "team_member_created",
            "team_member",
            team_member.id,
            {"name": format_full_name(data.first_name, data.last_name), "role": data.role},
        )
        self.db.commit()
        self.db.refresh(team_member)
        logger.info(f"✅ Team member created: {team_member.id}")
        return team_member

    def update_team_member(self, team_member_id: int, data: TeamMemberUpdate) -> TeamMember:
        updates = data.model_dump(exclude_unset=True)
        if not updates:
            raise HTTPException(status_code=400, detail="No valid fields to update")

        team_member = self.get_team_member(team_member_id)
        return self.repo.update_team_member(self.db, team_member, **updates)

    def delete_team_member(self, team_member_id: int) -> dict:
        team_member = self.get_team_member(team_member_id)
        self.repo.delete_team_member(self.db, team_member)
        return {"message": "Team member deleted successfully"}
