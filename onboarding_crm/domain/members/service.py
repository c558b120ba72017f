"""Member service - Business logic for business owner operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import BusinessOwner
from ...services.activity_log import log_activity
from ...services.identity import find_linked_records
from ...shared.pagination import clamp_limit
from ...shared.validators import format_full_name
from ..applications.schemas import ApplicationResponse
from .repository import MemberRepository
from .schemas import (
    MemberCreate,
    MemberDetail,
    MemberListItem,
    MemberListResponse,
    MemberUpdate,
    SamcartOrderResponse,
    UnifiedMember,
)

logger = logging.getLogger(__name__)


class MemberService:
    """Service layer for member business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MemberRepository()

    def list_members(
        self,
        source: Optional[str],
        status: Optional[str],
        search: Optional[str],
        limit: Optional[int],
        offset: int,
    ) -> MemberListResponse:
        limit = clamp_limit(limit)
        rows, total = self.repo.list_members(self.db, source, status, search, limit, offset)
        members = [
            MemberListItem.model_validate(member).model_copy(update={"team_member_count": count})
            for member, count in rows
        ]
        return MemberListResponse(members=members, total=total, limit=limit, offset=offset)

    def get_member(self, member_id: int) -> BusinessOwner:
        member = self.repo.get_member_by_id(self.db, member_id)
        if not member:
            raise HTTPException(status_code=404, detail="Member not found")
        return member

    def get_member_detail(self, member_id: int) -> MemberDetail:
        return MemberDetail.model_validate(self.get_member(member_id))

    def get_unified_profile(self, member_id: int) -> UnifiedMember:
        """Member plus the application and SamCart order that belong to the same person"""
        member = self.get_member(member_id)
        linked = find_linked_records(self.db, member)
        application = linked["typeform_application"]
        order = linked["samcart_order"]
        return UnifiedMember.model_validate(member).model_copy(
            update={
                "typeform_application": (
                    ApplicationResponse.model_validate(application) if application else None
                ),
                "samcart_order": SamcartOrderResponse.model_validate(order) if order else None,
            }
        )

    def _ensure_email_free(self, email: Optional[str], member_id: Optional[int] = None) -> None:
        if not email:
            return
        existing = self.repo.get_member_by_email(self.db, email)
        if existing and existing.id != member_id:
            raise HTTPException(status_code=400, detail="Email already exists")

    def create_member(self, data: MemberCreate) -> BusinessOwner:
        self._ensure_email_free(data.email)

        fields = data.model_dump()
        fields["whatsapp_joined"] = bool(fields.get("whatsapp_joined"))
        member = self.repo.create_member(self.db, **fields)
        log_activity(
            self.db,
            "member_created",
            "business_owner",
            member.id,
            {"name": format_full_name(data.first_name, data.last_name)},
        )
        self._commit()
        self.db.refresh(member)
        logger.info(f"✅ Member created: {member.id}")
        return member

    def update_member(self, member_id: int, data: MemberUpdate) -> BusinessOwner:
        updates = data.model_dump(exclude_unset=True)
        if not updates:
            raise HTTPException(status_code=400, detail="No valid fields to update")

        member = self.get_member(member_id)
        if "email" in updates:
            self._ensure_email_free(updates["email"], member.id)
        if "whatsapp_joined" in updates:
            updates["whatsapp_joined"] = bool(updates["whatsapp_joined"])

        self.repo.update_member(self.db, member, **updates)
        log_activity(
            self.db, "member_updated", "business_owner", member.id, {"fields": sorted(updates)}
        )
        self._commit()
        self.db.refresh(member)
        return member

    def delete_member(self, member_id: int) -> dict:
        member = self.get_member(member_id)
        name = format_full_name(member.first_name, member.last_name)
        self.repo.delete_member(self.db, member)
        log_activity(self.db, "member_deleted", "business_owner", member_id, {"name": name})
        self.db.commit()
        logger.info(f"🗑️ Member {member_id} deleted")
        return {"message": "Member deleted successfully"}

    def _commit(self) -> None:
        """Commit, turning a lost race on the unique email into a 400"""
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(status_code=400, detail="Email already exists")
