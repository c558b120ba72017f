"""Member router - FastAPI endpoints for business owners"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    MemberCreate,
    MemberDetail,
    MemberListResponse,
    MemberResponse,
    MemberUpdate,
    UnifiedMember,
)
from .service import MemberService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/members", tags=["Members"])


def get_member_service(db: Session = Depends(get_db)) -> MemberService:
    """Dependency injection for MemberService"""
    return MemberService(db)


@router.get("", response_model=MemberListResponse)
async def list_members(
    source: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="Onboarding status"),
    search: Optional[str] = Query(None),
    limit: int = Query(50),
    offset: int = Query(0, ge=0),
    service: MemberService = Depends(get_member_service),
):
    """Members with their team member counts"""
    try:
        return service.list_members(source, status, search, limit, offset)
    except Exception as e:
        logger.error(f"❌ Error fetching members: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch members")


@router.get("/{member_id}", response_model=MemberDetail)
async def get_member(member_id: int, service: MemberService = Depends(get_member_service)):
    return service.get_member_detail(member_id)


@router.get("/{member_id}/unified", response_model=UnifiedMember)
async def get_unified_profile(member_id: int, service: MemberService = Depends(get_member_service)):
    """Member with linked Typeform application and SamCart order"""
    try:
        return service.get_unified_profile(member_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Error fetching unified profile {member_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch unified profile")


@router.post("", response_model=MemberResponse, status_code=201)
async def create_member(data: MemberCreate, service: MemberService = Depends(get_member_service)):
    try:
        return service.create_member(data)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error creating member: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create member")


@router.put("/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: int, data: MemberUpdate, service: MemberService = Depends(get_member_service)
):
    try:
        return service.update_member(member_id, data)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error updating member {member_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update member")


@router.delete("/{member_id}")
async def delete_member(member_id: int, service: MemberService = Depends(get_member_service)):
    try:
        return service.delete_member(member_id)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error deleting member {member_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete member")
