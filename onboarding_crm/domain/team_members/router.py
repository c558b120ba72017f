"""Team member router - FastAPI endpoints for team member operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    TeamMemberCreate,
    TeamMemberListResponse,
    TeamMemberResponse,
    TeamMemberUpdate,
    TeamMemberWithOwner,
)
from .service import TeamMemberService, with_owner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/team-members", tags=["Team Members"])


def get_team_member_service(db: Session = Depends(get_db)) -> TeamMemberService:
    """Dependency injection for TeamMemberService"""
    return TeamMemberService(db)


@router.get("", response_model=TeamMemberListResponse)
async def list_team_members(
    business_owner_id: Optional[int] = Query(None),
    source: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(50),
    offset: int = Query(0, ge=0),
    service: TeamMemberService = Depends(get_team_member_service),
):
    try:
        return service.list_team_members(business_owner_id, source, search, limit, offset)
    except Exception as e:
        logger.error(f"❌ Error fetching team members: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch team members")


@router.get("/{team_member_id}", response_model=TeamMemberWithOwner)
async def get_team_member(
    team_member_id: int, service: TeamMemberService = Depends(get_team_member_service)
):
    """Team member with owner business name and contact"""
    return with_owner(service.get_team_member(team_member_id), include_email=True)


@router.post("", response_model=TeamMemberResponse, status_code=201)
async def create_team_member(
    data: TeamMemberCreate, service: TeamMemberService = Depends(get_team_member_service)
):
    try:
        return service.create_team_member(data)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error creating team member: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create team member")


@router.put("/{team_member_id}", response_model=TeamMemberResponse)
async def update_team_member(
    team_member_id: int,
    data: TeamMemberUpdate,
    service: TeamMemberService = Depends(get_team_member_service),
):
    try:
        return service.update_team_member(team_member_id, data)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error updating team member {team_member_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update team member")


@router.delete("/{team_member_id}")
async def delete_team_member(
    team_member_id: int, service: TeamMemberService = Depends(get_team_member_service)
):
    return service.delete_team_member(team_member_id)
