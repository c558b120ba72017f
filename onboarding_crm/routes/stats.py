"""
Dashboard statistics and the activity feed
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db
from ..domain.applications.repository import ApplicationRepository
from ..models import ActivityLog, BusinessOwner, TeamMember, TypeformApplication
from ..shared.pagination import clamp_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stats", tags=["Stats"])

RECENT_APPLICATION_DAYS = 7
TIMELINE_DAYS = 30
RECENT_ACTIVITY_LIMIT = 10
REVENUE_TIER_LIMIT = 10


class ActivityResponse(BaseModel):
    id: int
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    details: Optional[dict] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def _grouped_counts(db: Session, column) -> dict:
    rows = db.query(column, func.count()).group_by(column).all()
    return {key: count for key, count in rows}


@router.get("")
async def get_stats(db: Session = Depends(get_db)):
    """Counts and breakdowns for the admin dashboard"""
    try:
        now = datetime.utcnow()

        totals = {
            "members": db.query(func.count(BusinessOwner.id)).scalar() or 0,
            "team_members": db.query(func.count(TeamMember.id)).scalar() or 0,
            "applications": db.query(func.count(TypeformApplication.id)).scalar() or 0,
            "pending_onboardings": db.query(func.count(BusinessOwner.id))
            .filter(BusinessOwner.onboarding_status != "completed")
            .scalar()
            or 0,
            "recent_applications": db.query(func.count(TypeformApplication.id))
            .filter(TypeformApplication.created_at > now - timedelta(days=RECENT_APPLICATION_DAYS))
            .scalar()
            or 0,
        }

        recent_activity = (
            db.query(ActivityLog)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(RECENT_ACTIVITY_LIMIT)
            .all()
        )

        day = func.date(BusinessOwner.created_at)
        timeline = (
            db.query(day, func.count(BusinessOwner.id))
            .filter(BusinessOwner.created_at > now - timedelta(days=TIMELINE_DAYS))
            .group_by(day)
            .order_by(day)
            .all()
        )

        revenue_count = func.count(BusinessOwner.id)
        revenue_tiers = (
            db.query(BusinessOwner.annual_revenue, revenue_count)
            .filter(BusinessOwner.annual_revenue.isnot(None), BusinessOwner.annual_revenue != "")
            .group_by(BusinessOwner.annual_revenue)
            .order_by(revenue_count.desc(), BusinessOwner.annual_revenue)
            .limit(REVENUE_TIER_LIMIT)
            .all()
        )

        return {
            "totals": totals,
            "onboarding_status": _grouped_counts(db, BusinessOwner.onboarding_status),
            "application_status": ApplicationRepository.status_counts(db),
            "truly_new_applications": ApplicationRepository.truly_new_count(db),
            "source_breakdown": _grouped_counts(db, BusinessOwner.source),
            "recent_activity": [ActivityResponse.model_validate(a) for a in recent_activity],
            "members_timeline": [{"date": str(date), "count": count} for date, count in timeline],
            "revenue_tiers": [
                {"annual_revenue": tier, "count": count} for tier, count in revenue_tiers
            ],
        }
    except Exception as e:
        logger.error(f"❌ Error fetching stats: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch statistics")


@router.get("/activity")
async def get_activity(
    limit: int = Query(20),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    try:
        limit = clamp_limit(limit, default=20)
        query = db.query(ActivityLog)
        activities = (
            query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return {
            "activities": [ActivityResponse.model_validate(a) for a in activities],
            "total": query.count(),
            "limit": limit,
            "offset": offset,
        }
    except Exception as e:
        logger.error(f"❌ Error fetching activity: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch activity")
