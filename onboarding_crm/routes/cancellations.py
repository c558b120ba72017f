"""
Cancellation records, written by SamCart webhooks or entered by staff
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Cancellation
from ..services.activity_log import log_activity
from ..shared.pagination import clamp_limit, like_pattern
from ..shared.validators import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cancellations", tags=["Cancellations"])


class CancellationCreate(BaseModel):
    member_email: Optional[str] = None
    member_name: Optional[str] = None
    reason: Optional[str] = None
    created_by: Optional[str] = "admin"


class CancellationResponse(BaseModel):
    id: int
    member_email: Optional[str] = None
    member_name: Optional[str] = None
    reason: Optional[str] = None
    source: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


@router.get("")
async def list_cancellations(
    search: Optional[str] = Query(None),
    limit: int = Query(20),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    try:
        limit = clamp_limit(limit, default=20)
        query = db.query(Cancellation)
        if search and search.strip():
            pattern = like_pattern(search)
            query = query.filter(
                or_(
                    Cancellation.member_email.ilike(pattern),
                    Cancellation.member_name.ilike(pattern),
                    Cancellation.reason.ilike(pattern),
                    Cancellation.source.ilike(pattern),
                )
            )
        total = query.count()
        rows = (
            query.order_by(Cancellation.created_at.desc(), Cancellation.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return {
            "cancellations": [CancellationResponse.model_validate(c) for c in rows],
            "total": total,
            "limit": limit,
            "offset": offset,
        }
    except Exception as e:
        logger.error(f"❌ Error fetching cancellations: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch cancellations")


@router.post("", response_model=CancellationResponse, status_code=201)
async def record_cancellation(data: CancellationCreate, db: Session = Depends(get_db)):
    """Staff-entered cancellation"""
    email = normalize_email(data.member_email)
    if not email:
        raise HTTPException(status_code=400, detail="Member email is required")

    try:
        cancellation = Cancellation(
            member_email=email,
            member_name=(data.member_name or "").strip() or None,
            reason=(data.reason or "").strip() or None,
            source="admin",
            created_by=data.created_by or "admin",
        )
        db.add(cancellation)
        db.flush()
        log_activity(
            db,
            "cancellation_recorded",
            "cancellation",
            cancellation.id,
            {"email": email, "source": "admin"},
        )
        db.commit()
        db.refresh(cancellation)
        logger.info(f"🚫 Cancellation recorded for {email}")
        return cancellation
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error recording cancellation: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to record cancellation")
