"""
Batch jobs triggered by the scheduler
"""

import logging
from datetime import datetime

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..services.typeform_service import sync_typeform_responses
from ..webhook_security import constant_time_compare

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def require_cron_secret(request: Request) -> None:
    if not config.CRON_SECRET:
        logger.error("❌ CRON_SECRET not configured")
        raise HTTPException(status_code=500, detail="Server not configured for cron jobs")

    provided = request.headers.get("x-cron-secret") or ""
    if not constant_time_compare(config.CRON_SECRET, provided):
        logger.warning("🚫 Invalid cron secret provided")
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/sync-typeform", dependencies=[Depends(require_cron_secret)])
async def sync_typeform(db: Session = Depends(get_db)):
    """Store every Typeform response the webhook missed"""
    try:
        result = await sync_typeform_responses(db)
        return {"success": True, **result}
    except httpx.HTTPError as e:
        logger.error(f"❌ Typeform API request failed: {str(e)}")
        raise HTTPException(status_code=502, detail="Typeform API request failed")
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Typeform sync failed: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to sync Typeform responses")


@router.get("/health")
async def jobs_health():
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}
