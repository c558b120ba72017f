"""
Wasender (WhatsApp) Webhook Routes
Tracks members joining the WhatsApp group
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..rate_limiter import create_rate_limiter
from ..services.wasender_service import process_wasender_event
from ..webhook_security import verify_shared_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/wasender", tags=["Webhooks"])

rate_limit_webhook = create_rate_limiter(
    limit=200,
    window_seconds=60,
    key_prefix="webhook_wasender",
    use_ip=False,
)


@router.post("")
async def handle_wasender_webhook(
    request: Request, db: Session = Depends(get_db), _: None = Depends(rate_limit_webhook)
):
    verify_shared_secret(request, config.WASENDER_WEBHOOK_SECRET, "x-wasender-secret")

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    try:
        return await process_wasender_event(db, payload)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Wasender webhook error: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/test")
async def wasender_webhook_test():
    return {
        "status": "ok",
        "message": "Wasender webhook endpoint is active",
        "timestamp": datetime.utcnow().isoformat(),
    }
