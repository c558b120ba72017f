"""
Calendly Webhook Routes
Booked calls are matched to applications and announced once
"""

import json
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..rate_limiter import create_rate_limiter
from ..services.calendly_service import INVITEE_CREATED, handle_invitee_created
from ..webhook_security import verify_calendly_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/calendly", tags=["Webhooks"])

rate_limit_webhook = create_rate_limiter(
    limit=100,
    window_seconds=60,
    key_prefix="webhook_calendly",
    use_ip=False,
)


@router.post("")
async def handle_calendly_webhook(
    request: Request, db: Session = Depends(get_db), _: None = Depends(rate_limit_webhook)
):
    """
    Handle Calendly webhook events - only ``invitee.created`` is acted on

    Security:
    - ``Calendly-Webhook-Signature`` checked when a signing key is configured
      and the header is present
    """
    body = await request.body()
    signature = request.headers.get("calendly-webhook-signature")

    if config.CALENDLY_WEBHOOK_SIGNING_KEY and signature:
        if not verify_calendly_signature(body, signature, config.CALENDLY_WEBHOOK_SIGNING_KEY):
            logger.warning("🚫 Invalid Calendly webhook signature")
            raise HTTPException(status_code=401, detail="Invalid signature")
    else:
        logger.debug("⚠️ Calendly signature verification skipped (no signing key or signature)")

    try:
        payload = json.loads(body.decode() or "{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    event = payload.get("event")
    logger.debug(f"📥 Received Calendly webhook: {event}")
    if event != INVITEE_CREATED:
        return {"received": True, "event": event}

    try:
        return await handle_invitee_created(db, payload.get("payload") or {})
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Calendly webhook processing error: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/test")
async def calendly_webhook_test():
    return {
        "status": "ok",
        "message": "Calendly webhook endpoint is active",
        "timestamp": datetime.utcnow().isoformat(),
    }
