"""
Typeform Webhook Routes
New form responses become applications and open a Slack thread
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..rate_limiter import create_rate_limiter
from ..services.typeform_service import announce_application, store_form_response
from ..webhook_security import verify_typeform_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/typeform", tags=["Webhooks"])

rate_limit_webhook = create_rate_limiter(
    limit=100,
    window_seconds=60,
    key_prefix="webhook_typeform",
    use_ip=False,
)


@router.post("")
async def handle_typeform_webhook(
    request: Request, db: Session = Depends(get_db), _: None = Depends(rate_limit_webhook)
):
    """
    Handle Typeform ``form_response`` events

    Security:
    - ``Typeform-Signature`` (sha256=base64 HMAC) required once a secret is configured
    """
    body = await request.body()

    if config.TYPEFORM_WEBHOOK_SECRET:
        signature = request.headers.get("typeform-signature")
        if not verify_typeform_signature(body, signature, config.TYPEFORM_WEBHOOK_SECRET):
            logger.warning("🚫 Invalid Typeform webhook signature")
            raise HTTPException(status_code=401, detail="Invalid signature")
    else:
        logger.debug("⚠️ TYPEFORM_WEBHOOK_SECRET not configured - signature verification skipped")

    try:
        payload = json.loads(body.decode() or "{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if payload.get("event_type") != "form_response":
        logger.debug(f"Ignoring Typeform event: {payload.get('event_type')}")
        return {"message": "Event type ignored"}

    try:
        application, created = store_form_response(db, payload.get("form_response") or {}, "typeform_webhook")
        if not created:
            logger.info(f"ℹ️ Typeform response already processed: {application and application.id}")
            return {"message": "Response already processed"}

        await announce_application(db, application)
        return {"success": True, "application_id": application.id}
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error processing Typeform webhook: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to process webhook")


@router.get("/test")
async def typeform_webhook_test():
    return {"message": "Typeform webhook endpoint is active"}
