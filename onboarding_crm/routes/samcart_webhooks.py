"""
SamCart Webhook Routes
Orders and subscription lifecycle events
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..rate_limiter import create_rate_limiter
from ..services.samcart_service import process_samcart_event
from ..webhook_security import verify_shared_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/samcart", tags=["Webhooks"])

rate_limit_webhook = create_rate_limiter(
    limit=100,
    window_seconds=60,
    key_prefix="webhook_samcart",
    use_ip=False,
)


@router.post("")
async def handle_samcart_webhook(
    request: Request, db: Session = Depends(get_db), _: None = Depends(rate_limit_webhook)
):
    """
    Supported events: Order, Subscription Charge Failed, Subscription Canceled,
    Subscription Recovered. Redelivered events are no-ops.
    """
    verify_shared_secret(request, config.SAMCART_WEBHOOK_SECRET, "x-samcart-secret")

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    try:
        return await process_samcart_event(db, payload)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"❌ SamCart webhook error: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to process webhook")
