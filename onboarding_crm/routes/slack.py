"""
Slack Events and Interactivity endpoints
"""

import json
import logging
from typing import Optional
from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..domain.notes.service import NoteService
from ..rate_limiter import create_rate_limiter
from ..webhook_security import verify_slack_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["Slack"])

rate_limit_slack = create_rate_limiter(
    limit=300,
    window_seconds=60,
    key_prefix="webhook_slack",
    use_ip=False,
)


async def verified_body(request: Request) -> bytes:
    """Raw request body after the v0 signature check (skipped without a signing secret)"""
    body = await request.body()
    if not config.SLACK_SIGNING_SECRET:
        logger.debug("⚠️ SLACK_SIGNING_SECRET not configured - signature verification skipped")
        return body

    if not verify_slack_signature(
        body,
        request.headers.get("x-slack-request-timestamp"),
        request.headers.get("x-slack-signature"),
        config.SLACK_SIGNING_SECRET,
    ):
        logger.warning("🚫 Invalid Slack signature")
        raise HTTPException(status_code=401, detail="Invalid signature")
    return body


def _thread_reply(event: dict) -> Optional[dict]:
    """Human reply inside a thread, or None for anything else"""
    if event.get("type") != "message" or event.get("bot_id") or event.get("subtype"):
        return None
    thread_ts = event.get("thread_ts")
    if not thread_ts or thread_ts == event.get("ts"):
        return None
    return event


@router.post("/events")
async def slack_events(
    request: Request, db: Session = Depends(get_db), _: None = Depends(rate_limit_slack)
):
    body = await verified_body(request)
    try:
        payload = json.loads(body.decode() or "{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    if payload.get("type") != "event_callback":
        return {"ok": True}

    reply = _thread_reply(payload.get("event") or {})
    if reply:
        try:
            NoteService(db).import_thread_reply(
                reply.get("channel"),
                reply["thread_ts"],
                reply.get("ts"),
                reply.get("user"),
                reply.get("text"),
            )
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to store Slack thread reply: {str(e)}")

    return {"ok": True}


@router.post("/interactions")
async def slack_interactions(request: Request, _: None = Depends(rate_limit_slack)):
    """Interactivity callbacks arrive form-encoded with a JSON ``payload`` field"""
    body = await verified_body(request)
    form = parse_qs(body.decode())
    raw_payload = (form.get("payload") or ["{}"])[0]
    try:
        payload = json.loads(raw_payload)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid interaction payload")

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    if payload.get("type") == "block_actions":
        action_ids = [a.get("action_id") for a in payload.get("actions") or []]
        logger.info(f"🖱️ Slack block action: {action_ids}")

    return Response(status_code=200)
