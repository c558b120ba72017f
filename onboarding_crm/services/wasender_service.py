"""
WhatsApp group join tracking (Wasender)

Participants arrive as JIDs, bare numbers or objects. Each one is reduced to
the last 10 phone digits and matched to an application; the first join sets
``whatsapp_joined_at`` and is announced in the member's purchase thread.
"""

import logging
import re
from collections import deque
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import config
from ..models import BusinessOwner, TypeformApplication
from ..shared.validators import digits_only, format_full_name, last_10_digits, normalize_email
from . import slack_blocks, slack_service
from .activity_log import log_activity
from .identity import find_application_for_phone, find_latest_thread_order

logger = logging.getLogger(__name__)

PARTICIPANTS_EVENT = "group-participants.update"
JOIN_ACTIONS = ("add", "invite", "join")
GROUP_JID_PATTERN = re.compile(r"[0-9]+@g\.us")
GROUP_SUFFIX = "@g.us"
PARTICIPANT_ID_KEYS = ("id", "jid", "participant", "user", "phone", "number", "waId", "wa_id", "msisdn")
GROUP_KEYS = ("group", "groupId", "group_id", "chat", "chatId", "chat_id", "remoteJid", "remote_jid")
MAX_SEARCH_DEPTH = 6


def participant_value(value) -> str:
    """Flatten a participant (string, number or object) to a searchable string"""
    if value is None:
        return ""
    if isinstance(value, (str, int)):
        return str(value)
    if isinstance(value, list):
        return " ".join(participant_value(v) for v in value)
    if isinstance(value, dict):
        for key in PARTICIPANT_ID_KEYS:
            if value.get(key):
                return participant_value(value[key])
    return ""


def normalize_group_jid(value) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("id") or value.get("jid")
    raw = participant_value(value).strip()
    if not raw:
        return None
    match = GROUP_JID_PATTERN.search(raw)
    if match:
        return match.group(0)
    digits = digits_only(raw)
    if len(digits) >= 11:
        return f"{digits}{GROUP_SUFFIX}"
    return raw


def allowed_group_jids() -> set[str]:
    entries = (config.WASENDER_ALLOWED_GROUP_JIDS or "").split(",")
    return {jid for jid in (normalize_group_jid(e) for e in entries) if jid}


def find_group_jid(payload: dict, data: dict) -> Optional[str]:
    """Group JID from the usual keys, else the first ``...@g.us`` found in the payload"""
    for source in (data, payload):
        for key in GROUP_KEYS:
            jid = normalize_group_jid(source.get(key))
            if jid and GROUP_SUFFIX in jid:
                return jid

    queue = deque([(payload, 0)])
    while queue:
        value, depth = queue.popleft()
        if depth > MAX_SEARCH_DEPTH:
            continue
        if isinstance(value, str):
            if GROUP_SUFFIX in value:
                jid = normalize_group_jid(value)
                if jid and GROUP_SUFFIX in jid:
                    return jid
        elif isinstance(value, dict):
            queue.extend((v, depth + 1) for v in value.values())
        elif isinstance(value, list):
            queue.extend((v, depth + 1) for v in value)
    return None


def mark_whatsapp_joined(db: Session, application: TypeformApplication, event_name: Optional[str]) -> bool:
    """
    Set whatsapp_joined_at when unset and mirror the join onto the member.

    Returns:
        True when this call set the timestamp (first delivery of the join)
    """
    did_update = (
        db.query(TypeformApplication)
        .filter(TypeformApplication.id == application.id, TypeformApplication.whatsapp_joined_at.is_(None))
        .update({TypeformApplication.whatsapp_joined_at: datetime.utcnow()}, synchronize_session=False)
    ) > 0

    email = normalize_email(application.email)
    if email:
        for member in db.query(BusinessOwner).filter(func.lower(BusinessOwner.email) == email).all():
            member.whatsapp_joined = True
            if member.whatsapp_joined_at is None:
                member.whatsapp_joined_at = datetime.utcnow()

    log_activity(
        db,
        "whatsapp_joined",
        "typeform_application",
        application.id,
        {
            "email": application.email,
            "first_name": application.first_name,
            "last_name": application.last_name,
            "did_update": did_update,
            "source": "wasender_webhook",
            "raw_event": event_name,
        },
    )
    db.commit()
    return did_update


async def announce_join(db: Session, application: TypeformApplication, phone_last10: str) -> bool:
    order = find_latest_thread_order(db, application.email)
    if not order:
        logger.debug(f"⚠️ No purchase thread for {application.email}, skipping join post")
        return False
    name = format_full_name(application.first_name, application.last_name) or application.email or "Member"
    response = await slack_service.post_to_thread(
        order.slack_channel_id,
        order.slack_thread_ts,
        slack_blocks.whatsapp_joined_block(name, phone_last10[-4:], config.STAFF_SLACK_MEMBER_ID),
    )
    return response is not None


async def process_wasender_event(db: Session, payload: dict) -> dict:
    event_name = payload.get("event") or payload.get("type") or payload.get("scope") or payload.get("topic")
    data = payload.get("data") or payload.get("payload") or payload
    if not isinstance(data, dict):
        data = {}

    is_participants_update = event_name == PARTICIPANTS_EVENT or (
        isinstance(data.get("participants"), list) and isinstance(data.get("action"), str)
    )
    if not is_participants_update:
        return {"received": True, "ignored": True, "event": event_name}

    action = (data.get("action") or "").lower()
    if action and action not in JOIN_ACTIONS:
        return {"received": True, "ignored": True, "event": event_name, "action": action}

    allowed = allowed_group_jids()
    if allowed:
        group_jid = find_group_jid(payload, data)
        if not group_jid or group_jid not in allowed:
            logger.info(f"ℹ️ Ignoring participants update for group {group_jid}")
            return {
                "received": True,
                "ignored": True,
                "reason": "group_not_allowed",
                "event": event_name,
                "group_jid": group_jid,
            }

    participants = data.get("participants") or data.get("participant") or []
    if not isinstance(participants, list):
        participants = [participants]

    processed = []
    skipped = []
    for participant in participants:
        phone_last10 = last_10_digits(participant_value(participant))
        if not phone_last10:
            skipped.append({"participant": participant, "reason": "no_phone"})
            continue

        application = find_application_for_phone(db, phone_last10)
        if not application:
            skipped.append({"participant": phone_last10, "reason": "no_matching_application"})
            continue

        did_update = mark_whatsapp_joined(db, application, event_name)
        if did_update:
            await announce_join(db, application, phone_last10)
            logger.info(f"✅ WhatsApp join recorded for application {application.id}")

        processed.append(
            {"participant": phone_last10, "application_id": application.id, "did_update": did_update}
        )

    return {
        "received": True,
        "event": event_name,
        "action": action or None,
        "processed_count": len(processed),
        "skipped_count": len(skipped),
        "processed": processed,
        "skipped": skipped,
    }
