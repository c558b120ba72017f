"""
Calendly invitee handling

A new booking marks the applicant's ``call_booked_at`` and announces the call
in the application's Slack thread. ``call_booked_at`` gates the announcement,
so repeat bookings and redelivered webhooks stay silent.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from .. import config
from ..models import TypeformApplication
from ..shared.validators import format_full_name, normalize_email
from . import slack_blocks, slack_service
from .activity_log import log_activity
from .identity import find_application_for_invitee, has_samcart_order

logger = logging.getLogger(__name__)

INVITEE_CREATED = "invitee.created"


def format_event_time(start_time: Optional[str]) -> str:
    """"2024-03-05T14:00:00.000000Z" -> "Tue, Mar 05, 02:00 PM UTC" """
    if not start_time:
        return ""
    try:
        parsed = datetime.fromisoformat(start_time.replace("Z", "+00:00"))
    except ValueError:
        return start_time
    return parsed.strftime("%a, %b %d, %I:%M %p %Z").strip()


def mark_call_booked(db: Session, application_id: int) -> bool:
    """Set call_booked_at if unset; True when this call set it"""
    updated = (
        db.query(TypeformApplication)
        .filter(TypeformApplication.id == application_id, TypeformApplication.call_booked_at.is_(None))
        .update({TypeformApplication.call_booked_at: datetime.utcnow()}, synchronize_session=False)
    )
    return updated > 0


async def handle_invitee_created(db: Session, payload: dict) -> dict:
    invitee = payload.get("invitee") or payload
    email = normalize_email(invitee.get("email"))
    name = invitee.get("name")
    if not email:
        logger.info("ℹ️ Calendly invitee without email")
        return {"received": True, "warning": "no email"}

    scheduled_event = payload.get("scheduled_event") or {}
    start_time = scheduled_event.get("start_time")
    event_time = format_event_time(start_time)

    # A paying member booking a call is a member 1:1, not a sales call
    if has_samcart_order(db, email):
        logger.info(f"ℹ️ {email} is already a member, skipping call notification")
        return {"received": True, "skipped": True, "reason": "existing_member", "email": email}

    application = find_application_for_invitee(db, email, name)
    if not application:
        logger.info(f"ℹ️ No matching application for invitee {email} / {name}")
        return {"received": True, "warning": "no matching application", "email": email, "name": name}

    application_email = normalize_email(application.email)
    if application_email and application_email != email and has_samcart_order(db, application_email):
        logger.info(f"ℹ️ {application_email} (from application) is already a member, skipping")
        return {
            "received": True,
            "skipped": True,
            "reason": "existing_member",
            "email": email,
            "application_email": application.email,
        }

    if not mark_call_booked(db, application.id):
        logger.info(f"ℹ️ Call already announced for application {application.id}")
        return {
            "received": True,
            "skipped": True,
            "reason": "already_notified",
            "email": email,
            "application_id": application.id,
        }

    log_activity(
        db,
        "call_booked",
        "typeform_application",
        application.id,
        {
            "email": email,
            "invitee_name": name,
            "event_name": scheduled_event.get("name"),
            "start_time": start_time,
            "calendly_event_uri": scheduled_event.get("uri"),
        },
    )
    db.commit()

    applicant_name = format_full_name(application.first_name, application.last_name) or name or email
    posted = await slack_service.post_to_thread(
        application.slack_channel_id or config.APPLICATION_SLACK_CHANNEL_ID,
        application.slack_thread_ts,
        slack_blocks.call_booked_block(applicant_name, email, event_time, config.STAFF_SLACK_MEMBER_ID),
    )
    logger.info(f"📅 Call booked for {email} - {event_time}")

    return {
        "success": True,
        "application_id": application.id,
        "email": email,
        "event_time": event_time,
        "slack_posted": posted is not None,
    }
