"""Block Kit message builders. Each returns ``{"text": fallback, "blocks": [...]}``."""

from datetime import datetime
from typing import Optional


def _section(text: str) -> dict:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _mention(slack_member_id: Optional[str]) -> str:
    return f" <@{slack_member_id}>" if slack_member_id else ""


def new_application_block(name: str, email: Optional[str], application) -> dict:
    lines = [f"*{name or 'Unknown'}*", email or "No email"]
    if application.annual_revenue:
        lines.append(f"*Revenue:* {application.annual_revenue}")
    if application.business_description:
        lines.append(f"*Business:* {application.business_description[:300]}")
    return {
        "text": f"New application from {name or email}",
        "blocks": [_section("📥 *New Application*"), _section("\n".join(lines))],
    }


def call_booked_block(
    applicant_name: str,
    applicant_email: Optional[str],
    event_time: Optional[str],
    staff_member_id: Optional[str] = None,
) -> dict:
    details = f"*{applicant_name}* just booked a call!\n{applicant_email or ''}"
    if event_time:
        details += f"\nScheduled: {event_time}"
    return {
        "text": f"Call booked with {applicant_name}",
        "blocks": [
            _section(f"📅 *Call Booked!*{_mention(staff_member_id)}"),
            _section(details),
        ],
    }


def note_added_block(note_text: str, created_by: str, created_at: Optional[datetime] = None) -> dict:
    timestamp = (created_at or datetime.utcnow()).strftime("%b %d, %I:%M %p")
    return {
        "text": f"Note: {note_text[:100]}",
        "blocks": [
            _section(f"📝 *Note added by {created_by}* ({timestamp})"),
            _section(note_text),
        ],
    }


def whatsapp_joined_block(name: str, phone_last4: str, staff_member_id: Optional[str] = None) -> dict:
    text = f"✅ *WhatsApp Joined:* {name} (…{phone_last4}){_mention(staff_member_id)}"
    return {"text": f"{name} joined WhatsApp", "blocks": [_section(text)]}


def purchase_block(order) -> dict:
    name = " ".join(p for p in (order.first_name, order.last_name) if p) or order.email
    amount = f"${order.order_total:,.2f}" if order.order_total is not None else "n/a"
    return {
        "text": f"New purchase from {name}",
        "blocks": [
            _section("💰 *New Purchase*"),
            _section(
                f"*{name}*\n{order.email or ''}\n*Product:* {order.product_name or 'Unknown'}\n*Amount:* {amount}"
            ),
        ],
    }


def subscription_event_block(event_label: str, emoji: str, detail: Optional[str] = None) -> dict:
    text = f"{emoji} *{event_label}*"
    if detail:
        text += f"\n{detail}"
    return {"text": event_label, "blocks": [_section(text)]}
