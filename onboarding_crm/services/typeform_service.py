"""
Typeform ingestion

Form responses arrive two ways: pushed by the webhook and pulled by the
``/api/jobs/sync-typeform`` cron job. Both end up in ``store_form_response``,
which is idempotent on the response token.
"""

import logging
from typing import Optional

import httpx
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import config
from ..models import TypeformApplication
from ..shared.validators import format_full_name, normalize_email, split_full_name
from . import slack_blocks, slack_service
from .activity_log import log_activity

logger = logging.getLogger(__name__)

TYPEFORM_API_BASE = "https://api.typeform.com"
PAGE_SIZE = 100


def answer_value(answer: dict):
    """Value of one answer according to its answer type"""
    answer_type = answer.get("type")
    if answer_type in ("text", "short_text", "long_text"):
        return answer.get("text")
    if answer_type == "choice":
        return (answer.get("choice") or {}).get("label")
    if answer_type == "choices":
        labels = (answer.get("choices") or {}).get("labels") or []
        return ", ".join(labels)
    if answer_type in ("email", "phone_number", "number", "boolean", "date", "url"):
        return answer.get(answer_type)
    return answer.get("text") or answer.get(answer_type)


def _field_type(answer: dict) -> Optional[str]:
    return (answer.get("field") or {}).get("type") or answer.get("type")


def find_answer(answers: list, field_type: str, index: int = 0):
    """The ``index``-th answer to a question of ``field_type``, in form order"""
    matching = [a for a in answers if _field_type(a) == field_type]
    if index < len(matching):
        return answer_value(matching[index])
    return None


def answers_by_ref(answers: list) -> dict:
    return {
        (a.get("field") or {}).get("ref"): answer_value(a)
        for a in answers
        if (a.get("field") or {}).get("ref")
    }


def parse_form_response(form_response: dict) -> dict:
    """
    Map a form response onto application columns.

    Questions are located by type and position (first short text is the first
    name, second the last name, and so on). Answers whose field ref names a
    column directly take precedence.
    """
    answers = form_response.get("answers") or []
    fields = {
        "first_name": find_answer(answers, "short_text", 0),
        "last_name": find_answer(answers, "short_text", 1),
        "email": find_answer(answers, "email", 0),
        "phone": find_answer(answers, "phone_number", 0),
        "business_description": find_answer(answers, "long_text", 0),
        "annual_revenue": find_answer(answers, "multiple_choice", 0),
        "main_challenge": find_answer(answers, "long_text", 1),
        "why_join": find_answer(answers, "long_text", 2),
    }

    refs = answers_by_ref(answers)
    if refs.get("name") and not refs.get("first_name"):
        refs["first_name"], refs["last_name"] = split_full_name(refs["name"])
    aliases = {
        "phone": ("phone", "phone_number"),
        "business_description": ("business_description", "business"),
        "annual_revenue": ("annual_revenue", "revenue"),
        "main_challenge": ("main_challenge", "challenge"),
        "why_join": ("why_join", "why_ca_pro"),
    }
    for column in fields:
        for ref in aliases.get(column, (column,)):
            if refs.get(ref):
                fields[column] = refs[ref]
                break

    fields["email"] = normalize_email(fields["email"])
    return fields


def store_form_response(db: Session, form_response: dict, source: str) -> tuple[Optional[TypeformApplication], bool]:
    """
    Insert an application for a form response unless its token is already stored.

    Returns:
        (application, created)
    """
    token = form_response.get("token") or form_response.get("response_id")
    if token:
        existing = (
            db.query(TypeformApplication)
            .filter(TypeformApplication.typeform_response_id == token)
            .first()
        )
        if existing:
            return existing, False

    fields = parse_form_response(form_response)
    application = TypeformApplication(
        typeform_response_id=token, raw_data=form_response, status="new", **fields
    )
    db.add(application)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.info(f"ℹ️ Typeform response {token} stored by a concurrent delivery")
        existing = (
            db.query(TypeformApplication)
            .filter(TypeformApplication.typeform_response_id == token)
            .first()
        )
        return existing, False

    log_activity(
        db,
        "new_application",
        "typeform_application",
        application.id,
        {"name": format_full_name(fields["first_name"], fields["last_name"]), "source": source},
    )
    db.commit()
    db.refresh(application)
    logger.info(f"✅ New Typeform application stored: {application.id}")
    return application, True


async def announce_application(db: Session, application: TypeformApplication) -> bool:
    """Open the application's Slack thread; best effort"""
    if application.slack_thread_ts:
        return False

    name = format_full_name(application.first_name, application.last_name)
    response = await slack_service.post_message(
        config.APPLICATION_SLACK_CHANNEL_ID,
        **slack_blocks.new_application_block(name, application.email, application),
    )
    if not response:
        return False

    application.slack_channel_id = response.get("channel") or config.APPLICATION_SLACK_CHANNEL_ID
    application.slack_thread_ts = response.get("ts")
    db.commit()
    return True


class TypeformClient:
    """Typeform Responses API"""

    def __init__(self, token: Optional[str] = None, form_id: Optional[str] = None):
        self.token = token or config.TYPEFORM_TOKEN
        self.form_id = form_id or config.TYPEFORM_FORM_ID

    async def fetch_responses(self, http_client: httpx.AsyncClient, after: Optional[str] = None) -> dict:
        params = {"page_size": PAGE_SIZE}
        if after:
            params["after"] = after

        response = await http_client.get(
            f"{TYPEFORM_API_BASE}/forms/{self.form_id}/responses",
            headers={"Authorization": f"Bearer {self.token}"},
            params=params,
        )
        response.raise_for_status()
        return response.json()

    async def fetch_all_responses(self) -> list[dict]:
        """Page through every response using the last token as the ``after`` cursor"""
        responses = []
        after = None

        async with httpx.AsyncClient(timeout=30.0) as http_client:
            while True:
                data = await self.fetch_responses(http_client, after)
                items = data.get("items") or []
                responses.extend(items)

                if len(items) < PAGE_SIZE:
                    break
                after = items[-1].get("token")
                if not after:
                    break

        return responses


async def sync_typeform_responses(db: Session, client: Optional[TypeformClient] = None) -> dict:
    """Pull all responses and store the ones not seen yet"""
    if not config.TYPEFORM_TOKEN or not config.TYPEFORM_FORM_ID:
        logger.info("ℹ️ Typeform token / form id not configured, skipping sync")
        return {"synced": 0, "skipped": 0, "errors": []}

    client = client or TypeformClient()
    logger.info("🔄 Fetching Typeform responses...")
    responses = await client.fetch_all_responses()
    logger.info(f"📊 Found {len(responses)} Typeform responses")

    synced = 0
    skipped = 0
    errors = []
    for form_response in responses:
        try:
            _, created = store_form_response(db, form_response, source="typeform_sync")
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to store Typeform response {form_response.get('token')}: {str(e)}")
            errors.append({"response_id": form_response.get("token"), "error": str(e)})
            continue

        if created:
            synced += 1
        else:
            skipped += 1

    if synced:
        log_activity(
            db,
            "typeform_sync",
            "typeform_application",
            None,
            {"synced": synced, "skipped": skipped, "errors": len(errors)},
            commit=True,
        )

    logger.info(f"✅ Typeform sync complete: {synced} synced, {skipped} skipped, {len(errors)} errors")
    return {"synced": synced, "skipped": skipped, "errors": errors}
