"""Note service - Application notes and their Slack thread mirroring"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ApplicationNote, TypeformApplication
from ...services import slack_blocks, slack_service
from ...services.activity_log import log_activity
from ...services.identity import find_latest_thread_order
from .repository import NoteRepository
from .schemas import NoteCreatedResponse

logger = logging.getLogger(__name__)


class NoteService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = NoteRepository()

    def get_notes(self, application_id: int) -> list[ApplicationNote]:
        return self.repo.get_notes(self.db, application_id)

    def create_note(self, application_id: int, note_text: Optional[str], created_by: Optional[str]):
        """Store the note (DB only). Returns (note, application)."""
        text = (note_text or "").strip()
        if not text:
            raise HTTPException(status_code=400, detail="Note text is required")

        application = self.repo.get_application(self.db, application_id)
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")

        note = self.repo.create_note(
            self.db,
            application_id=application.id,
            note_text=text,
            created_by=(created_by or "").strip() or "admin",
        )
        self.db.commit()
        self.db.refresh(note)
        return note, application

    async def sync_note_to_slack(self, note: ApplicationNote, application: TypeformApplication) -> dict:
        """
        Mirror a note into the application thread and the purchase thread.
        Failures only leave the corresponding flag False.
        """
        status = {
            "slack_application_synced": False,
            "slack_application_message_ts": None,
            "slack_purchase_synced": False,
            "slack_purchase_message_ts": None,
        }
        message = slack_blocks.note_added_block(note.note_text, note.created_by, note.created_at)

        response = await slack_service.post_to_thread(
            application.slack_channel_id, application.slack_thread_ts, message
        )
        if response and response.get("ts"):
            note.slack_synced = True
            note.slack_message_ts = response["ts"]
            self.db.commit()
            status["slack_application_synced"] = True
            status["slack_application_message_ts"] = response["ts"]

        order = find_latest_thread_order(self.db, application.email)
        if order:
            response = await slack_service.post_to_thread(
                order.slack_channel_id, order.slack_thread_ts, message
            )
            if response and response.get("ts"):
                status["slack_purchase_synced"] = True
                status["slack_purchase_message_ts"] = response["ts"]

        return status

    async def add_note(
        self, application_id: int, note_text: Optional[str], created_by: Optional[str]
    ) -> NoteCreatedResponse:
        note, application = self.create_note(application_id, note_text, created_by)
        sync_status = await self.sync_note_to_slack(note, application)

        log_activity(
            self.db,
            "note_added",
            "typeform_application",
            application.id,
            {"note_id": note.id, "created_by": note.created_by, **sync_status},
            commit=True,
        )
        self.db.refresh(note)
        logger.info(f"📝 Note {note.id} added to application {application.id}")
        return NoteCreatedResponse.model_validate(note).model_copy(update=sync_status)

    def import_thread_reply(
        self, channel: Optional[str], thread_ts: str, message_ts: str, user: Optional[str], text: Optional[str]
    ) -> Optional[ApplicationNote]:
        """Store a Slack reply in an application thread as a note, once per message"""
        text = (text or "").strip()
        if not text:
            return None

        application = self.repo.get_application_by_thread(self.db, channel, thread_ts)
        if not application:
            return None
        if self.repo.get_note_by_slack_ts(self.db, application.id, message_ts):
            logger.debug(f"ℹ️ Slack message {message_ts} already stored as a note")
            return None

        note = self.repo.create_note(
            self.db,
            application_id=application.id,
            note_text=text,
            created_by=f"slack:{user or 'unknown'}",
            slack_synced=True,
            slack_message_ts=message_ts,
        )
        log_activity(
            self.db,
            "note_added",
            "typeform_application",
            application.id,
            {"note_id": note.id, "created_by": note.created_by, "source": "slack_thread"},
        )
        self.db.commit()
        logger.info(f"📝 Slack reply stored as note {note.id} on application {application.id}")
        return note

    def delete_note(self, note_id: int) -> dict:
        note = self.repo.get_note_by_id(self.db, note_id)
        if not note:
            raise HTTPException(status_code=404, detail="Note not found")
        deleted = {"id": note.id, "application_id": note.application_id}
        self.repo.delete_note(self.db, note)
        return {"success": True, "deleted": deleted}
