"""Note repository - Database operations for application notes"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ApplicationNote, TypeformApplication


class NoteRepository:
    @staticmethod
    def get_notes(db: Session, application_id: int) -> list[ApplicationNote]:
        return (
            db.query(ApplicationNote)
            .filter(ApplicationNote.application_id == application_id)
            .order_by(ApplicationNote.created_at.desc(), ApplicationNote.id.desc())
            .all()
        )

    @staticmethod
    def get_application(db: Session, application_id: int) -> Optional[TypeformApplication]:
        return db.query(TypeformApplication).filter(TypeformApplication.id == application_id).first()

    @staticmethod
    def get_application_by_thread(
        db: Session, channel: Optional[str], thread_ts: str
    ) -> Optional[TypeformApplication]:
        query = db.query(TypeformApplication).filter(TypeformApplication.slack_thread_ts == thread_ts)
        if channel:
            query = query.filter(TypeformApplication.slack_channel_id == channel)
        return query.first()

    @staticmethod
    def get_note_by_id(db: Session, note_id: int) -> Optional[ApplicationNote]:
        return db.query(ApplicationNote).filter(ApplicationNote.id == note_id).first()

    @staticmethod
    def get_note_by_slack_ts(db: Session, application_id: int, message_ts: str) -> Optional[ApplicationNote]:
        return (
            db.query(ApplicationNote)
            .filter(
                ApplicationNote.application_id == application_id,
                ApplicationNote.slack_message_ts == message_ts,
            )
            .first()
        )

    @staticmethod
    def create_note(db: Session, **note_data) -> ApplicationNote:
        note = ApplicationNote(**note_data)
        db.add(note)
        db.flush()
        return note

    @staticmethod
    def delete_note(db: Session, note: ApplicationNote) -> None:
        db.delete(note)
        db.commit()
