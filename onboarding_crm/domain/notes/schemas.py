"""Note domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class NoteCreate(BaseModel):
    note_text: Optional[str] = None
    created_by: Optional[str] = None


class NoteResponse(BaseModel):
    id: int
    application_id: int
    note_text: str
    created_by: str
    slack_synced: bool = False
    slack_message_ts: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NoteCreatedResponse(NoteResponse):
    slack_application_synced: bool = False
    slack_application_message_ts: Optional[str] = None
    slack_purchase_synced: bool = False
    slack_purchase_message_ts: Optional[str] = None
