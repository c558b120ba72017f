"""Note router - notes on Typeform applications"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import NoteCreate, NoteCreatedResponse, NoteResponse
from .service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notes", tags=["Notes"])


def get_note_service(db: Session = Depends(get_db)) -> NoteService:
    return NoteService(db)


@router.get("/{application_id}", response_model=list[NoteResponse])
async def get_notes(application_id: int, service: NoteService = Depends(get_note_service)):
    """Notes for an application, newest first"""
    try:
        return service.get_notes(application_id)
    except Exception as e:
        logger.error(f"❌ Error fetching notes: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch notes")


@router.post("/{application_id}", response_model=NoteCreatedResponse, status_code=201)
async def add_note(
    application_id: int, data: NoteCreate, service: NoteService = Depends(get_note_service)
):
    try:
        return await service.add_note(application_id, data.note_text, data.created_by)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error adding note: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to add note")


@router.delete("/{note_id}")
async def delete_note(note_id: int, service: NoteService = Depends(get_note_service)):
    try:
        return service.delete_note(note_id)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error deleting note: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete note")
