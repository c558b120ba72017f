"""Import router - CSV uploads and their history"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import ImportHistoryList, ImportResult
from .service import ImportService, validate_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import", tags=["Import"])


def get_import_service(db: Session = Depends(get_db)) -> ImportService:
    """Dependency injection for ImportService"""
    return ImportService(db)


async def _read_upload(file: Optional[UploadFile]) -> bytes:
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    contents = await file.read()
    validate_upload(file.filename, file.content_type, contents)
    return contents


@router.post("/business-owners", response_model=ImportResult)
async def import_business_owners(
    file: Optional[UploadFile] = File(None),
    service: ImportService = Depends(get_import_service),
):
    contents = await _read_upload(file)
    logger.info(f"📤 Business owner CSV upload: {file.filename}")
    try:
        return service.import_business_owners(file.filename, contents)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Business owner import failed: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to import business owners")


@router.post("/team-members", response_model=ImportResult)
async def import_team_members(
    file: Optional[UploadFile] = File(None),
    service: ImportService = Depends(get_import_service),
):
    contents = await _read_upload(file)
    logger.info(f"📤 Team member CSV upload: {file.filename}")
    try:
        return service.import_team_members(file.filename, contents)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Team member import failed: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to import team members")


@router.get("/history", response_model=ImportHistoryList)
async def import_history(
    limit: int = Query(20),
    offset: int = Query(0, ge=0),
    service: ImportService = Depends(get_import_service),
):
    try:
        return service.list_history(limit, offset)
    except Exception as e:
        logger.error(f"❌ Error fetching import history: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch import history")
