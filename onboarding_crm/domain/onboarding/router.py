"""Onboarding router - persistence API behind the onboarding chat wizard"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    SaveProgressRequest,
    SaveProgressResponse,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionWithOwner,
    SubmitRequest,
)
from .service import OnboardingService, submission_with_owner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["Onboarding"])


def get_onboarding_service(db: Session = Depends(get_db)) -> OnboardingService:
    """Dependency injection for OnboardingService"""
    return OnboardingService(db)


@router.post("/save-progress", response_model=SaveProgressResponse)
async def save_progress(
    data: SaveProgressRequest, service: OnboardingService = Depends(get_onboarding_service)
):
    """Save a partial or complete wizard session"""
    try:
        return service.save_progress(data)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Error saving onboarding progress: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to save progress")


@router.post("/submit", status_code=201)
async def submit_onboarding(
    data: SubmitRequest, service: OnboardingService = Depends(get_onboarding_service)
):
    try:
        return service.submit(data)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Error submitting onboarding: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to submit onboarding data")


@router.get("/submissions", response_model=SubmissionListResponse)
async def list_submissions(
    complete: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(50),
    offset: int = Query(0, ge=0),
    service: OnboardingService = Depends(get_onboarding_service),
):
    try:
        return service.list_submissions(complete, search, limit, offset)
    except Exception as e:
        logger.error(f"❌ Error fetching submissions: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch submissions")


@router.get("/submissions/{submission_id}", response_model=SubmissionWithOwner)
async def get_submission(
    submission_id: int, service: OnboardingService = Depends(get_onboarding_service)
):
    return submission_with_owner(service.get_submission(submission_id))


@router.get("/session/{session_id}", response_model=SubmissionResponse)
async def get_session(session_id: str, service: OnboardingService = Depends(get_onboarding_service)):
    """Submission for a session, used to resume the wizard"""
    return service.get_session(session_id)


@router.post("/submissions/{submission_id}/complete")
async def complete_submission(
    submission_id: int, service: OnboardingService = Depends(get_onboarding_service)
):
    try:
        return service.complete_submission(submission_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Error completing submission {submission_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to mark submission as complete")


@router.delete("/submissions/{submission_id}")
async def delete_submission(
    submission_id: int, service: OnboardingService = Depends(get_onboarding_service)
):
    return service.delete_submission(submission_id)


@router.get("/status")
async def onboarding_status(service: OnboardingService = Depends(get_onboarding_service)):
    """Member onboarding status counts and submission completion counts"""
    try:
        return service.status_summary()
    except Exception as e:
        logger.error(f"❌ Error fetching onboarding status: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch onboarding status")
