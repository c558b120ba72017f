"""Application router - FastAPI endpoints for reviewing Typeform applications"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ..members.schemas import MemberResponse
from .schemas import (
    ApplicationDetail,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationStatusUpdate,
    SubscriptionFailureRequest,
)
from .service import ApplicationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["Applications"])


def get_application_service(db: Session = Depends(get_db)) -> ApplicationService:
    """Dependency injection for ApplicationService"""
    return ApplicationService(db)


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(50),
    offset: int = Query(0, ge=0),
    service: ApplicationService = Depends(get_application_service),
):
    """Applications with display status, onboarding flag, note counts and status totals"""
    try:
        return service.list_applications(status, search, limit, offset)
    except Exception as e:
        logger.error(f"❌ Error fetching applications: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch applications")


@router.get("/{application_id}", response_model=ApplicationDetail)
async def get_application(
    application_id: int, service: ApplicationService = Depends(get_application_service)
):
    try:
        return service.get_application_detail(application_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Error fetching application {application_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch application")


@router.put("/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: int,
    data: ApplicationStatusUpdate,
    service: ApplicationService = Depends(get_application_service),
):
    try:
        return service.update_status(application_id, data.status)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error updating application status: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update application status")


@router.post("/{application_id}/convert", status_code=201)
async def convert_application(
    application_id: int, service: ApplicationService = Depends(get_application_service)
):
    """Convert an application into a pending member"""
    try:
        member = service.convert_application(application_id)
        return {
            "message": "Application converted to member successfully",
            "member": MemberResponse.model_validate(member),
        }
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error converting application {application_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to convert application")


@router.delete("/{application_id}")
async def delete_application(
    application_id: int, service: ApplicationService = Depends(get_application_service)
):
    try:
        return service.delete_application(application_id)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error deleting application {application_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete application")


# ============================================================================
# SAMCART SUBSCRIPTION TEST HELPERS
# ============================================================================


@router.post("/{application_id}/test-subscription-failure")
async def simulate_subscription_failure(
    application_id: int,
    data: Optional[SubscriptionFailureRequest] = Body(None),
    service: ApplicationService = Depends(get_application_service),
):
    """Run 1-4 synthetic "Subscription Charge Failed" events for the applicant"""
    count = data.count if data else 1
    try:
        return await service.simulate_charge_failures(application_id, count)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error simulating subscription failure: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to simulate subscription failure")


@router.post("/{application_id}/test-subscription-cancel")
async def simulate_subscription_cancel(
    application_id: int, service: ApplicationService = Depends(get_application_service)
):
    try:
        return await service.simulate_cancel(application_id)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error simulating subscription cancel: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to simulate subscription cancel")


@router.post("/{application_id}/test-subscription-recovered")
async def simulate_subscription_recovered(
    application_id: int, service: ApplicationService = Depends(get_application_service)
):
    try:
        return await service.simulate_recovered(application_id)
    except HTTPException:
        raise
    except Exception as e:
        service.db.rollback()
        logger.error(f"❌ Error simulating subscription recovered: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to simulate subscription recovered")
