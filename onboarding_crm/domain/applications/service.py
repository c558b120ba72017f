"""Application service - Business logic for reviewing and converting applications"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import TypeformApplication
from ...services.activity_log import log_activity
from ...services.identity import find_latest_order_by_email
from ...services.samcart_service import process_samcart_event
from ...shared.pagination import clamp_limit
from ...shared.validators import format_full_name
from .repository import ApplicationRepository
from .schemas import (
    APPLICATION_STATUSES,
    ApplicationDetail,
    ApplicationListItem,
    ApplicationListResponse,
    LinkedCancellation,
    LinkedMember,
    LinkedSubmission,
)

logger = logging.getLogger(__name__)

# Furthest lifecycle step first
DISPLAY_STATUS_ORDER = (
    ("whatsapp_joined_at", "joined"),
    ("onboarding_completed_at", "onboarding_complete"),
    ("onboarding_started_at", "onboarding_started"),
    ("purchased_at", "purchased"),
    ("call_booked_at", "call_booked"),
    ("replied_at", "replied"),
    ("emailed_at", "emailed"),
)

DEFAULT_TEST_AMOUNT = 5000


def display_status(application: TypeformApplication) -> tuple[str, Optional[datetime]]:
    """Furthest lifecycle step reached and the timestamp that decided it"""
    for column, label in DISPLAY_STATUS_ORDER:
        timestamp = getattr(application, column)
        if timestamp is not None:
            return label, timestamp
    return "new", None


class ApplicationService:
    """Service layer for application business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ApplicationRepository()

    def _list_item(self, application, has_onboarding: bool, note_count: int, model=ApplicationListItem):
        status, timestamp = display_status(application)
        return model.model_validate(application).model_copy(
            update={
                "display_status": status,
                "status_timestamp": timestamp,
                "has_onboarding": has_onboarding,
                "note_count": note_count,
            }
        )

    def list_applications(
        self, status: Optional[str], search: Optional[str], limit: Optional[int], offset: int
    ) -> ApplicationListResponse:
        limit = clamp_limit(limit)
        rows, total = self.repo.list_applications(self.db, status, search, limit, offset)
        return ApplicationListResponse(
            applications=[self._list_item(app, has_onb, notes) for app, has_onb, notes in rows],
            total=total,
            status_counts=self.repo.status_counts(self.db),
            truly_new_count=self.repo.truly_new_count(self.db),
            limit=limit,
            offset=offset,
        )

    def get_application(self, application_id: int) -> TypeformApplication:
        application = self.repo.get_application_by_id(self.db, application_id)
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")
        return application

    def get_application_detail(self, application_id: int) -> ApplicationDetail:
        """Application with its member, that member's latest onboarding and latest cancellation"""
        application = self.get_application(application_id)

        member = self.repo.latest_member_by_email(self.db, application.email)
        submission = self.repo.latest_submission_for_member(self.db, member.id) if member else None
        cancellation = self.repo.latest_cancellation_by_email(self.db, application.email)

        detail = self._list_item(
            application,
            self.repo.has_onboarding(self.db, application.email),
            self.repo.note_count(self.db, application.id),
            model=ApplicationDetail,
        )
        return detail.model_copy(
            update={
                "raw_data": application.raw_data,
                "business_owner": LinkedMember.model_validate(member) if member else None,
                "onboarding_submission": (
                    LinkedSubmission.model_validate(submission) if submission else None
                ),
                "cancellation": (
                    LinkedCancellation.model_validate(cancellation) if cancellation else None
                ),
            }
        )

    def update_status(self, application_id: int, status: Optional[str]) -> TypeformApplication:
        if status not in APPLICATION_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status")

        application = self.get_application(application_id)
        application.status = status
        log_activity(
            self.db,
            "application_status_changed",
            "typeform_application",
            application.id,
            {
                "status": status,
                "name": format_full_name(application.first_name, application.last_name),
            },
        )
        self.db.commit()
        self.db.refresh(application)
        logger.info(f"✅ Application {application_id} status changed to {status}")
        return application

    def convert_application(self, application_id: int):
        """Create a pending member from the application and approve it"""
        application = self.get_application(application_id)

        if application.email and self.repo.latest_member_by_email(self.db, application.email):
            raise HTTPException(status_code=400, detail="A member with this email already exists")

        member = self.repo.create_member(
            self.db,
            first_name=application.first_name,
            last_name=application.last_name,
            email=application.email,
            phone=application.phone,
            business_overview=application.business_description,
            annual_revenue=application.annual_revenue,
            source="typeform",
            onboarding_status="pending",
        )
        application.status = "approved"
        log_activity(
            self.db,
            "application_converted",
            "business_owner",
            member.id,
            {"from_application": application.id},
        )
        self.db.commit()
        self.db.refresh(member)
        logger.info(f"✅ Application {application_id} converted to member {member.id}")
        return member

    def delete_application(self, application_id: int) -> dict:
        application = self.get_application(application_id)
        self.repo.delete_application(self.db, application)
        logger.info(f"🗑️ Application {application_id} deleted")
        return {"message": "Application deleted"}

    # ------------------------------------------------------------------
    # Staff test helpers: synthesise SamCart subscription events
    # ------------------------------------------------------------------

    def _subscription_payload(self, application: TypeformApplication, event_type: str, status: str) -> dict:
        order = find_latest_order_by_email(self.db, application.email)
        order_id = order.samcart_order_id if order and order.samcart_order_id else None
        return {
            "type": event_type,
            "event_id": f"test-{uuid.uuid4()}",
            "event_timestamp": datetime.utcnow().isoformat(),
            "customer": {
                "email": application.email,
                "first_name": application.first_name,
                "last_name": application.last_name,
                "phone": application.phone,
            },
            "subscription_id": order_id or f"test-subscription-{application.id}",
            "order_id": order_id or f"test-order-{application.id}",
            "amount": (order.order_total if order and order.order_total else DEFAULT_TEST_AMOUNT),
            "currency": (order.currency if order and order.currency else "USD"),
            "status": status,
        }

    def _application_with_email(self, application_id: int) -> TypeformApplication:
        application = self.get_application(application_id)
        if not application.email:
            raise HTTPException(status_code=400, detail="Application missing email")
        return application

    async def simulate_charge_failures(self, application_id: int, count: int) -> dict:
        application = self._application_with_email(application_id)
        results = []
        for _ in range(count):
            payload = self._subscription_payload(application, "Subscription Charge Failed", "failed")
            results.append(await process_samcart_event(self.db, payload))
        return {"success": True, "requested": count, "results": results}

    async def simulate_cancel(self, application_id: int) -> dict:
        application = self._application_with_email(application_id)
        payload = self._subscription_payload(application, "Subscription Canceled", "canceled")
        return {"success": True, "result": await process_samcart_event(self.db, payload)}

    async def simulate_recovered(self, application_id: int) -> dict:
        application = self._application_with_email(application_id)
        payload = self._subscription_payload(application, "Subscription Recovered", "recovered")
        return {"success": True, "result": await process_samcart_event(self.db, payload)}
