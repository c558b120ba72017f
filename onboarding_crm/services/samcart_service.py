"""
SamCart event processing

Shared by the SamCart webhook receiver and the staff test helpers on the
applications API, so a simulated event walks exactly the same path as a real
delivery.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import config
from ..models import Cancellation, SamcartOrder, TypeformApplication
from ..shared.validators import format_full_name, normalize_email, parse_money
from . import slack_blocks, slack_service
from .activity_log import log_activity
from .identity import find_application_by_email, find_latest_thread_order

logger = logging.getLogger(__name__)

ORDER_EVENT = "order"
CHARGE_FAILED_EVENT = "subscription_charge_failed"
CANCELED_EVENT = "subscription_canceled"
RECOVERED_EVENT = "subscription_recovered"

EVENT_TYPES = {
    "order": ORDER_EVENT,
    "order created": ORDER_EVENT,
    "new order": ORDER_EVENT,
    "subscription charge failed": CHARGE_FAILED_EVENT,
    "subscription canceled": CANCELED_EVENT,
    "subscription cancelled": CANCELED_EVENT,
    "subscription recovered": RECOVERED_EVENT,
}


def normalize_event_type(raw_type: Optional[str]) -> Optional[str]:
    """Map SamCart's human readable event names; a missing type is an order"""
    if not raw_type:
        return ORDER_EVENT
    key = str(raw_type).strip().lower().replace("_", " ").replace(".", " ")
    return EVENT_TYPES.get(key)


def extract_customer(payload: dict) -> dict:
    customer = payload.get("customer") or {}
    return {
        "email": normalize_email(customer.get("email") or payload.get("email")),
        "first_name": customer.get("first_name") or payload.get("first_name"),
        "last_name": customer.get("last_name") or payload.get("last_name"),
        "phone": customer.get("phone") or payload.get("phone"),
    }


def extract_product(payload: dict) -> dict:
    product = payload.get("product")
    if not isinstance(product, dict):
        products = payload.get("products")
        product = products[0] if isinstance(products, list) and products else {}
    product_id = product.get("id") or payload.get("product_id")
    return {
        "product_name": product.get("name") or payload.get("product_name"),
        "product_id": str(product_id) if product_id is not None else None,
    }


def extract_order_id(payload: dict) -> Optional[str]:
    order = payload.get("order") if isinstance(payload.get("order"), dict) else {}
    order_id = payload.get("order_id") or order.get("id")
    return str(order_id) if order_id is not None else None


def extract_amount(payload: dict) -> Optional[float]:
    for key in ("amount", "total", "order_total"):
        if payload.get(key) is not None:
            return parse_money(payload.get(key))
    return None


class SamcartEventProcessor:
    """Applies one SamCart event to the database and Slack"""

    def __init__(self, db: Session):
        self.db = db

    async def process(self, payload: dict) -> dict:
        raw_type = payload.get("type") or payload.get("event")
        event_type = normalize_event_type(raw_type)
        if event_type is None:
            logger.info(f"ℹ️ Ignoring SamCart event type: {raw_type}")
            return {"received": True, "ignored": True, "type": raw_type}

        logger.info(f"📥 Processing SamCart event: {event_type}")
        handlers = {
            ORDER_EVENT: self.handle_order,
            CHARGE_FAILED_EVENT: self.handle_charge_failed,
            CANCELED_EVENT: self.handle_canceled,
            RECOVERED_EVENT: self.handle_recovered,
        }
        result = await handlers[event_type](payload)
        return {"received": True, "type": event_type, **result}

    async def handle_order(self, payload: dict) -> dict:
        order_id = extract_order_id(payload)
        if not order_id:
            logger.warning("⚠️ SamCart order event without order id")
            return {"skipped": True, "reason": "missing_order_id"}

        customer = extract_customer(payload)
        fields = {
            **customer,
            **extract_product(payload),
            "order_total": extract_amount(payload),
            "currency": payload.get("currency") or "USD",
            "status": payload.get("status") or "completed",
            "raw_data": payload,
        }

        order = self.db.query(SamcartOrder).filter(SamcartOrder.samcart_order_id == order_id).first()
        is_new = order is None
        if is_new:
            order = SamcartOrder(samcart_order_id=order_id, event_type=ORDER_EVENT, **fields)
            self.db.add(order)
        else:
            for key, value in fields.items():
                if value is not None:
                    setattr(order, key, value)

        try:
            self.db.flush()
        except IntegrityError:
            # Concurrent delivery inserted the same order first
            self.db.rollback()
            logger.info(f"ℹ️ SamCart order {order_id} already stored by a concurrent delivery")
            return {"order_id": order_id, "duplicate": True}

        purchased_marked = self._mark_purchased(customer["email"])
        log_activity(
            self.db,
            "samcart_order",
            "samcart_order",
            order.id,
            {"order_id": order_id, "email": customer["email"], "new": is_new},
        )
        self.db.commit()
        self.db.refresh(order)

        thread_created = False
        if is_new and not order.slack_thread_ts:
            thread_created = await self._create_purchase_thread(order)

        return {
            "order_id": order_id,
            "created": is_new,
            "purchased_marked": purchased_marked,
            "slack_thread_created": thread_created,
        }

    def _mark_purchased(self, email: Optional[str]) -> bool:
        application = find_application_by_email(self.db, email)
        if not application:
            return False
        updated = (
            self.db.query(TypeformApplication)
            .filter(
                TypeformApplication.id == application.id,
                TypeformApplication.purchased_at.is_(None),
            )
            .update({TypeformApplication.purchased_at: datetime.utcnow()}, synchronize_session=False)
        )
        return updated > 0

    async def _create_purchase_thread(self, order: SamcartOrder) -> bool:
        response = await slack_service.post_message(
            config.PURCHASE_SLACK_CHANNEL_ID, **slack_blocks.purchase_block(order)
        )
        if not response:
            return False

        order.slack_channel_id = response.get("channel") or config.PURCHASE_SLACK_CHANNEL_ID
        order.slack_thread_ts = response.get("ts")
        self.db.commit()
        return True

    async def handle_charge_failed(self, payload: dict) -> dict:
        customer = extract_customer(payload)
        amount = extract_amount(payload)
        log_activity(
            self.db,
            "subscription_charge_failed",
            "samcart_order",
            None,
            {
                "email": customer["email"],
                "event_id": payload.get("event_id"),
                "subscription_id": payload.get("subscription_id"),
                "amount": amount,
            },
            commit=True,
        )
        detail = self._display_name(customer)
        if amount is not None:
            detail += f" · ${amount:,.2f} {payload.get('currency') or 'USD'}"
        posted = await self._post_to_purchase_thread(
            customer["email"], slack_blocks.subscription_event_block("Subscription Charge Failed", "⚠️", detail)
        )
        return {"email": customer["email"], "slack_posted": posted}

    async def handle_recovered(self, payload: dict) -> dict:
        customer = extract_customer(payload)
        log_activity(
            self.db,
            "subscription_recovered",
            "samcart_order",
            None,
            {"email": customer["email"], "event_id": payload.get("event_id")},
            commit=True,
        )
        posted = await self._post_to_purchase_thread(
            customer["email"],
            slack_blocks.subscription_event_block(
                "Subscription Recovered", "✅", self._display_name(customer)
            ),
        )
        return {"email": customer["email"], "slack_posted": posted}

    async def handle_canceled(self, payload: dict) -> dict:
        customer = extract_customer(payload)
        event_id = payload.get("event_id")
        event_id = str(event_id) if event_id else None

        if event_id:
            existing = (
                self.db.query(Cancellation).filter(Cancellation.external_event_id == event_id).first()
            )
            if existing:
                logger.info(f"ℹ️ Cancellation for event {event_id} already recorded")
                return {"duplicate": True, "cancellation_id": existing.id}

        cancellation = Cancellation(
            member_email=customer["email"],
            member_name=self._display_name(customer),
            reason=payload.get("cancellation_reason") or payload.get("reason"),
            source="samcart",
            created_by="samcart_webhook",
            external_event_id=event_id,
        )
        self.db.add(cancellation)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"ℹ️ Cancellation for event {event_id} recorded by a concurrent delivery")
            return {"duplicate": True}

        order_ids = {str(v) for v in (payload.get("subscription_id"), extract_order_id(payload)) if v}
        if order_ids:
            (
                self.db.query(SamcartOrder)
                .filter(SamcartOrder.samcart_order_id.in_(order_ids))
                .update({SamcartOrder.status: "canceled"}, synchronize_session=False)
            )

        log_activity(
            self.db,
            "subscription_canceled",
            "cancellation",
            cancellation.id,
            {"email": customer["email"], "event_id": event_id},
        )
        self.db.commit()
        self.db.refresh(cancellation)

        posted = await self._post_to_purchase_thread(
            customer["email"],
            slack_blocks.subscription_event_block(
                "Subscription Canceled", "🛑", self._display_name(customer)
            ),
        )
        return {"duplicate": False, "cancellation_id": cancellation.id, "slack_posted": posted}

    async def _post_to_purchase_thread(self, email: Optional[str], message: dict) -> bool:
        order = find_latest_thread_order(self.db, email)
        if not order:
            logger.debug(f"⚠️ No purchase thread for {email}, skipping Slack post")
            return False
        response = await slack_service.post_to_thread(order.slack_channel_id, order.slack_thread_ts, message)
        return response is not None

    @staticmethod
    def _display_name(customer: dict) -> str:
        return format_full_name(customer["first_name"], customer["last_name"]) or customer["email"] or "Unknown"


async def process_samcart_event(db: Session, payload: dict) -> dict:
    return await SamcartEventProcessor(db).process(payload)
