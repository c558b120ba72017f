"""
Identity reconciliation

Webhook payloads from Calendly, Wasender and SamCart only carry whatever the
provider knows about a person. These helpers match them back to stored rows
through ordered fallback chains (email, then phone, then name). The first hit
wins and the newest record is preferred.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..models import BusinessOwner, SamcartOrder, TypeformApplication
from ..shared.validators import digits_only, last_10_digits, normalize_email, split_full_name

logger = logging.getLogger(__name__)

PHONE_FORMATTING_CHARS = ("-", " ", "+", "(", ")", ".")
RECENT_APPLICATION_DAYS = 30


def stripped_phone(column):
    """SQL expression for a phone column with formatting characters removed"""
    expr = func.coalesce(column, "")
    for char in PHONE_FORMATTING_CHARS:
        expr = func.replace(expr, char, "")
    return expr


def phone_matches(column, phone_last10: str):
    """Suffix match of the stripped stored phone against the last 10 digits"""
    return stripped_phone(column).like(f"%{phone_last10}")


def email_matches(column, email: str):
    return func.lower(column) == normalize_email(email)


def _newest(query, model):
    return query.order_by(model.created_at.desc(), model.id.desc()).first()


def find_application_by_email(db: Session, email: Optional[str]) -> Optional[TypeformApplication]:
    email = normalize_email(email)
    if not email:
        return None
    query = db.query(TypeformApplication).filter(email_matches(TypeformApplication.email, email))
    return _newest(query, TypeformApplication)


def find_application_by_phone(db: Session, phone) -> Optional[TypeformApplication]:
    last10 = last_10_digits(phone)
    if not last10:
        return None
    query = db.query(TypeformApplication).filter(phone_matches(TypeformApplication.phone, last10))
    return _newest(query, TypeformApplication)


def find_application_by_name(
    db: Session,
    first_name: Optional[str],
    last_name: Optional[str],
    within_days: Optional[int] = RECENT_APPLICATION_DAYS,
) -> Optional[TypeformApplication]:
    """Exact (case-insensitive) first+last name match; both halves are required"""
    first_name = (first_name or "").strip().lower()
    last_name = (last_name or "").strip().lower()
    if not first_name or not last_name:
        return None

    query = db.query(TypeformApplication).filter(
        func.lower(TypeformApplication.first_name) == first_name,
        func.lower(TypeformApplication.last_name) == last_name,
    )
    if within_days is not None:
        cutoff = datetime.utcnow() - timedelta(days=within_days)
        query = query.filter(TypeformApplication.created_at >= cutoff)
    return _newest(query, TypeformApplication)


def find_application_for_invitee(
    db: Session, email: Optional[str], full_name: Optional[str]
) -> Optional[TypeformApplication]:
    """Calendly chain: invitee email, then first+last name among recent applications"""
    application = find_application_by_email(db, email)
    if application:
        return application

    first_name, last_name = split_full_name(full_name)
    application = find_application_by_name(db, first_name, last_name)
    if application:
        logger.info(f"🔗 Matched invitee '{full_name}' to application {application.id} by name")
    return application


def find_email_for_phone(db: Session, phone) -> Optional[str]:
    """
    Recover an email for a bare phone number: business owners (WhatsApp number
    or phone, most recently updated first), then SamCart orders.
    """
    last10 = last_10_digits(phone)
    if not last10:
        return None

    owner = (
        db.query(BusinessOwner)
        .filter(
            BusinessOwner.email.isnot(None),
            or_(
                phone_matches(BusinessOwner.whatsapp_number, last10),
                phone_matches(BusinessOwner.phone, last10),
            ),
        )
        .order_by(BusinessOwner.updated_at.desc(), BusinessOwner.id.desc())
        .first()
    )
    if owner:
        return owner.email

    order = _newest(
        db.query(SamcartOrder).filter(
            SamcartOrder.email.isnot(None), phone_matches(SamcartOrder.phone, last10)
        ),
        SamcartOrder,
    )
    return order.email if order else None


def find_application_for_phone(db: Session, phone) -> Optional[TypeformApplication]:
    """Wasender chain: application phone, then email recovered from members / orders"""
    application = find_application_by_phone(db, phone)
    if application:
        return application

    email = find_email_for_phone(db, phone)
    if email:
        application = find_application_by_email(db, email)
        if application:
            logger.info(f"🔗 Matched phone …{last_10_digits(phone)[-4:]} to application {application.id} via {email}")
    return application


def find_latest_order_by_email(db: Session, email: Optional[str]) -> Optional[SamcartOrder]:
    email = normalize_email(email)
    if not email:
        return None
    return _newest(db.query(SamcartOrder).filter(email_matches(SamcartOrder.email, email)), SamcartOrder)


def find_latest_thread_order(db: Session, email: Optional[str]) -> Optional[SamcartOrder]:
    """Newest order for the email that has a purchase thread in Slack"""
    email = normalize_email(email)
    if not email:
        return None
    query = db.query(SamcartOrder).filter(
        email_matches(SamcartOrder.email, email), SamcartOrder.slack_thread_ts.isnot(None)
    )
    return _newest(query, SamcartOrder)


def has_samcart_order(db: Session, email: Optional[str]) -> bool:
    return find_latest_order_by_email(db, email) is not None


def find_member_by_email(db: Session, email: Optional[str]) -> Optional[BusinessOwner]:
    email = normalize_email(email)
    if not email:
        return None
    return _newest(db.query(BusinessOwner).filter(email_matches(BusinessOwner.email, email)), BusinessOwner)


def _identity_filters(model, email, phone, first_name, last_name) -> list:
    filters = []
    email = normalize_email(email)
    if email:
        filters.append(email_matches(model.email, email))
    # Short fragments would suffix-match unrelated numbers
    if len(digits_only(phone)) >= 10:
        filters.append(phone_matches(model.phone, last_10_digits(phone)))
    if first_name and last_name:
        filters.append(
            (func.lower(model.first_name) == first_name.strip().lower())
            & (func.lower(model.last_name) == last_name.strip().lower())
        )
    return filters


def find_linked_records(db: Session, member: BusinessOwner) -> dict:
    """
    Application and SamCart order belonging to a member: email (case-insensitive)
    OR last-10 phone digits OR exact first+last name, newest first.
    """
    linked = {"typeform_application": None, "samcart_order": None}
    phone = member.phone or member.whatsapp_number

    for key, model in (("typeform_application", TypeformApplication), ("samcart_order", SamcartOrder)):
        filters = _identity_filters(model, member.email, phone, member.first_name, member.last_name)
        if filters:
            linked[key] = _newest(db.query(model).filter(or_(*filters)), model)

    return linked
