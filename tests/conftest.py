"""Shared fixtures: in-memory SQLite, TestClient and a stubbed Slack API."""

import os
from unittest.mock import AsyncMock, patch

import pytest

# Must be set before the application modules are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("REDIS_URL", None)
for _name in (
    "SLACK_BOT_TOKEN",
    "SLACK_SIGNING_SECRET",
    "APPLICATION_SLACK_CHANNEL_ID",
    "PURCHASE_SLACK_CHANNEL_ID",
    "STAFF_SLACK_MEMBER_ID",
    "TYPEFORM_WEBHOOK_SECRET",
    "TYPEFORM_TOKEN",
    "TYPEFORM_FORM_ID",
    "CALENDLY_WEBHOOK_SIGNING_KEY",
    "WASENDER_WEBHOOK_SECRET",
    "WASENDER_ALLOWED_GROUP_JIDS",
    "SAMCART_WEBHOOK_SECRET",
    "CRON_SECRET",
):
    os.environ[_name] = ""

from fastapi.testclient import TestClient  # noqa: E402

from onboarding_crm import models  # noqa: E402
from onboarding_crm.database import Base, SessionLocal, engine  # noqa: E402
from onboarding_crm.main import app  # noqa: E402

SLACK_TS = "1700000000.000100"


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def slack():
    """Stubbed chat.postMessage; every call succeeds with the same ts"""

    async def _post(channel, text, blocks=None, thread_ts=None):
        return {"ok": True, "ts": SLACK_TS, "channel": channel or "C-DEFAULT"}

    mock = AsyncMock(side_effect=_post)
    with patch("onboarding_crm.services.slack_service.post_message", mock):
        yield mock


@pytest.fixture
def make_application(db):
    def _make(**fields):
        fields.setdefault("first_name", "Jane")
        fields.setdefault("last_name", "Doe")
        fields.setdefault("email", "jane@example.com")
        fields.setdefault("status", "new")
        application = models.TypeformApplication(**fields)
        db.add(application)
        db.commit()
        db.refresh(application)
        return application

    return _make


@pytest.fixture
def make_member(db):
    def _make(**fields):
        fields.setdefault("first_name", "Jane")
        fields.setdefault("last_name", "Doe")
        fields.setdefault("email", "jane@example.com")
        member = models.BusinessOwner(**fields)
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    return _make


@pytest.fixture
def make_order(db):
    def _make(**fields):
        fields.setdefault("email", "jane@example.com")
        order = models.SamcartOrder(**fields)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make
