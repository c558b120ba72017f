"""SamCart orders and subscription events."""

import pytest

from onboarding_crm import models
from onboarding_crm.services.samcart_service import extract_amount, normalize_event_type


def order_event(order_id="1001", email="jane@example.com", **extra):
    return {
        "type": "Order",
        "order_id": order_id,
        "customer": {"email": email, "first_name": "Jane", "last_name": "Doe", "phone": "5551234567"},
        "product": {"id": 7, "name": "Mastermind"},
        "total": "$1,997.00",
        **extra,
    }


class TestEventTypes:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, "order"),
            ("Order", "order"),
            ("SUBSCRIPTION_CHARGE_FAILED", "subscription_charge_failed"),
            ("Subscription Cancelled", "subscription_canceled"),
            ("subscription.recovered", "subscription_recovered"),
            ("Refund", None),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_event_type(raw) == expected

    def test_amount(self):
        assert extract_amount({"total": "$1,997.00"}) == 1997.0
        assert extract_amount({}) is None


class TestOrders:
    def test_new_order_creates_thread_and_marks_purchase(self, client, db, slack, make_application):
        application = make_application()

        body = client.post("/api/webhooks/samcart", json=order_event()).json()
        assert body["created"] is True
        assert body["purchased_marked"] is True
        assert body["slack_thread_created"] is True

        order = db.query(models.SamcartOrder).one()
        assert order.product_name == "Mastermind"
        assert order.product_id == "7"
        assert order.order_total == 1997.0
        assert order.slack_thread_ts is not None

        db.expire_all()
        purchased_at = db.get(models.TypeformApplication, application.id).purchased_at
        assert purchased_at is not None

        again = client.post("/api/webhooks/samcart", json=order_event(status="refunded")).json()
        assert again["created"] is False
        assert again["purchased_marked"] is False
        assert again["slack_thread_created"] is False
        assert slack.await_count == 1

        db.expire_all()
        assert db.query(models.SamcartOrder).one().status == "refunded"
        assert db.get(models.TypeformApplication, application.id).purchased_at == purchased_at

    def test_order_without_id_skipped(self, client, db):
        body = client.post("/api/webhooks/samcart", json={"type": "Order", "email": "x@example.com"}).json()
        assert body["reason"] == "missing_order_id"
        assert db.query(models.SamcartOrder).count() == 0

    def test_unknown_event_ignored(self, client):
        body = client.post("/api/webhooks/samcart", json={"type": "Refund"}).json()
        assert body["ignored"] is True


class TestSubscriptionEvents:
    def test_cancellation_deduplicated_by_event_id(self, client, db, slack, make_order):
        make_order(samcart_order_id="1001", slack_channel_id="C-BUY", slack_thread_ts="222.2")
        event = {
            "type": "Subscription Canceled",
            "event_id": "evt-1",
            "subscription_id": "1001",
            "customer": {"email": "Jane@Example.com", "first_name": "Jane", "last_name": "Doe"},
            "cancellation_reason": "Too busy",
        }

        first = client.post("/api/webhooks/samcart", json=event).json()
        assert first["duplicate"] is False
        assert first["slack_posted"] is True

        second = client.post("/api/webhooks/samcart", json=event).json()
        assert second == {"received": True, "type": "subscription_canceled", "duplicate": True, "cancellation_id": first["cancellation_id"]}
        assert slack.await_count == 1

        db.expire_all()
        cancellation = db.query(models.Cancellation).one()
        assert cancellation.member_name == "Jane Doe"
        assert cancellation.reason == "Too busy"
        assert db.query(models.SamcartOrder).one().status == "canceled"

    def test_charge_failed_posted_to_purchase_thread(self, client, db, slack, make_order):
        make_order(samcart_order_id="1001", slack_channel_id="C-BUY", slack_thread_ts="222.2")
        body = client.post(
            "/api/webhooks/samcart",
            json={"type": "Subscription Charge Failed", "email": "jane@example.com", "amount": 99},
        ).json()
        assert body["slack_posted"] is True
        assert "$99.00 USD" in str(slack.await_args.args[2])
        assert db.query(models.ActivityLog).filter_by(action="subscription_charge_failed").count() == 1

    def test_recovered_without_thread(self, client, slack):
        body = client.post(
            "/api/webhooks/samcart", json={"type": "Subscription Recovered", "email": "nobody@example.com"}
        ).json()
        assert body["slack_posted"] is False
        assert slack.await_count == 0
