"""Signature checks for inbound webhooks and the cron secret."""

import json
import time

from onboarding_crm import config
from onboarding_crm.webhook_security import (
    compute_hmac_sha256,
    compute_hmac_sha256_base64,
    parse_signature_header,
    verify_calendly_signature,
    verify_slack_signature,
    verify_typeform_signature,
)

BODY = b'{"event_type": "ping"}'


def calendly_header(key: str, body: bytes, timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    digest = compute_hmac_sha256(key, f"{timestamp}.".encode() + body)
    return f"t={timestamp},v1={digest}"


def slack_headers(secret: str, body: bytes, timestamp: int = None) -> dict:
    timestamp = str(timestamp or int(time.time()))
    digest = compute_hmac_sha256(secret, f"v0:{timestamp}:".encode() + body)
    return {"X-Slack-Request-Timestamp": timestamp, "X-Slack-Signature": f"v0={digest}"}


class TestSignatureHelpers:
    def test_typeform(self):
        signature = f"sha256={compute_hmac_sha256_base64('secret', BODY)}"
        assert verify_typeform_signature(BODY, signature, "secret")
        assert not verify_typeform_signature(BODY + b" ", signature, "secret")
        assert not verify_typeform_signature(BODY, None, "secret")

    def test_parse_signature_header(self):
        assert parse_signature_header("t=1, v1=abc,junk") == {"t": "1", "v1": "abc"}

    def test_calendly(self):
        assert verify_calendly_signature(BODY, calendly_header("key", BODY), "key")
        assert not verify_calendly_signature(BODY, calendly_header("other", BODY), "key")
        assert not verify_calendly_signature(BODY, "v1=abc", "key")

    def test_calendly_stale_timestamp(self):
        stale = calendly_header("key", BODY, int(time.time()) - 3600)
        assert not verify_calendly_signature(BODY, stale, "key")

    def test_slack(self):
        headers = slack_headers("secret", BODY)
        timestamp, signature = headers["X-Slack-Request-Timestamp"], headers["X-Slack-Signature"]
        assert verify_slack_signature(BODY, timestamp, signature, "secret")
        assert not verify_slack_signature(BODY, timestamp, signature, "wrong")
        assert not verify_slack_signature(BODY, None, signature, "secret")


class TestTypeformEndpointSecurity:
    def test_missing_signature_rejected_when_secret_set(self, client, monkeypatch):
        monkeypatch.setattr(config, "TYPEFORM_WEBHOOK_SECRET", "secret")
        resp = client.post("/api/webhooks/typeform", content=BODY)
        assert resp.status_code == 401

    def test_valid_signature_accepted(self, client, monkeypatch):
        monkeypatch.setattr(config, "TYPEFORM_WEBHOOK_SECRET", "secret")
        signature = f"sha256={compute_hmac_sha256_base64('secret', BODY)}"
        resp = client.post("/api/webhooks/typeform", content=BODY, headers={"Typeform-Signature": signature})
        assert resp.status_code == 200
        assert resp.json() == {"message": "Event type ignored"}


class TestCalendlyEndpointSecurity:
    def test_bad_signature_rejected(self, client, monkeypatch):
        monkeypatch.setattr(config, "CALENDLY_WEBHOOK_SIGNING_KEY", "key")
        resp = client.post(
            "/api/webhooks/calendly",
            content=BODY,
            headers={"Calendly-Webhook-Signature": calendly_header("other", BODY)},
        )
        assert resp.status_code == 401

    def test_missing_header_is_let_through(self, client, monkeypatch):
        monkeypatch.setattr(config, "CALENDLY_WEBHOOK_SIGNING_KEY", "key")
        body = json.dumps({"event": "invitee.canceled"}).encode()
        resp = client.post("/api/webhooks/calendly", content=body)
        assert resp.json() == {"received": True, "event": "invitee.canceled"}


class TestSharedSecrets:
    def test_wasender_header_and_query(self, client, monkeypatch):
        monkeypatch.setattr(config, "WASENDER_WEBHOOK_SECRET", "ws")
        assert client.post("/api/webhooks/wasender", json={}).status_code == 401
        assert (
            client.post("/api/webhooks/wasender", json={}, headers={"X-Wasender-Secret": "ws"}).status_code
            == 200
        )
        assert client.post("/api/webhooks/wasender?secret=ws", json={}).status_code == 200

    def test_samcart(self, client, monkeypatch):
        monkeypatch.setattr(config, "SAMCART_WEBHOOK_SECRET", "sc")
        resp = client.post("/api/webhooks/samcart", json={"type": "ping"}, headers={"X-Samcart-Secret": "nope"})
        assert resp.status_code == 401


class TestSlackEndpointSecurity:
    def test_bad_signature_rejected(self, client, monkeypatch):
        monkeypatch.setattr(config, "SLACK_SIGNING_SECRET", "secret")
        body = json.dumps({"type": "url_verification", "challenge": "c"}).encode()
        resp = client.post("/api/slack/events", content=body, headers=slack_headers("wrong", body))
        assert resp.status_code == 401

    def test_signed_challenge(self, client, monkeypatch):
        monkeypatch.setattr(config, "SLACK_SIGNING_SECRET", "secret")
        body = json.dumps({"type": "url_verification", "challenge": "c"}).encode()
        resp = client.post("/api/slack/events", content=body, headers=slack_headers("secret", body))
        assert resp.json() == {"challenge": "c"}


class TestCronSecret:
    def test_unconfigured(self, client):
        assert client.post("/api/jobs/sync-typeform").status_code == 500

    def test_wrong_secret(self, client, monkeypatch):
        monkeypatch.setattr(config, "CRON_SECRET", "cron")
        resp = client.post("/api/jobs/sync-typeform", headers={"X-Cron-Secret": "nope"})
        assert resp.status_code == 401

    def test_sync_skipped_without_typeform_credentials(self, client, monkeypatch):
        monkeypatch.setattr(config, "CRON_SECRET", "cron")
        resp = client.post("/api/jobs/sync-typeform", headers={"X-Cron-Secret": "cron"})
        assert resp.json() == {"success": True, "synced": 0, "skipped": 0, "errors": []}
