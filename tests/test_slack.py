"""Slack Events and Interactivity endpoints."""

import json
from urllib.parse import urlencode

from onboarding_crm import models


def thread_reply(ts="111.2", thread_ts="111.1", channel="C-APP", **extra):
    return {
        "type": "event_callback",
        "event": {
            "type": "message",
            "channel": channel,
            "user": "U123",
            "text": "  Spoke to them today ",
            "ts": ts,
            "thread_ts": thread_ts,
            **extra,
        },
    }


class TestEvents:
    def test_url_verification(self, client):
        resp = client.post("/api/slack/events", json={"type": "url_verification", "challenge": "abc"})
        assert resp.json() == {"challenge": "abc"}

    def test_thread_reply_becomes_note_once(self, client, db, make_application):
        application = make_application(slack_channel_id="C-APP", slack_thread_ts="111.1")

        assert client.post("/api/slack/events", json=thread_reply()).json() == {"ok": True}
        client.post("/api/slack/events", json=thread_reply())

        note = db.query(models.ApplicationNote).one()
        assert note.application_id == application.id
        assert note.note_text == "Spoke to them today"
        assert note.created_by == "slack:U123"
        assert note.slack_message_ts == "111.2"
        assert note.slack_synced is True

    def test_bot_and_top_level_messages_ignored(self, client, db, make_application):
        make_application(slack_channel_id="C-APP", slack_thread_ts="111.1")

        client.post("/api/slack/events", json=thread_reply(bot_id="B1"))
        client.post("/api/slack/events", json=thread_reply(ts="111.1"))
        client.post("/api/slack/events", json=thread_reply(subtype="message_changed"))
        client.post("/api/slack/events", json=thread_reply(channel="C-OTHER"))

        assert db.query(models.ApplicationNote).count() == 0


class TestInteractions:
    def test_block_action_acknowledged(self, client):
        payload = {"type": "block_actions", "actions": [{"action_id": "view_application"}]}
        resp = client.post(
            "/api/slack/interactions",
            content=urlencode({"payload": json.dumps(payload)}),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert resp.status_code == 200

    def test_bad_payload(self, client):
        resp = client.post(
            "/api/slack/interactions",
            content=urlencode({"payload": "{nope"}),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert resp.status_code == 400
