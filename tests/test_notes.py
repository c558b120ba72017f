"""Notes API and Slack thread mirroring."""

from onboarding_crm import models

from .conftest import SLACK_TS


class TestNotes:
    def test_text_required(self, client, make_application):
        application = make_application()
        resp = client.post(f"/api/notes/{application.id}", json={"note_text": "   "})
        assert resp.status_code == 400

    def test_unknown_application(self, client):
        resp = client.post("/api/notes/999", json={"note_text": "hello"})
        assert resp.status_code == 404

    def test_note_without_threads(self, client, db, slack, make_application):
        application = make_application()
        resp = client.post(f"/api/notes/{application.id}", json={"note_text": "  Called them  "})
        assert resp.status_code == 201
        body = resp.json()
        assert body["note_text"] == "Called them"
        assert body["created_by"] == "admin"
        assert body["slack_synced"] is False
        assert body["slack_application_synced"] is False
        assert slack.await_count == 0

        entry = db.query(models.ActivityLog).filter_by(action="note_added").one()
        assert entry.details["slack_application_synced"] is False

    def test_note_mirrored_to_both_threads(self, client, slack, make_application, make_order):
        application = make_application(slack_channel_id="C-APP", slack_thread_ts="111.1")
        make_order(samcart_order_id="o1", slack_channel_id="C-BUY", slack_thread_ts="222.2")

        body = client.post(
            f"/api/notes/{application.id}", json={"note_text": "Paid", "created_by": "sam"}
        ).json()
        assert body["slack_synced"] is True
        assert body["slack_message_ts"] == SLACK_TS
        assert body["slack_application_synced"] is True
        assert body["slack_purchase_synced"] is True

        threads = [call.args[3] for call in slack.await_args_list]
        assert threads == ["111.1", "222.2"]

    def test_list_newest_first_and_delete(self, client, db, make_application):
        application = make_application()
        first = models.ApplicationNote(application_id=application.id, note_text="first")
        db.add(first)
        db.commit()
        second = models.ApplicationNote(application_id=application.id, note_text="second")
        db.add(second)
        db.commit()

        notes = client.get(f"/api/notes/{application.id}").json()
        assert [n["note_text"] for n in notes] == ["second", "first"]

        resp = client.delete(f"/api/notes/{first.id}")
        assert resp.json() == {"success": True, "deleted": {"id": first.id, "application_id": application.id}}
        assert client.delete(f"/api/notes/{first.id}").status_code == 404
