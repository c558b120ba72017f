"""Applications API: list decorations, detail, status, conversion and test helpers."""

from datetime import datetime, timedelta

from onboarding_crm import models
from onboarding_crm.domain.applications.service import display_status


class TestDisplayStatus:
    def test_furthest_step_wins(self):
        now = datetime.utcnow()
        application = models.TypeformApplication(
            emailed_at=now - timedelta(days=3),
            purchased_at=now - timedelta(days=1),
        )
        assert display_status(application) == ("purchased", now - timedelta(days=1))

    def test_whatsapp_join_beats_everything(self):
        now = datetime.utcnow()
        application = models.TypeformApplication(
            whatsapp_joined_at=now, onboarding_completed_at=now, call_booked_at=now
        )
        assert display_status(application)[0] == "joined"

    def test_new_when_no_timestamps(self):
        assert display_status(models.TypeformApplication()) == ("new", None)


class TestApplicationList:
    def test_rows_are_decorated(self, client, db, make_application, make_member):
        app_with_onboarding = make_application(email="Onboarded@Example.com", call_booked_at=datetime.utcnow())
        make_application(email="fresh@example.com", first_name="Fresh")
        member = make_member(email="onboarded@example.com")
        db.add(models.OnboardingSubmission(session_id="s1", business_owner_id=member.id))
        db.add(models.ApplicationNote(application_id=app_with_onboarding.id, note_text="hi"))
        db.commit()

        body = client.get("/api/applications").json()
        assert body["total"] == 2
        assert body["status_counts"] == {"new": 2}
        assert body["truly_new_count"] == 1

        rows = {row["email"]: row for row in body["applications"]}
        decorated = rows["Onboarded@Example.com"]
        assert decorated["has_onboarding"] is True
        assert decorated["note_count"] == 1
        assert decorated["display_status"] == "call_booked"
        assert decorated["status_timestamp"] is not None
        assert rows["fresh@example.com"]["display_status"] == "new"
        assert rows["fresh@example.com"]["has_onboarding"] is False

    def test_search_and_status_filters(self, client, make_application):
        make_application(email="a@example.com", business_description="Coffee roastery")
        make_application(email="b@example.com", status="rejected")

        body = client.get("/api/applications", params={"search": "COFFEE"}).json()
        assert [a["email"] for a in body["applications"]] == ["a@example.com"]

        body = client.get("/api/applications", params={"status": "rejected"}).json()
        assert [a["email"] for a in body["applications"]] == ["b@example.com"]


class TestApplicationDetail:
    def test_links_member_submission_and_cancellation(self, client, db, make_application, make_member):
        application = make_application(email="jane@example.com", raw_data={"token": "abc"})
        member = make_member(email="JANE@example.com")
        db.add(models.OnboardingSubmission(session_id="s1", business_owner_id=member.id))
        db.add(models.Cancellation(member_email="jane@example.com", source="admin"))
        db.commit()

        body = client.get(f"/api/applications/{application.id}").json()
        assert body["raw_data"] == {"token": "abc"}
        assert body["business_owner"]["id"] == member.id
        assert body["onboarding_submission"]["session_id"] == "s1"
        assert body["cancellation"]["source"] == "admin"

    def test_missing_is_404(self, client):
        assert client.get("/api/applications/12345").status_code == 404


class TestStatusAndConversion:
    def test_invalid_status(self, client, make_application):
        application = make_application()
        resp = client.put(f"/api/applications/{application.id}/status", json={"status": "bogus"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid status"

    def test_status_change_logged(self, client, db, make_application):
        application = make_application()
        resp = client.put(f"/api/applications/{application.id}/status", json={"status": "reviewed"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "reviewed"
        assert db.query(models.ActivityLog).filter_by(action="application_status_changed").count() == 1

    def test_convert_creates_pending_member(self, client, db, make_application):
        application = make_application(annual_revenue="$1M+", business_description="Agency")
        resp = client.post(f"/api/applications/{application.id}/convert")
        assert resp.status_code == 201
        member = resp.json()["member"]
        assert member["source"] == "typeform"
        assert member["onboarding_status"] == "pending"
        assert member["business_overview"] == "Agency"

        db.expire_all()
        assert db.get(models.TypeformApplication, application.id).status == "approved"

    def test_convert_rejects_existing_member(self, client, make_application, make_member):
        application = make_application(email="jane@example.com")
        make_member(email="Jane@Example.com")
        resp = client.post(f"/api/applications/{application.id}/convert")
        assert resp.status_code == 400

    def test_delete_removes_notes(self, client, db, make_application):
        application = make_application()
        db.add(models.ApplicationNote(application_id=application.id, note_text="n"))
        db.commit()

        assert client.delete(f"/api/applications/{application.id}").status_code == 200
        db.expire_all()
        assert db.query(models.ApplicationNote).count() == 0


class TestSubscriptionHelpers:
    def test_failure_count_is_clamped(self, client, slack, make_application):
        application = make_application()
        body = client.post(
            f"/api/applications/{application.id}/test-subscription-failure", json={"count": 10}
        ).json()
        assert body["requested"] == 4
        assert len(body["results"]) == 4
        assert all(r["type"] == "subscription_charge_failed" for r in body["results"])

    def test_failure_defaults_to_one(self, client, slack, make_application):
        application = make_application()
        body = client.post(f"/api/applications/{application.id}/test-subscription-failure").json()
        assert body["requested"] == 1

    def test_cancel_uses_latest_order(self, client, db, slack, make_application, make_order):
        application = make_application()
        make_order(samcart_order_id="ord-1", status="completed")

        body = client.post(f"/api/applications/{application.id}/test-subscription-cancel").json()
        assert body["result"]["duplicate"] is False

        db.expire_all()
        order = db.query(models.SamcartOrder).filter_by(samcart_order_id="ord-1").one()
        assert order.status == "canceled"
        cancellation = db.query(models.Cancellation).one()
        assert cancellation.source == "samcart"
        assert cancellation.member_email == "jane@example.com"

    def test_missing_email(self, client, make_application):
        application = make_application(email=None)
        resp = client.post(f"/api/applications/{application.id}/test-subscription-recovered")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Application missing email"
