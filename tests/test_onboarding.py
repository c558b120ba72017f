"""Onboarding wizard persistence and the team-count check."""

import pytest

from onboarding_crm import models
from onboarding_crm.domain.onboarding.service import progress_percentage
from onboarding_crm.routes.validate import has_team_members


class TestProgress:
    @pytest.mark.parametrize(
        "current,total,expected",
        [(0, 0, 0), (1, 3, 33), (1, 2, 50), (2, 3, 67), (1, 8, 13), (5, 5, 100)],
    )
    def test_rounding(self, current, total, expected):
        assert progress_percentage(current, total) == expected


class TestSaveProgress:
    def test_generates_session_and_marks_started(self, client, db, make_application):
        application = make_application(email="owner@example.com")
        resp = client.post(
            "/api/onboarding/save-progress",
            json={"answers": {"email": "Owner@Example.com"}, "currentQuestion": 1, "totalQuestions": 3},
        )
        body = resp.json()
        assert resp.status_code == 200
        assert body["sessionId"]
        assert body["progress"] == 33
        assert body["businessOwnerId"] is None

        db.expire_all()
        started = db.get(models.TypeformApplication, application.id).onboarding_started_at
        assert started is not None

        client.post(
            "/api/onboarding/save-progress",
            json={"sessionId": body["sessionId"], "answers": {"email": "owner@example.com"}},
        )
        db.expire_all()
        assert db.get(models.TypeformApplication, application.id).onboarding_started_at == started
        assert db.query(models.OnboardingSubmission).count() == 1

    def test_completion_creates_member_team_and_partners(self, client, db, make_application):
        application = make_application(email="owner@example.com")
        payload = {
            "sessionId": "session-1",
            "answers": {
                "email": "owner@example.com",
                "firstName": "Olive",
                "lastName": "Owner",
                "businessName": "Olive Co",
                "aiSkillLevel": "7",
                "whatsappJoined": "done",
            },
            "teamMembers": [
                {"firstName": "Tim", "lastName": "Team", "email": "tim@example.com"},
                {"name": "Nia", "email": "nia@example.com"},
            ],
            "cLevelPartners": [{"name": "Pat Partner", "email": "pat@example.com"}],
            "currentQuestion": 10,
            "totalQuestions": 10,
            "isComplete": True,
        }
        body = client.post("/api/onboarding/save-progress", json=payload).json()
        assert body["isComplete"] is True
        member_id = body["businessOwnerId"]

        member = db.get(models.BusinessOwner, member_id)
        assert member.business_name == "Olive Co"
        assert member.ai_skill_level == 7
        assert member.whatsapp_joined is True
        assert member.onboarding_status == "completed"
        assert sorted(t.email for t in member.team_members) == ["nia@example.com", "tim@example.com"]
        assert [p.email for p in member.c_level_partners] == ["pat@example.com"]

        db.expire_all()
        stored = db.get(models.TypeformApplication, application.id)
        assert stored.onboarding_completed_at is not None
        assert db.query(models.ActivityLog).filter_by(action="onboarding_completed").count() == 1

        # Saving the completed session again does not duplicate people
        client.post("/api/onboarding/save-progress", json=payload)
        db.expire_all()
        assert db.query(models.TeamMember).count() == 2
        assert db.query(models.CLevelPartner).count() == 1
        assert db.query(models.BusinessOwner).count() == 1

    def test_submit_and_session_lookup(self, client):
        resp = client.post(
            "/api/onboarding/submit", json={"answers": {"email": "x@example.com", "businessName": "X"}}
        )
        assert resp.status_code == 201
        assert resp.json()["business_owner_id"]

        assert client.get("/api/onboarding/session/missing").status_code == 404


class TestSubmissions:
    def test_list_counts_and_complete(self, client, db):
        db.add(models.OnboardingSubmission(session_id="a", data={"answers": {"email": "a@example.com"}}))
        db.add(models.OnboardingSubmission(session_id="b", is_complete=True))
        db.commit()

        body = client.get("/api/onboarding/submissions").json()
        assert body["counts"] == {"complete": 1, "incomplete": 1, "total": 2}

        body = client.get("/api/onboarding/submissions", params={"complete": "false"}).json()
        assert [s["session_id"] for s in body["submissions"]] == ["a"]

        incomplete = db.query(models.OnboardingSubmission).filter_by(session_id="a").one()
        resp = client.post(f"/api/onboarding/submissions/{incomplete.id}/complete")
        assert resp.json()["businessOwnerId"]

        status = client.get("/api/onboarding/status").json()
        assert status["member_status"] == {"pending": 0, "in_progress": 0, "completed": 1}
        assert status["submissions"] == {"complete": 2, "incomplete": 0}

    def test_delete(self, client, db):
        submission = models.OnboardingSubmission(session_id="gone")
        db.add(submission)
        db.commit()
        assert client.delete(f"/api/onboarding/submissions/{submission.id}").status_code == 200
        assert client.get(f"/api/onboarding/submissions/{submission.id}").status_code == 404


class TestTeamCount:
    @pytest.mark.parametrize(
        "answer,expected",
        [("", False), ("0", False), ("None", False), ("just me", False), ("No team yet", False), ("3", True), ("two VAs", True)],
    )
    def test_heuristic(self, answer, expected):
        assert has_team_members(answer) is expected

    def test_endpoint(self, client):
        resp = client.post("/api/validate-team-count", json={"teamCount": "5"})
        assert resp.json() == {"hasTeamMembers": True}
