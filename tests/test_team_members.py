"""Team-members API."""

from onboarding_crm import models


class TestCreateTeamMember:
    def test_email_required(self, client, make_member):
        owner = make_member()
        resp = client.post("/api/team-members", json={"business_owner_id": owner.id})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Email is required"

    def test_unknown_owner(self, client):
        resp = client.post("/api/team-members", json={"business_owner_id": 99, "email": "t@example.com"})
        assert resp.status_code == 404

    def test_duplicate_for_owner(self, client, make_member):
        owner = make_member()
        payload = {"business_owner_id": owner.id, "email": "t@example.com"}
        assert client.post("/api/team-members", json=payload).status_code == 201
        resp = client.post("/api/team-members", json={**payload, "email": "T@Example.com"})
        assert resp.status_code == 400

    def test_request_sync_flags_record(self, client, db, make_member):
        owner = make_member()
        resp = client.post(
            "/api/team-members",
            json={"business_owner_id": owner.id, "email": "t@example.com", "request_sync": True},
        )
        assert resp.status_code == 201
        team_member = db.get(models.TeamMember, resp.json()["id"])
        assert team_member.sync_requested_at is not None
        assert db.query(models.ActivityLog).filter_by(action="team_member_created").count() == 1

    def test_skill_out_of_range(self, client):
        resp = client.post("/api/team-members", json={"email": "t@example.com", "ai_skill": 11})
        assert resp.status_code == 422


class TestTeamMemberQueries:
    def test_list_includes_owner_names(self, client, db, make_member):
        owner = make_member(business_name="Acme Labs")
        db.add(models.TeamMember(business_owner_id=owner.id, email="t@example.com", role="Copywriter"))
        db.add(models.TeamMember(email="orphan@example.com"))
        db.commit()

        body = client.get("/api/team-members", params={"search": "acme"}).json()
        assert body["total"] == 1
        row = body["team_members"][0]
        assert row["business_name"] == "Acme Labs"
        assert row["owner_first_name"] == "Jane"
        assert row["owner_email"] is None

    def test_detail_includes_owner_email(self, client, db, make_member):
        owner = make_member(email="boss@example.com")
        team_member = models.TeamMember(business_owner_id=owner.id, email="t@example.com")
        db.add(team_member)
        db.commit()

        body = client.get(f"/api/team-members/{team_member.id}").json()
        assert body["owner_email"] == "boss@example.com"

    def test_update_and_delete(self, client, db):
        team_member = models.TeamMember(email="t@example.com")
        db.add(team_member)
        db.commit()

        resp = client.put(f"/api/team-members/{team_member.id}", json={"title": "CMO"})
        assert resp.json()["title"] == "CMO"
        assert client.put(f"/api/team-members/{team_member.id}", json={}).status_code == 400

        assert client.delete(f"/api/team-members/{team_member.id}").status_code == 200
        assert client.get(f"/api/team-members/{team_member.id}").status_code == 404
