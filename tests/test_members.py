"""Members API: CRUD, filters and the unified profile."""

from onboarding_crm import models


class TestMemberCrud:
    def test_create_member_logs_activity(self, client, db):
        resp = client.post(
            "/api/members",
            json={"first_name": "Ann", "last_name": "Lee", "email": "Ann@Example.com", "source": "manual"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["email"] == "ann@example.com"
        assert body["source"] == "manual"
        assert body["onboarding_status"] == "pending"

        actions = [a.action for a in db.query(models.ActivityLog).all()]
        assert actions == ["member_created"]

    def test_duplicate_email_rejected(self, client, make_member):
        make_member(email="ann@example.com")
        resp = client.post("/api/members", json={"email": "ANN@example.com"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Email already exists"

    def test_invalid_email_is_422(self, client):
        resp = client.post("/api/members", json={"email": "not-an-email"})
        assert resp.status_code == 422

    def test_get_missing_member_404(self, client):
        assert client.get("/api/members/999").status_code == 404

    def test_detail_includes_team_and_partners(self, client, db, make_member):
        member = make_member()
        db.add(models.TeamMember(business_owner_id=member.id, email="tm@example.com"))
        db.add(models.CLevelPartner(business_owner_id=member.id, email="cp@example.com"))
        db.commit()

        body = client.get(f"/api/members/{member.id}").json()
        assert [t["email"] for t in body["team_members"]] == ["tm@example.com"]
        assert [p["email"] for p in body["c_level_partners"]] == ["cp@example.com"]
        assert body["onboarding_submissions"] == []

    def test_update_ignores_unknown_fields(self, client, make_member):
        member = make_member()
        resp = client.put(f"/api/members/{member.id}", json={"nonsense": 1})
        assert resp.status_code == 400

        resp = client.put(f"/api/members/{member.id}", json={"business_name": "Acme", "nonsense": 1})
        assert resp.status_code == 200
        assert resp.json()["business_name"] == "Acme"

    def test_update_to_taken_email_rejected(self, client, make_member):
        make_member(email="taken@example.com")
        member = make_member(email="mine@example.com")
        resp = client.put(f"/api/members/{member.id}", json={"email": "taken@example.com"})
        assert resp.status_code == 400

    def test_delete_member(self, client, db, make_member):
        member = make_member()
        resp = client.delete(f"/api/members/{member.id}")
        assert resp.status_code == 200
        assert client.get(f"/api/members/{member.id}").status_code == 404
        assert db.query(models.ActivityLog).filter_by(action="member_deleted").count() == 1


class TestMemberList:
    def test_filters_and_team_count(self, client, db, make_member):
        owner = make_member(email="a@example.com", business_name="Alpha Co", source="manual")
        make_member(email="b@example.com", business_name="Beta", source="csv_import")
        db.add(models.TeamMember(business_owner_id=owner.id, email="t1@example.com"))
        db.add(models.TeamMember(business_owner_id=owner.id, email="t2@example.com"))
        db.commit()

        body = client.get("/api/members", params={"search": "alpha"}).json()
        assert body["total"] == 1
        assert body["members"][0]["team_member_count"] == 2

        body = client.get("/api/members", params={"source": "csv_import"}).json()
        assert [m["email"] for m in body["members"]] == ["b@example.com"]

    def test_limit_is_capped(self, client):
        body = client.get("/api/members", params={"limit": 10000}).json()
        assert body["limit"] == 500


class TestUnifiedProfile:
    def test_links_application_and_order_by_phone(self, client, make_member, make_application, make_order):
        member = make_member(email="owner@example.com", phone="+1 (555) 123-4567")
        application = make_application(email="other@example.com", phone="555.123.4567")
        order = make_order(email="owner@example.com", samcart_order_id="42")

        body = client.get(f"/api/members/{member.id}/unified").json()
        assert body["typeform_application"]["id"] == application.id
        assert body["samcart_order"]["id"] == order.id

    def test_no_links(self, client, make_member):
        member = make_member(email="solo@example.com", first_name=None, last_name=None)
        body = client.get(f"/api/members/{member.id}/unified").json()
        assert body["typeform_application"] is None
        assert body["samcart_order"] is None
