"""CSV imports of members and team members."""

from onboarding_crm import models
from onboarding_crm.domain.imports.service import BUSINESS_OWNER_COLUMNS, normalize_header, read_rows

OWNERS_CSV = (
    "Business Owner First Name,Business Owner Last Name,Business Owner Best Email Address,"
    "What's the name of your business?,AI Skill Level\n"
    "Ann,Lee,ANN@example.com,Lee Labs,8/10\n"
    "Bob,Ray,,Ray Co,5\n"
    "Cat,Kim,cat@example.com,Kim Inc,\n"
)


def upload(client, path, text, filename="members.csv", content_type="text/csv"):
    return client.post(path, files={"file": (filename, text.encode(), content_type)})


class TestReadRows:
    def test_headers_are_normalized(self):
        assert normalize_header("  Business   Owner First NAME ") == "business owner first name"

    def test_bom_and_aliases(self):
        rows = read_rows("\ufeffFirst Name,Email\n Ann , a@example.com\n".encode(), BUSINESS_OWNER_COLUMNS)
        assert rows == [{"first_name": "Ann", "email": "a@example.com"}]


class TestBusinessOwnerImport:
    def test_rows_imported_and_missing_email_reported(self, client, db):
        body = upload(client, "/api/import/business-owners", OWNERS_CSV).json()
        assert body == {
            "success": True,
            "total": 3,
            "imported": 2,
            "failed": 1,
            "errors": [{"row": 3, "error": "Missing email address"}],
        }

        ann = db.query(models.BusinessOwner).filter_by(email="ann@example.com").one()
        assert ann.business_name == "Lee Labs"
        assert ann.ai_skill_level == 8
        assert ann.source == "csv_import"
        assert ann.onboarding_status == "completed"

        history = client.get("/api/import/history").json()
        assert history["total"] == 1
        entry = history["imports"][0]
        assert entry["import_type"] == "business_owners"
        assert entry["records_imported"] == 2
        assert entry["records_failed"] == 1
        assert db.query(models.ActivityLog).filter_by(action="csv_import").count() == 1

    def test_existing_member_updated(self, client, db, make_member):
        member = make_member(email="ann@example.com", source="typeform", business_name="Old")
        upload(client, "/api/import/business-owners", OWNERS_CSV)

        db.expire_all()
        member = db.get(models.BusinessOwner, member.id)
        assert member.business_name == "Lee Labs"
        assert member.source == "typeform"
        assert db.query(models.BusinessOwner).count() == 2

    def test_non_csv_rejected(self, client):
        resp = upload(client, "/api/import/business-owners", "x", filename="members.xlsx", content_type="application/octet-stream")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Only CSV files are allowed"

    def test_no_file(self, client):
        resp = client.post("/api/import/business-owners")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "No file uploaded"

    def test_non_utf8_rejected(self, client):
        resp = client.post(
            "/api/import/business-owners",
            files={"file": ("members.csv", "Email\ncafé@example.com\n".encode("latin-1"), "text/csv")},
        )
        assert resp.status_code == 400


class TestTeamMemberImport:
    def test_title_becomes_role(self, client, db):
        csv_text = "Your First Name,Your Best Email Address,What's your title/role in the business?,CRO Skill\nTim,tim@example.com,Copywriter,7\n"
        body = upload(client, "/api/import/team-members", csv_text).json()
        assert body["imported"] == 1

        team_member = db.query(models.TeamMember).one()
        assert team_member.title == "Copywriter"
        assert team_member.role == "Copywriter"
        assert team_member.cro_skill == 7
        assert team_member.source == "csv_import"
