"""Import service - CSV upload of members and team members"""

import csv
import io
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import BusinessOwner, TeamMember
from ...services.activity_log import log_activity
from ...shared.pagination import clamp_limit
from ...shared.validators import normalize_email, parse_int
from .repository import ImportRepository
from .schemas import ImportHistoryList, ImportHistoryResponse, ImportResult, RowError

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
CSV_CONTENT_TYPES = ("text/csv", "application/csv", "application/vnd.ms-excel")
ERRORS_RETURNED = 10

# Header (normalized) -> business_owners column. Export headers from the
# onboarding form and plain column names are both accepted.
BUSINESS_OWNER_COLUMNS = {
    "business owner first name": "first_name",
    "first name": "first_name",
    "first_name": "first_name",
    "business owner last name": "last_name",
    "last name": "last_name",
    "last_name": "last_name",
    "business owner best email address": "email",
    "email": "email",
    "email address": "email",
    "phone": "phone",
    "phone number": "phone",
    "what's the name of your business?": "business_name",
    "business name": "business_name",
    "business_name": "business_name",
    "please provide an overview of your business": "business_overview",
    "business overview": "business_overview",
    "what's the current annual revenue of your business?": "annual_revenue",
    "annual revenue": "annual_revenue",
    "how many team members do you have?": "team_count",
    "team count": "team_count",
    "what traffic sources do you typically employ to acquire customers?": "traffic_sources",
    "traffic sources": "traffic_sources",
    "please link all relevant landing pages": "landing_pages",
    "landing pages": "landing_pages",
    "what is the #1 pain point for you in your business right now?": "pain_point",
    "pain point": "pain_point",
    "what is the #1 thing that, if ca pro were to help you, it would be a massive win?": "massive_win",
    "massive win": "massive_win",
    "ai skill level": "ai_skill_level",
    "whatsapp number": "whatsapp_number",
}

TEAM_MEMBER_COLUMNS = {
    "your first name": "first_name",
    "first name": "first_name",
    "first_name": "first_name",
    "your last name": "last_name",
    "last name": "last_name",
    "last_name": "last_name",
    "your best email address": "email",
    "email": "email",
    "email address": "email",
    "phone": "phone",
    "what's your title/role in the business?": "title",
    "title": "title",
    "role": "title",
    "business summary": "business_summary",
    "responsibilities": "responsibilities",
    "copywriting skill": "copywriting_skill",
    "cro skill": "cro_skill",
    "ai skill": "ai_skill",
}

INTEGER_COLUMNS = {"ai_skill_level", "copywriting_skill", "cro_skill", "ai_skill"}


def normalize_header(header: Optional[str]) -> str:
    return " ".join((header or "").split()).lower()


def validate_upload(filename: Optional[str], content_type: Optional[str], contents: bytes) -> None:
    """Reject anything that is not a CSV file within the size limit"""
    is_csv = (filename or "").lower().endswith(".csv") or content_type in CSV_CONTENT_TYPES
    if not is_csv:
        raise HTTPException(status_code=400, detail="Only CSV files are allowed")
    if len(contents) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File size exceeds 10MB limit")


def read_rows(contents: bytes, columns: dict) -> list[dict]:
    """Parse CSV bytes into dicts keyed by column name, values trimmed"""
    try:
        text = contents.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded")

    reader = csv.DictReader(io.StringIO(text))
    rows = []
    for raw in reader:
        row = {}
        for header, value in raw.items():
            column = columns.get(normalize_header(header))
            if column is None or value is None:
                continue
            value = value.strip() if isinstance(value, str) else value
            if value and not row.get(column):
                row[column] = value
        rows.append(row)
    return rows


def _coerce(column: str, value):
    if column in INTEGER_COLUMNS:
        return parse_int(value) or None
    return value


class ImportService:
    """Service layer for CSV imports"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ImportRepository()

    def import_business_owners(self, filename: Optional[str], contents: bytes) -> ImportResult:
        rows = read_rows(contents, BUSINESS_OWNER_COLUMNS)
        return self._run(filename, "business_owners", rows, self._import_business_owner)

    def import_team_members(self, filename: Optional[str], contents: bytes) -> ImportResult:
        rows = read_rows(contents, TEAM_MEMBER_COLUMNS)
        return self._run(filename, "team_members", rows, self._import_team_member)

    def _run(self, filename: Optional[str], import_type: str, rows: list[dict], import_row) -> ImportResult:
        imported = 0
        errors: list[RowError] = []

        # Header is row 1
        for row_number, row in enumerate(rows, start=2):
            email = normalize_email(row.get("email"))
            if not email:
                errors.append(RowError(row=row_number, error="Missing email address"))
                continue
            try:
                import_row(email, row)
                self.db.commit()
                imported += 1
            except Exception as e:
                self.db.rollback()
                logger.warning(f"⚠️ CSV row {row_number} failed: {str(e)}")
                errors.append(RowError(row=row_number, error=str(e)))

        history = self.repo.record_history(
            self.db,
            filename=filename,
            import_type=import_type,
            records_imported=imported,
            records_failed=len(errors),
            errors=[e.model_dump() for e in errors],
        )
        log_activity(
            self.db,
            "csv_import",
            "import",
            history.id,
            {
                "filename": filename,
                "type": import_type,
                "imported": imported,
                "failed": len(errors),
            },
        )
        self.db.commit()
        logger.info(f"📥 Imported {imported}/{len(rows)} {import_type} from {filename}")

        return ImportResult(
            total=len(rows),
            imported=imported,
            failed=len(errors),
            errors=errors[:ERRORS_RETURNED],
        )

    def _import_business_owner(self, email: str, row: dict) -> None:
        values = {
            column: _coerce(column, value)
            for column, value in row.items()
            if column != "email"
        }
        values = {column: value for column, value in values.items() if value is not None}

        member = self.repo.get_member_by_email(self.db, email)
        if member is None:
            member = BusinessOwner(email=email, source="csv_import")
            self.db.add(member)
        for column, value in values.items():
            setattr(member, column, value)
        member.onboarding_status = "completed"
        member.onboarding_progress = 100
        self.db.flush()

    def _import_team_member(self, email: str, row: dict) -> None:
        values = {
            column: _coerce(column, value)
            for column, value in row.items()
            if column != "email"
        }
        values = {column: value for column, value in values.items() if value is not None}

        team_member = self.repo.get_team_member_by_email(self.db, email)
        if team_member is None:
            team_member = TeamMember(email=email, source="csv_import", role=values.get("title"))
            self.db.add(team_member)
        for column, value in values.items():
            setattr(team_member, column, value)
        self.db.flush()

    def list_history(self, limit: Optional[int], offset: int) -> ImportHistoryList:
        limit = clamp_limit(limit, default=20)
        rows, total = self.repo.list_history(self.db, limit, offset)
        return ImportHistoryList(
            imports=[ImportHistoryResponse.model_validate(h) for h in rows],
            total=total,
            limit=limit,
            offset=offset,
        )
