"""Import domain schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class RowError(BaseModel):
    row: int
    error: str


class ImportResult(BaseModel):
    success: bool = True
    total: int
    imported: int
    failed: int
    errors: list[RowError]


class ImportHistoryResponse(BaseModel):
    id: int
    filename: Optional[str] = None
    import_type: str
    records_imported: int
    records_failed: int
    errors: Optional[Any] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ImportHistoryList(BaseModel):
    imports: list[ImportHistoryResponse]
    total: int
    limit: int
    offset: int
