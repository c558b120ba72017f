import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    details: Optional[dict] = None,
    commit: bool = False,
) -> ActivityLog:
    """
    Add an activity-log row to the current session.

    The row normally rides on the caller's transaction; pass ``commit=True``
    when the activity is the only write.
    """
    entry = ActivityLog(action=action, entity_type=entity_type, entity_id=entity_id, details=details)
    db.add(entry)
    if commit:
        db.commit()
    logger.debug(f"📝 Activity {action} on {entity_type}:{entity_id}")
    return entry
