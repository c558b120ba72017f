"""Pagination helpers shared by the list endpoints"""

from typing import Optional

DEFAULT_LIMIT = 50
MAX_LIMIT = 500


def clamp_limit(limit: Optional[int], default: int = DEFAULT_LIMIT) -> int:
    if limit is None or limit < 1:
        return default
    return min(limit, MAX_LIMIT)


def like_pattern(search: str) -> str:
    return f"%{search.strip()}%"
