"""Answer checks used by the onboarding wizard while the user types"""

import logging

from fastapi import APIRouter

from ..domain.onboarding.schemas import TeamCountRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Validation"])

NO_TEAM_ANSWERS = {"", "0", "zero", "none", "no"}
NO_TEAM_PHRASES = ("just me", "only me", "no team")


def has_team_members(team_count) -> bool:
    """Whether a free-text "how many team members" answer means at least one"""
    answer = str(team_count if team_count is not None else "").strip().lower()
    if answer in NO_TEAM_ANSWERS:
        return False
    return not any(phrase in answer for phrase in NO_TEAM_PHRASES)


@router.post("/validate-team-count")
async def validate_team_count(data: TeamCountRequest):
    result = has_team_members(data.teamCount)
    logger.debug(f"Team count validation: {data.teamCount!r} -> {result}")
    return {"hasTeamMembers": result}
