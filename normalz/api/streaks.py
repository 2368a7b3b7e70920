from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from normalz.api.deps import get_streak_service
from normalz.api.serializers import streak_payload
from normalz.features.streaks.service import StreakService

router = APIRouter()


class CheckResetsRequest(BaseModel):
    player_id: str = Field(..., min_length=1)
    now: Optional[datetime] = None


@router.get("/v1/streaks/current")
def get_current_streak(player_id: str = Query(..., min_length=1), streaks: StreakService = Depends(get_streak_service)):
    """Return the current streak and high-water marks for a player."""
    return streak_payload(streaks.get_state(player_id))


@router.post("/v1/streaks/check-resets")
def check_resets(req: CheckResetsRequest, streaks: StreakService = Depends(get_streak_service)):
    """Apply any due daily/weekly reset. Safe to call on every app foreground."""
    state, report = streaks.check_resets(req.player_id, now=_normalize(req.now))
    return {
        "state": streak_payload(state),
        "dailyReset": report.daily_reset,
        "weeklyReset": report.weekly_reset,
    }


@router.get("/v1/streaks/leaderboard")
def show_leaderboard(player_id: str = Query(..., min_length=1), streaks: StreakService = Depends(get_streak_service)):
    leaderboard = streaks.leaderboard_for(player_id)
    return {"authenticated": leaderboard.is_authenticated, "leaderboards": leaderboard.show_leaderboard()}


def _normalize(moment: Optional[datetime]) -> datetime:
    if moment is None:
        return datetime.now(timezone.utc)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
