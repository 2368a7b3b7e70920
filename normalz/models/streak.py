from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Literal, Optional, Tuple

HighScoreBoard = Literal["all_time", "daily", "weekly"]

BOARDS: Tuple[HighScoreBoard, ...] = ("all_time", "daily", "weekly")


class Achievement(Enum):
    """Streak-length thresholds, in ascending order."""

    THREE_STREAK = (3, "3 Correct Predictions Streak", "🔥")
    FIVE_STREAK = (5, "5 Correct Predictions Streak", "🏆")
    TEN_STREAK = (10, "10 Correct Predictions Streak", "🎖")

    def __init__(self, threshold: int, title: str, emoji: str):
        self.threshold = threshold
        self.title = title
        self.emoji = emoji

    @classmethod
    def crossed_at(cls, streak: int) -> FrozenSet["Achievement"]:
        return frozenset(a for a in cls if a.threshold == streak)


@dataclass
class StreakState:
    """
    Per-player streak record. Timestamps are the boundaries at which the
    daily and weekly marks were last reset (None until the first check).
    """

    player_id: str
    current_streak: int = 0
    all_time_high: int = 0
    daily_high: int = 0
    weekly_high: int = 0
    last_daily_reset: Optional[datetime] = None
    last_weekly_reset: Optional[datetime] = None

    def high_for(self, board: HighScoreBoard) -> int:
        return getattr(self, f"{board}_high")

    def set_high(self, board: HighScoreBoard, value: int) -> None:
        if value < 0:
            raise ValueError("high-water marks are never negative")
        setattr(self, f"{board}_high", value)

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "current_streak": self.current_streak,
            "all_time_high": self.all_time_high,
            "daily_high": self.daily_high,
            "weekly_high": self.weekly_high,
            "last_daily_reset": self.last_daily_reset.isoformat() if self.last_daily_reset else None,
            "last_weekly_reset": self.last_weekly_reset.isoformat() if self.last_weekly_reset else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StreakState":
        def _parse(value):
            return datetime.fromisoformat(value) if value else None

        return cls(
            player_id=data["player_id"],
            current_streak=int(data.get("current_streak", 0)),
            all_time_high=int(data.get("all_time_high", 0)),
            daily_high=int(data.get("daily_high", 0)),
            weekly_high=int(data.get("weekly_high", 0)),
            last_daily_reset=_parse(data.get("last_daily_reset")),
            last_weekly_reset=_parse(data.get("last_weekly_reset")),
        )


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    new_achievements: FrozenSet[Achievement] = frozenset()
    beaten_marks: Tuple[HighScoreBoard, ...] = ()


@dataclass(frozen=True)
class ResetReport:
    daily_reset: bool = False
    weekly_reset: bool = False
    checked_at: Optional[datetime] = None
