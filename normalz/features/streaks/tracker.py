from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List, Optional

from normalz.core.logging import log_event
from normalz.core.metrics import streak_resets_total
from normalz.features.leaderboard.client import LeaderboardClient, LeaderboardIds
from normalz.features.streaks.schedule import ResetSchedule, normalize
from normalz.models.outcome import Outcome
from normalz.models.streak import BOARDS, Achievement, HighScoreBoard, ResetReport, StreakState, StreakUpdate


class StreakTracker:
    """
    Streak state machine for one player.

    Win moves n -> n+1, Lose moves n -> 0. High-water marks only rise on wins and
    only fall through check_resets(). Every raised or reset mark is reported to
    the leaderboard. record() must be called once per resolved submission.
    """

    def __init__(
        self,
        state: StreakState,
        *,
        leaderboard: LeaderboardClient,
        leaderboard_ids: Optional[LeaderboardIds] = None,
        schedule: Optional[ResetSchedule] = None,
        on_change: Optional[Callable[[StreakState], None]] = None,
    ):
        self._state = state
        self._leaderboard = leaderboard
        self._ids = leaderboard_ids or LeaderboardIds()
        self._schedule = schedule or ResetSchedule()
        self._on_change = on_change

    @property
    def state(self) -> StreakState:
        return self._state

    def record(self, outcome: Outcome) -> StreakUpdate:
        state = self._state
        if outcome is Outcome.LOSE:
            state.current_streak = 0
            self._persist()
            return StreakUpdate(current_streak=0)

        state.current_streak += 1
        beaten: List[HighScoreBoard] = []
        for board in BOARDS:
            if state.current_streak > state.high_for(board):
                state.set_high(board, state.current_streak)
                beaten.append(board)
                self._leaderboard.submit_score(state.current_streak, self._ids.for_board(board))

        achievements = Achievement.crossed_at(state.current_streak)
        for achievement in sorted(achievements, key=lambda a: a.threshold):
            log_event(
                "info",
                "streak.achievement",
                player_id=state.player_id,
                event_type="streak.achievement",
                extra={"achievement": achievement.name, "streak": state.current_streak},
            )
        self._persist()
        return StreakUpdate(
            current_streak=state.current_streak,
            new_achievements=achievements,
            beaten_marks=tuple(beaten),
        )

    def check_resets(self, now: Optional[datetime] = None) -> ResetReport:
        """
        Reset the daily/weekly marks if their boundary has passed since the last reset.

        Idempotent within a period: the boundary itself is stored, so a second
        check before the next boundary finds nothing to do. The first check ever
        only stores the boundary.
        """
        moment = normalize(now or datetime.now(timezone.utc))
        daily = self._reset_if_due("daily", self._schedule.daily_boundary(moment))
        weekly = self._reset_if_due("weekly", self._schedule.weekly_boundary(moment))
        self._persist()
        return ResetReport(daily_reset=daily, weekly_reset=weekly, checked_at=moment)

    def _reset_if_due(self, board: HighScoreBoard, boundary: datetime) -> bool:
        attr = f"last_{board}_reset"
        last = getattr(self._state, attr)
        if last is None:
            setattr(self._state, attr, boundary)
            return False
        if normalize(last) >= boundary:
            return False

        self._state.set_high(board, 0)
        setattr(self._state, attr, boundary)
        self._leaderboard.submit_score(0, self._ids.for_board(board))
        streak_resets_total.inc(labels={"board": board})
        log_event(
            "info",
            "streak.reset",
            player_id=self._state.player_id,
            event_type="streak.reset",
            extra={"board": board, "boundary": boundary.isoformat()},
        )
        return True

    def _persist(self) -> None:
        if self._on_change is not None:
            self._on_change(self._state)
