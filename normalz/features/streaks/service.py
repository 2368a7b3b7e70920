from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterator, Optional, Tuple

from normalz.features.leaderboard.client import InMemoryLeaderboard, LeaderboardClient, LeaderboardIds
from normalz.features.streaks.schedule import ResetSchedule
from normalz.features.streaks.storage import InMemoryStreakStateStore, StreakStateStore
from normalz.features.streaks.tracker import StreakTracker
from normalz.models.outcome import Outcome
from normalz.models.streak import ResetReport, StreakState, StreakUpdate


def _default_leaderboard(player_id: str) -> LeaderboardClient:
    return InMemoryLeaderboard(player_id, authenticated=True)


class StreakService:
    """Server-side streak tracking keyed by player id. Updates for one player are serialized."""

    def __init__(
        self,
        store: Optional[StreakStateStore] = None,
        *,
        schedule: Optional[ResetSchedule] = None,
        leaderboard_ids: Optional[LeaderboardIds] = None,
        leaderboard_factory: Callable[[str], LeaderboardClient] = _default_leaderboard,
    ):
        self._store = store or InMemoryStreakStateStore()
        self._schedule = schedule or ResetSchedule()
        self._ids = leaderboard_ids or LeaderboardIds()
        self._leaderboard_factory = leaderboard_factory
        self._leaderboards: Dict[str, LeaderboardClient] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def record(self, player_id: str, outcome: Outcome, *, now: Optional[datetime] = None) -> Tuple[StreakState, StreakUpdate]:
        with self._tracker(player_id) as tracker:
            # Stale daily/weekly marks must not be compared against the new streak
            tracker.check_resets(now)
            update = tracker.record(outcome)
            return tracker.state, update

    def record_once(
        self,
        player_id: str,
        outcome: Outcome,
        *,
        already_recorded: Callable[[], bool],
        mark_recorded: Callable[[], None],
        now: Optional[datetime] = None,
    ) -> Tuple[StreakState, Optional[StreakUpdate]]:
        """
        Record outcome unless already_recorded() says this vote was counted before.

        Both callbacks run under the player's lock, so a retry racing the
        original request cannot count the same vote twice. The update is None
        when nothing was recorded.
        """
        with self._tracker(player_id) as tracker:
            if already_recorded():
                return tracker.state, None
            tracker.check_resets(now)
            update = tracker.record(outcome)
            mark_recorded()
            return tracker.state, update

    def check_resets(self, player_id: str, *, now: Optional[datetime] = None) -> Tuple[StreakState, ResetReport]:
        with self._tracker(player_id) as tracker:
            report = tracker.check_resets(now)
            return tracker.state, report

    def get_state(self, player_id: str) -> StreakState:
        return self._store.load(player_id) or StreakState(player_id=player_id)

    def leaderboard_for(self, player_id: str) -> LeaderboardClient:
        with self._registry_lock:
            existing = self._leaderboards.get(player_id)
        if existing is not None:
            return existing
        # The factory may block on an authentication handshake; build without the lock
        created = self._leaderboard_factory(player_id)
        with self._registry_lock:
            return self._leaderboards.setdefault(player_id, created)

    # Internal helpers -------------------------------------------------
    @contextmanager
    def _tracker(self, player_id: str) -> Iterator[StreakTracker]:
        with self._registry_lock:
            lock = self._locks.setdefault(player_id, threading.Lock())
        leaderboard = self.leaderboard_for(player_id)
        with lock:
            state = self.get_state(player_id)
            yield StreakTracker(
                state,
                leaderboard=leaderboard,
                leaderboard_ids=self._ids,
                schedule=self._schedule,
                on_change=self._store.save,
            )
