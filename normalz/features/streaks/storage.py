"""
Persistence for per-player streak state.

In-memory for tests and single-process servers, SQL for deployments with a
database, and a JSON file for the client library (one file, many players).
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from datetime import timezone
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from sqlalchemy import insert, select, update
from sqlalchemy.orm import sessionmaker

from normalz.core.database import player_streaks, session_scope
from normalz.models.streak import StreakState


class StreakStateStore(Protocol):
    def load(self, player_id: str) -> Optional[StreakState]: ...

    def save(self, state: StreakState) -> None: ...


class InMemoryStreakStateStore:
    def __init__(self):
        self._states: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def load(self, player_id: str) -> Optional[StreakState]:
        with self._lock:
            data = self._states.get(player_id)
        return StreakState.from_dict(data) if data else None

    def save(self, state: StreakState) -> None:
        with self._lock:
            self._states[state.player_id] = state.to_dict()


class JsonFileStreakStateStore:
    """Keeps all players in one JSON document, rewritten atomically on save."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._lock = threading.Lock()

    def load(self, player_id: str) -> Optional[StreakState]:
        with self._lock:
            data = self._read().get(player_id)
        return StreakState.from_dict(data) if data else None

    def save(self, state: StreakState) -> None:
        with self._lock:
            document = self._read()
            document[state.player_id] = state.to_dict()
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)

    def _read(self) -> Dict[str, dict]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as handle:
            return json.load(handle)


class SqlStreakStateStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def load(self, player_id: str) -> Optional[StreakState]:
        with session_scope(self._session_factory) as session:
            row = session.execute(
                select(player_streaks).where(player_streaks.c.player_id == player_id)
            ).first()
            if row is None:
                return None
            return StreakState(
                player_id=row.player_id,
                current_streak=row.current_streak,
                all_time_high=row.all_time_high,
                daily_high=row.daily_high,
                weekly_high=row.weekly_high,
                last_daily_reset=_as_utc(row.last_daily_reset),
                last_weekly_reset=_as_utc(row.last_weekly_reset),
            )

    def save(self, state: StreakState) -> None:
        values = {
            "current_streak": state.current_streak,
            "all_time_high": state.all_time_high,
            "daily_high": state.daily_high,
            "weekly_high": state.weekly_high,
            "last_daily_reset": _as_utc(state.last_daily_reset),
            "last_weekly_reset": _as_utc(state.last_weekly_reset),
        }
        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(player_streaks)
                .where(player_streaks.c.player_id == state.player_id)
                .values(**values)
            )
            if result.rowcount == 0:
                session.execute(insert(player_streaks).values(player_id=state.player_id, **values))


def _as_utc(moment):
    # SQLite drops tzinfo; stored values are always UTC
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
