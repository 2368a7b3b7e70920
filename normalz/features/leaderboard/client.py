"""
Leaderboard collaborator.

Scores are only submitted once the player is authenticated; submissions
before that are skipped and logged, never queued.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

import httpx

logger = logging.getLogger("normalz")


@dataclass(frozen=True)
class LeaderboardIds:
    all_time: str = "allTimeLeaderboardID"
    daily: str = "dailyLeaderboardID"
    weekly: str = "weeklyLeaderboardID"

    def for_board(self, board: str) -> str:
        return getattr(self, board)


class LeaderboardClient(Protocol):
    @property
    def is_authenticated(self) -> bool: ...

    def authenticate(self) -> bool: ...

    def submit_score(self, value: int, leaderboard_id: str) -> bool: ...

    def show_leaderboard(self) -> Any: ...


class InMemoryLeaderboard:
    """Records submissions locally. Used by tests and when no leaderboard service is configured."""

    def __init__(self, player_id: Optional[str] = None, *, authenticated: bool = False):
        self.player_id = player_id
        self._authenticated = authenticated
        self.submissions: List[Tuple[str, int]] = []

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    def authenticate(self) -> bool:
        self._authenticated = True
        return True

    def submit_score(self, value: int, leaderboard_id: str) -> bool:
        if not self._authenticated:
            logger.info(f"[leaderboard] player {self.player_id} not authenticated; score {value} not submitted")
            return False
        self.submissions.append((leaderboard_id, value))
        return True

    def show_leaderboard(self) -> Dict[str, int]:
        if not self._authenticated:
            logger.info(f"[leaderboard] player {self.player_id} not authenticated; cannot show leaderboard")
            return {}
        latest: Dict[str, int] = {}
        for leaderboard_id, value in self.submissions:
            latest[leaderboard_id] = value
        return latest


class HttpLeaderboardClient:
    """
    Leaderboard service over HTTP.

    authenticate() performs the handshake; is_authenticated stays False until it
    succeeds. Transport and HTTP errors are logged and reported as False/None.
    """

    def __init__(
        self,
        base_url: str,
        player_id: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.player_id = player_id
        self._client = httpx.Client(base_url=base_url, headers=headers, timeout=timeout, transport=transport)
        self._session_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self._session_token is not None

    def authenticate(self) -> bool:
        try:
            response = self._client.post("/players/authenticate", json={"playerId": self.player_id})
            response.raise_for_status()
            self._session_token = response.json()["sessionToken"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.warning(f"[leaderboard] authentication failed for {self.player_id}: {e}")
            return False
        logger.info(f"[leaderboard] player {self.player_id} authenticated")
        return True

    def submit_score(self, value: int, leaderboard_id: str) -> bool:
        if not self.is_authenticated:
            logger.info(f"[leaderboard] player {self.player_id} not authenticated; score {value} not submitted")
            return False
        try:
            response = self._client.post(
                f"/leaderboards/{leaderboard_id}/scores",
                json={"playerId": self.player_id, "score": value},
                headers={"X-Session-Token": self._session_token},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"[leaderboard] error submitting score {value} to {leaderboard_id}: {e}")
            return False
        logger.info(f"[leaderboard] score {value} submitted to {leaderboard_id}")
        return True

    def show_leaderboard(self) -> Optional[dict]:
        if not self.is_authenticated:
            logger.info(f"[leaderboard] player {self.player_id} not authenticated; cannot show leaderboard")
            return None
        try:
            response = self._client.get(
                "/leaderboards",
                params={"playerId": self.player_id},
                headers={"X-Session-Token": self._session_token},
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[leaderboard] error loading leaderboards: {e}")
            return None

    def close(self) -> None:
        self._client.close()
