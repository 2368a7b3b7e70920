"""
Client-side game loop: fetch a question, submit a choice, feed the outcome
into the local streak tracker.

The outcome always comes from the server; the session never recomputes it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from uuid import uuid4

from normalz.client.game_client import (
    GameClient,
    InvalidRequestError,
    QuestionPayload,
    RemoteError,
    SubmissionPayload,
)
from normalz.features.leaderboard.client import InMemoryLeaderboard, LeaderboardClient, LeaderboardIds
from normalz.features.streaks.schedule import ResetSchedule
from normalz.features.streaks.storage import InMemoryStreakStateStore, StreakStateStore
from normalz.features.streaks.tracker import StreakTracker
from normalz.models.outcome import Outcome
from normalz.models.streak import ResetReport, StreakState, StreakUpdate

logger = logging.getLogger("normalz")


@dataclass(frozen=True)
class PlayResult:
    submission: SubmissionPayload
    outcome: Outcome
    streak: StreakUpdate


@dataclass(frozen=True)
class _PendingSubmission:
    question_id: str
    option: str
    idempotency_key: str


class GameSession:
    def __init__(
        self,
        client: GameClient,
        player_id: str,
        *,
        store: Optional[StreakStateStore] = None,
        leaderboard: Optional[LeaderboardClient] = None,
        leaderboard_ids: Optional[LeaderboardIds] = None,
        schedule: Optional[ResetSchedule] = None,
        key_factory: Callable[[], str] = lambda: uuid4().hex,
    ):
        self._client = client
        self._store = store or InMemoryStreakStateStore()
        self.leaderboard = leaderboard or InMemoryLeaderboard(player_id)
        self._key_factory = key_factory
        state = self._store.load(player_id) or StreakState(player_id=player_id)
        self._tracker = StreakTracker(
            state,
            leaderboard=self.leaderboard,
            leaderboard_ids=leaderboard_ids,
            schedule=schedule,
            on_change=self._store.save,
        )
        self.current_question: Optional[QuestionPayload] = None
        self._pending: Optional[_PendingSubmission] = None

    @property
    def state(self) -> StreakState:
        return self._tracker.state

    def next_question(self) -> QuestionPayload:
        last_id = self.current_question.question_id if self.current_question else None
        question = self._client.fetch_question(excluding=last_id)
        self.current_question = question
        return question

    def play(self, choice: str) -> PlayResult:
        """
        Submit a choice for the current question.

        A failed submission keeps its idempotency key; retrying the same choice
        reuses it, so the server counts the vote at most once.
        """
        question = self.current_question
        if question is None:
            raise InvalidRequestError("No question loaded; call next_question() first")
        if choice not in question.options:
            raise InvalidRequestError(f"{choice!r} is not one of the offered options")

        pending = self._pending
        if pending is None or (pending.question_id, pending.option) != (question.question_id, choice):
            pending = _PendingSubmission(question.question_id, choice, self._key_factory())
            self._pending = pending

        try:
            submission = self._client.submit_answer(
                question.question_id,
                choice,
                idempotency_key=pending.idempotency_key,
            )
        except RemoteError as exc:
            if not exc.retryable:
                self._pending = None
            raise
        except InvalidRequestError:
            self._pending = None
            raise

        self._pending = None
        outcome = Outcome(submission.outcome)
        update = self._tracker.record(outcome)
        logger.info(f"[session] {self.state.player_id} {outcome.value} on {question.question_id}; streak={update.current_streak}")
        return PlayResult(submission=submission, outcome=outcome, streak=update)

    def on_foreground(self, now: Optional[datetime] = None) -> ResetReport:
        return self._tracker.check_resets(now)
