"""
Game service: one fetch-question or submit-answer request end to end.

Resolution is server-authoritative: the outcome returned here is computed
from the post-vote tally, and the client only displays it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from normalz.core.metrics import votes_total
from normalz.features.outcome.resolver import plurality_winners, resolve
from normalz.features.selector.service import QuestionSelector
from normalz.features.streaks.service import StreakService
from normalz.features.tally.engine import TallyEngine
from normalz.features.questions.store import QuestionStore
from normalz.models.outcome import Outcome
from normalz.models.question import Question, TallySnapshot
from normalz.models.streak import StreakState, StreakUpdate


@dataclass(frozen=True)
class ServedQuestion:
    question: Question
    snapshot: TallySnapshot


@dataclass(frozen=True)
class SubmissionResult:
    message: str
    selected_option: str
    outcome: Outcome
    winning_options: Tuple[str, ...]
    snapshot: TallySnapshot
    replayed: bool = False
    streak_state: Optional[StreakState] = None
    streak_update: Optional[StreakUpdate] = None


class GameService:
    def __init__(
        self,
        store: QuestionStore,
        engine: TallyEngine,
        selector: QuestionSelector,
        streaks: StreakService,
    ):
        self.store = store
        self.engine = engine
        self.selector = selector
        self.streaks = streaks

    def serve_question(self, excluding: Optional[str] = None) -> ServedQuestion:
        question = self.selector.next(excluding=excluding)
        return ServedQuestion(question=question, snapshot=self.store.snapshot(question.question_id))

    def submit_answer(
        self,
        question_id: str,
        selected_option: str,
        *,
        idempotency_key: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> SubmissionResult:
        updated = self.engine.apply_vote(
            question_id,
            selected_option,
            idempotency_key=idempotency_key,
            voter_id=player_id,
        )
        # A replay is judged on the option and tally of its first application
        outcome = resolve(updated.snapshot, updated.option)
        winners = plurality_winners(updated.snapshot)

        streak_state: Optional[StreakState] = None
        streak_update: Optional[StreakUpdate] = None
        if player_id and idempotency_key:
            # A replay still records the streak if the first attempt failed before doing so
            streak_state, streak_update = self.streaks.record_once(
                player_id,
                outcome,
                already_recorded=lambda: self.store.streak_recorded(question_id, idempotency_key),
                mark_recorded=lambda: self.store.mark_streak_recorded(question_id, idempotency_key),
            )
        elif player_id:
            streak_state, streak_update = self.streaks.record(player_id, outcome)

        if not updated.replayed:
            votes_total.inc(labels={"outcome": outcome.value})

        return SubmissionResult(
            message=outcome.message,
            selected_option=updated.option,
            outcome=outcome,
            winning_options=winners,
            snapshot=updated.snapshot,
            replayed=updated.replayed,
            streak_state=streak_state,
            streak_update=streak_update,
        )
