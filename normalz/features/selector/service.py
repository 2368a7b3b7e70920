from __future__ import annotations

import random
from typing import Optional

from normalz.core.errors import PoolEmptyError
from normalz.core.metrics import active_questions, questions_served_total
from normalz.features.questions.store import QuestionStore
from normalz.models.question import Question


class QuestionSelector:
    """Uniform random pick from the active pool, never repeating `excluding` when there is a choice."""

    def __init__(self, store: QuestionStore, rng: Optional[random.Random] = None):
        self._store = store
        self._rng = rng or random.Random()

    def next(self, excluding: Optional[str] = None) -> Question:
        pool = self._store.active_ids()
        active_questions.set(len(pool))
        if not pool:
            raise PoolEmptyError()

        candidates = [qid for qid in pool if qid != excluding] if len(pool) > 1 else pool
        question_id = self._rng.choice(candidates)
        questions_served_total.inc()
        return self._store.get(question_id)
