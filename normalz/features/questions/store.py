"""
normalz/features/questions/store.py

Question Store: durable mapping from question id to its option list and tally.

All implementations expose the same contract; increment() is the only
mutation of a tally and must be atomic per question.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

from normalz.core.errors import (
    InvalidOptionsError,
    NotFoundError,
    QuestionRetiredError,
    UnknownOptionError,
)
from normalz.core.idempotency import ReceiptRegistry
from normalz.models.question import Question, TallySnapshot, UpdatedTally


def validate_options(options: Iterable[str]) -> Tuple[str, ...]:
    """Return options as a tuple, rejecting fewer than 2, duplicates and blank labels."""
    if isinstance(options, str):
        raise InvalidOptionsError("options must be a list of labels, not a string")
    labels = tuple(options)
    if len(labels) < 2:
        raise InvalidOptionsError("A question needs at least 2 options")
    if any(not isinstance(label, str) or not label.strip() for label in labels):
        raise InvalidOptionsError("Option labels must be non-empty strings")
    if len(set(labels)) != len(labels):
        raise InvalidOptionsError("Option labels must be distinct")
    return labels


def new_question_id() -> str:
    return uuid.uuid4().hex


class QuestionStore(ABC):
    @abstractmethod
    def create(self, options: Iterable[str], *, prompt: Optional[str] = None, question_id: Optional[str] = None) -> Question:
        """Persist a new question with all counts at zero."""

    @abstractmethod
    def get(self, question_id: str) -> Question:
        """Return the question or raise NotFoundError."""

    @abstractmethod
    def snapshot(self, question_id: str) -> TallySnapshot:
        """Return an internally consistent tally snapshot."""

    @abstractmethod
    def increment(self, question_id: str, option: str, *, receipt_key: Optional[str] = None) -> UpdatedTally:
        """
        Atomically add one vote for option.

        With a receipt_key already applied for this question, nothing changes and
        the result recorded at first application is returned with replayed=True,
        including the option that was originally chosen.
        """

    @abstractmethod
    def streak_recorded(self, question_id: str, receipt_key: str) -> bool:
        """Whether the vote applied under receipt_key has already been counted in a player streak."""

    @abstractmethod
    def mark_streak_recorded(self, question_id: str, receipt_key: str) -> None:
        """Note that the vote applied under receipt_key is now counted in a player streak."""

    @abstractmethod
    def active_ids(self) -> List[str]:
        """Ids of questions that may be served."""

    @abstractmethod
    def retire(self, question_id: str) -> Question:
        """Stop serving the question and reject further votes. Its tally is kept."""


class InMemoryQuestionStore(QuestionStore):
    """
    Process-local store.

    Each question has its own lock; a vote swaps in a new immutable snapshot
    while holding it. Readers take the current snapshot reference without
    locking.
    """

    def __init__(self):
        self._questions: Dict[str, Question] = {}
        self._tallies: Dict[str, TallySnapshot] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._receipts: ReceiptRegistry[UpdatedTally] = ReceiptRegistry()
        self._streaks_recorded: ReceiptRegistry[bool] = ReceiptRegistry()
        self._registry_lock = threading.Lock()

    def create(self, options: Iterable[str], *, prompt: Optional[str] = None, question_id: Optional[str] = None) -> Question:
        labels = validate_options(options)
        qid = question_id or new_question_id()
        question = Question(question_id=qid, options=labels, prompt=prompt)
        with self._registry_lock:
            if qid in self._questions:
                raise InvalidOptionsError(f"Question {qid} already exists")
            self._locks[qid] = threading.Lock()
            self._tallies[qid] = TallySnapshot.empty(qid, labels)
            self._questions[qid] = question
        return question

    def get(self, question_id: str) -> Question:
        question = self._questions.get(question_id)
        if question is None:
            raise NotFoundError(f"Question {question_id} not found")
        return question

    def snapshot(self, question_id: str) -> TallySnapshot:
        tally = self._tallies.get(question_id)
        if tally is None:
            raise NotFoundError(f"Question {question_id} not found")
        return tally

    def increment(self, question_id: str, option: str, *, receipt_key: Optional[str] = None) -> UpdatedTally:
        question = self.get(question_id)
        with self._locks[question_id]:
            if receipt_key:
                previous = self._receipts.get(question_id, receipt_key)
                if previous is not None:
                    return replace(previous, replayed=True)
            if not self._questions[question_id].active:
                raise QuestionRetiredError(f"Question {question_id} is retired")
            if not question.has_option(option):
                raise UnknownOptionError(question_id, option)
            snapshot = self._tallies[question_id].with_vote(option)
            self._tallies[question_id] = snapshot
            result = UpdatedTally(snapshot=snapshot, option=option, idempotency_key=receipt_key)
            if receipt_key:
                self._receipts.put(question_id, receipt_key, result)
        return result

    def streak_recorded(self, question_id: str, receipt_key: str) -> bool:
        return self._streaks_recorded.get(question_id, receipt_key) is not None

    def mark_streak_recorded(self, question_id: str, receipt_key: str) -> None:
        self._streaks_recorded.put(question_id, receipt_key, True)

    def active_ids(self) -> List[str]:
        return [qid for qid, question in list(self._questions.items()) if question.active]

    def retire(self, question_id: str) -> Question:
        question = self.get(question_id)
        with self._locks[question_id]:
            retired = replace(question, active=False)
            self._questions[question_id] = retired
        return retired
