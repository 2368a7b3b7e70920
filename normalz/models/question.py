from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from normalz.core.errors import TallyIntegrityError, UnknownOptionError


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Question:
    """A prompt with an ordered, immutable option set."""

    question_id: str
    options: Tuple[str, ...]
    prompt: Optional[str] = None
    active: bool = True
    created_at: datetime = field(default_factory=_utc_now)

    def has_option(self, option: str) -> bool:
        return option in self.options


@dataclass(frozen=True)
class TallySnapshot:
    """
    Immutable view of a question's vote counts.

    Mutation produces a new snapshot (with_vote), so a reader holding a
    reference can never observe a half-applied vote.
    """

    question_id: str
    options: Tuple[str, ...]
    counts: Mapping[str, int]
    total: int

    def __post_init__(self):
        frozen = {option: int(self.counts.get(option, 0)) for option in self.options}
        object.__setattr__(self, "counts", MappingProxyType(frozen))

    @classmethod
    def empty(cls, question_id: str, options: Tuple[str, ...]) -> "TallySnapshot":
        return cls(question_id=question_id, options=tuple(options), counts={}, total=0)

    def count_for(self, option: str) -> int:
        if option not in self.counts:
            raise UnknownOptionError(self.question_id, option)
        return self.counts[option]

    def with_vote(self, option: str) -> "TallySnapshot":
        current = self.count_for(option)
        counts = dict(self.counts)
        counts[option] = current + 1
        return TallySnapshot(
            question_id=self.question_id,
            options=self.options,
            counts=counts,
            total=self.total + 1,
        )

    def verify(self) -> "TallySnapshot":
        """Raise TallyIntegrityError unless total == sum(counts) and no count is negative."""
        counted = sum(self.counts.values())
        if counted != self.total or any(value < 0 for value in self.counts.values()):
            raise TallyIntegrityError(self.question_id, self.total, counted)
        return self

    def answer_counts(self) -> Dict[str, int]:
        return dict(self.counts)


@dataclass(frozen=True)
class UpdatedTally:
    """Result of applying one vote: the post-vote snapshot and whether it was a replay."""

    snapshot: TallySnapshot
    option: str
    replayed: bool = False
    idempotency_key: Optional[str] = None
