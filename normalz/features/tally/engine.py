from __future__ import annotations

from typing import Optional

from normalz.core.errors import TallyIntegrityError, ValidationError
from normalz.core.logging import log_event
from normalz.core.metrics import tally_integrity_errors_total, vote_replays_total
from normalz.features.questions.store import QuestionStore
from normalz.models.question import UpdatedTally

MAX_IDEMPOTENCY_KEY_LENGTH = 255


class TallyEngine:
    """Applies single votes to question tallies. Serialization is delegated to the store."""

    def __init__(self, store: QuestionStore):
        self._store = store

    def apply_vote(
        self,
        question_id: str,
        option: str,
        *,
        idempotency_key: Optional[str] = None,
        voter_id: Optional[str] = None,
    ) -> UpdatedTally:
        """
        Add one vote for option and return the post-vote tally.

        A replayed idempotency_key returns the original result untouched, even
        if this retry names a different option.
        Raises UnknownOptionError, NotFoundError, QuestionRetiredError, or
        TallyIntegrityError if the stored tally no longer adds up.
        """
        if idempotency_key is not None and not 0 < len(idempotency_key) <= MAX_IDEMPOTENCY_KEY_LENGTH:
            raise ValidationError(f"idempotency_key must be 1-{MAX_IDEMPOTENCY_KEY_LENGTH} characters")

        result = self._store.increment(question_id, option, receipt_key=idempotency_key)
        try:
            result.snapshot.verify()
        except TallyIntegrityError:
            tally_integrity_errors_total.inc()
            log_event(
                "error",
                "tally.integrity_violation",
                player_id=voter_id,
                question_id=question_id,
                event_type="tally.integrity_violation",
                error_code="tally_integrity",
                extra={"total": result.snapshot.total, "counts": result.snapshot.answer_counts()},
            )
            raise

        if result.replayed:
            vote_replays_total.inc()
            log_event(
                "info",
                "vote.replayed",
                player_id=voter_id,
                question_id=question_id,
                event_type="vote.replayed",
                extra={"option": result.option},
            )
        else:
            log_event(
                "info",
                "vote.applied",
                player_id=voter_id,
                question_id=question_id,
                event_type="vote.applied",
                extra={"option": option, "total": result.snapshot.total},
            )
        return result
