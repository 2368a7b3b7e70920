"""
Outcome resolution for a submitted choice.

The chosen option wins iff its post-vote count equals the maximum count in
the tally. Ties therefore favor the voter, and the result never depends on
option order.
"""

from __future__ import annotations

from typing import Tuple

from normalz.core.errors import UnknownOptionError
from normalz.models.outcome import Outcome
from normalz.models.question import TallySnapshot


def plurality_winners(tally: TallySnapshot) -> Tuple[str, ...]:
    """Options holding the maximum count, in option order."""
    tally.verify()
    top = max(tally.counts.values(), default=0)
    return tuple(option for option in tally.options if tally.counts[option] == top)


def resolve(tally: TallySnapshot, chosen_option: str) -> Outcome:
    if chosen_option not in tally.counts:
        raise UnknownOptionError(tally.question_id, chosen_option)
    if chosen_option in plurality_winners(tally):
        return Outcome.WIN
    return Outcome.LOSE
