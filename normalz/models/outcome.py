from __future__ import annotations

from enum import Enum


class Outcome(str, Enum):
    """Result of a submission. "No result yet" is represented by None, never a member."""

    WIN = "win"
    LOSE = "lose"

    @property
    def message(self) -> str:
        if self is Outcome.WIN:
            return "You guessed correctly!"
        return "Not quite! Try again!"
