from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from normalz.api.deps import get_game_service
from normalz.api.serializers import question_payload, streak_payload
from normalz.features.game.service import GameService

router = APIRouter()


class SubmitAnswerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(..., alias="questionId", min_length=1)
    selected_option: str = Field(..., alias="selectedOption", min_length=1)
    idempotency_key: Optional[str] = Field(None, alias="idempotencyKey", min_length=1, max_length=255)
    player_id: Optional[str] = Field(None, alias="playerId", min_length=1)


@router.get("/v1/game")
def fetch_question(
    exclude: Optional[str] = Query(None, description="Question id served last; not repeated when possible"),
    game: GameService = Depends(get_game_service),
):
    """Serve a random active question with its current tally."""
    served = game.serve_question(excluding=exclude)
    return question_payload(served.question, served.snapshot)


@router.post("/v1/game")
def submit_answer(req: SubmitAnswerRequest, game: GameService = Depends(get_game_service)):
    result = game.submit_answer(
        req.question_id,
        req.selected_option,
        idempotency_key=req.idempotency_key,
        player_id=req.player_id,
    )
    body = {
        "message": result.message,
        "questionId": req.question_id,
        "selectedOption": result.selected_option,
        "outcome": result.outcome.value,
        "winningOptions": list(result.winning_options),
        "newAnswerCounts": result.snapshot.answer_counts(),
        "newTotal": result.snapshot.total,
        "replayed": result.replayed,
        "streak": None,
    }
    if result.streak_state is not None:
        body["streak"] = streak_payload(result.streak_state, result.streak_update)
    return body
