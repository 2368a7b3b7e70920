from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from normalz.api.deps import get_question_store
from normalz.api.serializers import question_payload
from normalz.core.logging import log_event
from normalz.features.questions.store import QuestionStore

router = APIRouter(prefix="/v1/questions")


class CreateQuestionRequest(BaseModel):
    options: List[str] = Field(..., min_length=1)
    prompt: Optional[str] = Field(None, max_length=500)


def _detail(store: QuestionStore, question_id: str) -> dict:
    question = store.get(question_id)
    payload = question_payload(question, store.snapshot(question_id))
    payload["active"] = question.active
    return payload


@router.post("", status_code=201)
def create_question(req: CreateQuestionRequest, store: QuestionStore = Depends(get_question_store)):
    """Create a question with all counts at zero. Rejects < 2, duplicate or blank options."""
    question = store.create(req.options, prompt=req.prompt)
    log_event("info", "question.created", question_id=question.question_id, event_type="question.created")
    return _detail(store, question.question_id)


@router.get("")
def list_active_questions(store: QuestionStore = Depends(get_question_store)):
    return {"questionIds": store.active_ids()}


@router.get("/{question_id}")
def get_question(question_id: str, store: QuestionStore = Depends(get_question_store)):
    return _detail(store, question_id)


@router.post("/{question_id}/retire")
def retire_question(question_id: str, store: QuestionStore = Depends(get_question_store)):
    store.retire(question_id)
    log_event("info", "question.retired", question_id=question_id, event_type="question.retired")
    return _detail(store, question_id)
