import json

from normalz.core.errors import NotFoundError
from normalz.features.questions.store import QuestionStore


def load_seed_questions(store: QuestionStore, path: str) -> int:
    """Create questions from a JSON list of {"options": [...], "prompt": ..., "questionId": ...}. Existing ids are skipped."""
    with open(path, "r", encoding="utf-8") as handle:
        entries = json.load(handle)

    created = 0
    for entry in entries:
        question_id = entry.get("questionId")
        if question_id and _exists(store, question_id):
            continue
        store.create(entry["options"], prompt=entry.get("prompt"), question_id=question_id)
        created += 1
    return created


def _exists(store: QuestionStore, question_id: str) -> bool:
    try:
        store.get(question_id)
    except NotFoundError:
        return False
    return True
