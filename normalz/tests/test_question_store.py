"""Tests for the in-memory question store."""

import pytest

from normalz.core.errors import InvalidOptionsError, NotFoundError, QuestionRetiredError, UnknownOptionError
from normalz.features.questions.store import InMemoryQuestionStore, validate_options


@pytest.mark.parametrize(
    "options",
    [
        [],
        ["Only"],
        ["Cats", "Cats"],
        ["Cats", "  "],
        ["Cats", ""],
        "AB",
    ],
)
def test_invalid_option_sets_rejected(options):
    with pytest.raises(InvalidOptionsError):
        validate_options(options)


def test_create_starts_with_zero_counts():
    store = InMemoryQuestionStore()
    question = store.create(["Cats", "Dogs"], prompt="Cats or dogs?")

    snapshot = store.snapshot(question.question_id)
    assert question.options == ("Cats", "Dogs")
    assert question.active is True
    assert snapshot.answer_counts() == {"Cats": 0, "Dogs": 0}
    assert snapshot.total == 0


def test_create_generates_unique_ids():
    store = InMemoryQuestionStore()
    ids = {store.create(["A", "B"]).question_id for _ in range(50)}
    assert len(ids) == 50


def test_duplicate_explicit_id_rejected():
    store = InMemoryQuestionStore()
    store.create(["A", "B"], question_id="q1")
    with pytest.raises(InvalidOptionsError):
        store.create(["C", "D"], question_id="q1")


def test_get_unknown_question_raises_not_found():
    store = InMemoryQuestionStore()
    with pytest.raises(NotFoundError):
        store.get("missing")
    with pytest.raises(NotFoundError):
        store.snapshot("missing")


def test_increment_returns_new_snapshot_and_keeps_old_one_intact():
    store = InMemoryQuestionStore()
    qid = store.create(["A", "B"]).question_id
    before = store.snapshot(qid)

    updated = store.increment(qid, "A")

    assert updated.snapshot.answer_counts() == {"A": 1, "B": 0}
    assert updated.snapshot.total == 1
    assert before.total == 0
    assert store.snapshot(qid) == updated.snapshot


def test_increment_unknown_option_changes_nothing():
    store = InMemoryQuestionStore()
    qid = store.create(["A", "B"]).question_id
    with pytest.raises(UnknownOptionError):
        store.increment(qid, "Z")
    assert store.snapshot(qid).total == 0


def test_receipt_replay_returns_original_result():
    store = InMemoryQuestionStore()
    qid = store.create(["A", "B"]).question_id

    first = store.increment(qid, "A", receipt_key="k1")
    store.increment(qid, "B")
    replay = store.increment(qid, "B", receipt_key="k1")

    assert replay.replayed is True
    assert replay.option == "A"
    assert replay.snapshot == first.snapshot
    assert store.snapshot(qid).total == 2


def test_receipt_keys_are_scoped_per_question():
    store = InMemoryQuestionStore()
    q1 = store.create(["A", "B"]).question_id
    q2 = store.create(["A", "B"]).question_id

    store.increment(q1, "A", receipt_key="same")
    second = store.increment(q2, "A", receipt_key="same")

    assert second.replayed is False
    assert store.snapshot(q2).total == 1


def test_retire_removes_from_pool_and_rejects_votes():
    store = InMemoryQuestionStore()
    keep = store.create(["A", "B"]).question_id
    gone = store.create(["A", "B"]).question_id
    store.increment(gone, "A")

    retired = store.retire(gone)

    assert retired.active is False
    assert store.active_ids() == [keep]
    assert store.snapshot(gone).total == 1
    with pytest.raises(QuestionRetiredError):
        store.increment(gone, "A")


def test_streak_flag_is_scoped_per_question():
    store = InMemoryQuestionStore()
    q1 = store.create(["A", "B"]).question_id
    q2 = store.create(["A", "B"]).question_id
    store.increment(q1, "A", receipt_key="same")
    store.increment(q2, "A", receipt_key="same")

    store.mark_streak_recorded(q1, "same")

    assert store.streak_recorded(q1, "same") is True
    assert store.streak_recorded(q2, "same") is False
