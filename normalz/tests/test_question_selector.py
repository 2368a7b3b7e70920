import random
from collections import Counter

import pytest

from normalz.core.errors import PoolEmptyError
from normalz.core.metrics import active_questions, questions_served_total
from normalz.features.questions.store import InMemoryQuestionStore
from normalz.features.selector.service import QuestionSelector


def make_pool(size):
    store = InMemoryQuestionStore()
    for i in range(size):
        store.create(["A", "B"], question_id=f"q{i}")
    return store


def test_never_serves_the_same_question_twice_in_a_row():
    selector = QuestionSelector(make_pool(3), rng=random.Random(42))
    last = None
    for _ in range(1000):
        question = selector.next(excluding=last)
        assert question.question_id != last
        last = question.question_id


def test_selection_covers_the_pool_roughly_uniformly():
    selector = QuestionSelector(make_pool(4), rng=random.Random(1))
    counts = Counter(selector.next().question_id for _ in range(4000))

    assert set(counts) == {"q0", "q1", "q2", "q3"}
    assert min(counts.values()) > 800


def test_single_question_pool_repeats():
    selector = QuestionSelector(make_pool(1))
    assert selector.next(excluding="q0").question_id == "q0"


def test_retired_questions_are_not_served():
    store = make_pool(2)
    store.retire("q0")
    selector = QuestionSelector(store)
    assert {selector.next().question_id for _ in range(50)} == {"q1"}


def test_empty_pool():
    selector = QuestionSelector(InMemoryQuestionStore())
    with pytest.raises(PoolEmptyError):
        selector.next()


def test_seeded_rng_is_reproducible():
    first = QuestionSelector(make_pool(5), rng=random.Random(9))
    second = QuestionSelector(make_pool(5), rng=random.Random(9))
    assert [first.next().question_id for _ in range(20)] == [second.next().question_id for _ in range(20)]


def test_metrics_track_pool_and_serves():
    selector = QuestionSelector(make_pool(3))
    selector.next()
    selector.next()
    assert active_questions.value() == 3
    assert questions_served_total.value() == 2
