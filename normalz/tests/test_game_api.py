"""End-to-end tests for GET/POST /v1/game."""

import pytest

from normalz.features.streaks.storage import InMemoryStreakStateStore


@pytest.fixture
def question_id(services):
    return services.store.create(["Cats", "Dogs", "Fish"], prompt="Best pet?", question_id="pets").question_id


def test_fetch_question_returns_current_tally(client, services, question_id):
    services.store.increment(question_id, "Dogs")

    resp = client.get("/v1/game")

    assert resp.status_code == 200
    body = resp.json()
    assert body == {
        "questionId": "pets",
        "options": ["Cats", "Dogs", "Fish"],
        "answerCounts": {"Cats": 0, "Dogs": 1, "Fish": 0},
        "totalAnswers": 1,
        "prompt": "Best pet?",
    }


def test_fetch_excludes_previous_question(client, services):
    services.store.create(["A", "B"], question_id="one")
    services.store.create(["A", "B"], question_id="two")

    for _ in range(20):
        assert client.get("/v1/game", params={"exclude": "one"}).json()["questionId"] == "two"


def test_fetch_with_empty_pool_is_503(client):
    resp = client.get("/v1/game")
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "pool_empty"


def test_submit_winning_answer(client, services, question_id):
    services.store.increment(question_id, "Cats")

    resp = client.post("/v1/game", json={"questionId": question_id, "selectedOption": "Cats"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "You guessed correctly!"
    assert body["outcome"] == "win"
    assert body["winningOptions"] == ["Cats"]
    assert body["newAnswerCounts"] == {"Cats": 2, "Dogs": 0, "Fish": 0}
    assert body["newTotal"] == 2
    assert body["replayed"] is False
    assert body["streak"] is None


def test_submit_losing_answer(client, services, question_id):
    for _ in range(3):
        services.store.increment(question_id, "Dogs")

    body = client.post("/v1/game", json={"questionId": question_id, "selectedOption": "Fish"}).json()

    assert body["outcome"] == "lose"
    assert body["message"] == "Not quite! Try again!"
    assert body["newTotal"] == 4


def test_tie_counts_as_win(client, services, question_id):
    services.store.increment(question_id, "Dogs")

    body = client.post("/v1/game", json={"questionId": question_id, "selectedOption": "Cats"}).json()

    assert body["outcome"] == "win"
    assert body["winningOptions"] == ["Cats", "Dogs"]


def test_unknown_option_is_400_and_tally_unchanged(client, services, question_id):
    resp = client.post("/v1/game", json={"questionId": question_id, "selectedOption": "Hamster"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "unknown_option"
    assert services.store.snapshot(question_id).total == 0


def test_unknown_question_is_404(client):
    resp = client.post("/v1/game", json={"questionId": "nope", "selectedOption": "A"})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


def test_retired_question_is_409(client, services, question_id):
    services.store.retire(question_id)
    resp = client.post("/v1/game", json={"questionId": question_id, "selectedOption": "Cats"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "question_retired"


def test_missing_fields_are_422(client):
    resp = client.post("/v1/game", json={"questionId": "pets"})
    assert resp.status_code == 422


def test_replayed_submission_counts_once(client, services, question_id):
    payload = {"questionId": question_id, "selectedOption": "Cats", "idempotencyKey": "tap-1", "playerId": "p1"}

    first = client.post("/v1/game", json=payload).json()
    second = client.post("/v1/game", json=payload).json()

    assert first["replayed"] is False
    assert second["replayed"] is True
    assert second["newAnswerCounts"] == first["newAnswerCounts"]
    assert services.store.snapshot(question_id).total == 1
    assert second["streak"]["currentStreak"] == 1


def test_submission_with_player_updates_server_streak(client, question_id):
    for i in range(3):
        body = client.post(
            "/v1/game",
            json={"questionId": question_id, "selectedOption": "Cats", "playerId": "p1", "idempotencyKey": f"k{i}"},
        ).json()

    streak = body["streak"]
    assert streak["currentStreak"] == 3
    assert streak["allTimeHigh"] == 3
    assert [a["id"] for a in streak["newAchievements"]] == ["THREE_STREAK"]
    assert streak["newAchievements"][0]["emoji"] == "🔥"
    assert streak["beatenMarks"] == ["all_time", "daily", "weekly"]


class FailingOnceStreakStore(InMemoryStreakStateStore):
    def __init__(self):
        super().__init__()
        self.failures_left = 1

    def save(self, state):
        if self.failures_left:
            self.failures_left -= 1
            raise OSError("streak store unavailable")
        super().save(state)


def test_retry_records_streak_the_failed_attempt_missed(test_settings):
    from normalz.main import build_services

    services = build_services(test_settings, streak_store=FailingOnceStreakStore())
    services.store.create(["Cats", "Dogs"], question_id="pets")
    game = services.game

    with pytest.raises(OSError):
        game.submit_answer("pets", "Cats", idempotency_key="tap-1", player_id="p1")

    retry = game.submit_answer("pets", "Cats", idempotency_key="tap-1", player_id="p1")
    again = game.submit_answer("pets", "Cats", idempotency_key="tap-1", player_id="p1")

    assert retry.replayed is True
    assert retry.streak_update is not None
    assert retry.streak_state.current_streak == 1
    assert again.streak_update is None
    assert again.streak_state.current_streak == 1
    assert services.store.snapshot("pets").total == 1
