import json

import httpx

from normalz.features.leaderboard.client import HttpLeaderboardClient, InMemoryLeaderboard, LeaderboardIds


def test_in_memory_requires_authentication():
    board = InMemoryLeaderboard("p1")
    assert board.submit_score(3, "daily") is False
    assert board.show_leaderboard() == {}

    assert board.authenticate() is True
    assert board.submit_score(3, "daily") is True
    assert board.submit_score(0, "daily") is True
    assert board.show_leaderboard() == {"daily": 0}


def test_ids_for_board():
    ids = LeaderboardIds()
    assert ids.for_board("all_time") == "allTimeLeaderboardID"
    assert ids.for_board("weekly") == "weeklyLeaderboardID"


def make_transport(calls, *, fail_scores=False):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/players/authenticate":
            return httpx.Response(200, json={"sessionToken": "tok"})
        if request.url.path.startswith("/leaderboards/") and request.method == "POST":
            if fail_scores:
                return httpx.Response(503, json={"error": "down"})
            return httpx.Response(204)
        if request.url.path == "/leaderboards":
            return httpx.Response(200, json={"allTimeLeaderboardID": [{"playerId": "p1", "score": 4}]})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def test_http_client_skips_submission_before_authentication():
    calls = []
    client = HttpLeaderboardClient("https://lb.test", "p1", transport=make_transport(calls))

    assert client.is_authenticated is False
    assert client.submit_score(4, "daily") is False
    assert client.show_leaderboard() is None
    assert calls == []


def test_http_client_authenticates_and_submits():
    calls = []
    client = HttpLeaderboardClient("https://lb.test", "p1", api_key="secret", transport=make_transport(calls))

    assert client.authenticate() is True
    assert client.submit_score(4, "allTimeLeaderboardID") is True

    submit = calls[-1]
    assert submit.url.path == "/leaderboards/allTimeLeaderboardID/scores"
    assert json.loads(submit.content) == {"playerId": "p1", "score": 4}
    assert submit.headers["X-Session-Token"] == "tok"
    assert submit.headers["Authorization"] == "Bearer secret"
    assert client.show_leaderboard() == {"allTimeLeaderboardID": [{"playerId": "p1", "score": 4}]}
    client.close()


def test_http_client_reports_failures_as_false():
    client = HttpLeaderboardClient("https://lb.test", "p1", transport=make_transport([], fail_scores=True))
    client.authenticate()
    assert client.submit_score(1, "daily") is False


def test_http_client_transport_error_during_authentication():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    client = HttpLeaderboardClient("https://lb.test", "p1", transport=httpx.MockTransport(handler))
    assert client.authenticate() is False
    assert client.is_authenticated is False
