import json

import pytest
from flask.sessions import SecureCookieSessionInterface

import app as app_module
from oracle import DictionaryOracle
from puzzle_service import PuzzleService
from tests.conftest import FixedClock
from tests.test_puzzle_service import StubStore


@pytest.fixture
def oracle():
    return DictionaryOracle(StubStore(), fallback_words=[], clock=FixedClock("2024-01-01"))


@pytest.fixture
def client(monkeypatch, fake_redis, oracle):
    monkeypatch.setattr(app_module, "oracle", oracle)
    monkeypatch.setattr(app_module, "service", PuzzleService(oracle, fake_redis))
    monkeypatch.setattr(app_module, "FEEDBACK_DELAY_SECONDS", 0)
    monkeypatch.setattr(app_module, "pubsub_listener_started", True)
    # Cookie sessions instead of Redis-backed ones
    monkeypatch.setattr(app_module.app, "session_interface", SecureCookieSessionInterface())
    # Run deferred work inline so its emits are observable
    monkeypatch.setattr(app_module.socketio, "start_background_task", lambda fn, *args: fn(*args))
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()


@pytest.fixture
def socket_client(client):
    client.get("/api/puzzle")
    sio = app_module.socketio.test_client(app_module.app, flask_test_client=client)
    sio.get_received()
    yield sio
    if sio.is_connected():
        sio.disconnect()


def post_event(client, event):
    return client.post("/api/puzzle/event", json=event)


def states(received):
    return [item["args"][0] for item in received if item["name"] == "puzzle_state"]


# --------------------
# REST routes
# --------------------
def test_get_puzzle_returns_envelope(client):
    response = client.get("/api/puzzle")
    assert response.status_code == 200
    body = response.get_json()
    assert body["isLoading"] is False
    assert body["error"] is None
    assert body["state"]["topWord"] == "apple"
    assert body["state"]["bottomWord"] == "table"
    assert body["state"]["secretWord"] is None


def test_events_play_through_to_a_win(client):
    client.get("/api/puzzle")
    for letter in "peach":
        post_event(client, {"type": "key", "letter": letter})
    body = post_event(client, {"type": "submit"}).get_json()
    assert body["state"]["status"] == "won"
    assert body["state"]["shareText"] == "Frantic Five 2024-01-01 - Found in 1 try!"

    reloaded = client.get("/api/puzzle").get_json()
    assert reloaded["state"]["status"] == "won"


def test_retry_returns_envelope(client):
    body = client.post("/api/puzzle/retry").get_json()
    assert body["error"] is None
    assert body["state"]["date"] == "2024-01-01"


@pytest.mark.parametrize("event", [{"type": "jump"}, {"letter": "a"}])
def test_unknown_event_is_a_bad_request(client, event):
    client.get("/api/puzzle")
    response = post_event(client, event)
    assert response.status_code == 400
    assert "error" in response.get_json()


def test_non_object_body_is_a_bad_request(client):
    response = client.post("/api/puzzle/event", data="submit", content_type="application/json")
    assert response.status_code == 400
    assert client.post("/api/puzzle/event", json=["submit"]).status_code == 400


@pytest.mark.parametrize("letter", [5, None, ["p"]])
def test_key_event_with_bad_letter_is_ignored(client, letter):
    client.get("/api/puzzle")
    response = post_event(client, {"type": "key", "letter": letter})
    assert response.status_code == 200
    assert response.get_json()["state"]["currentGuess"] == ["", "", "", "", ""]


def test_oracle_failure_is_reported_not_raised(client, monkeypatch, fake_redis):
    class EmptyStore(StubStore):
        def get_daily_word(self, date):
            return None

        def get_random_word(self, seed=None):
            return None

    oracle = DictionaryOracle(EmptyStore(), fallback_words=[], clock=FixedClock("2024-01-01"))
    monkeypatch.setattr(app_module, "service", PuzzleService(oracle, fake_redis))

    body = client.get("/api/puzzle").get_json()
    assert body == {"isLoading": False, "error": "No word available for today", "state": None}


# --------------------
# Socket events
# --------------------
def test_socket_requires_a_player(client):
    sio = app_module.socketio.test_client(app_module.app, flask_test_client=client)
    assert not sio.is_connected()


def test_socket_event_emits_state(socket_client):
    socket_client.emit("puzzle_event", {"type": "key", "letter": "m"})
    received = states(socket_client.get_received())
    assert received[-1]["state"]["currentGuess"] == ["m", "", "", "", ""]


def test_rejection_is_cleared_after_delay(socket_client):
    for letter in "zebra":
        socket_client.emit("puzzle_event", {"type": "key", "letter": letter})
    socket_client.get_received()

    socket_client.emit("puzzle_event", {"type": "submit"})
    rejected, cleared = states(socket_client.get_received())

    assert rejected["state"]["invalidWord"]
    assert rejected["state"]["feedbackMessage"] == "Word must come before the bottom word"
    assert not cleared["state"]["invalidWord"]
    assert cleared["state"]["feedbackMessage"] is None
    assert cleared["state"]["currentGuess"] == ["", "", "", "", ""]
    assert cleared["state"]["attempts"] == 0


def test_accepted_guess_schedules_no_clear(socket_client):
    for letter in "mango":
        socket_client.emit("puzzle_event", {"type": "key", "letter": letter})
    socket_client.get_received()

    socket_client.emit("puzzle_event", {"type": "submit"})
    received = states(socket_client.get_received())
    assert len(received) == 1
    assert received[0]["state"]["topWord"] == "mango"


def test_late_clear_leaves_newer_rejection_alone(socket_client, monkeypatch):
    pending = []
    monkeypatch.setattr(app_module.socketio, "start_background_task", lambda fn, *args: pending.append((fn, args)))

    for letter in "zebra":
        socket_client.emit("puzzle_event", {"type": "key", "letter": letter})
    socket_client.emit("puzzle_event", {"type": "submit"})

    # Edit the rejected row and fail again before the first clear runs
    for _ in range(5):
        socket_client.emit("puzzle_event", {"type": "backspace"})
    for letter in "qqqqq":
        socket_client.emit("puzzle_event", {"type": "key", "letter": letter})
    socket_client.emit("puzzle_event", {"type": "submit"})
    socket_client.get_received()
    assert [args[1] for _, args in pending] == [1, 2]

    first, second = pending
    first[0](*first[1])
    stale = states(socket_client.get_received())[-1]["state"]
    assert stale["feedbackMessage"] == "Word not found in dictionary"
    assert stale["currentGuess"] == list("qqqqq")

    second[0](*second[1])
    cleared = states(socket_client.get_received())[-1]["state"]
    assert cleared["feedbackMessage"] is None
    assert cleared["currentGuess"] == ["", "", "", "", ""]


def test_bad_socket_event_reports_error(socket_client):
    socket_client.emit("puzzle_event", {"type": "jump"})
    received = socket_client.get_received()
    assert [item["name"] for item in received] == ["event_error"]

    socket_client.emit("puzzle_event", {"type": "key", "letter": 5})
    received = states(socket_client.get_received())
    assert received[-1]["state"]["currentGuess"] == ["", "", "", "", ""]


# --------------------
# Pub/sub
# --------------------
def test_daily_puzzle_ready_is_rebroadcast(socket_client, oracle):
    oracle.resolve_secret("2024-01-01")
    app_module.handle_pubsub_message({
        "type": "message",
        "data": json.dumps({"type": "daily_puzzle_ready", "date": "2024-01-01"}),
    })

    received = socket_client.get_received()
    assert {"name": "puzzle_rollover", "args": [{"date": "2024-01-01"}], "namespace": "/"} in received
    assert "2024-01-01" not in oracle._secrets


def test_pubsub_ignores_noise(socket_client):
    app_module.handle_pubsub_message(None)
    app_module.handle_pubsub_message({"type": "subscribe", "data": 1})
    app_module.handle_pubsub_message({"type": "message", "data": "{broken"})
    assert socket_client.get_received() == []
