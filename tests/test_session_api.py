from __future__ import annotations

import asyncio
import json
from uuid import uuid4

import fakeredis
import pytest
from fastapi.testclient import TestClient

from chronotiles.streams import SCORES_STREAM_KEY


def _create(client: TestClient, **body: object) -> dict:
    resp = client.post("/session", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_healthcheck_and_info(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    assert client.get("/healthcheck").json() == {"status": "ok"}
    assert client.get("/info").json()["name"] == "chronotiles"


def test_create_session_deals_a_board(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis

    data = _create(client, difficulty="easy", seed=7)

    assert data["status"] == "playing"
    assert data["difficulty"] == "easy"
    assert data["seed"] == 7
    assert data["time_remaining_ms"] == 60_000
    assert data["max_time_ms"] == 90_000
    assert data["time_fraction"] == pytest.approx(60_000 / 90_000)
    assert data["rewind_charges"] == 1
    assert data["phase"] is None
    assert len(data["rows"]) == 4
    assert len(data["tiles"]) == 2

    entries = r.xrange(f"session:{data['session_id']}:events")
    assert [fields["type"] for _, fields in entries] == ["GAME_STARTED"]


def test_create_session_rejects_unknown_difficulty(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    resp = client.post("/session", json={"difficulty": "nightmare"})
    assert resp.status_code == 422


def test_get_and_list_sessions(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    first = _create(client, seed=1)
    second = _create(client, seed=2)

    resp = client.get(f"/session/{first['session_id']}")
    assert resp.status_code == 200
    assert resp.json()["seed"] == 1

    listed = client.get("/session").json()["sessions"]
    assert {s["session_id"] for s in listed} == {first["session_id"], second["session_id"]}

    assert client.get(f"/session/{uuid4()}").status_code == 404
    assert client.post(f"/session/{uuid4()}/input", json={"command": "left"}).status_code == 404


def test_input_then_tick(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    sid = _create(client, seed=11)["session_id"]

    resp = client.post(f"/session/{sid}/input", json={"command": "left"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["accepted"] is True
    assert body["reason"] is None

    if body["session"]["status"] == "settling":
        # The slide's batch is pending until the next tick.
        again = client.post(f"/session/{sid}/input", json={"command": "right"}).json()
        assert again["accepted"] is False
        assert again["reason"] == "settling"

    tick = client.post(f"/session/{sid}/tick", json={"delta_ms": 200})
    assert tick.status_code == 200
    tick_body = tick.json()
    assert tick_body["session"]["status"] == "playing"
    assert tick_body["session"]["phase"] == "dawn"
    assert "PHASE_CHANGED" in [e["type"] for e in tick_body["events"]]

    types = [fields["type"] for _, fields in r.xrange(f"session:{sid}:events")]
    assert types[0] == "GAME_STARTED"
    assert "MOVE_RESOLVED" in types


def test_unknown_command_is_reported(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    sid = _create(client)["session_id"]

    body = client.post(f"/session/{sid}/input", json={"command": "jump"}).json()
    assert body["accepted"] is False
    assert body["reason"] == "unknown_command"

    assert client.post(f"/session/{sid}/input", json={"command": ""}).status_code == 422


def test_idle_and_restart(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    sid = _create(client)["session_id"]

    idle = client.post(f"/session/{sid}/idle").json()
    assert idle["status"] == "idle"
    body = client.post(f"/session/{sid}/input", json={"command": "up"}).json()
    assert body["reason"] == "inactive"

    restarted = client.post(f"/session/{sid}/restart").json()
    assert restarted["status"] == "playing"
    assert restarted["score"] == 0


def test_running_out_of_time_posts_a_score(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    sid = _create(client, difficulty="hard", seed=3)["session_id"]

    tick = client.post(f"/session/{sid}/tick", json={"delta_ms": 60_000}).json()

    assert tick["session"]["status"] == "over"
    assert tick["session"]["time_remaining_ms"] == 0
    assert tick["session"]["time_fraction"] == 0.0
    [over] = [e for e in tick["events"] if e["type"] == "GAME_OVER"]
    assert over["payload"]["reason"] == "time"

    [(_, fields)] = r.xrange(SCORES_STREAM_KEY)
    assert fields["session_id"] == sid
    assert fields["difficulty"] == "hard"


def test_debug_events_endpoint(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    sid = _create(client, seed=5)["session_id"]
    client.post(f"/session/{sid}/tick", json={"delta_ms": 16})

    resp = client.get(f"/sessions/{sid}/events", params={"count": 10})
    assert resp.status_code == 200
    data = resp.json()
    assert data["stream"] == f"session:{sid}:events"
    first = data["messages"][0]["fields"]
    assert first["type"] == "GAME_STARTED"
    assert json.loads(first["payload"])["difficulty"] == "normal"

    assert client.get(f"/sessions/{sid}/events", params={"count": 0}).status_code == 422


def test_runners_share_one_long_lived_client(monkeypatch: pytest.MonkeyPatch) -> None:
    from chronotiles import session_store

    made: list[fakeredis.FakeRedis] = []

    def _create() -> fakeredis.FakeRedis:
        made.append(fakeredis.FakeRedis(decode_responses=True))
        return made[-1]

    monkeypatch.setattr(session_store, "create_redis", _create)

    first = session_store.publisher_redis()
    assert session_store.publisher_redis() is first
    assert len(made) == 1

    closed: list[bool] = []
    monkeypatch.setattr(first, "close", lambda: closed.append(True))
    asyncio.run(session_store.shutdown_sessions())
    assert closed == [True]

    assert session_store.publisher_redis() is not first
    assert len(made) == 2
