"""End-to-end tests over HTTP and the WebSocket endpoint (FastAPI TestClient)."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from puzzle_svc.activity_log import ActivityLog
from puzzle_svc.app import create_app
from puzzle_svc.registry import SessionRegistry

from .conftest import START


@pytest.fixture()
def client(tmp_path):
    app = create_app(
        registry=SessionRegistry(clock=lambda: 1_000),
        activity=ActivityLog(tmp_path / "activity.jsonl"),
    )
    with TestClient(app) as c:
        yield c


def expect(ws, event: str) -> dict:
    msg = ws.receive_json()
    assert msg["event"] == event, msg
    return msg


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.text == "ok"


def test_unknown_session_snapshot(client):
    r = client.get("/sessions/nope")
    assert r.status_code == 404
    assert "nope" in r.json()["detail"]


def test_bad_frame_gets_error(client):
    with client.websocket_connect("/ws") as ws:
        expect(ws, "connected")
        ws.send_text("not json")
        err = expect(ws, "error")
        assert err["code"] == "bad_request"

        ws.send_json({"event": "launch_puzzle", "sessionId": "nope", "puzzleIndex": 0})
        err = expect(ws, "error")
        assert err["code"] == "not_found"


def test_full_session_over_websocket(client):
    with client.websocket_connect("/ws") as admin:
        expect(admin, "connected")
        admin.send_json({"event": "create_session", "puzzleCount": 1})
        sid = expect(admin, "session_created")["sessionId"]

        admin.send_json({
            "event": "update_puzzle",
            "sessionId": sid,
            "puzzleIndex": 0,
            "puzzle": {"position": START, "solutionLines": [{"moves": "e4 e5", "points": 100}], "timer": 60},
        })
        updated = expect(admin, "puzzle_updated")
        assert updated["puzzle"]["solutionLines"][0]["moves"] == ["e4", "e5"]

        with client.websocket_connect("/ws") as player:
            player_id = expect(player, "connected")["connectionId"]
            player.send_json({"event": "join_session", "sessionId": sid, "nickname": "alice"})
            joined = expect(player, "session_joined")
            assert joined["playerId"] == player_id
            expect(player, "player_joined")
            assert expect(admin, "player_joined")["nickname"] == "alice"

            admin.send_json({"event": "launch_puzzle", "sessionId": sid, "puzzleIndex": 0})
            launched = expect(admin, "puzzle_launched")
            assert launched["endTime"] == 61_000
            assert "solutionLines" not in launched["puzzle"]
            expect(player, "puzzle_launched")

            snap = client.get(f"/sessions/{sid}").json()
            assert snap["phase"] == "puzzle_active"
            assert [p["nickname"] for p in snap["players"]] == ["alice"]

            player.send_json({"event": "submit_move", "sessionId": sid, "move": "e4"})
            step = expect(player, "puzzle_step_success")
            assert step["opponentMove"] == "e5"
            assert step["nextStepExpected"] is False
            expect(player, "player_completed_sequence")
            expect(admin, "player_completed_sequence")
            assert expect(admin, "admin_player_progress")["status"] == "completed"

            admin.send_json({"event": "reveal_results", "sessionId": sid})
            revealed = expect(admin, "results_revealed")
            assert revealed["perPlayerResults"][player_id]["pointsAwarded"] == 200
            assert revealed["leaderboard"] == [{"playerId": player_id, "nickname": "alice", "score": 200.0}]
            expect(player, "results_revealed")

            admin.send_json({"event": "next_puzzle", "sessionId": sid})
            expect(admin, "session_completed")
            expect(player, "session_completed")

        left = expect(admin, "player_left")
        assert left["players"] == []
        assert client.get(f"/sessions/{sid}").json()["phase"] == "concluded"


def test_cli_runs_uvicorn_with_arguments(monkeypatch):
    from puzzle_svc import main as entry

    calls = []
    monkeypatch.setattr(entry.uvicorn, "run", lambda target, **kw: calls.append((target, kw)))
    entry.main(["--host", "127.0.0.1", "--port", "8123", "--log-level", "warning"])
    assert calls == [("puzzle_svc.app:app", {"host": "127.0.0.1", "port": 8123, "log_level": "warning"})]
