import pytest
from fastapi.testclient import TestClient

from repcount.counter.session import RepSessionManager
from repcount.data.db import MemoryRecorder
from repcount.runtime.server import app, get_manager

from conftest import left_arm_at


def _frame(angle, visibility=1.0):
    return {
        "type": "frame",
        "landmarks": [{"x": j.x, "y": j.y, "visibility": j.visibility} for j in left_arm_at(angle, visibility)],
    }


@pytest.fixture
def manager():
    return RepSessionManager(recorder=MemoryRecorder())


@pytest.fixture
def client(manager):
    app.dependency_overrides[get_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_exercises(client):
    body = client.get("/exercises").json()
    assert [e["key"] for e in body] == ["bicep_curl", "squat", "pushup", "shoulder_press"]
    assert body[0]["joints"] == [11, 13, 15]
    assert "elbow_drift" in body[0]["form_rules"]


def test_select_and_current(client):
    assert client.get("/sessions/current").json() == {
        "exercise": "bicep_curl", "stage": None, "count": 0, "angle": 0,
    }
    r = client.post("/exercise/select", json={"exercise": "squat"})
    assert r.json() == {"exercise": "squat", "changed": True}
    r = client.post("/exercise/select", json={"exercise": "squat"})
    assert r.json()["changed"] is False


def test_select_unknown_is_404(client, manager):
    r = client.post("/exercise/select", json={"exercise": "burpee"})
    assert r.status_code == 404
    assert manager.exercise == "bicep_curl"


def test_cycle(client):
    assert client.post("/exercise/cycle", params={"step": -1}).json() == {"exercise": "shoulder_press"}


def test_reset_and_history(client, manager):
    for a in [170] * 16 + [30] * 16 + [170] * 16:
        manager.process_frame(left_arm_at(a))
    rec = client.post("/counter/reset").json()["record"]
    assert (rec["exercise"], rec["reps"]) == ("bicep_curl", 1)
    assert client.post("/counter/reset").json() == {"record": None}

    sessions = client.get("/sessions").json()
    assert len(sessions) == 1 and sessions[0]["reps"] == 1
    assert client.get("/sessions", params={"exercise": "squat"}).json() == []
    assert client.get("/sessions/totals").json() == {"bicep_curl": 1}


def test_history_unavailable_without_recorder():
    app.dependency_overrides[get_manager] = lambda: RepSessionManager()
    try:
        assert TestClient(app).get("/sessions").status_code == 501
    finally:
        app.dependency_overrides.clear()


def test_ws_frames(client, manager):
    with client.websocket_connect("/ws/frames") as ws:
        ws.send_json(_frame(100))
        out = ws.receive_json()
        assert out["type"] == "frame"
        assert out["counted"] is True
        assert out["angle"] == 100
        assert out["stage"] is None and out["rep_count"] == 0

        ws.send_json(_frame(100, visibility=0.3))
        out = ws.receive_json()
        assert out["counted"] is False

        ws.send_text('{"type": "frame", "landmarks": [["a", 1]]}')
        assert ws.receive_json()["type"] == "error"
    assert len(manager.pipeline.smoother) == 1


def test_clear_history(client, manager):
    for a in [170] * 16 + [30] * 16 + [170] * 16:
        manager.process_frame(left_arm_at(a))
    client.post("/counter/reset")
    assert client.delete("/sessions").json() == {"cleared": 1}
    assert client.get("/sessions").json() == []
    assert client.get("/sessions/totals").json() == {}
