import json

import pytest

from repcount.runtime.cli import main
from repcount.data.db import SQLiteRecorder

from conftest import left_arm_at


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "cli.db"
    monkeypatch.setenv("REPCOUNT_DB_PATH", str(path))
    return path


def _write_frames(path, angles):
    with path.open("w") as fh:
        for a in angles:
            fh.write(json.dumps([[j.x, j.y, j.visibility] for j in left_arm_at(a)]) + "\n")


def test_replay_counts_and_saves(tmp_path, db_path, capsys):
    frames = tmp_path / "curls.jsonl"
    _write_frames(frames, [170] * 16 + ([30] * 16 + [170] * 16) * 2)

    assert main(["replay", str(frames), "--exercise", "bicep_curl"]) == 0
    out = capsys.readouterr().out
    assert "rep 2" in out
    assert "bicep_curl: 2 reps" in out
    assert [s.reps for s in SQLiteRecorder(db_path).load_sessions()] == [2]

    assert main(["history"]) == 0
    assert "bicep_curl" in capsys.readouterr().out


def test_replay_no_save(tmp_path, db_path):
    frames = tmp_path / "curls.jsonl"
    _write_frames(frames, [170] * 16 + [30] * 16 + [170] * 16)
    assert main(["replay", str(frames), "--no-save"]) == 0
    assert not db_path.exists()


def test_bad_replay_file_exits_2(tmp_path, db_path, capsys):
    frames = tmp_path / "bad.jsonl"
    frames.write_text("{not json\n")
    assert main(["replay", str(frames), "--no-save"]) == 2
    assert "invalid JSON" in capsys.readouterr().err


def test_replay_saves_reps_before_bad_line(tmp_path, db_path, capsys):
    frames = tmp_path / "curls.jsonl"
    _write_frames(frames, [170] * 16 + ([30] * 16 + [170] * 16) * 2)
    with frames.open("a") as fh:
        fh.write("{broken\n")

    assert main(["replay", str(frames), "--exercise", "bicep_curl"]) == 2
    captured = capsys.readouterr()
    assert "rep 2" in captured.out
    assert "invalid JSON" in captured.err
    assert [s.reps for s in SQLiteRecorder(db_path).load_sessions()] == [2]


def test_history_clear(tmp_path, db_path, capsys):
    frames = tmp_path / "curls.jsonl"
    _write_frames(frames, [170] * 16 + [30] * 16 + [170] * 16)
    assert main(["replay", str(frames)]) == 0
    assert main(["history", "--clear"]) == 0
    assert "history cleared" in capsys.readouterr().out
    assert SQLiteRecorder(db_path).load_sessions() == []


def test_bad_log_level_exits_2(db_path, monkeypatch, capsys):
    monkeypatch.setenv("REPCOUNT_LOG_LEVEL", "LOUD")
    assert main(["history"]) == 2
    assert "REPCOUNT_LOG_LEVEL" in capsys.readouterr().err
