from pathlib import Path

import pytest

from repcount.common.errors import ConfigError, UnknownExerciseError
from repcount.config import Settings, load_settings


def test_defaults():
    assert load_settings({}) == Settings()


def test_overrides():
    s = load_settings({
        "REPCOUNT_DB_PATH": "/tmp/x.db",
        "REPCOUNT_DEFAULT_EXERCISE": "squat",
        "REPCOUNT_VISIBILITY_MIN": "0.7",
        "REPCOUNT_SMOOTHING_WINDOW": "3",
        "REPCOUNT_CAMERA_INDEX": "2",
        "REPCOUNT_LOG_LEVEL": "debug",
    })
    assert s.db_path == Path("/tmp/x.db")
    assert s.default_exercise == "squat"
    assert s.visibility_min == 0.7
    assert s.smoothing_window == 3
    assert s.camera_index == 2
    assert s.log_level == "DEBUG"


def test_bad_number():
    with pytest.raises(ConfigError, match="REPCOUNT_SMOOTHING_WINDOW"):
        load_settings({"REPCOUNT_SMOOTHING_WINDOW": "five"})
    with pytest.raises(ConfigError):
        load_settings({"REPCOUNT_SMOOTHING_WINDOW": "0"})


def test_unknown_default_exercise():
    with pytest.raises(UnknownExerciseError):
        load_settings({"REPCOUNT_DEFAULT_EXERCISE": "burpee"})


def test_reads_process_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)  # keep any developer .env out of the way
    monkeypatch.setenv("REPCOUNT_CAMERA_INDEX", "4")
    assert load_settings().camera_index == 4


def test_unknown_log_level():
    with pytest.raises(ConfigError, match="REPCOUNT_LOG_LEVEL"):
        load_settings({"REPCOUNT_LOG_LEVEL": "loud"})
    assert load_settings({"REPCOUNT_LOG_LEVEL": "warning"}).log_level == "WARNING"
