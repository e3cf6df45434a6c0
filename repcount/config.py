from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from repcount.common.errors import ConfigError
from repcount.counter.profiles import get_profile

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    db_path: Path = Path("./workout.db")
    default_exercise: str = "bicep_curl"
    visibility_min: float = 0.5
    smoothing_window: int = 5
    camera_index: int = 0
    log_level: str = "INFO"


def _num(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be {cast.__name__}, got {raw!r}") from None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the environment (seeded from .env when env is None)."""
    if env is None:
        load_dotenv()
        env = os.environ

    exercise = env.get("REPCOUNT_DEFAULT_EXERCISE") or Settings.default_exercise
    get_profile(exercise)  # raises UnknownExerciseError

    log_level = (env.get("REPCOUNT_LOG_LEVEL") or Settings.log_level).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"REPCOUNT_LOG_LEVEL must be a logging level name, got {log_level!r}")

    window = _num(env, "REPCOUNT_SMOOTHING_WINDOW", Settings.smoothing_window, int)
    if window < 1:
        raise ConfigError("REPCOUNT_SMOOTHING_WINDOW must be positive")

    return Settings(
        db_path=Path(env.get("REPCOUNT_DB_PATH") or Settings.db_path),
        default_exercise=exercise,
        visibility_min=_num(env, "REPCOUNT_VISIBILITY_MIN", Settings.visibility_min, float),
        smoothing_window=window,
        camera_index=_num(env, "REPCOUNT_CAMERA_INDEX", Settings.camera_index, int),
        log_level=log_level,
    )


def configure_logging(level: str = "INFO"):
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
