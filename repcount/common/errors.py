from __future__ import annotations


class RepCountError(Exception):
    """Base class for errors raised by the rep counter."""


class UnknownExerciseError(RepCountError, KeyError):
    def __init__(self, exercise: str):
        super().__init__(exercise)
        self.exercise = exercise

    def __str__(self) -> str:
        return f"unknown exercise: {self.exercise!r}"


class ConfigError(RepCountError, ValueError):
    pass


class FrameFormatError(RepCountError, ValueError):
    pass
