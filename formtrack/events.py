from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RepetitionCounted:
    exercise: str
    new_count: int


@dataclass(frozen=True)
class FormStatus:
    valid: bool
    reason: str


@dataclass(frozen=True)
class PlankElapsedUpdate:
    elapsed_ms: float
