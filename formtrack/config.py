from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

EXERCISES = ("pushups", "squats", "planks")


@dataclass
class PushupConfig:
    elbow_angle_threshold: float = 120.0
    elbow_up_angle: float = 110.0
    straight_arm_angle: float = 140.0
    min_straighten_angle: float = 100.0
    symmetry_threshold: float = 15.0
    alignment_threshold: float = 0.03
    min_shoulder_drop: float = 0.02
    down_drop_factor: float = 2.0
    up_drop_factor: float = 0.5


@dataclass
class SquatConfig:
    knee_angle_threshold: float = 120.0
    standing_knee_angle: float = 150.0
    hip_drop_threshold: float = 0.15
    symmetry_threshold: float = 20.0


@dataclass
class PlankConfig:
    alignment_threshold: float = 0.03
    horizontal_threshold: float = 0.2


@dataclass
class HandsConfig:
    floor_offset: float = 0.15


@dataclass
class SmoothingConfig:
    factor: float = 0.7


@dataclass
class SessionConfig:
    pushup: PushupConfig = field(default_factory=PushupConfig)
    squat: SquatConfig = field(default_factory=SquatConfig)
    plank: PlankConfig = field(default_factory=PlankConfig)
    hands: HandsConfig = field(default_factory=HandsConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    visibility_threshold: float = 0.5
    tick_interval_s: float = 0.1

    def __post_init__(self) -> None:
        if not 0.0 <= self.smoothing.factor < 1.0:
            raise ValueError(f"smoothing.factor must be in [0, 1), got {self.smoothing.factor}")
        if self.tick_interval_s <= 0:
            raise ValueError(f"tick_interval_s must be positive, got {self.tick_interval_s}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionConfig":
        sections = {
            "pushup": PushupConfig,
            "squat": SquatConfig,
            "plank": PlankConfig,
            "hands": HandsConfig,
            "smoothing": SmoothingConfig,
        }
        scalars = {item.name for item in fields(cls)} - set(sections)
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key in sections:
                kwargs[key] = _build_section(sections[key], value, key)
            elif key in scalars:
                kwargs[key] = value
            else:
                raise ValueError(f"Unknown config key: {key}")
        return cls(**kwargs)

    def config_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _build_section(section_cls, values: Dict[str, Any], name: str):
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{name}' must be an object")
    known = {item.name for item in fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{name}': {', '.join(sorted(unknown))}")
    return section_cls(**values)


def load_config(config_path: Optional[str] = None) -> SessionConfig:
    """Load a session config from JSON; defaults when no path is given."""
    if config_path is None:
        return SessionConfig()
    with open(config_path, "r", encoding="utf-8") as file:
        return SessionConfig.from_dict(json.load(file))
