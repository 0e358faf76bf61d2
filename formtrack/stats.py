"""Exercise totals kept on behalf of the user.

The analytical core only talks to these three methods; where the totals end up
is the store's business. Planks are stored in seconds.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Dict, Optional

logger = logging.getLogger(__name__)


def default_stats() -> Dict[str, float]:
    return {"pushups": 0, "squats": 0, "planks": 0.0}


class InMemoryStatsStore:
    def __init__(self, stats: Optional[Dict[str, float]] = None) -> None:
        self._stats = default_stats()
        if stats:
            self._stats.update(stats)

    def get_user_stats(self) -> Dict[str, float]:
        return dict(self._stats)

    def save_user_stats(self, stats: Dict[str, float]) -> None:
        self._stats = dict(stats)

    def add_exercise_count(self, exercise: str, amount: float) -> None:
        stats = self.get_user_stats()
        if exercise not in stats:
            logger.warning("Ignoring count for unknown exercise %s", exercise)
            return
        stats[exercise] += amount
        self.save_user_stats(stats)


class JsonStatsStore(InMemoryStatsStore):
    """Stats persisted to a JSON file on every save."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(self.load())

    def load(self) -> Dict[str, float]:
        if not os.path.exists(self.path):
            return default_stats()
        with open(self.path, "r", encoding="utf-8") as file:
            stats = json.load(file)
        merged = default_stats()
        merged.update(stats)
        return merged

    def save_user_stats(self, stats: Dict[str, float]) -> None:
        super().save_user_stats(stats)
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as file:
            json.dump(self._stats, file, indent=2)
