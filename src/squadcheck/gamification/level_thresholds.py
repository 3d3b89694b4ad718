"""Level thresholds and computation.

Cumulative XP needed for each level. Titles change every few levels; the
starting title is never unlocked as a reward.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

STARTING_TITLE = "Rookie"

LEVEL_THRESHOLDS: list[dict] = [
    {"level": 1, "title": "Rookie", "xp": 0},
    {"level": 2, "title": "Rookie", "xp": 50},
    {"level": 3, "title": "Rookie", "xp": 120},
    {"level": 4, "title": "Regular", "xp": 200},
    {"level": 5, "title": "Regular", "xp": 300},
    {"level": 6, "title": "Regular", "xp": 420},
    {"level": 7, "title": "Committed", "xp": 560},
    {"level": 8, "title": "Committed", "xp": 720},
    {"level": 9, "title": "Committed", "xp": 900},
    {"level": 10, "title": "Dedicated", "xp": 1100},
    {"level": 11, "title": "Dedicated", "xp": 1350},
    {"level": 12, "title": "Dedicated", "xp": 1650},
    {"level": 13, "title": "Veteran", "xp": 2000},
    {"level": 14, "title": "Veteran", "xp": 2400},
    {"level": 15, "title": "Veteran", "xp": 2850},
    {"level": 16, "title": "Elite", "xp": 3350},
    {"level": 17, "title": "Elite", "xp": 3900},
    {"level": 18, "title": "Elite", "xp": 4500},
    {"level": 19, "title": "Master", "xp": 5150},
    {"level": 20, "title": "Legend", "xp": 5850},
]


@dataclass(frozen=True)
class LevelInfo:
    level: int
    title: str


def level_from_xp(xp: int) -> LevelInfo:
    """Highest level whose threshold is at or below ``xp``."""
    current = LEVEL_THRESHOLDS[0]
    for entry in LEVEL_THRESHOLDS:
        if xp >= entry["xp"]:
            current = entry
        else:
            break
    return LevelInfo(level=current["level"], title=current["title"])


def next_level_xp(level: int) -> int:
    """XP threshold of the next level; the top threshold once at max level."""
    for entry in LEVEL_THRESHOLDS:
        if entry["level"] > level:
            return entry["xp"]
    return LEVEL_THRESHOLDS[-1]["xp"]


def level_title_id(title: str) -> str:
    """Selectable-title id for a level title, e.g. ``level_committed``."""
    return "level_" + re.sub(r"[^a-z0-9]+", "_", title.lower()).strip("_")
