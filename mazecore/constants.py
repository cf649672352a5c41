"""Core simulation constants and difficulty presets.

These defaults are shared across headless and interactive runs. Physics
values are expressed per fixed tick (see ``DT``), distances in grid cells.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .errors import ConfigurationError

DT = 1 / 60               # Fixed physics timestep (seconds per tick)
MAX_SUBSTEPS = 5          # Upper bound on ticks consumed per update() call

MARBLE_RADIUS = 0.25      # Marble radius in cells
WALL_CLEARANCE = MARBLE_RADIUS * 0.7  # Gap kept between marble centre and a wall face
RESTITUTION = -0.35       # Velocity multiplier on a wall bounce
VICTORY_RADIUS = 0.38     # Distance to the hole that ends the round

MAX_TILT = 15 * (math.pi / 180)  # Board tilt limit in radians
MAX_AUTO_TILT = 0.25      # Autopilot tilt at full steering
STEER_GAIN = 6.0          # Autopilot proportional gain
WAYPOINT_REACH_SQ = 0.2   # Squared distance at which a waypoint counts as reached

TILT_SPEED = 0.02         # Keyboard tilt increment per tick
TILT_DECAY = 0.88         # Per-tick recentering of an axis with no key held
VICTORY_TILT_DECAY = 0.9  # Board levelling after the marble drops
DEADZONE = 0.05           # Mouse deadzone as a fraction of half the window

INTRO_DURATION = 8.0      # Seconds of intro before play starts
MIN_MAZE_SIZE = 5
START_ATTEMPTS = 500
START_DISTANCE_RATIO = 0.4


class Difficulty(Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


@dataclass(frozen=True)
class DifficultyConfig:
    """Per-preset parameters fed to the generator and the marble step."""

    grid_size: int
    gravity: float
    friction: float
    loop_chance: float


DIFFICULTY_CONFIG = {
    Difficulty.EASY: DifficultyConfig(grid_size=15, gravity=0.012, friction=0.98, loop_chance=0.2),
    Difficulty.MEDIUM: DifficultyConfig(grid_size=25, gravity=0.016, friction=0.985, loop_chance=0.0),
    Difficulty.HARD: DifficultyConfig(grid_size=37, gravity=0.022, friction=0.99, loop_chance=0.0),
}


def get_difficulty(value: Union[Difficulty, str]) -> Difficulty:
    # Accept enum members or names like "easy" coming from the command line
    if isinstance(value, Difficulty):
        return value
    try:
        return Difficulty[str(value).upper()]
    except KeyError:
        names = ", ".join(d.name.lower() for d in Difficulty)
        raise ConfigurationError(f"unknown difficulty {value!r} (expected one of: {names})") from None
