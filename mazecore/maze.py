"""Maze grid model and generator.

The grid is an occupancy array (1 = wall, 0 = path) laid out on a lattice
where odd (x, y) coordinates are rooms and even coordinates are the walls or
corridors between them. The goal hole always sits on the centre cell.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from pymunk import Vec2d

from . import constants
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

WALL = 1
PATH = 0

# 2-step moves between rooms; the cell halfway is the corridor
CARVE_DIRECTIONS: Tuple[Tuple[int, int], ...] = ((0, -2), (0, 2), (-2, 0), (2, 0))


class GridCoordinate(NamedTuple):
    x: int
    y: int


@dataclass(frozen=True, eq=False)
class MazeGrid:
    """Read-only square grid of WALL/PATH cells, indexed ``cells[y, x]``."""

    cells: np.ndarray
    width: int
    height: int

    @classmethod
    def from_array(cls, cells: np.ndarray) -> "MazeGrid":
        grid = np.array(cells, dtype=np.int8, copy=True)
        if grid.ndim != 2:
            raise ConfigurationError(f"maze grid must be 2-dimensional, got shape {grid.shape}")
        grid.flags.writeable = False
        height, width = grid.shape
        return cls(cells=grid, width=width, height=height)

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> "MazeGrid":
        """Build a grid from ASCII rows, ``#`` for walls and anything else for paths."""
        return cls.from_array(np.array([[WALL if ch == "#" else PATH for ch in row] for row in rows]))

    @property
    def center(self) -> GridCoordinate:
        return GridCoordinate(self.width // 2, self.height // 2)

    @property
    def half_width(self) -> float:
        return (self.width - 1) / 2

    @property
    def half_height(self) -> float:
        return (self.height - 1) / 2

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def is_wall(self, x: int, y: int) -> bool:
        # Anything off the board counts as wall so the marble can never leave it
        if not self.in_bounds(x, y):
            return True
        return bool(self.cells[y, x] == WALL)

    def is_path(self, x: int, y: int) -> bool:
        return not self.is_wall(x, y)

    def to_world(self, coord: Tuple[int, int]) -> Vec2d:
        x, y = coord
        return Vec2d(x - self.half_width, y - self.half_height)

    def to_grid(self, position: Tuple[float, float]) -> GridCoordinate:
        px, pz = position
        return GridCoordinate(int(round(px + self.half_width)), int(round(pz + self.half_height)))

    def path_cells(self) -> Iterable[GridCoordinate]:
        # Row-major, matching the order a scan over cells[y][x] visits them
        for y, x in zip(*np.nonzero(self.cells == PATH)):
            yield GridCoordinate(int(x), int(y))

    def render(self, marks: Optional[dict] = None) -> str:
        """ASCII picture of the grid; ``marks`` maps coordinates to single characters."""
        marks = marks or {}
        lines = []
        for y in range(self.height):
            line = []
            for x in range(self.width):
                if (x, y) in marks:
                    line.append(marks[(x, y)])
                else:
                    line.append("#" if self.cells[y, x] == WALL else " ")
            lines.append("".join(line))
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.render({tuple(self.center): "O"})


def normalize_size(size: int) -> int:
    size = int(size)
    if size < constants.MIN_MAZE_SIZE:
        raise ConfigurationError(
            f"maze size must be at least {constants.MIN_MAZE_SIZE} to carve and clear the goal, got {size}"
        )
    return size + 1 if size % 2 == 0 else size


def carve(grid: np.ndarray, rng: random.Random, start: Tuple[int, int] = (1, 1)) -> None:
    """Carve a perfect maze in place with an iterative depth-first backtracker."""
    size = grid.shape[0]
    sx, sy = start
    grid[sy, sx] = PATH

    def shuffled() -> List[Tuple[int, int]]:
        dirs = list(CARVE_DIRECTIONS)
        rng.shuffle(dirs)
        # Popped from the end, so reverse to try them in shuffled order
        dirs.reverse()
        return dirs

    stack = [(sx, sy, shuffled())]
    while stack:
        x, y, pending = stack[-1]
        if not pending:
            stack.pop()
            continue
        dx, dy = pending.pop()
        nx, ny = x + dx, y + dy
        if 0 < nx < size - 1 and 0 < ny < size - 1 and grid[ny, nx] == WALL:
            grid[y + dy // 2, x + dx // 2] = PATH
            grid[ny, nx] = PATH
            stack.append((nx, ny, shuffled()))


def add_loops(grid: np.ndarray, loop_chance: float, rng: random.Random) -> int:
    # Open walls that already touch two paths; this only ever adds edges
    size = grid.shape[0]
    opened = 0
    for y in range(1, size - 1):
        for x in range(1, size - 1):
            if grid[y, x] == WALL and rng.random() < loop_chance:
                neighbours = (grid[y - 1, x], grid[y + 1, x], grid[y, x - 1], grid[y, x + 1])
                if sum(1 for v in neighbours if v == PATH) >= 2:
                    grid[y, x] = PATH
                    opened += 1
    return opened


def clear_goal(grid: np.ndarray) -> None:
    center = grid.shape[0] // 2
    grid[center - 1:center + 2, center - 1:center + 2] = PATH


def generate(size: int, loop_chance: float = 0.0, rng: Optional[random.Random] = None) -> MazeGrid:
    """Generate a maze of ``size`` x ``size`` cells (bumped to the next odd size).

    ``loop_chance`` > 0 opens extra walls to create alternative routes.
    Pass a seeded ``random.Random`` as ``rng`` for reproducible mazes.
    """
    actual = normalize_size(size)
    rng = rng if rng is not None else random.Random()

    grid = np.full((actual, actual), WALL, dtype=np.int8)
    carve(grid, rng)
    opened = add_loops(grid, loop_chance, rng) if loop_chance > 0 else 0
    clear_goal(grid)

    logger.debug("generated %dx%d maze (loop_chance=%.2f, %d loops opened)", actual, actual, loop_chance, opened)
    return MazeGrid.from_array(grid)
