"""Start selection and shortest-path search over a generated maze."""
from __future__ import annotations

import logging
import math
import random
from collections import deque
from typing import Dict, List, Optional, Tuple

from . import constants
from .errors import ConfigurationError
from .maze import GridCoordinate, MazeGrid

logger = logging.getLogger(__name__)

NEIGHBOURS: Tuple[Tuple[int, int], ...] = ((0, 1), (0, -1), (1, 0), (-1, 0))


def distance_to_center(grid: MazeGrid, x: int, y: int) -> float:
    cx, cy = grid.center
    return math.hypot(x - cx, y - cy)


def select_start(grid: MazeGrid, rng: Optional[random.Random] = None) -> GridCoordinate:
    """Pick a room cell far from the goal.

    Random odd-coordinate draws are accepted when they are open and at least
    ``START_DISTANCE_RATIO * width`` from the centre. If none qualifies the
    furthest open cell is returned instead, so the result is never a wall.
    """
    rng = rng if rng is not None else random.Random()
    # Rooms of the carving lattice sit on odd coordinates
    candidates = list(range(1, grid.width - 1, 2))
    min_distance = grid.width * constants.START_DISTANCE_RATIO

    if candidates:
        for _ in range(constants.START_ATTEMPTS):
            x = rng.choice(candidates)
            y = rng.choice(candidates)
            if grid.is_path(x, y) and distance_to_center(grid, x, y) >= min_distance:
                return GridCoordinate(x, y)

    best: Optional[GridCoordinate] = None
    best_distance = -1.0
    for cell in grid.path_cells():
        d = distance_to_center(grid, cell.x, cell.y)
        if d > best_distance:
            best, best_distance = cell, d
    if best is None:
        raise ConfigurationError("maze has no open cell to start from")

    logger.debug("no start at distance >= %.1f found, falling back to furthest cell %s", min_distance, best)
    return best


def solve(grid: MazeGrid, start: Tuple[int, int]) -> List[GridCoordinate]:
    """Breadth-first route from ``start`` to the centre.

    The returned list excludes ``start`` and ends on the centre cell. It is
    empty when ``start`` already is the centre, and also when the centre
    cannot be reached; callers treat that as "no autopilot".
    """
    start = GridCoordinate(int(start[0]), int(start[1]))
    goal = grid.center
    if not grid.in_bounds(*start):
        return []
    if start == goal:
        return []

    parents: Dict[GridCoordinate, Optional[GridCoordinate]] = {start: None}
    queue = deque([start])
    while queue:
        cell = queue.popleft()
        if cell == goal:
            break
        for dx, dy in NEIGHBOURS:
            nxt = GridCoordinate(cell.x + dx, cell.y + dy)
            if nxt in parents or grid.is_wall(nxt.x, nxt.y):
                continue
            parents[nxt] = cell
            queue.append(nxt)
    else:
        return []

    route: List[GridCoordinate] = []
    node: Optional[GridCoordinate] = goal
    while node is not None and node != start:
        route.append(node)
        node = parents[node]
    route.reverse()
    return route


def graph_distance(grid: MazeGrid, start: Tuple[int, int], goal: Tuple[int, int]) -> Optional[int]:
    """Number of moves between two cells, or ``None`` if they are not connected."""
    start = GridCoordinate(*start)
    goal = GridCoordinate(*goal)
    seen = {start: 0}
    queue = deque([start])
    while queue:
        cell = queue.popleft()
        if cell == goal:
            return seen[cell]
        for dx, dy in NEIGHBOURS:
            nxt = GridCoordinate(cell.x + dx, cell.y + dy)
            if nxt not in seen and grid.is_path(nxt.x, nxt.y):
                seen[nxt] = seen[cell] + 1
                queue.append(nxt)
    return None


def reachable_cells(grid: MazeGrid, start: Tuple[int, int]) -> set:
    """Flood fill of open cells connected to ``start``."""
    start = GridCoordinate(*start)
    seen = {start}
    queue = deque([start])
    while queue:
        cell = queue.popleft()
        for dx, dy in NEIGHBOURS:
            nxt = GridCoordinate(cell.x + dx, cell.y + dy)
            if nxt not in seen and grid.is_path(nxt.x, nxt.y):
                seen.add(nxt)
                queue.append(nxt)
    return seen
