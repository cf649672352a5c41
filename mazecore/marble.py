"""Marble physics: tilt-driven rolling, grid collision, victory and autopilot.

The physics is a point mass on a tilted plane. Gravity is resolved through
the two tilt angles, friction damps both axes exponentially and walls are
resolved per axis against the cell ahead of the marble. ``step`` is a pure
function over ``MarbleState``; ``MarbleSimulator`` owns one marble for a
round and turns the ``won`` flag into a one-shot victory callback.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

from pymunk import Vec2d

from . import constants
from .maze import GridCoordinate, MazeGrid
from .solver import solve

logger = logging.getLogger(__name__)


class MarblePhase(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    FALLING = "falling"


class TiltVector(NamedTuple):
    """Board tilt in radians: pitch rolls the marble along z, roll along x."""

    pitch: float = 0.0
    roll: float = 0.0

    def clamped(self, limit: float = constants.MAX_TILT) -> "TiltVector":
        return TiltVector(clamp(self.pitch, -limit, limit), clamp(self.roll, -limit, limit))

    def scaled(self, factor: float) -> "TiltVector":
        return TiltVector(self.pitch * factor, self.roll * factor)


LEVEL = TiltVector(0.0, 0.0)


@dataclass(frozen=True)
class MarbleState:
    """Position and velocity in world units; ``Vec2d.y`` carries the world z axis."""

    position: Vec2d
    velocity: Vec2d = Vec2d(0.0, 0.0)
    phase: MarblePhase = MarblePhase.IDLE
    path_index: int = 0

    @classmethod
    def at_cell(cls, grid: MazeGrid, cell: Tuple[int, int], phase: MarblePhase = MarblePhase.IDLE) -> "MarbleState":
        return cls(position=grid.to_world(cell), phase=phase)

    @property
    def falling(self) -> bool:
        return self.phase is MarblePhase.FALLING

    def cell(self, grid: MazeGrid) -> GridCoordinate:
        return grid.to_grid(self.position)


class StepResult(NamedTuple):
    state: MarbleState
    tilt: TiltVector
    won: bool = False
    bounced: bool = False


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def _waypoint(grid: MazeGrid, path: Sequence, index: int) -> Optional[Vec2d]:
    # Bad waypoints (wrong shape, off the board, inside a wall) are skipped by the caller
    try:
        x, y = path[index]
        x, y = int(x), int(y)
    except (TypeError, ValueError, IndexError):
        return None
    if grid.is_wall(x, y):
        return None
    return grid.to_world((x, y))


def steer(state: MarbleState, grid: MazeGrid, path: Sequence) -> Tuple[Optional[TiltVector], int]:
    """Proportional steering toward the waypoint under the path cursor.

    Returns the synthetic tilt (``None`` when no usable waypoint is left) and
    the updated cursor. Reached waypoints are dropped, except the last one
    which is tracked until the marble drops into the hole.
    """
    index = state.path_index
    last = len(path) - 1
    while 0 <= index <= last:
        target = _waypoint(grid, path, index)
        if target is None:
            index += 1
            continue
        dx = target.x - state.position.x
        dz = target.y - state.position.y
        if dx * dx + dz * dz < constants.WAYPOINT_REACH_SQ and index < last:
            index += 1
            continue
        pitch = clamp(dz * constants.STEER_GAIN, -1.0, 1.0) * constants.MAX_AUTO_TILT
        roll = -clamp(dx * constants.STEER_GAIN, -1.0, 1.0) * constants.MAX_AUTO_TILT
        return TiltVector(pitch, roll), index
    return None, index


def resolve_axis(grid: MazeGrid, pos: float, cand: float, vel: float, cell: GridCoordinate,
                 axis: int) -> Tuple[float, float, bool]:
    """Move one axis from ``pos`` to ``cand`` unless the cell ahead blocks it.

    ``axis`` is 0 for x and 1 for z. Returns (new position, new velocity, bounced).
    """
    direction = _sign(vel)
    if direction == 0:
        return pos, vel, False
    if axis == 0:
        ahead_blocked = grid.is_wall(cell.x + direction, cell.y)
        cell_center = cell.x - grid.half_width
    else:
        ahead_blocked = grid.is_wall(cell.x, cell.y + direction)
        cell_center = cell.y - grid.half_height
    if ahead_blocked:
        limit = cell_center + direction * (0.5 - constants.WALL_CLEARANCE)
        if (cand - limit) * direction > 0:
            return limit, vel * constants.RESTITUTION, True
    return cand, vel, False


def step(
    state: MarbleState,
    tilt: TiltVector,
    grid: MazeGrid,
    gravity: float,
    friction: float,
    path: Sequence = (),
) -> StepResult:
    """Advance the marble by one tick.

    ``path`` engages the autopilot: its steering replaces ``tilt`` for this
    tick. Outside the ACTIVE phase the state is returned untouched.
    """
    if state.phase is not MarblePhase.ACTIVE:
        return StepResult(state, tilt)

    path_index = state.path_index
    if path:
        auto_tilt, path_index = steer(state, grid, path)
        if auto_tilt is not None:
            tilt = auto_tilt
    tilt = TiltVector(*tilt).clamped()

    vx = (state.velocity.x + math.sin(-tilt.roll) * gravity) * friction
    vz = (state.velocity.y + math.sin(tilt.pitch) * gravity) * friction

    px, pz = state.position.x, state.position.y
    bounced_x = bounced_z = False

    # x first, then z from whichever cell the x move ended in
    nx, vx, bounced_x = resolve_axis(grid, px, px + vx, vx, grid.to_grid((px, pz)), 0)
    nz, vz, bounced_z = resolve_axis(grid, pz, pz + vz, vz, grid.to_grid((nx, pz)), 1)

    landed = grid.to_grid((nx, nz))
    if grid.is_wall(landed.x, landed.y):
        # Move skipped past a corner into a wall: discard it and stop the marble
        nx, nz = px, pz
        vx = vz = 0.0

    position = Vec2d(nx, nz)
    if nx * nx + nz * nz < constants.VICTORY_RADIUS ** 2:
        final = MarbleState(position, Vec2d(0.0, 0.0), MarblePhase.FALLING, path_index)
        return StepResult(final, tilt, won=True, bounced=bounced_x or bounced_z)

    new_state = replace(state, position=position, velocity=Vec2d(vx, vz), path_index=path_index)
    return StepResult(new_state, tilt, bounced=bounced_x or bounced_z)


class MarbleSimulator:
    """One marble for one round.

    Holds the current state, the autopilot route and the victory callback.
    A new round gets a new simulator; a falling marble never moves again.

    With ``replan`` on, a marble that overshoots off its route (into a side
    branch past a junction) gets a fresh route from the cell it is in, so the
    steering always chases a waypoint it can reach in a straight line.
    """

    def __init__(
        self,
        grid: MazeGrid,
        start: Tuple[int, int],
        gravity: float,
        friction: float,
        on_victory: Optional[Callable[[], None]] = None,
        replan: bool = True,
    ) -> None:
        self.grid = grid
        self.gravity = gravity
        self.friction = friction
        self.on_victory = on_victory
        self.replan = replan
        self.state = MarbleState.at_cell(grid, start)
        self.path: List[GridCoordinate] = []
        self.tilt = LEVEL
        self.ticks = 0
        self.bounces = 0
        self.replans = 0
        self._route_origin: Optional[GridCoordinate] = None
        self._victory_fired = False

    @property
    def phase(self) -> MarblePhase:
        return self.state.phase

    @property
    def position(self) -> Vec2d:
        return self.state.position

    @property
    def autopilot(self) -> bool:
        return bool(self.path)

    def cell(self) -> GridCoordinate:
        return self.state.cell(self.grid)

    def activate(self) -> None:
        if self.state.phase is MarblePhase.IDLE:
            self.state = replace(self.state, phase=MarblePhase.ACTIVE)

    def engage_autopilot(self, path: Sequence[Tuple[int, int]]) -> bool:
        if not path:
            return False
        self.path = list(path)
        self._route_origin = self.cell()
        self.state = replace(self.state, path_index=0)
        return True

    def disengage_autopilot(self) -> None:
        self.path = []
        self._route_origin = None

    def _keep_on_route(self) -> None:
        # On route means sitting in the waypoint being chased or the one before it
        index = min(self.state.path_index, len(self.path) - 1)
        previous = self.path[index - 1] if index > 0 else self._route_origin
        cell = self.cell()
        if cell == self.path[index] or cell == previous:
            return
        path = solve(self.grid, cell)
        if path:
            logger.debug("marble left its route at %s, replanning %d waypoints", tuple(cell), len(path))
            self.replans += 1
            self.engage_autopilot(path)

    def step(self, tilt: TiltVector = LEVEL) -> StepResult:
        if self.path and self.replan and self.state.phase is MarblePhase.ACTIVE:
            self._keep_on_route()
        result = step(self.state, tilt, self.grid, self.gravity, self.friction, self.path)
        if self.state.phase is MarblePhase.ACTIVE:
            self.ticks += 1
        self.state = result.state
        self.tilt = result.tilt
        if result.bounced:
            self.bounces += 1
        if result.won and not self._victory_fired:
            self._victory_fired = True
            logger.info("marble reached the goal after %d ticks", self.ticks)
            if self.on_victory is not None:
                self.on_victory()
        return result
