"""Game lifecycle and the gameplay controller that drives the marble.

The lifecycle is a small transition table; the controller owns one round at
a time (maze, start, marble) and runs the physics on a fixed timestep so the
simulation does not depend on the frame rate it is rendered at.
"""
from __future__ import annotations

import logging
import random
from enum import Enum
from typing import Callable, List, Optional, Union

from . import constants
from .constants import Difficulty, DifficultyConfig
from .errors import IllegalTransitionError
from .marble import LEVEL, MarbleSimulator, TiltVector
from .maze import GridCoordinate, MazeGrid, generate
from .solver import select_start, solve
from .tilt_input import TiltInput, TiltKeys

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    START_MENU = "START_MENU"
    INTRO = "INTRO"
    PLAYING = "PLAYING"
    PAUSED = "PAUSED"
    VICTORY = "VICTORY"


class GameEvent(Enum):
    START = "start"
    INTRO_DONE = "intro_done"
    PAUSE = "pause"
    RESUME = "resume"
    VICTORY = "victory"
    RESET = "reset"
    MENU = "menu"


S = LifecycleState
E = GameEvent

TRANSITIONS = {
    (S.START_MENU, E.START): S.INTRO,
    (S.INTRO, E.INTRO_DONE): S.PLAYING,
    (S.PLAYING, E.PAUSE): S.PAUSED,
    (S.PAUSED, E.RESUME): S.PLAYING,
    (S.PLAYING, E.VICTORY): S.VICTORY,
    (S.INTRO, E.RESET): S.INTRO,
    (S.PLAYING, E.RESET): S.INTRO,
    (S.PAUSED, E.RESET): S.INTRO,
    (S.VICTORY, E.RESET): S.INTRO,
    (S.INTRO, E.MENU): S.START_MENU,
    (S.PLAYING, E.MENU): S.START_MENU,
    (S.PAUSED, E.MENU): S.START_MENU,
    (S.VICTORY, E.MENU): S.START_MENU,
}


def can_transition(state: LifecycleState, event: GameEvent) -> bool:
    return (state, event) in TRANSITIONS


def transition(state: LifecycleState, event: GameEvent) -> LifecycleState:
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise IllegalTransitionError(state, event) from None


class GameController:
    """Drives rounds: new maze per start/reset, intro timer, pause, autopilot, victory.

    ``update(dt)`` is called once per rendered frame with the elapsed wall
    clock time; it runs as many fixed ``DT`` physics ticks as that time covers.
    ``on_tick`` is called after every tick that stepped the marble.
    """

    def __init__(
        self,
        difficulty: Union[Difficulty, str] = Difficulty.MEDIUM,
        seed: Optional[int] = None,
        on_victory: Optional[Callable[[], None]] = None,
        intro_duration: float = constants.INTRO_DURATION,
        on_tick: Optional[Callable[[], None]] = None,
    ) -> None:
        self.difficulty = constants.get_difficulty(difficulty)
        self.rng = random.Random(seed)
        self.on_victory = on_victory
        self.intro_duration = intro_duration
        self.on_tick = on_tick

        self.state = LifecycleState.START_MENU
        self.maze: Optional[MazeGrid] = None
        self.start_cell: Optional[GridCoordinate] = None
        self.marble: Optional[MarbleSimulator] = None
        self.input = TiltInput()
        self.tilt = LEVEL
        self.keys = TiltKeys()
        self.pointer_tilt: Optional[TiltVector] = None
        self.intro_elapsed = 0.0
        self.accumulator = 0.0
        self.rounds = 0

    # ------------------------------------------------------------------
    @property
    def config(self) -> DifficultyConfig:
        return constants.DIFFICULTY_CONFIG[self.difficulty]

    @property
    def autopilot(self) -> bool:
        return self.marble is not None and self.marble.autopilot

    @property
    def path(self) -> List[GridCoordinate]:
        return list(self.marble.path) if self.marble is not None else []

    def _fire(self, event: GameEvent) -> None:
        previous = self.state
        self.state = transition(self.state, event)
        logger.debug("lifecycle %s -> %s (%s)", previous.name, self.state.name, event.value)

    def _new_round(self) -> None:
        cfg = self.config
        self.maze = generate(cfg.grid_size, cfg.loop_chance, rng=self.rng)
        self.start_cell = select_start(self.maze, rng=self.rng)
        self.marble = MarbleSimulator(
            self.maze, self.start_cell, cfg.gravity, cfg.friction, on_victory=self._handle_victory
        )
        self.input.reset()
        self.tilt = LEVEL
        self.pointer_tilt = None
        self.intro_elapsed = 0.0
        self.accumulator = 0.0
        self.rounds += 1
        logger.info(
            "round %d: %s maze %dx%d, start %s", self.rounds, self.difficulty.name, self.maze.width,
            self.maze.height, tuple(self.start_cell),
        )

    # ------------------------------------------------------------------
    def start(self, difficulty: Union[Difficulty, str, None] = None) -> None:
        if difficulty is not None:
            self.difficulty = constants.get_difficulty(difficulty)
        self._fire(GameEvent.START)
        self._new_round()

    def reset(self) -> None:
        self._fire(GameEvent.RESET)
        self._new_round()

    def to_menu(self) -> None:
        self._fire(GameEvent.MENU)
        if self.marble is not None:
            self.marble.disengage_autopilot()

    def toggle_pause(self) -> bool:
        """Flip between PLAYING and PAUSED; other states are left alone."""
        if self.state is LifecycleState.PLAYING:
            self._fire(GameEvent.PAUSE)
        elif self.state is LifecycleState.PAUSED:
            self._fire(GameEvent.RESUME)
            # Time spent paused must not turn into a burst of ticks
            self.accumulator = 0.0
        else:
            return False
        return True

    def engage_autopilot(self) -> bool:
        """Route the marble to the goal from its current cell. False if no route exists."""
        if self.state is not LifecycleState.PLAYING or self.marble is None:
            return False
        path = solve(self.maze, self.marble.cell())
        if not self.marble.engage_autopilot(path):
            logger.info("autopilot unavailable from %s", tuple(self.marble.cell()))
            return False
        logger.info("autopilot engaged: %d waypoints", len(path))
        return True

    def set_keys(self, keys: TiltKeys) -> None:
        self.keys = keys
        if keys.any:
            self.pointer_tilt = None

    def set_pointer(self, nx: float, ny: float) -> None:
        if self.state is LifecycleState.PLAYING and not self.autopilot:
            self.pointer_tilt = self.input.from_pointer(nx, ny)

    def _handle_victory(self) -> None:
        self.marble.disengage_autopilot()
        self._fire(GameEvent.VICTORY)
        if self.on_victory is not None:
            self.on_victory()

    # ------------------------------------------------------------------
    def tick(self) -> None:
        """One fixed physics tick in the current lifecycle state."""
        if self.state is LifecycleState.VICTORY:
            self.tilt = self.tilt.scaled(constants.VICTORY_TILT_DECAY)
            return
        if self.state is not LifecycleState.PLAYING:
            return
        if not self.autopilot:
            if self.pointer_tilt is not None and not self.keys.any:
                self.tilt = self.pointer_tilt
            else:
                self.tilt = self.input.update(self.keys)
        result = self.marble.step(self.tilt)
        self.tilt = result.tilt
        if self.on_tick is not None:
            self.on_tick()

    def update(self, dt: float) -> int:
        """Consume ``dt`` seconds of wall clock time; returns the physics ticks run."""
        if dt <= 0.0:
            return 0
        if self.state is LifecycleState.INTRO:
            self.intro_elapsed += dt
            if self.intro_elapsed >= self.intro_duration:
                self._finish_intro()
            return 0
        if self.state not in (LifecycleState.PLAYING, LifecycleState.VICTORY):
            return 0

        self.accumulator += dt
        ticks = 0
        while self.accumulator >= constants.DT and ticks < constants.MAX_SUBSTEPS:
            self.accumulator -= constants.DT
            self.tick()
            ticks += 1
        if ticks == constants.MAX_SUBSTEPS:
            # Drop the backlog rather than trying to catch up on a slow frame
            self.accumulator = min(self.accumulator, constants.DT)
        return ticks

    def _finish_intro(self) -> None:
        self._fire(GameEvent.INTRO_DONE)
        self.marble.activate()
        self.accumulator = 0.0

    def skip_intro(self) -> None:
        if self.state is LifecycleState.INTRO:
            self.intro_elapsed = self.intro_duration
            self._finish_intro()
