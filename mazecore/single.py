"""Single round runner (headless or interactive).

Headless runs generate a maze, pick a start, hand the marble to the
autopilot and step the physics until it drops into the hole, logging every
tick. Interactive runs open a top-down pygame window driven by
``GameController`` so the board can be played by hand.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import pygame

from . import constants
from .constants import Difficulty
from .game import GameController, LifecycleState
from .marble import LEVEL, MarbleSimulator, MarblePhase, TiltVector
from .maze import GridCoordinate, MazeGrid, generate
from .solver import select_start, solve
from .tilt_input import TiltKeys

DEFAULT_MAX_STEPS = 60 * 60 * 5  # five simulated minutes


@dataclass
class SimulationResult:
    """Container for the output of a single simulation run."""

    time_to_finish: Optional[float]
    physics_log: List[Dict[str, Any]]
    won: bool
    steps: int
    start: Optional[GridCoordinate]
    path_length: int
    bounces: int
    maze: Optional[MazeGrid]
    seed: Optional[int] = None


def log_frame(
    physics_log: List[Dict[str, Any]],
    time_elapsed: float,
    marble: MarbleSimulator,
    tilt: TiltVector,
) -> None:
    # Capture kinematics and steering for the current tick
    x, z = marble.position
    vx, vz = marble.state.velocity
    cell = marble.cell()
    physics_log.append({
        "t": time_elapsed,
        "x": x,
        "z": z,
        "vx": vx,
        "vz": vz,
        "speed": math.sqrt(vx * vx + vz * vz),
        "pitch": tilt.pitch,
        "roll": tilt.roll,
        "cell": (cell.x, cell.y),
        "path_index": marble.state.path_index,
        "falling": marble.state.falling,
    })


class RoundRecorder:
    """Per-tick log of an interactive round, hooked into ``GameController.on_tick``.

    Every tick advances the clock; frames are kept until ``max_steps`` are
    logged, after which the round plays on unrecorded.
    """

    def __init__(self, game: GameController, max_steps: int = DEFAULT_MAX_STEPS) -> None:
        self.game = game
        self.max_steps = max_steps
        self.physics_log: List[Dict[str, Any]] = []
        self.time_elapsed = 0.0
        self.time_to_finish: Optional[float] = None
        self.ticks = 0
        game.on_tick = self.record

    def reset(self) -> None:
        self.physics_log = []
        self.time_elapsed = 0.0
        self.time_to_finish = None
        self.ticks = 0

    def record(self) -> None:
        self.ticks += 1
        self.time_elapsed += constants.DT
        if len(self.physics_log) < self.max_steps:
            log_frame(self.physics_log, self.time_elapsed, self.game.marble, self.game.tilt)
        if self.game.state is LifecycleState.VICTORY and self.time_to_finish is None:
            self.time_to_finish = self.time_elapsed

    def result(self, seed: Optional[int]) -> SimulationResult:
        game = self.game
        return SimulationResult(
            self.time_to_finish, self.physics_log, self.time_to_finish is not None, self.ticks,
            game.start_cell, len(game.path), game.marble.bounces if game.marble else 0, game.maze, seed,
        )


def build_round(difficulty: Difficulty, seed: Optional[int]) -> Tuple[MazeGrid, GridCoordinate]:
    cfg = constants.DIFFICULTY_CONFIG[difficulty]
    rng = random.Random(seed)
    maze = generate(cfg.grid_size, cfg.loop_chance, rng=rng)
    return maze, select_start(maze, rng=rng)


def run_headless(difficulty: Difficulty, seed: Optional[int], autopilot: bool, max_steps: int) -> SimulationResult:
    cfg = constants.DIFFICULTY_CONFIG[difficulty]
    maze, start = build_round(difficulty, seed)
    path = solve(maze, start) if autopilot else []

    won = False
    time_to_finish: Optional[float] = None
    physics_log: List[Dict[str, Any]] = []

    def victory():
        nonlocal won
        won = True

    marble = MarbleSimulator(maze, start, cfg.gravity, cfg.friction, on_victory=victory)
    marble.engage_autopilot(path)
    marble.activate()

    time_elapsed = 0.0
    steps = 0
    while steps < max_steps:
        result = marble.step(LEVEL)
        steps += 1
        time_elapsed += constants.DT
        log_frame(physics_log, time_elapsed, marble, result.tilt)
        if won:
            time_to_finish = time_elapsed
            break

    return SimulationResult(time_to_finish, physics_log, won, steps, start, len(path), marble.bounces, maze, seed)


# ---------------------------------------------------------------------------
# Interactive window
# ---------------------------------------------------------------------------
WALL_COLOR = (90, 60, 35)
FLOOR_COLOR = (200, 170, 120)
HOLE_COLOR = (15, 15, 15)
MARBLE_COLOR = (0, 136, 255)
PATH_COLOR = (255, 190, 40)


def read_keys() -> TiltKeys:
    pressed = pygame.key.get_pressed()
    return TiltKeys(
        up=pressed[pygame.K_w] or pressed[pygame.K_UP],
        down=pressed[pygame.K_s] or pressed[pygame.K_DOWN],
        left=pressed[pygame.K_a] or pressed[pygame.K_LEFT],
        right=pressed[pygame.K_d] or pressed[pygame.K_RIGHT],
    )


def draw_board(screen, game: GameController, cell_px: int, offset: Tuple[int, int]) -> None:
    maze = game.maze
    ox, oy = offset
    for y in range(maze.height):
        for x in range(maze.width):
            color = WALL_COLOR if maze.is_wall(x, y) else FLOOR_COLOR
            pygame.draw.rect(screen, color, pygame.Rect(ox + x * cell_px, oy + y * cell_px, cell_px, cell_px))

    cx, cy = maze.center
    hole = (ox + cx * cell_px + cell_px // 2, oy + cy * cell_px + cell_px // 2)
    pygame.draw.circle(screen, HOLE_COLOR, hole, int(cell_px * constants.VICTORY_RADIUS))

    if game.autopilot:
        # Remaining autopilot route
        for wp in game.path[game.marble.state.path_index:]:
            centre = (ox + wp[0] * cell_px + cell_px // 2, oy + wp[1] * cell_px + cell_px // 2)
            pygame.draw.circle(screen, PATH_COLOR, centre, max(2, cell_px // 8))

    mx, mz = game.marble.position
    marble_px = (
        int(ox + (mx + maze.half_width) * cell_px + cell_px / 2),
        int(oy + (mz + maze.half_height) * cell_px + cell_px / 2),
    )
    if game.marble.phase is not MarblePhase.FALLING:
        pygame.draw.circle(screen, MARBLE_COLOR, marble_px, max(3, int(cell_px * constants.MARBLE_RADIUS)))

    # Tilt gauge: the direction the marble is being pushed
    gx, gz = math.sin(-game.tilt.roll), math.sin(game.tilt.pitch)
    scale = 60 / math.sin(constants.MAX_TILT)
    gauge = (ox + maze.width * cell_px + 80, oy + 80)
    pygame.draw.circle(screen, (80, 80, 80), gauge, 62, 1)
    pygame.draw.line(screen, (255, 255, 255), gauge, (gauge[0] + gx * scale, gauge[1] + gz * scale), 3)


def run_interactive(difficulty: Difficulty, seed: Optional[int], autopilot: bool, max_steps: int) -> SimulationResult:
    game = GameController(difficulty, seed=seed)
    recorder = RoundRecorder(game, max_steps)
    game.start()

    pygame.init()
    WIDTH, HEIGHT = 1000, 760
    screen = pygame.display.set_mode((WIDTH, HEIGHT))
    pygame.display.set_caption("Tilt Maze")
    clock = pygame.time.Clock()
    font = pygame.font.SysFont(None, 28)

    while True:
        dt = clock.tick(60) / 1000.0
        for event in pygame.event.get():
            if event.type == pygame.QUIT or (event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE):
                pygame.quit()
                return recorder.result(seed)
            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_r:
                    if game.state is LifecycleState.START_MENU:
                        game.start()
                    else:
                        game.reset()
                    recorder.reset()
                elif event.key == pygame.K_p:
                    game.toggle_pause()
                elif event.key == pygame.K_SPACE:
                    game.skip_intro()
                elif event.key == pygame.K_TAB:
                    game.engage_autopilot()
            if event.type == pygame.MOUSEMOTION and pygame.mouse.get_pressed()[0]:
                mx, my = event.pos
                game.set_pointer(mx / WIDTH * 2 - 1, my / HEIGHT * 2 - 1)

        game.set_keys(read_keys())
        game.update(dt)
        if autopilot and game.state is LifecycleState.PLAYING and not game.autopilot:
            game.engage_autopilot()

        screen.fill((25, 25, 25))
        cell_px = max(4, min((HEIGHT - 160) // game.maze.height, (WIDTH - 220) // game.maze.width))
        draw_board(screen, game, cell_px, (20, 20))

        status = {
            LifecycleState.INTRO: f"Get ready... {max(0.0, game.intro_duration - game.intro_elapsed):.1f}s (SPACE to skip)",
            LifecycleState.PLAYING: "AUTOPILOT" if game.autopilot else "Tilt with WASD / arrows or drag the mouse",
            LifecycleState.PAUSED: "Paused (P to resume)",
            LifecycleState.VICTORY: f"You won! {recorder.time_to_finish or 0.0:.2f}s (R to play again)",
        }.get(game.state, "")
        overlay_lines = [
            status,
            f"{game.difficulty.name}  maze {game.maze.width}x{game.maze.height}",
            f"t: {recorder.time_elapsed:.2f}s  bounces: {game.marble.bounces}",
            f"pitch: {game.tilt.pitch:+.3f}  roll: {game.tilt.roll:+.3f}",
            "P: pause   R: new maze   TAB: autopilot   ESC: quit",
        ]
        for i, line in enumerate(overlay_lines):
            screen.blit(font.render(line, True, (255, 255, 255)), (20, HEIGHT - 30 - 24 * (len(overlay_lines) - 1 - i)))

        pygame.display.flip()


def run_sim(
    difficulty: Union[Difficulty, str] = Difficulty.MEDIUM,
    seed: Optional[int] = None,
    autopilot: bool = True,
    display: bool = False,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> SimulationResult:
    """Run a single round.

    Headless runs need ``autopilot`` to get anywhere; without it the marble
    sits level at its start until ``max_steps`` ticks have passed.
    """
    difficulty = constants.get_difficulty(difficulty)
    if not display:
        return run_headless(difficulty, seed, autopilot, max_steps)
    return run_interactive(difficulty, seed, autopilot, max_steps)
