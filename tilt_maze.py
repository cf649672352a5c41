"""Convenience facade over the ``mazecore`` package.

Scripts can import everything they need from one place:

    from tilt_maze import run_multi_parallel, visualize_results_grid
"""
from mazecore.constants import DIFFICULTY_CONFIG, Difficulty, DifficultyConfig, get_difficulty
from mazecore.errors import ConfigurationError, IllegalTransitionError, MazeSimError
from mazecore.game import GameController, GameEvent, LifecycleState, can_transition, transition
from mazecore.marble import MarbleSimulator, MarbleState, TiltVector, step
from mazecore.maze import PATH, WALL, GridCoordinate, MazeGrid, generate
from mazecore.multi import run_multi, run_multi_parallel, summarize
from mazecore.single import SimulationResult, run_sim
from mazecore.solver import select_start, solve
from mazecore.tilt_input import TiltInput, TiltKeys
from mazecore.visualize import visualize_results_grid

__all__ = [
    "DIFFICULTY_CONFIG",
    "Difficulty",
    "DifficultyConfig",
    "get_difficulty",
    "ConfigurationError",
    "IllegalTransitionError",
    "MazeSimError",
    "GameController",
    "GameEvent",
    "LifecycleState",
    "can_transition",
    "transition",
    "MarbleSimulator",
    "MarbleState",
    "TiltVector",
    "step",
    "PATH",
    "WALL",
    "GridCoordinate",
    "MazeGrid",
    "generate",
    "run_multi",
    "run_multi_parallel",
    "summarize",
    "SimulationResult",
    "run_sim",
    "select_start",
    "solve",
    "TiltInput",
    "TiltKeys",
    "visualize_results_grid",
]
