import math
import random
import unittest

from pymunk import Vec2d

from mazecore import constants
from mazecore.marble import (
    LEVEL,
    MarblePhase,
    MarbleSimulator,
    MarbleState,
    TiltVector,
    resolve_axis,
    step,
    steer,
)
from mazecore.maze import GridCoordinate, MazeGrid, generate
from mazecore.solver import select_start, solve

# Corridor from (1, 1) east to (7, 1), south to (7, 4), then west into the goal block
L_MAZE = MazeGrid.from_rows([
    "#########",
    "#.......#",
    "#######.#",
    "###...#.#",
    "###.....#",
    "###...###",
    "#########",
    "#########",
    "#########",
])

OPEN_7 = MazeGrid.from_rows([
    "#######",
    "#.....#",
    "#.....#",
    "#.....#",
    "#.....#",
    "#.....#",
    "#######",
])


def active(grid, cell, offset=(0.0, 0.0), velocity=(0.0, 0.0)):
    base = grid.to_world(cell)
    return MarbleState(
        position=Vec2d(base.x + offset[0], base.y + offset[1]),
        velocity=Vec2d(*velocity),
        phase=MarblePhase.ACTIVE,
    )


class TestTiltVector(unittest.TestCase):

    def test_clamped_per_component(self):
        tilt = TiltVector(1.0, -2.0).clamped()
        self.assertAlmostEqual(tilt.pitch, constants.MAX_TILT)
        self.assertAlmostEqual(tilt.roll, -constants.MAX_TILT)

    def test_small_tilt_is_unchanged(self):
        self.assertEqual(TiltVector(0.1, -0.05).clamped(), TiltVector(0.1, -0.05))


class TestStep(unittest.TestCase):

    def test_gravity_scenario(self):
        state = active(OPEN_7, (1, 3))
        result = step(state, TiltVector(0.0, -0.1), OPEN_7, gravity=0.02, friction=0.98)
        expected = math.sin(0.1) * 0.02 * 0.98
        self.assertAlmostEqual(result.state.velocity.x, expected, places=9)
        self.assertAlmostEqual(result.state.velocity.y, 0.0)
        self.assertAlmostEqual(result.state.position.x, state.position.x + expected, places=9)

    def test_pitch_accelerates_along_z(self):
        state = active(OPEN_7, (3, 1))
        result = step(state, TiltVector(0.1, 0.0), OPEN_7, gravity=0.02, friction=1.0)
        self.assertAlmostEqual(result.state.velocity.y, math.sin(0.1) * 0.02)
        self.assertEqual(result.state.velocity.x, 0.0)

    def test_tilt_is_clamped_before_use(self):
        state = active(OPEN_7, (1, 3))
        result = step(state, TiltVector(0.0, -5.0), OPEN_7, gravity=0.02, friction=1.0)
        self.assertAlmostEqual(result.state.velocity.x, math.sin(constants.MAX_TILT) * 0.02)
        self.assertAlmostEqual(result.tilt.roll, -constants.MAX_TILT)

    def test_level_board_at_rest_never_moves(self):
        state = active(L_MAZE, (1, 1))
        for _ in range(500):
            state = step(state, LEVEL, L_MAZE, gravity=0.022, friction=0.99).state
        self.assertEqual(tuple(state.position), tuple(L_MAZE.to_world((1, 1))))
        self.assertEqual(tuple(state.velocity), (0.0, 0.0))

    def test_bounce_scenario(self):
        # (7, 1) has a wall to the east; start close to it moving east
        state = active(L_MAZE, (7, 1), offset=(0.3, 0.0), velocity=(0.05, 0.0))
        result = step(state, LEVEL, L_MAZE, gravity=0.016, friction=0.985)
        self.assertTrue(result.bounced)
        self.assertGreaterEqual(result.state.velocity.x, -0.02)
        self.assertLessEqual(result.state.velocity.x, -0.015)
        limit = L_MAZE.to_world((7, 1)).x + 0.5 - constants.WALL_CLEARANCE
        self.assertAlmostEqual(result.state.position.x, limit)

    def test_sliding_along_wall_keeps_free_axis(self):
        # Moving diagonally in the top corridor: z is blocked by the north wall, x is free
        state = active(L_MAZE, (3, 1), offset=(0.0, -0.3), velocity=(0.05, -0.05))
        result = step(state, LEVEL, L_MAZE, gravity=0.0, friction=1.0)
        self.assertAlmostEqual(result.state.velocity.x, 0.05)
        self.assertAlmostEqual(result.state.velocity.y, -0.05 * constants.RESTITUTION)
        self.assertAlmostEqual(result.state.position.x, state.position.x + 0.05)

    def test_movement_into_open_cell_is_committed(self):
        state = active(OPEN_7, (2, 2), velocity=(0.2, 0.0))
        result = step(state, LEVEL, OPEN_7, gravity=0.0, friction=1.0)
        self.assertFalse(result.bounced)
        self.assertAlmostEqual(result.state.position.x, state.position.x + 0.2)

    def test_move_landing_in_a_wall_is_discarded(self):
        # Fast enough to clear the open cells ahead and land in the wall at (4, 1)
        grid = MazeGrid.from_rows(["#######", "#...#.#"] + ["#######"] * 5)
        state = active(grid, (1, 1), velocity=(2.6, 0.0))
        result = step(state, LEVEL, grid, gravity=0.0, friction=1.0)
        self.assertEqual(tuple(result.state.position), tuple(state.position))
        self.assertEqual(result.state.cell(grid), GridCoordinate(1, 1))
        self.assertFalse(grid.is_wall(*result.state.cell(grid)))
        self.assertEqual(tuple(result.state.velocity), (0.0, 0.0))
        self.assertIs(result.state.phase, MarblePhase.ACTIVE)

    def test_off_grid_counts_as_wall(self):
        grid = MazeGrid.from_rows([".....", ".....", ".....", ".....", "....."])
        cell = GridCoordinate(4, 2)
        pos, vel, bounced = resolve_axis(grid, 2.3, 2.6, 0.3, cell, 0)
        self.assertTrue(bounced)
        self.assertAlmostEqual(pos, 2.0 + 0.5 - constants.WALL_CLEARANCE)
        self.assertAlmostEqual(vel, 0.3 * constants.RESTITUTION)

    def test_idle_and_falling_marbles_do_not_move(self):
        for phase in (MarblePhase.IDLE, MarblePhase.FALLING):
            state = MarbleState(Vec2d(-2.0, -2.0), Vec2d(0.1, 0.1), phase)
            result = step(state, TiltVector(0.2, 0.2), OPEN_7, gravity=0.02, friction=0.98)
            self.assertIs(result.state, state)
            self.assertFalse(result.won)

    def test_victory_inside_radius(self):
        state = active(OPEN_7, (3, 3), offset=(0.2, 0.0), velocity=(0.01, 0.0))
        result = step(state, LEVEL, OPEN_7, gravity=0.016, friction=0.985)
        self.assertTrue(result.won)
        self.assertTrue(result.state.falling)
        self.assertEqual(tuple(result.state.velocity), (0.0, 0.0))

    def test_no_victory_outside_radius(self):
        state = active(OPEN_7, (3, 3), offset=(0.45, 0.0))
        result = step(state, LEVEL, OPEN_7, gravity=0.016, friction=0.985)
        self.assertFalse(result.won)
        self.assertIs(result.state.phase, MarblePhase.ACTIVE)

    def test_marble_never_enters_a_wall(self):
        rng = random.Random(42)
        grid = generate(15, 0.2, rng=rng)
        state = MarbleState.at_cell(grid, select_start(grid, rng=rng), MarblePhase.ACTIVE)
        tilt = LEVEL
        for i in range(4000):
            if i % 30 == 0:
                tilt = TiltVector(rng.uniform(-0.3, 0.3), rng.uniform(-0.3, 0.3))
            state = step(state, tilt, grid, gravity=0.022, friction=0.99).state
            cell = state.cell(grid)
            self.assertFalse(grid.is_wall(*cell), f"tick {i}: marble inside wall at {cell}")
            if state.falling:
                break


class TestSteering(unittest.TestCase):

    def test_steers_toward_waypoint(self):
        state = active(OPEN_7, (1, 3))
        tilt, index = steer(state, OPEN_7, [GridCoordinate(2, 3), GridCoordinate(3, 3)])
        self.assertEqual(index, 0)
        self.assertAlmostEqual(tilt.roll, -constants.MAX_AUTO_TILT)
        self.assertAlmostEqual(tilt.pitch, 0.0)

    def test_reached_waypoint_advances_cursor(self):
        state = active(OPEN_7, (2, 3), offset=(-0.1, 0.0))
        tilt, index = steer(state, OPEN_7, [GridCoordinate(2, 3), GridCoordinate(2, 4)])
        self.assertEqual(index, 1)
        self.assertGreater(tilt.pitch, 0.0)

    def test_goal_waypoint_is_kept(self):
        state = active(OPEN_7, (3, 3), offset=(0.4, 0.0))
        tilt, index = steer(state, OPEN_7, [GridCoordinate(3, 3)])
        self.assertEqual(index, 0)
        self.assertAlmostEqual(tilt.roll, constants.MAX_AUTO_TILT)

    def test_malformed_waypoints_are_skipped(self):
        state = active(OPEN_7, (1, 1))
        path = [None, (0, 0), ("a", "b"), (99, 1), GridCoordinate(2, 1)]
        tilt, index = steer(state, OPEN_7, path)
        self.assertEqual(index, 4)
        self.assertAlmostEqual(tilt.roll, -constants.MAX_AUTO_TILT)

    def test_autopilot_tilt_replaces_manual_tilt(self):
        state = active(OPEN_7, (1, 3))
        result = step(state, TiltVector(0.2, 0.2), OPEN_7, 0.016, 0.985, path=[GridCoordinate(2, 3)])
        self.assertAlmostEqual(result.tilt.roll, -constants.MAX_AUTO_TILT)
        self.assertAlmostEqual(result.tilt.pitch, 0.0)
        self.assertGreater(result.state.velocity.x, 0.0)

    def test_exhausted_path_falls_back_to_supplied_tilt(self):
        state = active(OPEN_7, (1, 3))
        result = step(state, TiltVector(0.1, 0.0), OPEN_7, 0.016, 0.985, path=[(0, 0)])
        self.assertEqual(result.tilt, TiltVector(0.1, 0.0))


class TestMarbleSimulator(unittest.TestCase):

    def test_starts_idle_until_activated(self):
        sim = MarbleSimulator(OPEN_7, (1, 1), 0.02, 0.98)
        self.assertIs(sim.phase, MarblePhase.IDLE)
        sim.step(TiltVector(0.2, -0.2))
        self.assertEqual(sim.cell(), GridCoordinate(1, 1))
        self.assertEqual(sim.ticks, 0)
        sim.activate()
        self.assertIs(sim.phase, MarblePhase.ACTIVE)

    def test_victory_fires_exactly_once(self):
        calls = []
        sim = MarbleSimulator(OPEN_7, (3, 3), 0.02, 0.98, on_victory=lambda: calls.append(1))
        sim.activate()
        for _ in range(50):
            sim.step(TiltVector(0.2, 0.2))
        self.assertEqual(calls, [1])
        self.assertIs(sim.phase, MarblePhase.FALLING)
        self.assertLess(math.hypot(*sim.position), constants.VICTORY_RADIUS)

    def test_autopilot_needs_a_path(self):
        sim = MarbleSimulator(OPEN_7, (1, 1), 0.02, 0.98)
        self.assertFalse(sim.engage_autopilot([]))
        self.assertFalse(sim.autopilot)
        self.assertTrue(sim.engage_autopilot(solve(OPEN_7, (1, 1))))
        self.assertTrue(sim.autopilot)
        sim.disengage_autopilot()
        self.assertFalse(sim.autopilot)

    def test_autopilot_drives_marble_through_corridor(self):
        calls = []
        cfg = constants.DIFFICULTY_CONFIG[constants.Difficulty.EASY]
        sim = MarbleSimulator(L_MAZE, (1, 1), cfg.gravity, cfg.friction, on_victory=lambda: calls.append(1))
        sim.engage_autopilot(solve(L_MAZE, (1, 1)))
        sim.activate()
        for _ in range(3000):
            sim.step()
            self.assertFalse(L_MAZE.is_wall(*sim.cell()))
            if calls:
                break
        self.assertEqual(calls, [1])
        self.assertIs(sim.phase, MarblePhase.FALLING)

    def test_overshoot_triggers_replanning(self):
        sim = MarbleSimulator(OPEN_7, (1, 1), 0.016, 0.985)
        sim.engage_autopilot([GridCoordinate(2, 1), GridCoordinate(3, 1)])
        sim.activate()
        # Teleport the marble well off its route
        sim.state = active(OPEN_7, (1, 5))
        sim.step()
        self.assertEqual(sim.replans, 1)
        self.assertEqual(sim.path[-1], OPEN_7.center)

    def test_autopilot_solves_generated_mazes(self):
        for difficulty, seed in ((constants.Difficulty.EASY, 1), (constants.Difficulty.MEDIUM, 2)):
            cfg = constants.DIFFICULTY_CONFIG[difficulty]
            rng = random.Random(seed)
            grid = generate(cfg.grid_size, cfg.loop_chance, rng=rng)
            start = select_start(grid, rng=rng)
            calls = []
            sim = MarbleSimulator(grid, start, cfg.gravity, cfg.friction, on_victory=lambda: calls.append(1))
            sim.engage_autopilot(solve(grid, start))
            sim.activate()
            for _ in range(20000):
                sim.step()
                if calls:
                    break
            self.assertEqual(calls, [1], f"{difficulty.name} seed={seed} stuck at {sim.cell()}")


if __name__ == '__main__':
    unittest.main()
