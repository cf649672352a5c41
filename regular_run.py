import argparse
import logging

from tilt_maze import run_sim

# Play one round in a window, or let the autopilot solve it headless

parser = argparse.ArgumentParser(description="Tilt maze: play a round or watch the autopilot")
parser.add_argument("--difficulty", default="medium", help="easy, medium or hard")
parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible maze")
parser.add_argument("--autopilot", action="store_true", help="Hand the marble to the autopilot")
parser.add_argument("--headless", action="store_true", help="Run without a window (implies --autopilot)")
parser.add_argument("--verbose", action="store_true", help="Show debug logging")
args = parser.parse_args()

logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")

result = run_sim(
    args.difficulty,
    seed=args.seed,
    autopilot=args.autopilot or args.headless,
    display=not args.headless,
)

# Print a short summary of the round
if result.maze is not None:
    print(result.maze)
if result.won:
    print(f"start={tuple(result.start)} -> goal in {result.time_to_finish:.2f} s ({result.bounces} bounces)")
else:
    print(f"start={tuple(result.start)} -> unfinished after {result.steps} ticks")
