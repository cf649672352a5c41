"""Batch and parallel autopilot runs over many maze seeds."""
from __future__ import annotations

from multiprocessing import Pool, cpu_count
from typing import Dict, Iterable, Tuple

from .constants import get_difficulty
from .single import DEFAULT_MAX_STEPS, SimulationResult, run_sim


def _result_to_dict(result: SimulationResult) -> Dict[str, object]:
    # Flatten SimulationResult into the dict structure the replay window reads
    return {
        "time": result.time_to_finish,
        "log": result.physics_log,
        "won": result.won,
        "steps": result.steps,
        "start": result.start,
        "path_length": result.path_length,
        "bounces": result.bounces,
        "maze": result.maze,
    }


def run_multi(difficulty, seeds, display=False, max_steps=DEFAULT_MAX_STEPS):
    """Run an autopilot round for each seed (sequential)."""
    results = {}
    for seed in seeds:
        print(f"\n=== {get_difficulty(difficulty).name.lower()} maze, seed={seed} ===")
        sim_result = run_sim(difficulty, seed=seed, autopilot=True, display=display, max_steps=max_steps)
        results[seed] = _result_to_dict(sim_result)
    return results


def _sim_worker(args: Tuple[object, int, int]):
    # Child-process worker for multiprocessing Pool
    difficulty, seed, max_steps = args
    sim_result = run_sim(difficulty, seed=seed, autopilot=True, display=False, max_steps=max_steps)
    return seed, _result_to_dict(sim_result)


def run_multi_parallel(difficulty, seeds: Iterable[int], max_steps=DEFAULT_MAX_STEPS, processes=None):
    """Run autopilot rounds for many seeds in parallel (headless)."""
    args = [(difficulty, seed, max_steps) for seed in seeds]
    n_cpus = processes or cpu_count()
    print(f"Running {len(args)} simulations on {n_cpus} cores (headless)...")

    results = {}
    with Pool(processes=n_cpus) as pool:
        for seed, data in pool.map(_sim_worker, args):
            results[seed] = data
    return results


def summarize(results) -> Dict[str, float]:
    """Win rate and mean finish time/bounces over a results dict."""
    finished = [data for data in results.values() if data["won"]]
    summary = {
        "runs": len(results),
        "won": len(finished),
        "win_rate": len(finished) / len(results) if results else 0.0,
        "mean_time": sum(d["time"] for d in finished) / len(finished) if finished else float("nan"),
        "mean_bounces": sum(d["bounces"] for d in finished) / len(finished) if finished else float("nan"),
    }
    return summary
