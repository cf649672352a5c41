# multi_run.py
from tilt_maze import run_multi_parallel, summarize, visualize_results_grid

if __name__ == "__main__":
    difficulty = "easy"
    seeds = [1, 2, 3, 4, 5, 6, 7, 8, 9]

    # 1) Run all autopilot rounds in parallel, headless
    results = run_multi_parallel(difficulty, seeds)

    summary = summarize(results)
    print(f"won {summary['won']}/{summary['runs']}  mean time={summary['mean_time']:.2f} s  "
          f"mean bounces={summary['mean_bounces']:.1f}")

    # 2) Replay all rounds in one Pygame window
    visualize_results_grid(results, window_size=(1200, 800), fps=60)
