"""Profile batch statistic evaluation across group sizes and backends.

Measures wall-clock time and peak memory of the full
``tL2_permtest`` pipeline (index set generation, batch evaluation,
p-value) for a grid of group sizes ``(m1, m2)`` on a daily grid
(``N = 365``), comparing:

* the per-subset loop over :func:`studentized_statistic` (baseline),
* the NumPy backend, single-threaded and with joblib threads,
* the JAX backend, when JAX is installed.

Usage::

    python benchmarks/profile_batch.py          # full grid
    python benchmarks/profile_batch.py --quick  # reduced grid for smoke test

Outputs:
    benchmarks/results/batch_profile.csv
    benchmarks/image/batch-profile/time_by_subsets.png
"""

from __future__ import annotations

import argparse
import platform
import sys
import time
import tracemalloc
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

# Ensure the package is importable when running from the repo root.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from fda_permtest import (  # noqa: E402
    FunctionalSample,
    generate_index_set,
    pooled_totals,
    studentized_statistic,
    tL2_permtest,
)
from fda_permtest._backends._jax import _CAN_IMPORT_JAX  # noqa: E402

# ------------------------------------------------------------------ #
# Configuration
# ------------------------------------------------------------------ #

N_POINTS = 365

SIZES_FULL = [(5, 5), (7, 7), (9, 9), (8, 12), (10, 12), (15, 15)]
SIZES_QUICK = [(5, 5), (7, 7), (8, 12)]

N_PERMUTATIONS = 25_000
LOOP_LIMIT = 2_000  # subsets timed in the per-subset loop baseline

REPEATS = 3
SEED_BASE = 42

RESULTS_DIR = Path(__file__).resolve().parent / "results"
IMAGE_DIR = Path(__file__).resolve().parent / "image" / "batch-profile"


# ------------------------------------------------------------------ #
# Benchmark helpers
# ------------------------------------------------------------------ #


def _make_samples(m1: int, m2: int, seed: int) -> tuple[FunctionalSample, FunctionalSample]:
    rng = np.random.default_rng(seed)
    day = np.arange(1, N_POINTS + 1, dtype=float)
    season = 10.0 - 12.0 * np.cos(2 * np.pi * (day - 15) / 365)[:, np.newaxis]
    s1 = FunctionalSample(day, season + rng.normal(0, 3, (N_POINTS, m1)))
    s2 = FunctionalSample(day, season + rng.normal(0, 3, (N_POINTS, m2)))
    return s1, s2


def _loop_seconds_per_subset(m1: int, m2: int, seed: int) -> float:
    """Time the per-subset loop on at most LOOP_LIMIT subsets."""
    s1, s2 = _make_samples(m1, m2, seed)
    pooled = np.hstack([s1.fvals, s2.fvals])
    total_sum, total_sumsq = pooled_totals(pooled)
    indices = generate_index_set(
        m1, m2, n_permutations=LOOP_LIMIT - 1, random_state=seed
    ).indices[:LOOP_LIMIT]

    t0 = time.perf_counter()
    for row in indices:
        studentized_statistic(pooled, row, m1, m2, False, total_sum, total_sumsq)
    return (time.perf_counter() - t0) / len(indices)


def _benchmark_one(m1: int, m2: int, mode: str, seed: int) -> dict:
    """Run one (m1, m2, mode) case and return metrics."""
    s1, s2 = _make_samples(m1, m2, seed)
    backend, n_jobs = {
        "numpy": ("numpy", 1),
        "numpy-threads": ("numpy", -1),
        "jax": ("jax", 1),
    }[mode]

    tracemalloc.start()
    t0 = time.perf_counter()
    result = tL2_permtest(
        s1,
        s2,
        nperm=N_PERMUTATIONS,
        random_state=seed,
        backend=backend,
        n_jobs=n_jobs,
    )
    elapsed = time.perf_counter() - t0
    _, peak_bytes = tracemalloc.get_traced_memory()
    tracemalloc.stop()

    return {
        "m1": m1,
        "m2": m2,
        "mode": mode,
        "time_s": elapsed,
        "peak_memory_bytes": peak_bytes,
        "n_subsets": result.n_permutations,
        "exact": result.exact,
    }


def run_grid(sizes: list[tuple[int, int]], repeats: int = REPEATS) -> pd.DataFrame:
    """Run the benchmark grid and return a DataFrame of results."""
    modes = ["numpy", "numpy-threads"] + (["jax"] if _CAN_IMPORT_JAX else [])
    rows: list[dict] = []
    total = len(sizes) * len(modes)
    done = 0

    for m1, m2 in sizes:
        loop_per_subset = _loop_seconds_per_subset(m1, m2, SEED_BASE)
        for mode in modes:
            times: list[float] = []
            peak_mems: list[float] = []
            last: dict = {}
            for r in range(repeats):
                last = _benchmark_one(m1, m2, mode, seed=SEED_BASE + r)
                times.append(last["time_s"])
                peak_mems.append(last["peak_memory_bytes"])

            done += 1
            median_time = float(np.median(times))
            loop_estimate = loop_per_subset * last["n_subsets"]
            row = {
                "m1": m1,
                "m2": m2,
                "mode": mode,
                "n_subsets": last["n_subsets"],
                "exact": last["exact"],
                "median_time_s": median_time,
                "median_peak_memory_MB": float(np.median(peak_mems)) / (1024 * 1024),
                "loop_estimate_s": loop_estimate,
                "speedup_vs_loop": loop_estimate / median_time,
            }
            rows.append(row)
            print(
                f"  [{done:3d}/{total}] m1={m1:3d}, m2={m2:3d}, "
                f"mode={mode:14s}, subsets={row['n_subsets']:6,d}, "
                f"time={median_time:.4f}s, "
                f"speedup={row['speedup_vs_loop']:.1f}x"
            )

    return pd.DataFrame(rows)


# ------------------------------------------------------------------ #
# Chart generation
# ------------------------------------------------------------------ #


def _make_time_by_subsets(df: pd.DataFrame, image_dir: Path) -> None:
    """Line plot: median time vs. subset count per mode."""
    fig, ax = plt.subplots(figsize=(10, 6))
    for mode in df["mode"].unique():
        subset = df[df["mode"] == mode].sort_values("n_subsets")
        ax.plot(subset["n_subsets"], subset["median_time_s"], marker="o", label=mode)

    loop = df.drop_duplicates(["m1", "m2"]).sort_values("n_subsets")
    ax.plot(
        loop["n_subsets"],
        loop["loop_estimate_s"],
        linestyle="--",
        color="gray",
        label="per-subset loop (extrapolated)",
    )

    ax.set_xlabel("Evaluated subsets L")
    ax.set_ylabel("Median time (s)")
    ax.set_title(f"tL2_permtest Time by Subset Count (N={N_POINTS})")
    ax.set_xscale("log")
    ax.set_yscale("log")
    ax.legend(title="Mode")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(image_dir / "time_by_subsets.png", dpi=150)
    plt.close(fig)
    print(f"  Saved {image_dir / 'time_by_subsets.png'}")


# ------------------------------------------------------------------ #
# Main
# ------------------------------------------------------------------ #


def main() -> None:
    parser = argparse.ArgumentParser(description="Profile batch statistic evaluation")
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Run a reduced grid for quick smoke testing",
    )
    args = parser.parse_args()

    sizes = SIZES_QUICK if args.quick else SIZES_FULL

    print("=" * 60)
    print("Batch Evaluation Profile")
    print("=" * 60)
    print(f"  Platform:    {platform.platform()}")
    print(f"  Python:      {platform.python_version()}")
    print(f"  NumPy:       {np.__version__}")
    print(f"  JAX:         {'available' if _CAN_IMPORT_JAX else 'not installed'}")
    print(f"  Grid points: {N_POINTS}")
    print(f"  Sizes:       {sizes}")
    print(f"  Repeats:     {REPEATS}")
    print()

    print("Running benchmarks...")
    df = run_grid(sizes, repeats=REPEATS)

    RESULTS_DIR.mkdir(parents=True, exist_ok=True)
    csv_path = RESULTS_DIR / "batch_profile.csv"
    df.to_csv(csv_path, index=False)
    print(f"\nSaved results to {csv_path}")

    IMAGE_DIR.mkdir(parents=True, exist_ok=True)
    print("\nGenerating charts...")
    _make_time_by_subsets(df, IMAGE_DIR)

    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    print(
        df[
            ["m1", "m2", "mode", "n_subsets", "exact", "median_time_s", "speedup_vs_loop"]
        ].to_string(index=False)
    )


if __name__ == "__main__":
    main()
