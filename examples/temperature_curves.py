"""
Test Case: Daily Temperature Curves of Two Climate Regions
Simulated stations on a daily grid (N = 365)

Demonstrates:
- Building ``FunctionalSample`` objects from wide pandas DataFrames
- The exact test (``nperm=None``) and the default budget, which is
  exact for two groups of nine stations
- The Monte-Carlo test with a seed, and its Clopper-Pearson interval
- ``T`` versus ``Tbar``
- Switching backends for one block with ``using_backend``
"""

import numpy as np
import pandas as pd

from fda_permtest import (
    FunctionalSample,
    count_combinations,
    get_backend,
    print_results_table,
    tL2_permtest,
    using_backend,
)

# ============================================================================
# Simulate data
# ============================================================================

rng = np.random.default_rng(2012)
day = np.arange(1, 366)


def simulate_region(n_stations, mean_temp, amplitude, prefix):
    """One column per station, one row per day of the year."""
    columns = {"day": day}
    for j in range(n_stations):
        level = mean_temp + rng.normal(0, 1.0)
        curve = level - amplitude * np.cos(2 * np.pi * (day - 15) / 365)
        columns[f"{prefix}{j + 1}"] = curve + rng.normal(0, 2.5, day.size)
    return pd.DataFrame(columns)


# Atlantic stations: milder winters, cooler summers.
atlantic_df = simulate_region(9, mean_temp=10.0, amplitude=7.0, prefix="atl")
# Continental stations: same annual mean, larger seasonal swing.
continental_df = simulate_region(9, mean_temp=10.0, amplitude=11.0, prefix="con")

atlantic = FunctionalSample.from_frame(atlantic_df, args_column="day", name="Atlantic")
continental = FunctionalSample.from_frame(
    continental_df, args_column="day", name="Continental"
)

print(f"Atlantic:    {atlantic.groupsize} curves on {atlantic.dimarg} days")
print(f"Continental: {continental.groupsize} curves on {continental.dimarg} days")
print(f"Reference set size: {count_combinations(9, 9):,} combinations")
print(f"Active backend: {get_backend()}")
print()

# ============================================================================
# Default budget: exact for 9 vs 9
# ============================================================================

result = tL2_permtest(atlantic, continental)
print_results_table(result)

# ============================================================================
# Tbar: integrated difference over integrated spread
# ============================================================================

result_tbar = tL2_permtest(atlantic, continental, use_tbar=True)
print_results_table(result_tbar)

# ============================================================================
# Monte-Carlo test on a subset of stations with a different mean
# ============================================================================

warm_df = simulate_region(12, mean_temp=10.6, amplitude=7.0, prefix="warm")
warm = FunctionalSample.from_frame(warm_df, args_column="day", name="Warm Atlantic")

result_mc = tL2_permtest(atlantic, warm, nperm=2_000, random_state=42)
print_results_table(result_mc)

# ============================================================================
# Identical groups: the observed statistic is the smallest possible
# ============================================================================

with using_backend("numpy"):
    same = FunctionalSample(atlantic.args, atlantic.fvals, name="Atlantic (copy)")
    result_same = tL2_permtest(atlantic, same, nperm=None)
    print_results_table(result_same, title="Sanity Check: Identical Samples")

# ============================================================================
# Programmatic access
# ============================================================================

print("Result as dictionary keys:", sorted(result.to_dict()))
print(f"p-value via bracket syntax: {result['p_value']:.5f}")
print(f"First five permuted statistics: {result.permuted_statistics[:5]}")
