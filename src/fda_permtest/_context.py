"""Computation context: mutable accumulator for pipeline artifacts.

A :class:`PermutationContext` travels through the test pipeline,
collecting intermediate artifacts at their natural computation points.
Downstream consumers (display, benchmarking, debugging) read from the
context instead of re-computing.

The context is **not** part of the public serialisation API: it carries
NumPy arrays that should not be JSON'd.
:meth:`~_results.PermutationTestResult.to_dict` skips it automatically.

Lifecycle::

    ┌────────────────────────────────────────────────┐
    │  tL2_permtest()                                │
    │  ├─ ctx = PermutationContext()                 │
    │  ├─ PermutationEngine(…, ctx=ctx)              │
    │  │   ├─ ctx.args / m1 / m2                     │
    │  │   ├─ ctx.pooled = [fvals1 | fvals2]         │
    │  │   ├─ ctx.centered = pooled - row medians    │
    │  │   ├─ ctx.total_sum, ctx.total_sumsq         │
    │  │   └─ ctx.index_set = generate_index_set(…)  │
    │  ├─ engine.run()                               │
    │  │   └─ ctx.statistics = batch_statistics(…)   │
    │  ├─ ctx.count_at_least_as_extreme = …          │
    │  └─ result.context = ctx                       │
    └────────────────────────────────────────────────┘
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from .combinations import IndexSet


@dataclass
class PermutationContext:
    """Mutable accumulator for computation artifacts.

    Every field defaults to ``None`` so the context can be created
    empty at the start of the pipeline and populated incrementally.
    A ``None`` field means that pipeline stage has not run yet.
    """

    # ---- Inputs --------------------------------------------------
    args: np.ndarray | None = None
    """Shared grid ``(N,)`` (taken from the first sample)."""

    m1: int | None = None
    """Size of group 1."""

    m2: int | None = None
    """Size of group 2."""

    grid_deviation: float | None = None
    """Relative mean absolute deviation between the two grids."""

    # ---- Pooled data ---------------------------------------------
    pooled: np.ndarray | None = None
    """Pooled value matrix ``(N, m1 + m2)``."""

    centered: np.ndarray | None = None
    """``pooled`` with each row's median subtracted."""

    total_sum: np.ndarray | None = None
    """Row sums of ``centered`` ``(N,)``."""

    total_sumsq: np.ndarray | None = None
    """Row sums of squares of ``centered`` ``(N,)``."""

    # ---- Permutation metadata ------------------------------------
    index_set: IndexSet | None = None
    """Group-1 subsets evaluated, observed assignment first."""

    backend: str | None = None
    """Compute backend used (``"numpy"`` or ``"jax"``)."""

    n_jobs: int | None = None
    """Effective thread count for batch evaluation."""

    # ---- Inference -----------------------------------------------
    statistics: np.ndarray | None = None
    """Statistic sequence ``(L,)``; element 0 is observed."""

    count_at_least_as_extreme: int | None = None
    """Entries of ``statistics`` that are ``>=`` the observed value."""
