"""Permutation engine: validation, pooling, and shared precomputation.

The :class:`PermutationEngine` centralises everything that happens
*before* the statistic sequence is evaluated:

1. **Grid validation**: both samples must have the same number of grid
   points, and the grids must agree to within :data:`GRID_TOLERANCE`
   relative mean absolute deviation.
2. **Group-size validation**: each group needs at least two curves.
   This runs before the value matrices are touched.
3. **Pooling**: the two value matrices are copied side by side into
   one preallocated ``(N, m1 + m2)`` buffer, group 1 first.
4. **Centering and totals**: each row is shifted by its median, which
   leaves the statistic unchanged and turns constant rows into exact
   zeros; row sums and sums of squares of the centred matrix are
   computed once and shared by every subset.
5. **Backend resolution**: NumPy (joblib threads) or JAX.
6. **Index set generation**: a single call to
   :func:`~fda_permtest.combinations.generate_index_set`.

:meth:`PermutationEngine.run` then evaluates the statistic for every
subset, in index-set order.
"""

from __future__ import annotations

import logging
import warnings

import numpy as np

from ._backends import resolve_backend
from ._context import PermutationContext
from ._typing import RandomStateLike
from .combinations import IndexSet, generate_index_set
from .exceptions import (
    GridLengthMismatchError,
    IncompatibleGridError,
    InsufficientGroupSizeError,
)
from .samples import FunctionalSample
from .statistics import (
    DEFAULT_CHUNK_SIZE,
    batch_statistics,
    center_rows,
    pooled_totals,
)

logger = logging.getLogger(__name__)

GRID_TOLERANCE: float = 0.05
"""Largest accepted ``mean(|x1 - x2|) / mean(|x1|)`` between two grids."""


def grid_deviation(args1: np.ndarray, args2: np.ndarray) -> float:
    """Relative mean absolute deviation of *args2* from *args1*.

    ``mean(|args1 - args2|) / mean(|args1|)``.  A grid of all zeros has
    deviation ``0`` from an identical grid and ``inf`` otherwise.
    """
    args1 = np.asarray(args1, dtype=np.float64)
    args2 = np.asarray(args2, dtype=np.float64)
    spread = float(np.mean(np.abs(args1 - args2)))
    scale = float(np.mean(np.abs(args1)))
    if scale == 0.0:
        return 0.0 if spread == 0.0 else float("inf")
    return spread / scale


def validate_samples(sample1: FunctionalSample, sample2: FunctionalSample) -> float:
    """Check that two samples can be compared.

    Returns:
        The grid deviation (see :func:`grid_deviation`).

    Raises:
        GridLengthMismatchError: Grids differ in point count.
        IncompatibleGridError: Grid deviation exceeds
            :data:`GRID_TOLERANCE`.
        InsufficientGroupSizeError: A sample has fewer than two curves.
    """
    if sample1.dimarg != sample2.dimarg:
        raise GridLengthMismatchError(
            f"Grids differ in length: {sample1.dimarg} versus {sample2.dimarg} points."
        )

    deviation = grid_deviation(sample1.args, sample2.args)
    if deviation > GRID_TOLERANCE:
        raise IncompatibleGridError(
            f"Grids are not even approximately equal: relative mean absolute "
            f"deviation {deviation:.4g} exceeds {GRID_TOLERANCE}."
        )

    m1, m2 = sample1.groupsize, sample2.groupsize
    if m1 < 2 or m2 < 2:
        raise InsufficientGroupSizeError(
            f"Need at least 2 curves per group, got m1={m1} and m2={m2}."
        )
    return deviation


class PermutationEngine:
    """Builder that validates inputs and prepares shared state.

    Construct an engine, then call :meth:`run` to evaluate the statistic
    sequence.  All preparation happens in the constructor, and the
    prepared arrays are read-only afterwards.

    Attributes:
        m1: Size of group 1.
        m2: Size of group 2.
        use_tbar: Whether the ``Tbar`` statistic is used.
        pooled: Pooled value matrix ``(N, m1 + m2)``.
        centered: ``pooled`` with each row's median subtracted.
        total_sum: Row sums of ``centered``.
        total_sumsq: Row sums of squares of ``centered``.
        index_set: Group-1 subsets, observed assignment first.
        backend_name: Active backend identifier.
    """

    def __init__(
        self,
        sample1: FunctionalSample,
        sample2: FunctionalSample,
        *,
        n_permutations: int | None = 25_000,
        use_tbar: bool = False,
        random_state: RandomStateLike = None,
        backend: str | None = None,
        n_jobs: int = 1,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        ctx: PermutationContext | None = None,
    ) -> None:
        self.ctx: PermutationContext = ctx if ctx is not None else PermutationContext()

        # ---- Validation -------------------------------------------
        deviation = validate_samples(sample1, sample2)

        self.m1: int = sample1.groupsize
        self.m2: int = sample2.groupsize
        self.use_tbar: bool = bool(use_tbar)
        self._chunk_size = chunk_size

        self.ctx.args = sample1.args
        self.ctx.m1 = self.m1
        self.ctx.m2 = self.m2
        self.ctx.grid_deviation = deviation

        # ---- Pooled matrix ----------------------------------------
        n_points = sample1.dimarg
        self.pooled: np.ndarray = np.empty(
            (n_points, self.m1 + self.m2), dtype=np.float64
        )
        self.pooled[:, : self.m1] = sample1.fvals
        self.pooled[:, self.m1 :] = sample2.fvals
        self.pooled.setflags(write=False)

        self.centered: np.ndarray = center_rows(self.pooled)
        self.centered.setflags(write=False)

        self.total_sum, self.total_sumsq = pooled_totals(self.centered)
        self.total_sum.setflags(write=False)
        self.total_sumsq.setflags(write=False)

        self.ctx.pooled = self.pooled
        self.ctx.centered = self.centered
        self.ctx.total_sum = self.total_sum
        self.ctx.total_sumsq = self.total_sumsq

        # ---- Backend resolution -----------------------------------
        _backend = resolve_backend(backend)
        self.backend_name: str = _backend.name
        self._n_jobs = n_jobs

        # XLA parallelises the matrix products; joblib threads add nothing.
        if n_jobs != 1 and self.backend_name == "jax":
            warnings.warn(
                "n_jobs is ignored when the JAX backend is active because "
                "the batch kernel is compiled by XLA, which parallelises "
                "the matrix products itself.  Falling back to n_jobs=1.",
                UserWarning,
                stacklevel=3,
            )
            self._n_jobs = 1

        self.ctx.backend = self.backend_name
        self.ctx.n_jobs = self._n_jobs

        # ---- Index set --------------------------------------------
        self.index_set: IndexSet = generate_index_set(
            self.m1,
            self.m2,
            n_permutations=n_permutations,
            random_state=random_state,
        )
        self.ctx.index_set = self.index_set

        logger.debug(
            "Engine ready: N=%d, m1=%d, m2=%d, %d subsets (%s), backend=%s, n_jobs=%d",
            n_points,
            self.m1,
            self.m2,
            self.index_set.size,
            "exact" if self.index_set.exact else "sampled",
            self.backend_name,
            self._n_jobs,
        )

    @property
    def statistic_name(self) -> str:
        return "Tbar" if self.use_tbar else "T"

    def run(self) -> np.ndarray:
        """Evaluate the statistic for every subset of the index set.

        Returns:
            Statistic sequence ``(L,)``; element 0 is the observed value.
        """
        statistics = batch_statistics(
            self.centered,
            self.index_set.indices,
            self.m1,
            self.m2,
            self.use_tbar,
            self.total_sum,
            self.total_sumsq,
            backend=self.backend_name,
            n_jobs=self._n_jobs,
            chunk_size=self._chunk_size,
        )
        self.ctx.statistics = statistics
        return statistics


__all__ = [
    "GRID_TOLERANCE",
    "PermutationEngine",
    "grid_deviation",
    "validate_samples",
]
