"""Studentized integrated statistics for two samples of curves.

For a partition of the pooled curves into group 1 (``m1`` curves) and
group 2 (``m2`` curves), and at every grid point ``x``:

    mu_i(x)  = SX_i(x) / m_i
    ss_i(x)  = (SXX_i(x) - SX_i(x)² / m_i) · m_i / (m_i - 1)
    d(x)     = (mu_1(x) - mu_2(x))² / (ss_1(x) + ss_2(x))

where ``SX_i`` and ``SXX_i`` are the within-group sums and sums of
squares.  Two aggregates over the ``N`` grid points are offered:

* ``T``   : ``mean_x d(x)``, taken over the points whose denominator
  exceeds the zero-spread floor :data:`SPREAD_RTOL`.  Points with a
  zero (or undefined) denominator are left out of the mean, not
  counted as zero.
* ``Tbar``: ``sum_x (mu_1 - mu_2)² / sum_x (ss_1 + ss_2)``, a single
  ratio of integrals that is less sensitive to grid points where the
  spread is tiny.

If no point survives (``T``) or the integrated spread is zero
(``Tbar``), the statistic is ``nan``.

Sums instead of two-pass variances
----------------------------------
The grand totals ``SX.`` and ``SXX.`` over all ``m = m1 + m2`` pooled
columns are computed once per test.  For each subset only the group-1
sums are formed; group 2 follows by subtraction:

    SX_2 = SX. - SX_1        SXX_2 = SXX. - SXX_1

so a subset costs ``O(N · m1)`` rather than ``O(N · m)``.

Batch evaluation turns the group-1 sums for ``B`` subsets into two
matrix products with a 0/1 membership matrix ``G`` of shape
``(m, B)``:

    SX_1  = pooled   @ G      → (N, B)
    SXX_1 = pooled²  @ G      → (N, B)

which runs as BLAS-3 ``dgemm`` instead of a Python loop.
"""

from __future__ import annotations

from typing import Any

import numpy as np

DEFAULT_CHUNK_SIZE: int = 4096
"""Subsets per batch chunk.

Bounds the ``(N, B)`` intermediates: with ``N = 365`` grid points a
chunk holds about 12 MB of float64 per intermediate.
"""


SPREAD_RTOL: float = 1e-12
"""Relative size below which a grid point's spread counts as zero.

A point is left out of ``T`` when ``ss_1 + ss_2`` does not exceed
``SPREAD_RTOL`` times the point's pooled sum of squares; ``Tbar`` is
``nan`` when the integrated spread does not exceed ``SPREAD_RTOL``
times the integrated pooled sum of squares.
"""


def center_rows(pooled: np.ndarray) -> np.ndarray:
    """Subtract each row's median from *pooled*.

    The statistic is unchanged by a per-row shift.  The median of a
    constant row is that constant exactly, so constant rows become
    exact zeros, and the sums of squares of the remaining rows lose
    their offset.
    """
    pooled = np.asarray(pooled, dtype=np.float64)
    return pooled - np.median(pooled, axis=1, keepdims=True)


def pooled_totals(pooled: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Row-wise sum and sum of squares over all pooled columns.

    Args:
        pooled: Pooled value matrix of shape ``(N, m)``.

    Returns:
        ``(total_sum, total_sumsq)``, each of shape ``(N,)``.
    """
    pooled = np.asarray(pooled, dtype=np.float64)
    return pooled.sum(axis=1), np.square(pooled).sum(axis=1)


def membership_matrix(indices: np.ndarray, m: int) -> np.ndarray:
    """0/1 matrix ``G`` of shape ``(m, B)`` with ``G[j, b] = 1`` iff
    column *j* is in subset *b*."""
    indices = np.asarray(indices, dtype=np.intp)
    n_subsets = indices.shape[0]
    membership = np.zeros((m, n_subsets), dtype=np.float64)
    membership[indices, np.arange(n_subsets)[:, np.newaxis]] = 1.0
    return membership


def aggregate_statistic(
    sx1: Any,
    sxx1: Any,
    total_sum: Any,
    total_sumsq: Any,
    m1: int,
    m2: int,
    use_tbar: bool,
    xp: Any = np,
) -> Any:
    """Reduce group-1 sums to ``T`` or ``Tbar``.

    Works on a single subset (arrays of shape ``(N,)``) or a batch
    (shape ``(N, B)``); the reduction always runs over axis 0.  *xp* is
    the array namespace (``numpy`` or ``jax.numpy``).  The body only
    uses ``where``-style masking so that it stays traceable under
    ``jax.jit``.

    Returns:
        Scalar (single subset) or array of shape ``(B,)``.
    """
    if total_sum.ndim < sx1.ndim:
        total_sum = total_sum[:, None]
        total_sumsq = total_sumsq[:, None]

    sx2 = total_sum - sx1
    sxx2 = total_sumsq - sxx1

    mu1 = sx1 / m1
    mu2 = sx2 / m2
    ss1 = (sxx1 - sx1**2 / m1) * (m1 / (m1 - 1))
    ss2 = (sxx2 - sx2**2 / m2) * (m2 / (m2 - 1))

    numerator = (mu1 - mu2) ** 2
    denominator = ss1 + ss2

    # The sum-of-squares shortcut leaves round-off of order
    # eps * SXX where the true spread is zero, so spreads are compared
    # against the row's total sum of squares rather than against 0.
    if use_tbar:
        spread = xp.sum(denominator, axis=0)
        floor = SPREAD_RTOL * xp.sum(total_sumsq, axis=0)
        defined = spread > floor
        safe = xp.where(defined, spread, 1.0)
        return xp.where(defined, xp.sum(numerator, axis=0) / safe, xp.nan)

    valid = (denominator > SPREAD_RTOL * total_sumsq) & xp.isfinite(denominator)
    safe = xp.where(valid, denominator, 1.0)
    ratios = xp.where(valid, numerator / safe, 0.0)
    n_valid = xp.sum(valid, axis=0)
    return xp.where(
        n_valid > 0,
        xp.sum(ratios, axis=0) / xp.where(n_valid > 0, n_valid, 1),
        xp.nan,
    )


def studentized_statistic(
    pooled: np.ndarray,
    index_subset: np.ndarray,
    m1: int,
    m2: int,
    use_tbar: bool,
    total_sum: np.ndarray,
    total_sumsq: np.ndarray,
) -> float:
    """Statistic for one group-1 subset.

    Args:
        pooled: Pooled value matrix ``(N, m1 + m2)``.
        index_subset: The ``m1`` pooled columns assigned to group 1.
        m1: Size of group 1.
        m2: Size of group 2.
        use_tbar: ``True`` for ``Tbar``, ``False`` for ``T``.
        total_sum: Row sums over all pooled columns, shape ``(N,)``.
        total_sumsq: Row sums of squares over all pooled columns.

    Returns:
        The statistic value (``nan`` when undefined).
    """
    group1 = pooled[:, np.asarray(index_subset, dtype=np.intp)]
    sx1 = group1.sum(axis=1)
    sxx1 = np.square(group1).sum(axis=1)
    return float(
        aggregate_statistic(sx1, sxx1, total_sum, total_sumsq, m1, m2, use_tbar)
    )


def batch_statistics(
    pooled: np.ndarray,
    indices: np.ndarray,
    m1: int,
    m2: int,
    use_tbar: bool,
    total_sum: np.ndarray,
    total_sumsq: np.ndarray,
    *,
    backend: str | None = None,
    n_jobs: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> np.ndarray:
    """Statistic for every subset in *indices*, in row order.

    Args:
        pooled: Pooled value matrix ``(N, m1 + m2)``.
        indices: Subset matrix ``(L, m1)``.
        m1: Size of group 1.
        m2: Size of group 2.
        use_tbar: ``True`` for ``Tbar``, ``False`` for ``T``.
        total_sum: Row sums over all pooled columns.
        total_sumsq: Row sums of squares over all pooled columns.
        backend: ``"numpy"``, ``"jax"``, or ``None`` for the configured
            default (see :func:`~fda_permtest.set_backend`).
        n_jobs: Thread count for the NumPy backend (``-1`` = all cores).
        chunk_size: Subsets per chunk.

    Returns:
        Float array of shape ``(L,)``; element *i* belongs to row *i*.
    """
    from ._backends import resolve_backend

    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}.")

    return resolve_backend(backend).batch_statistics(
        np.ascontiguousarray(pooled, dtype=np.float64),
        np.asarray(indices, dtype=np.intp),
        m1,
        m2,
        use_tbar,
        np.asarray(total_sum, dtype=np.float64),
        np.asarray(total_sumsq, dtype=np.float64),
        n_jobs=n_jobs,
        chunk_size=chunk_size,
    )


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "SPREAD_RTOL",
    "aggregate_statistic",
    "batch_statistics",
    "center_rows",
    "membership_matrix",
    "pooled_totals",
    "studentized_statistic",
]
