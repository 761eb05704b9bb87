"""P-values for the functional permutation test.

Empirical p-value
-----------------
The statistic sequence ``T_0, T_1, …, T_{L-1}`` holds the observed
value at position 0 followed by one value per evaluated subset.  The
p-value is the fraction of the *whole* sequence at least as large as
the observed value:

    p = #{i : T_i >= T_0} / L

Because ``T_0 >= T_0`` always holds, ``p >= 1/L``.  For a Monte-Carlo
test with ``B = L - 1`` random subsets this is exactly the Phipson &
Smyth (2010) estimator ``(b + 1) / (B + 1)``; for an exact test it is
the exact permutation p-value.

A statistic is ``nan`` when it is undefined for a subset (every grid
point had zero spread).  ``nan`` ranks below every finite value: it
never counts against a finite observed statistic, and an undefined
observed statistic gives ``p = 1``.

Ties are decided with a tolerance of :data:`TIE_RTOL` relative to
``max(|T_0|, 1)``.  Both statistics are ratios of squared quantities
with the data's scale cancelled, so a permuted value that differs from
the observed one only by round-off counts as a tie.  In particular,
two identical samples give ``T_0`` of the order of ``1e-30`` rather
than exactly zero, and every reassignment still ties with it.

Monte-Carlo uncertainty
-----------------------
A sampled p-value estimates the exact one.  Its Clopper–Pearson
interval treats ``#{T_i >= T_0}`` as a binomial count out of ``L``
trials and inverts the beta distribution.

Reference:
    Phipson, B. & Smyth, G. K. (2010). Permutation p-values should
    never be zero: calculating exact p-values when permutations are
    randomly drawn. *Statistical Applications in Genetics and Molecular
    Biology*, 9(1), Article 39.
"""

from __future__ import annotations

import numpy as np
from scipy import stats as _sp_stats


TIE_RTOL: float = 1e-12
"""Relative tolerance within which a statistic ties with ``T_0``."""


def _ranked(statistics: np.ndarray) -> np.ndarray:
    values = np.asarray(statistics, dtype=np.float64)
    return np.where(np.isnan(values), -np.inf, values)


def count_at_least_as_extreme(statistics: np.ndarray) -> int:
    """Number of entries ``>=`` the observed (position-0) statistic.

    The observed value itself is included, so the count is at least 1.
    Values within :data:`TIE_RTOL` of it count as ties.

    Raises:
        ValueError: If *statistics* is empty.
    """
    values = _ranked(statistics)
    if values.size == 0:
        raise ValueError("statistics must contain at least the observed value.")
    observed = values[0]
    if not np.isfinite(observed):
        return int(np.count_nonzero(values >= observed))
    threshold = observed - TIE_RTOL * max(abs(observed), 1.0)
    return int(np.count_nonzero(values >= threshold))


def permutation_p_value(statistics: np.ndarray) -> float:
    """Empirical one-sided p-value ``#{T_i >= T_0} / L``.

    Args:
        statistics: Statistic sequence of length ``L``; element 0 is
            the observed statistic.

    Returns:
        p-value in ``[1/L, 1]``.
    """
    count = count_at_least_as_extreme(statistics)
    return count / len(statistics)


def compute_pvalue_ci(
    count: int,
    n_total: int,
    alpha: float = 0.05,
) -> tuple[float, float]:
    """Clopper–Pearson interval for a Monte-Carlo p-value.

    Args:
        count: Entries at least as extreme as the observed statistic,
            observed value included.
        n_total: Length ``L`` of the statistic sequence.
        alpha: One minus the confidence level.

    Returns:
        ``(lower, upper)`` bounds of the ``1 - alpha`` interval.

    Raises:
        ValueError: If the arguments are out of range.
    """
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must lie in (0, 1), got {alpha}.")
    if n_total < 1 or not 0 <= count <= n_total:
        raise ValueError(
            f"Need 0 <= count <= n_total and n_total >= 1, got "
            f"count={count}, n_total={n_total}."
        )

    if count == 0:
        lower = 0.0
    else:
        lower = float(_sp_stats.beta.ppf(alpha / 2, count, n_total - count + 1))
    if count == n_total:
        upper = 1.0
    else:
        upper = float(_sp_stats.beta.ppf(1 - alpha / 2, count + 1, n_total - count))
    return lower, upper


__all__ = [
    "TIE_RTOL",
    "compute_pvalue_ci",
    "count_at_least_as_extreme",
    "permutation_p_value",
]
