"""Combination index sets for two-sample permutation tests.

A two-sample permutation test does not need full permutations of the
pooled curves.  The statistic only depends on *which* pooled columns
are labelled "group 1", so the reference set is the collection of
m1-subsets of ``{0, …, m-1}`` (``m = m1 + m2``), and every subset is
represented by its sorted column indices.

Row 0 of every index set is the observed assignment ``[0, …, m1-1]``;
downstream code reads the observed statistic from position 0.

Symmetry breaking for equal group sizes
---------------------------------------
When ``m1 == m2`` the subset ``S`` and its complement describe the same
partition with the labels swapped.  The statistic is symmetric in the
two groups, so ``S`` and its complement give identical values and only
one of each pair is needed.  Pinning column 0 inside group 1 picks one
representative per pair:

    C(m, m1)  →  C(m-1, m1-1)  =  C(m, m1) / 2

Exact versus Monte-Carlo
------------------------
With ``ncomb`` the size of the (possibly halved) reference set, the
exact test enumerates all of it when ``n_permutations is None`` or when
``ncomb < n_permutations + 1``: drawing more random subsets than there
are distinct ones buys nothing.  Otherwise ``n_permutations`` subsets
are drawn independently.  Each draw is a subset (no repeated column
inside a draw), but the same subset may be drawn twice; duplicates are
kept, as is usual for Monte-Carlo permutation tests.

Note the boundary: ``n_permutations == ncomb - 1`` still samples.
"""

from __future__ import annotations

import itertools
import logging
import math
import warnings
from dataclasses import dataclass

import numpy as np

from ._typing import RandomStateLike
from .exceptions import InsufficientGroupSizeError

logger = logging.getLogger(__name__)

EXACT_WARNING_THRESHOLD: int = 1_000_000
"""Exact enumerations larger than this emit a :class:`UserWarning`."""

MIN_GROUP_SIZE: int = 2


@dataclass(frozen=True, eq=False)
class IndexSet:
    """Group-1 column subsets to evaluate, observed assignment first.

    Attributes:
        indices: Integer array of shape ``(L, m1)``.  Each row holds the
            sorted pooled-column indices assigned to group 1.
        exact: ``True`` when the full reference set was enumerated.
        n_combinations: Size of the reference set (``ncomb``).
        symmetric: ``True`` when the equal-size symmetry reduction was
            applied (column 0 pinned to group 1).
    """

    indices: np.ndarray
    exact: bool
    n_combinations: int
    symmetric: bool

    @property
    def size(self) -> int:
        """Number of subsets ``L``, including the observed one."""
        return int(self.indices.shape[0])

    @property
    def group_size(self) -> int:
        return int(self.indices.shape[1])

    def __len__(self) -> int:
        return self.size


def _check_group_sizes(m1: int, m2: int) -> None:
    if m1 < MIN_GROUP_SIZE or m2 < MIN_GROUP_SIZE:
        raise InsufficientGroupSizeError(
            f"Need at least {MIN_GROUP_SIZE} curves per group, got "
            f"m1={m1} and m2={m2}."
        )


def count_combinations(m1: int, m2: int) -> int:
    """Size of the reference set for group sizes *m1* and *m2*.

    ``C(m-1, m1-1)`` when ``m1 == m2`` (symmetry reduction), otherwise
    ``C(m, m1)``.

    Raises:
        InsufficientGroupSizeError: If either group has fewer than two
            curves.
    """
    _check_group_sizes(m1, m2)
    m = m1 + m2
    if m1 == m2:
        return math.comb(m - 1, m1 - 1)
    return math.comb(m, m1)


def _enumerate_all(m1: int, m: int, symmetric: bool) -> np.ndarray:
    """All subsets in lexicographic order; row 0 is ``[0, …, m1-1]``."""
    if symmetric:
        # Column 0 is pinned; enumerate the other m1-1 members from 1..m-1.
        tails = itertools.combinations(range(1, m), m1 - 1)
        rows = [(0, *tail) for tail in tails]
    else:
        rows = list(itertools.combinations(range(m), m1))
    return np.array(rows, dtype=np.intp)


def _sample_subsets(
    m1: int,
    m: int,
    n_draws: int,
    symmetric: bool,
    rng: np.random.Generator,
) -> np.ndarray:
    """Draw *n_draws* random subsets, each without replacement.

    All draws come out of one vectorised ``Generator.permuted`` call:
    each row of a ``(B, k)`` tile is shuffled independently and its
    first ``m1`` (or ``m1 - 1``) entries form the subset.
    """
    if symmetric:
        pool = np.arange(1, m, dtype=np.intp)
        take = m1 - 1
    else:
        pool = np.arange(m, dtype=np.intp)
        take = m1

    batch = np.tile(pool, (n_draws, 1))
    rng.permuted(batch, axis=1, out=batch)
    drawn = np.sort(batch[:, :take], axis=1)

    if symmetric:
        drawn = np.hstack([np.zeros((n_draws, 1), dtype=np.intp), drawn])
    return drawn


def generate_index_set(
    m1: int,
    m2: int,
    n_permutations: int | None = 25_000,
    random_state: RandomStateLike = None,
) -> IndexSet:
    """Build the ordered set of group-1 subsets for the permutation test.

    Args:
        m1: Size of group 1 (the first ``m1`` pooled columns).
        m2: Size of group 2.
        n_permutations: Number of random subsets to draw, or ``None``
            to enumerate every subset.  Exact enumeration is also used
            when ``ncomb < n_permutations + 1``.
        random_state: Seed or ``numpy.random.Generator`` for the
            sampling branch.  Ignored for exact enumeration.

    Returns:
        An :class:`IndexSet` whose first row is ``[0, …, m1-1]``.  Exact
        sets have ``ncomb`` rows; sampled sets have
        ``n_permutations + 1`` rows.

    Raises:
        InsufficientGroupSizeError: If either group has fewer than two
            curves.
        ValueError: If *n_permutations* is not ``None`` or a positive
            integer.
    """
    _check_group_sizes(m1, m2)

    if n_permutations is not None:
        if isinstance(n_permutations, bool) or not isinstance(
            n_permutations, (int, np.integer)
        ):
            raise ValueError(
                f"n_permutations must be a positive integer or None, "
                f"got {n_permutations!r}."
            )
        if n_permutations < 1:
            raise ValueError(
                f"n_permutations must be a positive integer or None, "
                f"got {n_permutations}."
            )
        n_permutations = int(n_permutations)

    m = m1 + m2
    symmetric = m1 == m2
    ncomb = count_combinations(m1, m2)
    # Number of random subsets to draw, or None for full enumeration.
    n_draws = n_permutations
    if n_draws is not None and ncomb < n_draws + 1:
        n_draws = None
    exact = n_draws is None

    logger.debug(
        "Index set for m1=%d, m2=%d: ncomb=%d, requested=%s, exact=%s, symmetric=%s",
        m1, m2, ncomb, n_permutations, exact, symmetric,
    )

    if n_draws is None:
        if ncomb > EXACT_WARNING_THRESHOLD:
            warnings.warn(
                f"Exact enumeration materialises {ncomb} combinations for "
                f"m1={m1}, m2={m2}.  Pass an integer n_permutations to use "
                f"a Monte-Carlo test instead.",
                UserWarning,
                stacklevel=2,
            )
        indices = _enumerate_all(m1, m, symmetric)
        # itertools.combinations is lexicographic, so the observed
        # assignment is the first row.
        if not np.array_equal(indices[0], np.arange(m1)):
            raise RuntimeError(
                f"Exact enumeration must start with the observed assignment "
                f"{list(range(m1))}, got {indices[0].tolist()}."
            )
    else:
        rng = np.random.default_rng(random_state)
        drawn = _sample_subsets(m1, m, n_draws, symmetric, rng)
        observed = np.arange(m1, dtype=np.intp)[np.newaxis, :]
        indices = np.vstack([observed, drawn])

    indices.setflags(write=False)
    return IndexSet(
        indices=indices,
        exact=exact,
        n_combinations=ncomb,
        symmetric=symmetric,
    )


__all__ = [
    "EXACT_WARNING_THRESHOLD",
    "IndexSet",
    "count_combinations",
    "generate_index_set",
]
