"""Studentized two-sample permutation test for functional data.

Public entry point: :func:`tL2_permtest`.

Given two groups of curves observed on a common grid, the test asks
whether the groups are exchangeable (in particular, whether their mean
curves agree).  The observed statistic, ``T`` or ``Tbar`` (see
:mod:`~fda_permtest.statistics`), is compared with its distribution
over reassignments of the pooled curves to the two groups:

* **Exact**: every reassignment is evaluated when ``nperm is None``
  or when the reference set is no larger than ``nperm + 1``.
* **Monte-Carlo**: otherwise ``nperm`` random reassignments are drawn.

With equal group sizes the reference set is halved by symmetry, so
the default ``nperm = 25_000`` runs the exact test up to
``m1 = m2 = 9`` (``C(17, 8) = 24_310`` combinations).

References:
    * Hahn, U. (2012). A studentized permutation test for the
      comparison of spatial point patterns. *Journal of the American
      Statistical Association*, 107(498), 754–764.
    * Phipson, B. & Smyth, G. K. (2010). Permutation p-values should
      never be zero. *Stat. Appl. Genet. Mol. Biol.*, 9(1), Article 39.
"""

from __future__ import annotations

import logging
import math
import warnings

from ._context import PermutationContext
from ._results import PermutationTestResult
from ._typing import RandomStateLike
from .engine import PermutationEngine
from .pvalues import compute_pvalue_ci, count_at_least_as_extreme
from .samples import FunctionalSample
from .statistics import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)

ALTERNATIVE = "samples not exchangeable"


def _method_description(
    statistic_name: str, exact: bool, n_combinations: int, n_drawn: int
) -> tuple[str, str]:
    first = f"Studentized two sample permutation test for fda, using {statistic_name}"
    if exact:
        second = f"exact test, using all {n_combinations} permutations (combinations)"
    else:
        second = f"using {n_drawn} randomly selected permutations"
    return first, second


def _data_name(
    sample1: FunctionalSample,
    sample2: FunctionalSample,
    data_name: str | None,
) -> str:
    if data_name is not None:
        return data_name
    name1 = sample1.name or "sample1"
    name2 = sample2.name or "sample2"
    return f"{name1} and {name2}"


def tL2_permtest(  # noqa: N802
    sample1: FunctionalSample,
    sample2: FunctionalSample,
    nperm: int | None = 25_000,
    use_tbar: bool = False,
    *,
    random_state: RandomStateLike = None,
    backend: str | None = None,
    n_jobs: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    data_name: str | None = None,
    confidence_level: float = 0.95,
) -> PermutationTestResult:
    """Integrated studentized permutation test for two samples of curves.

    Args:
        sample1: First group of curves.
        sample2: Second group, on (approximately) the same grid.
        nperm: Number of random reassignments, or ``None`` for the
            exact test.  The exact test is also used whenever the
            reference set has fewer than ``nperm + 1`` members.
        use_tbar: Use ``Tbar`` (integrated squared difference over
            integrated spread) instead of ``T`` (mean of pointwise
            studentized squared differences).
        random_state: Seed or ``numpy.random.Generator`` for the
            Monte-Carlo branch.
        backend: ``"numpy"``, ``"jax"``, or ``None`` for the configured
            default.
        n_jobs: Threads for batch evaluation (NumPy backend only).
        chunk_size: Subsets per evaluation chunk.
        data_name: Label for the two samples.  Defaults to the sample
            names.
        confidence_level: Level of the Clopper–Pearson interval reported
            for Monte-Carlo p-values.

    Returns:
        :class:`~fda_permtest.PermutationTestResult`.

    Raises:
        GridLengthMismatchError: Grids differ in point count.
        IncompatibleGridError: Grids deviate by more than 5 %.
        InsufficientGroupSizeError: A group has fewer than two curves.
        ValueError: *nperm* is neither ``None`` nor a positive integer,
            or *confidence_level* is outside ``(0, 1)``.
    """
    if not 0 < confidence_level < 1:
        raise ValueError(
            f"confidence_level must lie in (0, 1), got {confidence_level}."
        )

    ctx = PermutationContext()
    engine = PermutationEngine(
        sample1,
        sample2,
        n_permutations=nperm,
        use_tbar=use_tbar,
        random_state=random_state,
        backend=backend,
        n_jobs=n_jobs,
        chunk_size=chunk_size,
        ctx=ctx,
    )
    statistics = engine.run()
    index_set = engine.index_set

    observed = float(statistics[0])
    if math.isnan(observed):
        warnings.warn(
            "The observed statistic is undefined because every grid point "
            "has zero within-group spread; the p-value is 1.",
            UserWarning,
            stacklevel=2,
        )

    count = count_at_least_as_extreme(statistics)
    n_total = index_set.size
    p_value = count / n_total
    ctx.count_at_least_as_extreme = count

    p_value_ci = None
    if not index_set.exact:
        p_value_ci = compute_pvalue_ci(count, n_total, alpha=1 - confidence_level)

    logger.debug(
        "%s = %.6g, p = %d/%d = %.6g", engine.statistic_name, observed, count, n_total, p_value
    )

    return PermutationTestResult(
        statistic=observed,
        statistic_name=engine.statistic_name,
        p_value=p_value,
        alternative=ALTERNATIVE,
        method=_method_description(
            engine.statistic_name,
            index_set.exact,
            index_set.n_combinations,
            n_total - 1,
        ),
        data_name=_data_name(sample1, sample2, data_name),
        n_permutations=n_total,
        exact=index_set.exact,
        permuted_statistics=statistics,
        backend=engine.backend_name,
        p_value_ci=p_value_ci,
        context=ctx,
    )


tl2_permtest = tL2_permtest
"""PEP 8 alias of :func:`tL2_permtest`."""


__all__ = ["ALTERNATIVE", "tL2_permtest", "tl2_permtest"]
