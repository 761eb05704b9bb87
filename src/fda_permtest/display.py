"""Formatted ASCII display of permutation test results.

The report follows the layout of a classical hypothesis-test printout
(data, statistic, p-value, alternative, method) and adds the
permutation metadata: number of evaluated subsets, backend, and, for
Monte-Carlo tests, the Clopper–Pearson interval of the p-value.

When that interval straddles a significance threshold the report
notes it and recommends a permutation count large enough to settle
which side of the threshold the exact p-value lies on.
"""

from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING

from .pvalues import compute_pvalue_ci

if TYPE_CHECKING:
    from ._results import PermutationTestResult

_WIDTH = 80
_LABEL = 16
_MAX_RECOMMENDED = 10_000_000


def _row(label: str, value: str, max_lines: int | None = None) -> str:
    """``label`` padded to the value column; continuation lines aligned to it."""
    return textwrap.fill(
        f"{label:<{_LABEL}}{value}",
        width=_WIDTH,
        subsequent_indent=" " * _LABEL,
        max_lines=max_lines,
        placeholder=" ...",
    )


def _straddled_threshold(
    ci_lo: float,
    ci_hi: float,
    thresholds: list[float],
) -> float | None:
    """Return the first threshold strictly inside ``(ci_lo, ci_hi)``."""
    for t in thresholds:
        if ci_lo < t < ci_hi:
            return t
    return None


def _permutations_to_resolve(p_value: float, threshold: float) -> int:
    """Permutation count at which *p_value* would no longer straddle *threshold*.

    Tries 100, 200, 400, ... permutations, holding the estimated
    p-value fixed, and returns the first count whose Clopper–Pearson
    interval excludes *threshold*.  Gives up at ``10_000_000``.
    """
    n_total = 100
    while n_total < _MAX_RECOMMENDED:
        ci_lo, ci_hi = compute_pvalue_ci(round(p_value * n_total), n_total)
        if not ci_lo < threshold < ci_hi:
            return n_total
        n_total *= 2
    return _MAX_RECOMMENDED


def print_results_table(
    result: PermutationTestResult,
    *,
    title: str = "Studentized Two-Sample Permutation Test for Functional Data",
    thresholds: tuple[float, ...] = (0.05, 0.01, 0.001),
) -> None:
    """Print a permutation test result as an ASCII report.

    Args:
        result: Result returned by :func:`~fda_permtest.tL2_permtest`.
        title: Title line.
        thresholds: Significance levels checked against the Monte-Carlo
            p-value interval.
    """
    print("=" * _WIDTH)
    for line in textwrap.wrap(title, width=_WIDTH - 2):
        print(f"{line:^{_WIDTH}}")
    print("=" * _WIDTH)

    print(_row("Data:", result.data_name, max_lines=1))
    print(_row("Statistic:", f"{result.statistic_name} = {result.statistic:.6g}"))
    print(_row("p-Value:", result.p_value_str))
    print(_row("Alternative:", result.alternative))
    method_first, method_second = result.method
    print(_row("Method:", method_first))
    print(_row("", method_second))
    print(
        f"{'Subsets:':<{_LABEL}}{result.n_permutations:<24}"
        f"{'Backend:':>{_WIDTH - _LABEL - 24 - 11}} {result.backend:>10}"
    )

    note: str | None = None
    if result.p_value_ci is not None:
        ci_lo, ci_hi = result.p_value_ci
        print("-" * _WIDTH)
        print(_row("p-Value CI:", f"[{ci_lo:.4f}, {ci_hi:.4f}] (Clopper-Pearson)"))

        threshold = _straddled_threshold(ci_lo, ci_hi, list(thresholds))
        if threshold is not None:
            b_rec = _permutations_to_resolve(result.p_value, threshold)
            note = (
                f"  [!] The p-value interval straddles {threshold}.  Rerun "
                f"with nperm >= {b_rec} to resolve it, or nperm=None for "
                f"the exact test."
            )

    if note is not None:
        print("-" * _WIDTH)
        print("Notes")
        print("-" * _WIDTH)
        print(textwrap.fill(note, width=_WIDTH, subsequent_indent=" " * 6))

    print("=" * _WIDTH)
    print()


__all__ = ["print_results_table"]
