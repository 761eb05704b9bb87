"""Typed result object for the functional permutation test.

A frozen dataclass that provides:

* **Attribute access**: ``result.statistic``, ``result.p_value``, etc.
* **Bracket access**: ``result["p_value"]`` for consumers that index
  results by field name.
* **Serialisation**: ``.to_dict()`` returns a plain ``dict[str, Any]``
  with all NumPy types converted to native Python.

The field set mirrors a classical hypothesis-test report (statistic,
p-value, alternative, method, data name) and adds the permutation
metadata needed to reproduce or audit the test.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from ._context import PermutationContext


def _plain(value: Any) -> Any:
    """NumPy arrays and scalars as lists and Python scalars; tuples as lists."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, tuple):
        return [_plain(item) for item in value]
    return value


# ------------------------------------------------------------------ #
# PermutationTestResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True, eq=False)
class PermutationTestResult:
    """Result of :func:`~fda_permtest.tL2_permtest`.

    All fields are accessible both as attributes (``result.p_value``)
    and via dict syntax (``result["p_value"]``).
    """

    # ---- Test statistic --------------------------------------------
    statistic: float
    """Observed (unpermuted) statistic value."""

    statistic_name: str
    """``"T"`` or ``"Tbar"``."""

    # ---- P-value ---------------------------------------------------
    p_value: float
    """Empirical permutation p-value in ``[1/L, 1]``."""

    alternative: str
    """Alternative hypothesis label."""

    # ---- Description -----------------------------------------------
    method: tuple[str, str]
    """Two lines: statistic flavour, then exact-versus-sampled with count."""

    data_name: str
    """Names of the two samples, ``"<sample1> and <sample2>"``."""

    # ---- Permutation metadata --------------------------------------
    n_permutations: int
    """Number of evaluated subsets ``L`` (observed one included)."""

    exact: bool
    """``True`` when every subset of the reference set was evaluated."""

    permuted_statistics: np.ndarray
    """Full statistic sequence ``(L,)``; element 0 is the observed value."""

    backend: str
    """Compute backend used (``"numpy"`` or ``"jax"``)."""

    p_value_ci: tuple[float, float] | None = None
    """Clopper–Pearson interval for a Monte-Carlo p-value.  ``None``
    for exact tests, whose p-value carries no sampling error."""

    # ---- Computation context (not serialised) ----------------------
    context: PermutationContext | None = field(default=None, repr=False, compare=False)
    """Pipeline computation context (pooled matrix, totals, index set).
    Excluded from ``to_dict()`` serialisation."""

    @property
    def p_value_str(self) -> str:
        """p-value formatted to four significant figures."""
        return f"{self.p_value:.4g}"

    def __getitem__(self, key: str) -> Any:
        if key == "context" or key not in self.__dataclass_fields__:
            raise KeyError(key)
        return getattr(self, key)

    def to_dict(self) -> dict[str, Any]:
        """Every field except ``context``, as JSON-serialisable values."""
        return {
            f.name: _plain(getattr(self, f.name))
            for f in fields(self)
            if f.name != "context"
        }


__all__ = ["PermutationTestResult"]
