"""fda_permtest: Studentized permutation tests for functional data.

Tests whether two groups of curves, observed on a common grid, are
exchangeable, using the integrated studentized statistics ``T`` and
``Tbar`` of Hahn (2012).  The reference distribution is either the
exact set of group reassignments (halved by symmetry for equal group
sizes) or a Monte-Carlo sample of it; statistics for all
reassignments are evaluated in vectorised batches on a NumPy or JAX
backend.

Public API:
    .. autosummary::
        tL2_permtest
        tl2_permtest
        FunctionalSample
        PermutationTestResult
        PermutationEngine
        PermutationContext
        IndexSet
        generate_index_set
        count_combinations
        studentized_statistic
        batch_statistics
        pooled_totals
        permutation_p_value
        compute_pvalue_ci
        print_results_table
        get_backend
        set_backend
        using_backend
        FdaPermtestError
        GridLengthMismatchError
        IncompatibleGridError
        InsufficientGroupSizeError
"""

from ._config import get_backend, set_backend, using_backend
from ._context import PermutationContext
from ._results import PermutationTestResult
from .combinations import IndexSet, count_combinations, generate_index_set
from .core import tl2_permtest, tL2_permtest
from .display import print_results_table
from .engine import PermutationEngine
from .exceptions import (
    FdaPermtestError,
    GridLengthMismatchError,
    IncompatibleGridError,
    InsufficientGroupSizeError,
)
from .pvalues import compute_pvalue_ci, permutation_p_value
from .samples import FunctionalSample
from .statistics import (
    batch_statistics,
    center_rows,
    pooled_totals,
    studentized_statistic,
)

__all__ = [
    "tL2_permtest",
    "tl2_permtest",
    "FunctionalSample",
    "PermutationTestResult",
    "PermutationEngine",
    "PermutationContext",
    "IndexSet",
    "generate_index_set",
    "count_combinations",
    "studentized_statistic",
    "batch_statistics",
    "pooled_totals",
    "center_rows",
    "permutation_p_value",
    "compute_pvalue_ci",
    "print_results_table",
    "get_backend",
    "set_backend",
    "using_backend",
    "FdaPermtestError",
    "GridLengthMismatchError",
    "IncompatibleGridError",
    "InsufficientGroupSizeError",
]

__version__ = "0.1.0"
