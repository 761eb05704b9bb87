"""Exception hierarchy for fda_permtest.

Every error in this module is a precondition failure: it is raised
before any statistic is evaluated, it is never caught internally, and
no partial result accompanies it.  All subclass :class:`ValueError`
so callers that already guard against bad input with
``except ValueError`` keep working.
"""

from __future__ import annotations


class FdaPermtestError(ValueError):
    """Base class for input errors raised by the permutation test."""


class GridLengthMismatchError(FdaPermtestError):
    """The two samples are observed on grids with different point counts."""


class IncompatibleGridError(FdaPermtestError):
    """The grids have equal length but differ by more than the tolerance.

    The deviation is measured as ``mean(|x1 - x2|) / mean(|x1|)`` and
    compared against :data:`~fda_permtest.engine.GRID_TOLERANCE`.
    """


class InsufficientGroupSizeError(FdaPermtestError):
    """A group holds fewer than two curves, so its variance is undefined."""


__all__ = [
    "FdaPermtestError",
    "GridLengthMismatchError",
    "IncompatibleGridError",
    "InsufficientGroupSizeError",
]
