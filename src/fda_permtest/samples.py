"""Functional sample container.

A :class:`FunctionalSample` bundles one group of curves observed on a
common argument grid:

* ``args`` : the grid, shape ``(N,)``.
* ``fvals``: function values, shape ``(N, m)``; column *j* holds
  subject *j*'s curve evaluated at every grid point.

The permutation test only reads these two arrays (plus the derived
``groupsize`` and ``dimarg``), so the container is deliberately thin.
Arrays are copied to float64 and flagged read-only at construction so
a sample cannot be mutated while a test is running.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from ._compat import DataFrameLike, frame_to_curves


def _frozen_array(values: object, *, name: str) -> np.ndarray:
    """Return a read-only float64 copy of *values*."""
    try:
        arr = np.array(values, dtype=np.float64, copy=True)
    except (TypeError, ValueError) as exc:
        raise TypeError(f"'{name}' must be numeric, got {type(values).__name__}.") from exc
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class FunctionalSample:
    """One group of curves sampled on a shared grid.

    Args:
        args: Grid of function arguments, shape ``(N,)``.
        fvals: Function values, shape ``(N, m)``.  A 1-D array of
            length ``N`` is read as a single curve.
        name: Optional label used in the result's ``data_name``.

    Raises:
        ValueError: If the grid is empty or not finite, or if the
            value matrix does not have one row per grid point.
    """

    args: np.ndarray
    fvals: np.ndarray
    name: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        args = _frozen_array(self.args, name="args")
        fvals = _frozen_array(self.fvals, name="fvals")

        if args.ndim != 1:
            raise ValueError(f"'args' must be one-dimensional, got shape {args.shape}.")
        if args.size == 0:
            raise ValueError("'args' must contain at least one grid point.")
        if not np.all(np.isfinite(args)):
            raise ValueError("'args' must contain only finite values.")

        if fvals.ndim == 1:
            fvals = fvals.reshape(-1, 1)
            fvals.setflags(write=False)
        if fvals.ndim != 2:
            raise ValueError(
                f"'fvals' must be a matrix of shape (N, m), got shape {fvals.shape}."
            )
        if fvals.shape[0] != args.size:
            raise ValueError(
                f"'fvals' has {fvals.shape[0]} rows but the grid has "
                f"{args.size} points; rows must correspond to grid points."
            )
        if fvals.shape[1] == 0:
            raise ValueError("'fvals' must contain at least one curve.")

        # Frozen dataclass: bypass __setattr__ to store the normalised arrays.
        object.__setattr__(self, "args", args)
        object.__setattr__(self, "fvals", fvals)

    @property
    def groupsize(self) -> int:
        """Number of curves (subjects) in the sample."""
        return int(self.fvals.shape[1])

    @property
    def dimarg(self) -> int:
        """Number of grid points."""
        return int(self.args.size)

    def __len__(self) -> int:
        return self.groupsize

    @classmethod
    def from_frame(
        cls,
        frame: DataFrameLike,
        *,
        args_column: str | None = None,
        columns: Sequence[str] | None = None,
        name: str | None = None,
    ) -> FunctionalSample:
        """Build a sample from a wide DataFrame.

        Rows are grid points and columns are subjects.  The grid is read
        from *args_column* when given, otherwise from the frame's index.

        Args:
            frame: pandas or Polars DataFrame.
            args_column: Column holding the grid values.  Required for
                Polars input, which has no row index.
            columns: Subject columns to use.  Defaults to every column
                except *args_column*.
            name: Sample label for reporting.

        Returns:
            A new :class:`FunctionalSample`.
        """
        args, fvals = frame_to_curves(frame, args_column=args_column, columns=columns)
        return cls(args=args, fvals=fvals, name=name)


__all__ = ["FunctionalSample"]
