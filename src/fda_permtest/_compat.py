"""DataFrame boundary for building samples from tables.

Curves often arrive as a wide table: one row per grid point, one
column per subject, and the grid either as the row index or as a
column of its own.  :func:`frame_to_curves` splits such a table into
the ``(args, fvals)`` pair that :class:`~fda_permtest.FunctionalSample`
stores.

pandas is the working format.  Polars frames (eager or lazy) are
converted with ``.to_pandas()`` on the way in, so Polars stays an
optional dependency.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, TypeAlias

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    import polars as pl

    DataFrameLike: TypeAlias = pd.DataFrame | pl.DataFrame | pl.LazyFrame
else:
    DataFrameLike: TypeAlias = pd.DataFrame

try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _is_polars(obj: object) -> bool:
    return _HAS_POLARS and isinstance(obj, (pl.DataFrame, pl.LazyFrame))


def _ensure_pandas_df(obj: DataFrameLike, *, name: str = "input") -> pd.DataFrame:
    """Return *obj* as a :class:`pandas.DataFrame`.

    pandas frames pass through unchanged (no copy); Polars
    ``LazyFrame`` objects are collected before conversion.

    Raises:
        TypeError: If *obj* is not a pandas or Polars frame.
    """
    if isinstance(obj, pd.DataFrame):
        return obj
    if _is_polars(obj):
        if isinstance(obj, pl.LazyFrame):
            obj = obj.collect()
        return obj.to_pandas()

    accepted = "a pandas DataFrame"
    if _HAS_POLARS:
        accepted += " or Polars DataFrame/LazyFrame"
    raise TypeError(f"'{name}' must be {accepted}, got {type(obj).__name__}.")


def frame_to_curves(
    frame: DataFrameLike,
    *,
    args_column: str | None = None,
    columns: Sequence[str] | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Split a wide table into a grid and a value matrix.

    Args:
        frame: pandas or Polars frame, rows are grid points.
        args_column: Column holding the grid.  When ``None`` the row
            index is the grid, which Polars frames do not have.
        columns: Subject columns, in order.  Defaults to every column
            except *args_column*.

    Returns:
        ``(args, fvals)`` with shapes ``(N,)`` and ``(N, m)``.

    Raises:
        TypeError: If *frame* is not a supported frame.
        ValueError: If *args_column* is missing, or is ``None`` for a
            Polars frame.
    """
    if args_column is None and _is_polars(frame):
        raise ValueError(
            "Polars frames have no row index; pass args_column to name "
            "the grid column."
        )
    df = _ensure_pandas_df(frame, name="frame")

    if args_column is None:
        args = df.index.to_numpy()
        values = df
    else:
        if args_column not in df.columns:
            raise ValueError(f"args_column {args_column!r} not found in frame.")
        args = df[args_column].to_numpy()
        values = df.drop(columns=[args_column])

    if columns is not None:
        values = values.loc[:, list(columns)]
    return args, values.to_numpy()
