"""NumPy backend (always available).

Batch evaluation works chunk by chunk over the subset matrix.  For
each chunk of ``B`` subsets a 0/1 membership matrix ``G`` of shape
``(m, B)`` is built and the group-1 sums come out of two ``dgemm``
calls (``pooled @ G`` and ``pooled² @ G``); the reduction to ``T`` or
``Tbar`` is then a handful of vectorised array operations.

Parallelism
~~~~~~~~~~~
When ``n_jobs != 1``, chunks are distributed with
``joblib.Parallel(prefer="threads")``.  Thread-based parallelism
(rather than process-based) avoids copying the pooled matrix into
every worker, and the matrix products release the GIL, so chunks
overlap on multi-core hardware.  Results are concatenated in chunk
order, so position 0 is always the observed statistic regardless of
scheduling.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from joblib import Parallel, delayed

from ..statistics import aggregate_statistic, membership_matrix


def _evaluate_chunk(
    pooled: np.ndarray,
    pooled_sq: np.ndarray,
    chunk: np.ndarray,
    m1: int,
    m2: int,
    use_tbar: bool,
    total_sum: np.ndarray,
    total_sumsq: np.ndarray,
) -> np.ndarray:
    membership = membership_matrix(chunk, m1 + m2)
    sx1 = pooled @ membership
    sxx1 = pooled_sq @ membership
    return np.asarray(
        aggregate_statistic(sx1, sxx1, total_sum, total_sumsq, m1, m2, use_tbar),
        dtype=np.float64,
    )


@dataclass(frozen=True)
class NumpyBackend:
    """NumPy / joblib compute backend.

    The class is a frozen dataclass with no instance state; it exists
    to namespace the batch method behind the :class:`BackendProtocol`
    interface and is safe to cache as a singleton.
    """

    @property
    def name(self) -> str:
        return "numpy"

    @property
    def is_available(self) -> bool:  # noqa: PLR6301
        return True

    def batch_statistics(
        self,
        pooled: np.ndarray,
        indices: np.ndarray,
        m1: int,
        m2: int,
        use_tbar: bool,
        total_sum: np.ndarray,
        total_sumsq: np.ndarray,
        *,
        n_jobs: int = 1,
        chunk_size: int = 4096,
    ) -> np.ndarray:
        pooled_sq = np.square(pooled)
        n_subsets = indices.shape[0]
        chunks = [
            indices[start : start + chunk_size]
            for start in range(0, n_subsets, chunk_size)
        ]

        if n_jobs == 1 or len(chunks) == 1:
            parts = [
                _evaluate_chunk(
                    pooled, pooled_sq, chunk, m1, m2, use_tbar, total_sum, total_sumsq
                )
                for chunk in chunks
            ]
        else:
            parts = Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(_evaluate_chunk)(
                    pooled, pooled_sq, chunk, m1, m2, use_tbar, total_sum, total_sumsq
                )
                for chunk in chunks
            )

        if not parts:
            return np.empty(0, dtype=np.float64)
        return np.concatenate(parts)
