"""JAX-accelerated backend for batch statistic evaluation.

The reduction from group-1 sums to ``T`` / ``Tbar`` is the same
:func:`~fda_permtest.statistics.aggregate_statistic` kernel the NumPy
backend uses, run with ``jax.numpy`` as the array namespace and
compiled once per ``(m1, m2, use_tbar)`` combination by ``jax.jit``.

NumPy ↔ JAX boundary convention
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
The public method accepts NumPy arrays and returns a NumPy array.
JAX arrays are materialised at the boundary:

* **Inbound:** ``jnp.asarray(x, dtype=jnp.float64)``.  Float64 is
  explicit because JAX defaults to float32, and the sum-of-squares
  formula loses most of its precision in single precision when the
  curves have a large mean relative to their spread.
* **Outbound:** ``np.asarray(result)``.

Chunking
~~~~~~~~
Chunks are padded to a fixed length so every call hits the same
compiled executable; padded rows reuse the observed subset and are
dropped before returning.  ``n_jobs`` is ignored: XLA parallelises
the matrix products itself.

Graceful degradation
~~~~~~~~~~~~~~~~~~~~
If JAX is not installed, :class:`JaxBackend` can still be instantiated
(for introspection) but ``is_available`` returns ``False`` and
:func:`~fda_permtest._backends.resolve_backend` raises ``ImportError``
when this backend is explicitly requested.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial

import numpy as np

from ..statistics import aggregate_statistic, membership_matrix

try:
    import jax

    # Enable 64-bit floating point before any array creation.
    jax.config.update("jax_enable_x64", True)

    import jax.numpy as jnp
    from jax import jit

    _CAN_IMPORT_JAX = True
except ImportError:
    _CAN_IMPORT_JAX = False


if _CAN_IMPORT_JAX:

    @partial(jit, static_argnames=("m1", "m2", "use_tbar"))
    def _chunk_kernel(
        pooled,
        pooled_sq,
        membership,
        total_sum,
        total_sumsq,
        *,
        m1: int,
        m2: int,
        use_tbar: bool,
    ):
        sx1 = pooled @ membership
        sxx1 = pooled_sq @ membership
        return aggregate_statistic(
            sx1, sxx1, total_sum, total_sumsq, m1, m2, use_tbar, xp=jnp
        )


@dataclass(frozen=True)
class JaxBackend:
    """JAX compute backend (jit-compiled batch kernel)."""

    @property
    def name(self) -> str:
        return "jax"

    @property
    def is_available(self) -> bool:  # noqa: PLR6301
        return _CAN_IMPORT_JAX

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
        n_subsets = indices.shape[0]
        if n_subsets == 0:
            return np.empty(0, dtype=np.float64)

        m = m1 + m2
        width = min(chunk_size, n_subsets)
        pooled_j = jnp.asarray(pooled, dtype=jnp.float64)
        pooled_sq_j = pooled_j**2
        total_sum_j = jnp.asarray(total_sum, dtype=jnp.float64)
        total_sumsq_j = jnp.asarray(total_sumsq, dtype=jnp.float64)

        parts: list[np.ndarray] = []
        for start in range(0, n_subsets, width):
            chunk = indices[start : start + width]
            n_real = chunk.shape[0]
            if n_real < width:
                pad = np.broadcast_to(indices[0], (width - n_real, m1))
                chunk = np.vstack([chunk, pad])
            membership = jnp.asarray(membership_matrix(chunk, m), dtype=jnp.float64)
            values = _chunk_kernel(
                pooled_j,
                pooled_sq_j,
                membership,
                total_sum_j,
                total_sumsq_j,
                m1=m1,
                m2=m2,
                use_tbar=use_tbar,
            )
            parts.append(np.asarray(values)[:n_real])

        return np.concatenate(parts).astype(np.float64, copy=False)
