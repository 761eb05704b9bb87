"""Backend abstraction layer for batch statistic evaluation.

Each backend implements the :class:`BackendProtocol` interface: given
the pooled value matrix, its precomputed row totals, and a matrix of
group-1 subsets, return the statistic for every subset in row order.
The orchestration code dispatches to the active backend via
:func:`resolve_backend` rather than testing for JAX at every call site.

Resolution follows the policy set by :mod:`.._config`:

1. Programmatic override via :func:`~fda_permtest.set_backend`.
2. ``FDA_PERMTEST_BACKEND`` environment variable.
3. Auto-detection: ``"jax"`` if importable, else ``"numpy"``.

When ``"jax"`` is explicitly requested but JAX is not installed, an
:class:`ImportError` is raised.  Explicit requests are never silently
degraded; only ``"auto"`` falls back from JAX to NumPy.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np

from .._config import get_backend

# ------------------------------------------------------------------ #
# BackendProtocol
# ------------------------------------------------------------------ #


@runtime_checkable
class BackendProtocol(Protocol):
    """Interface that every compute backend must implement.

    Attributes:
        name: Short identifier (e.g. ``"numpy"``, ``"jax"``).
    """

    @property
    def name(self) -> str: ...

    @property
    def is_available(self) -> bool:
        """Whether the backend's dependencies are importable."""
        ...

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
        """Evaluate ``T`` / ``Tbar`` for every subset.

        Args:
            pooled: Pooled value matrix ``(N, m)``, float64.
            indices: Group-1 subsets ``(L, m1)``.
            m1: Size of group 1.
            m2: Size of group 2.
            use_tbar: ``True`` for ``Tbar``.
            total_sum: Row sums over all ``m`` columns, ``(N,)``.
            total_sumsq: Row sums of squares, ``(N,)``.
            n_jobs: Parallel workers, where the backend supports them.
            chunk_size: Subsets per chunk.

        Returns:
            Statistics ``(L,)`` in the row order of *indices*.
        """
        ...


# ------------------------------------------------------------------ #
# Backend resolution
# ------------------------------------------------------------------ #

# Singleton cache: instantiated once per backend name.
_BACKEND_CACHE: dict[str, BackendProtocol] = {}


def resolve_backend(name: str | None = None) -> BackendProtocol:
    """Return a :class:`BackendProtocol` instance for *name*.

    When *name* is ``None`` (the default), the policy from
    :func:`~fda_permtest._config.get_backend` is used.

    Args:
        name: ``"numpy"``, ``"jax"``, or ``None`` for policy default.

    Returns:
        A backend instance ready for batch evaluation.

    Raises:
        ImportError: If ``"jax"`` is explicitly requested but JAX
            is not installed.
        ValueError: If *name* is not a recognised backend.
    """
    if name is None:
        name = get_backend()
    name = name.strip().lower()

    if name in _BACKEND_CACHE:
        return _BACKEND_CACHE[name]

    if name == "numpy":
        from ._numpy import NumpyBackend

        backend: BackendProtocol = NumpyBackend()

    elif name == "jax":
        from ._jax import JaxBackend

        jax_backend = JaxBackend()
        if not jax_backend.is_available:
            msg = (
                "Backend 'jax' was explicitly requested but JAX is "
                "not installed.  Install JAX (`pip install jax`) or "
                "use set_backend('numpy')."
            )
            raise ImportError(msg)
        backend = jax_backend

    else:
        msg = f"Unknown backend {name!r}.  Choose 'numpy' or 'jax'."
        raise ValueError(msg)

    _BACKEND_CACHE[name] = backend
    return backend


__all__ = ["BackendProtocol", "resolve_backend"]
