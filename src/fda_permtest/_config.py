"""Backend selection for batch statistic evaluation.

Two backends evaluate the statistic sequence: ``"numpy"`` (matrix
products, optionally spread over joblib threads) and ``"jax"``
(a jit-compiled kernel).  Which one runs when a caller passes
``backend=None`` is decided here, first match wins:

    1. A programmatic override from :func:`set_backend` or
       :func:`using_backend`.
    2. The ``FDA_PERMTEST_BACKEND`` environment variable.
    3. ``"jax"`` when JAX is importable, otherwise ``"numpy"``.

Names are case-insensitive; ``"auto"`` clears an override.

Examples:
    Force NumPy for a whole shell session::

        export FDA_PERMTEST_BACKEND=numpy

    Force NumPy for the rest of the program::

        import fda_permtest
        fda_permtest.set_backend("numpy")

    Force NumPy for one block only::

        with fda_permtest.using_backend("numpy"):
            result = fda_permtest.tL2_permtest(a, b)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)

ENV_VAR = "FDA_PERMTEST_BACKEND"

_BACKENDS = ("jax", "numpy")
_VALID_BACKENDS = {*_BACKENDS, "auto"}

# None until set_backend() is called; "auto" behaves like None.
_backend_override: str | None = None


def _normalise(name: str) -> str:
    normalised = name.strip().lower()
    if normalised not in _VALID_BACKENDS:
        raise ValueError(
            f"Unknown backend '{name}'. Choose from: {sorted(_VALID_BACKENDS)}"
        )
    return normalised


def _jax_is_available() -> bool:
    """Return ``True`` if JAX can be imported."""
    try:
        import jax  # noqa: F401
    except ImportError:
        return False
    return True


def get_backend() -> str:
    """Name of the backend used when ``backend=None``.

    Returns:
        ``"jax"`` or ``"numpy"``.
    """
    if _backend_override in _BACKENDS:
        return _backend_override

    env = os.environ.get(ENV_VAR, "").strip().lower()
    if env in _BACKENDS:
        logger.debug("Backend %r taken from %s", env, ENV_VAR)
        return env
    if env:
        logger.debug("Ignoring unrecognised %s=%r", ENV_VAR, env)

    detected = "jax" if _jax_is_available() else "numpy"
    logger.debug("Backend %r auto-detected", detected)
    return detected


def set_backend(name: str) -> None:
    """Override the backend used when ``backend=None``.

    Args:
        name: ``"jax"``, ``"numpy"`` or ``"auto"`` (case-insensitive).
            ``"auto"`` drops the override, so the environment variable
            and auto-detection apply again.

    Raises:
        ValueError: If *name* is not a recognised backend.
    """
    global _backend_override
    _backend_override = _normalise(name)


@contextmanager
def using_backend(name: str) -> Iterator[str]:
    """Temporarily override the backend inside a ``with`` block.

    The previous override (or its absence) is restored on exit, also
    when the block raises.

    Yields:
        The backend that is active inside the block.

    Raises:
        ValueError: If *name* is not a recognised backend.
    """
    global _backend_override
    previous = _backend_override
    _backend_override = _normalise(name)
    try:
        yield get_backend()
    finally:
        _backend_override = previous
