"""Shared type aliases for the fda_permtest package."""

import numpy as np

# Anything numpy.random.default_rng() accepts.
RandomStateLike = int | np.random.Generator | None
