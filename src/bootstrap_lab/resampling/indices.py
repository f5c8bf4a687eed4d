"""Resample index draws (iid, with replacement)."""

from __future__ import annotations

import numpy as np

from bootstrap_lab.errors import InvalidSizeError

__all__ = ["draw_indices", "expected_distinct_fraction"]


def draw_indices(n: int, rng: np.random.Generator) -> np.ndarray:
    """Draw ``n`` row positions uniformly from ``{0, ..., n-1}`` with replacement.

    Repeats and omissions are expected: on average only ``1 - (1 - 1/n)**n``
    (about 63.2%) of the rows appear in a draw. The generator is advanced in
    place, so successive calls on the same ``rng`` give independent draws.
    """

    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise InvalidSizeError(f"n must be an integer, got {type(n).__name__}")
    if n <= 0:
        raise InvalidSizeError(f"cannot resample a dataset with {n} rows")
    return rng.integers(0, n, size=int(n))


def expected_distinct_fraction(n: int) -> float:
    """Expected share of distinct rows in one draw of size ``n``."""
    if n <= 0:
        raise InvalidSizeError("n must be positive")
    return 1.0 - (1.0 - 1.0 / n) ** n
