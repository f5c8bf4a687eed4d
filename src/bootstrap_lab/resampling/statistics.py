"""Statistic evaluation on resampled views.

A statistic is any callable ``statistic(view) -> float`` where ``view`` maps
column names to the resampled arrays (rows repeated as often as they were
drawn). It must be a pure function of its input: no globals, no hidden RNG.
That is what makes sequential runs reproducible and parallel runs safe.

The built-ins are small frozen dataclasses rather than closures so they can be
pickled into worker processes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Sequence

import numpy as np

from bootstrap_lab.errors import DegenerateInputError

__all__ = [
    "Statistic",
    "Correlation",
    "RegressionSlope",
    "Mean",
    "correlation",
    "regression_slope",
    "mean",
    "STATISTICS",
    "get_statistic",
    "evaluate",
]

Statistic = Callable[[Mapping[str, np.ndarray]], float]


def _centered(values: np.ndarray, name: str) -> np.ndarray:
    if values.size < 2:
        raise DegenerateInputError(f"column '{name}' needs at least two rows")
    if np.ptp(values) == 0:
        raise DegenerateInputError(f"column '{name}' has zero variance in this resample")
    return values - values.mean()


@dataclass(frozen=True)
class Correlation:
    """Pearson correlation between columns ``x`` and ``y``."""

    x: str = "x"
    y: str = "y"

    def __call__(self, view: Mapping[str, np.ndarray]) -> float:
        dx = _centered(view[self.x], self.x)
        dy = _centered(view[self.y], self.y)
        denom = math.sqrt(float(dx @ dx) * float(dy @ dy))
        if denom == 0.0:
            raise DegenerateInputError("correlation denominator is zero")
        return float(dx @ dy) / denom


@dataclass(frozen=True)
class RegressionSlope:
    """Ordinary least-squares slope of ``y`` on ``x``."""

    x: str = "x"
    y: str = "y"

    def __call__(self, view: Mapping[str, np.ndarray]) -> float:
        dx = _centered(view[self.x], self.x)
        dy = view[self.y] - view[self.y].mean()
        return float(dx @ dy) / float(dx @ dx)


@dataclass(frozen=True)
class Mean:
    """Arithmetic mean of one column."""

    column: str = "x"

    def __call__(self, view: Mapping[str, np.ndarray]) -> float:
        values = view[self.column]
        if values.size == 0:
            raise DegenerateInputError(f"column '{self.column}' is empty")
        return float(values.mean())


def correlation(x: str = "x", y: str = "y") -> Correlation:
    return Correlation(x, y)


def regression_slope(x: str = "x", y: str = "y") -> RegressionSlope:
    return RegressionSlope(x, y)


def mean(column: str = "x") -> Mean:
    return Mean(column)


STATISTICS: Dict[str, Callable[..., Statistic]] = {
    "correlation": correlation,
    "slope": regression_slope,
    "mean": lambda x="x", y=None: mean(x),
}


def get_statistic(name: str, x: str = "x", y: str = "y") -> Statistic:
    """Look up a built-in statistic by name (``correlation``, ``slope``, ``mean``)."""
    try:
        factory = STATISTICS[name]
    except KeyError:
        raise ValueError(
            f"Unknown statistic '{name}'. Choose from: {', '.join(sorted(STATISTICS))}"
        ) from None
    return factory(x, y)


def evaluate(
    statistic: Statistic,
    view: Mapping[str, np.ndarray],
    *,
    trial: Optional[int] = None,
    indices: Optional[Sequence[int]] = None,
    allow_nan: bool = False,
) -> float:
    """Apply ``statistic`` to one view and return a finite float.

    Numpy divide-by-zero and invalid-operation warnings are raised as errors
    while the statistic runs. ``DegenerateInputError``, ``FloatingPointError``
    and ``ZeroDivisionError`` are reported as :class:`DegenerateInputError`
    carrying ``trial`` and ``indices``. A NaN or infinite result is degenerate
    too, unless ``allow_nan`` is set, in which case NaN is returned for the
    aggregator to exclude. Any other exception propagates unchanged.
    """

    try:
        with np.errstate(divide="raise", invalid="raise"):
            value = statistic(view)
    except DegenerateInputError as exc:
        if allow_nan:
            return math.nan
        raise exc.with_context(trial=trial, indices=indices) from exc
    except (FloatingPointError, ZeroDivisionError) as exc:
        if allow_nan:
            return math.nan
        raise DegenerateInputError(
            _describe(f"statistic undefined ({type(exc).__name__}: {exc})", trial),
            trial=trial,
            indices=indices,
        ) from exc

    result = float(np.asarray(value, dtype=float).reshape(()))
    if math.isfinite(result):
        return result
    if allow_nan:
        return math.nan
    raise DegenerateInputError(
        _describe(f"statistic returned {result}", trial), trial=trial, indices=indices
    )


def _describe(message: str, trial: Optional[int]) -> str:
    return message if trial is None else f"trial {trial}: {message}"
