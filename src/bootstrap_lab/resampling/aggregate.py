"""Summaries of a bootstrap replicate set.

Quantile rule
-------------
Percentile intervals use ``numpy.quantile(..., method="linear")``, i.e.
Hyndman & Fan type 7: for sorted replicates ``r[0..B-1]`` the ``q`` quantile
is ``r[j] + g * (r[j+1] - r[j])`` with ``h = (B - 1) q``, ``j = floor(h)``,
``g = h - j``. This is also the default of R's ``quantile`` and pandas. The
rule is fixed on purpose so percentile bounds are reproducible across
versions.

NaN policy
----------
By default a NaN replicate aborts aggregation with
:class:`~bootstrap_lab.errors.DegenerateInputError`. With ``drop_nan=True``
NaNs are excluded and the count is reported in ``n_excluded``.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Sequence, Union

import numpy as np
import pandas as pd
from scipy.stats import norm

from bootstrap_lab.config.constants import MIN_REPLICATES, QUANTILE_METHOD
from bootstrap_lab.errors import DegenerateInputError, InsufficientReplicatesError

__all__ = [
    "AggregateResult",
    "ConfidenceInterval",
    "aggregate",
    "compare_vs_reference",
    "critical_value",
    "percentile_interval",
    "standard_error",
]

SamplesLike = Union[Sequence[float], np.ndarray, pd.Series]


class ConfidenceInterval(NamedTuple):
    lower: float
    upper: float

    @property
    def width(self) -> float:
        return self.upper - self.lower

    def contains(self, value: float) -> bool:
        return self.lower <= value <= self.upper


class AggregateResult(NamedTuple):
    standard_error: float
    normal_ci: ConfidenceInterval
    percentile_ci: ConfidenceInterval
    n_replicates: int
    n_excluded: int
    mean: float
    bias: float


def _check_level(confidence_level: float) -> float:
    level = float(confidence_level)
    if not 0.0 < level < 1.0:
        raise ValueError("confidence_level must lie in (0, 1)")
    return level


def _clean(replicates: SamplesLike, *, drop_nan: bool) -> tuple[np.ndarray, int]:
    array = np.asarray(replicates, dtype=float).ravel()
    nan_mask = np.isnan(array)
    n_nan = int(nan_mask.sum())
    if n_nan:
        if not drop_nan:
            first = int(np.flatnonzero(nan_mask)[0])
            raise DegenerateInputError(
                f"{n_nan} of {array.size} replicates are NaN (first at position {first}); "
                "pass drop_nan=True to exclude them",
                trial=first,
            )
        array = array[~nan_mask]
    if np.isinf(array).any():
        raise DegenerateInputError("replicates contain infinite values")
    if array.size < MIN_REPLICATES:
        raise InsufficientReplicatesError(
            f"need at least {MIN_REPLICATES} usable replicates, got {array.size}",
            available=int(array.size),
        )
    return array, n_nan


def critical_value(confidence_level: float) -> float:
    """Two-sided standard normal critical value, e.g. 1.959964 for 0.95."""
    level = _check_level(confidence_level)
    return float(norm.ppf(1.0 - (1.0 - level) / 2.0))


def standard_error(replicates: SamplesLike, *, drop_nan: bool = False) -> float:
    """Sample standard deviation of the replicates (divisor ``B - 1``)."""
    array, _ = _clean(replicates, drop_nan=drop_nan)
    return float(np.std(array, ddof=1))


def percentile_interval(
    replicates: SamplesLike, confidence_level: float, *, drop_nan: bool = False
) -> ConfidenceInterval:
    """Empirical ``alpha/2`` and ``1 - alpha/2`` quantiles (type 7)."""
    level = _check_level(confidence_level)
    array, _ = _clean(replicates, drop_nan=drop_nan)
    alpha = 1.0 - level
    lower, upper = np.quantile(array, [alpha / 2.0, 1.0 - alpha / 2.0], method=QUANTILE_METHOD)
    return ConfidenceInterval(float(lower), float(upper))


def aggregate(
    replicates: SamplesLike,
    point_estimate: float,
    confidence_level: float,
    *,
    drop_nan: bool = False,
) -> AggregateResult:
    """Standard error plus normal-approximation and percentile intervals.

    Parameters
    ----------
    replicates:
        The B statistic values; order is irrelevant.
    point_estimate:
        Statistic on the full dataset; centre of the normal interval.
    confidence_level:
        Two-sided level in (0, 1).
    drop_nan:
        Exclude NaN replicates instead of failing.

    Raises
    ------
    InsufficientReplicatesError
        Fewer than two usable replicates.
    DegenerateInputError
        NaN replicates with ``drop_nan=False`` or any infinite replicate.
    """

    level = _check_level(confidence_level)
    estimate = float(point_estimate)
    if not math.isfinite(estimate):
        raise DegenerateInputError(f"point estimate is not finite ({estimate})")

    array, n_excluded = _clean(replicates, drop_nan=drop_nan)
    se = float(np.std(array, ddof=1))
    z = critical_value(level)
    alpha = 1.0 - level
    lower, upper = np.quantile(array, [alpha / 2.0, 1.0 - alpha / 2.0], method=QUANTILE_METHOD)
    replicate_mean = float(array.mean())

    return AggregateResult(
        standard_error=se,
        normal_ci=ConfidenceInterval(estimate - z * se, estimate + z * se),
        percentile_ci=ConfidenceInterval(float(lower), float(upper)),
        n_replicates=int(array.size),
        n_excluded=n_excluded,
        mean=replicate_mean,
        bias=replicate_mean - estimate,
    )


def compare_vs_reference(
    replicates: SamplesLike | pd.DataFrame,
    reference: float | pd.Series,
) -> float | pd.Series:
    """Probability that a replicate exceeds ``reference``.

    DataFrames are handled column by column against a scalar or a Series of
    per-column references.
    """

    if isinstance(replicates, pd.DataFrame):
        if isinstance(reference, pd.Series):
            bench = reference.reindex(replicates.columns).astype(float)
        else:
            bench = pd.Series(float(reference), index=replicates.columns)
        probs = {
            column: float(compare_vs_reference(replicates[column], bench[column]))
            for column in replicates.columns
        }
        return pd.Series(probs, dtype=float)

    samples = np.asarray(replicates, dtype=float)
    samples = samples[np.isfinite(samples)]
    if samples.size == 0:
        raise InsufficientReplicatesError("replicates contain no finite values", available=0)

    if isinstance(reference, pd.Series):
        if reference.size != 1:
            raise ValueError(
                "reference series must contain a single value when comparing against 1D replicates"
            )
        reference_value = float(reference.iloc[0])
    else:
        reference_value = float(reference)

    return float(np.mean(samples > reference_value))
