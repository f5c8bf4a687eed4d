"""Resample → compute → aggregate."""

from .aggregate import (
    AggregateResult,
    ConfidenceInterval,
    aggregate,
    compare_vs_reference,
    critical_value,
    percentile_interval,
    standard_error,
)
from .engine import BootstrapResult, bootstrap, resolve_workers, run_bootstrap
from .indices import draw_indices, expected_distinct_fraction
from .statistics import (
    STATISTICS,
    Correlation,
    Mean,
    RegressionSlope,
    Statistic,
    correlation,
    evaluate,
    get_statistic,
    mean,
    regression_slope,
)

__all__ = [
    "AggregateResult",
    "ConfidenceInterval",
    "aggregate",
    "compare_vs_reference",
    "critical_value",
    "percentile_interval",
    "standard_error",
    "BootstrapResult",
    "bootstrap",
    "resolve_workers",
    "run_bootstrap",
    "draw_indices",
    "expected_distinct_fraction",
    "STATISTICS",
    "Correlation",
    "Mean",
    "RegressionSlope",
    "Statistic",
    "correlation",
    "evaluate",
    "get_statistic",
    "mean",
    "regression_slope",
]
