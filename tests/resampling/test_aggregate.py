import math

import numpy as np
import pandas as pd
import pytest

from bootstrap_lab.errors import DegenerateInputError, InsufficientReplicatesError
from bootstrap_lab.resampling import (
    aggregate,
    compare_vs_reference,
    critical_value,
    percentile_interval,
    standard_error,
)

FIVE = np.array([1.0, 2.0, 3.0, 4.0, 5.0])


def test_standard_error_uses_sample_divisor():
    assert standard_error(FIVE) == pytest.approx(math.sqrt(10.0 / 4.0))
    assert standard_error(FIVE) == pytest.approx(1.5811388, rel=1e-6)


def test_percentile_interval_linear_interpolation():
    # type 7: h = (B - 1) * q -> 0.1 and 3.9 for q = 0.025 / 0.975
    interval = percentile_interval(FIVE, 0.95)
    assert interval.lower == pytest.approx(1.1)
    assert interval.upper == pytest.approx(4.9)

    lower, upper = percentile_interval(FIVE, 0.8)
    assert lower == pytest.approx(1.4)
    assert upper == pytest.approx(4.6)


def test_critical_value_from_inverse_normal():
    assert critical_value(0.95) == pytest.approx(1.959964, rel=1e-6)
    assert critical_value(0.90) == pytest.approx(1.644854, rel=1e-6)
    assert critical_value(0.99) == pytest.approx(2.575829, rel=1e-6)


def test_aggregate_known_replicates():
    result = aggregate(FIVE, point_estimate=3.0, confidence_level=0.95)

    se = math.sqrt(2.5)
    assert result.standard_error == pytest.approx(se)
    assert result.normal_ci.lower == pytest.approx(3.0 - 1.959964 * se, rel=1e-6)
    assert result.normal_ci.upper == pytest.approx(3.0 + 1.959964 * se, rel=1e-6)
    assert result.percentile_ci == pytest.approx((1.1, 4.9))
    assert result.n_replicates == 5
    assert result.n_excluded == 0
    assert result.bias == pytest.approx(0.0)


def test_aggregate_order_does_not_matter():
    shuffled = np.array([4.0, 1.0, 5.0, 3.0, 2.0])
    assert aggregate(shuffled, 3.0, 0.9) == aggregate(FIVE, 3.0, 0.9)


def test_aggregate_fails_fast_on_nan():
    with pytest.raises(DegenerateInputError, match="1 of 6 replicates are NaN"):
        aggregate(np.append(FIVE, np.nan), 3.0, 0.95)


def test_aggregate_can_exclude_nan_and_reports_count():
    replicates = np.array([1.0, np.nan, 2.0, 3.0, np.nan, 4.0, 5.0])
    result = aggregate(replicates, 3.0, 0.95, drop_nan=True)

    assert result.n_excluded == 2
    assert result.n_replicates == 5
    assert result.standard_error == pytest.approx(math.sqrt(2.5))


def test_aggregate_rejects_too_few_replicates():
    with pytest.raises(InsufficientReplicatesError) as excinfo:
        aggregate([1.0], 1.0, 0.95)
    assert excinfo.value.available == 1

    with pytest.raises(InsufficientReplicatesError):
        aggregate([1.0, np.nan, np.nan], 1.0, 0.95, drop_nan=True)


@pytest.mark.parametrize("level", [0.0, 1.0, -0.5, 1.5])
def test_aggregate_validates_confidence_level(level):
    with pytest.raises(ValueError, match="confidence_level"):
        aggregate(FIVE, 3.0, level)


def test_confidence_interval_helpers():
    result = aggregate(FIVE, 3.0, 0.95)
    assert result.percentile_ci.width == pytest.approx(3.8)
    assert result.normal_ci.contains(3.0)
    assert not result.percentile_ci.contains(5.0)


def test_compare_vs_reference_scalar_and_dataframe():
    samples = np.array([0.5, 0.6, 0.4, 0.7])
    assert compare_vs_reference(samples, 0.5) == pytest.approx(0.5)

    frame = pd.DataFrame({"corr": samples, "slope": [0.1, 0.2, 0.3, 0.4]})
    probs = compare_vs_reference(frame, pd.Series({"corr": 0.5, "slope": 0.2}))
    assert set(probs.index) == {"corr", "slope"}
    assert probs["corr"] == pytest.approx(0.5)
    assert probs["slope"] == pytest.approx(0.5)
