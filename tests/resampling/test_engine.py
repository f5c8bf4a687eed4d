import math
import time

import numpy as np
import pytest

from bootstrap_lab.data import Dataset, correlated_pairs
from bootstrap_lab.errors import (
    DegenerateInputError,
    InvalidSizeError,
    WorkerFailureError,
)
from bootstrap_lab.resampling import Correlation, Mean, bootstrap, run_bootstrap
from bootstrap_lab.utils.parallel import split_evenly


class _SlowMean:
    def __call__(self, view):
        time.sleep(0.02)
        return float(view["x"].mean())


class _ExplodingStatistic:
    """Fails once the resample mean of ``x`` exceeds a threshold."""

    def __call__(self, view):
        if view["x"].mean() > 0.2:
            raise RuntimeError("statistic crashed")
        return float(view["x"].mean())


def test_sequential_run_is_bit_identical_for_fixed_seed(paired_dataset):
    first = run_bootstrap(paired_dataset, Correlation(), 500, seed=7)
    second = run_bootstrap(paired_dataset, Correlation(), 500, seed=7)

    assert first.shape == (500,)
    np.testing.assert_array_equal(first, second)

    other = run_bootstrap(paired_dataset, Correlation(), 500, seed=8)
    assert not np.array_equal(first, other)


def test_parallel_run_is_reproducible_for_seed_and_worker_count(paired_dataset):
    kwargs = dict(mode="parallel", workers=4, backend="thread", seed=11)
    first = run_bootstrap(paired_dataset, Correlation(), 400, **kwargs)
    second = run_bootstrap(paired_dataset, Correlation(), 400, **kwargs)

    assert first.shape == (400,)
    np.testing.assert_array_equal(first, second)


def test_parallel_workers_draw_from_independent_streams(paired_dataset):
    replicates = run_bootstrap(
        paired_dataset, Correlation(), 400, mode="parallel", workers=4, backend="thread", seed=3
    )
    chunks = np.split(replicates, 4)

    for i in range(4):
        for j in range(i + 1, 4):
            assert not np.array_equal(chunks[i], chunks[j])
    sequential = run_bootstrap(paired_dataset, Correlation(), 100, seed=3)
    assert all(not np.array_equal(sequential, chunk) for chunk in chunks)


def test_parallel_and_sequential_agree_in_distribution(paired_dataset):
    sequential = run_bootstrap(paired_dataset, Correlation(), 4000, seed=21)
    parallel = run_bootstrap(
        paired_dataset, Correlation(), 4000, mode="parallel", workers=4, backend="thread", seed=21
    )

    assert parallel.size == sequential.size == 4000
    assert parallel.mean() == pytest.approx(sequential.mean(), abs=0.015)
    assert parallel.std(ddof=1) == pytest.approx(sequential.std(ddof=1), rel=0.1)


def test_process_backend_returns_full_replicate_set(paired_dataset):
    replicates = run_bootstrap(
        paired_dataset, Correlation(), 203, mode="parallel", workers=3, backend="process", seed=5
    )
    assert replicates.shape == (203,)
    assert np.isfinite(replicates).all()


def test_more_workers_than_resamples(paired_dataset):
    replicates = run_bootstrap(
        paired_dataset, Mean("x"), 3, mode="parallel", workers=8, backend="thread", seed=1
    )
    assert replicates.shape == (3,)


@pytest.mark.parametrize(
    "mode,backend",
    [
        ("sequential", "process"),
        ("parallel", "thread"),
        ("parallel", "process"),
        ("parallel", "joblib"),
    ],
)
def test_degenerate_resample_aborts_run(two_point_dataset, mode, backend):
    with pytest.raises(DegenerateInputError) as excinfo:
        run_bootstrap(
            two_point_dataset, Correlation(), 200, mode=mode, workers=2, backend=backend, seed=0
        )

    error = excinfo.value
    assert error.trial is not None and 0 <= error.trial < 200
    assert error.indices is not None and len(set(error.indices)) == 1


def test_degenerate_resamples_can_be_excluded(two_point_dataset):
    result = bootstrap(
        two_point_dataset, Correlation(), n_resamples=200, seed=0, drop_nan=True
    )
    # every non-degenerate resample of two rows is the original pair
    assert result.n_excluded > 0
    assert result.point_estimate == pytest.approx(1.0)
    assert result.standard_error == pytest.approx(0.0, abs=1e-12)


@pytest.mark.parametrize("backend", ["thread", "process"])
def test_worker_failure_aborts_whole_run(backend):
    dataset = Dataset.from_columns(x=np.linspace(0.0, 1.0, 20))
    with pytest.raises(WorkerFailureError) as excinfo:
        run_bootstrap(
            dataset, _ExplodingStatistic(), 400, mode="parallel", workers=4, backend=backend, seed=9
        )
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert excinfo.value.chunk is not None
    assert excinfo.value.trials == split_evenly(400, 4)[excinfo.value.chunk]


def test_joblib_backend_matches_thread_backend(paired_dataset):
    kwargs = dict(mode="parallel", workers=3, seed=17)
    joblib_run = run_bootstrap(paired_dataset, Correlation(), 301, backend="joblib", **kwargs)
    thread_run = run_bootstrap(paired_dataset, Correlation(), 301, backend="thread", **kwargs)

    assert joblib_run.shape == (301,)
    np.testing.assert_array_equal(joblib_run, thread_run)


def test_joblib_worker_failure_names_chunk(paired_dataset):
    with pytest.raises(WorkerFailureError) as excinfo:
        run_bootstrap(
            paired_dataset,
            Correlation("x", "missing"),
            100,
            mode="parallel",
            workers=2,
            backend="joblib",
            seed=1,
        )

    assert isinstance(excinfo.value.__cause__, KeyError)
    assert excinfo.value.chunk in (0, 1)
    assert excinfo.value.trials in ((0, 50), (50, 100))


def test_parallel_timeout_aborts_without_waiting():
    dataset = Dataset.from_columns(x=np.linspace(0.0, 1.0, 10))
    start = time.perf_counter()
    with pytest.raises(WorkerFailureError, match="timeout"):
        run_bootstrap(
            dataset,
            _SlowMean(),
            200,
            mode="parallel",
            workers=2,
            backend="thread",
            seed=0,
            timeout=0.2,
        )

    # each chunk alone needs about two seconds
    assert time.perf_counter() - start < 1.0


def test_invalid_sizes_are_rejected(paired_dataset):
    with pytest.raises(InvalidSizeError):
        run_bootstrap(paired_dataset, Correlation(), 1)
    empty = Dataset.from_columns(x=[], y=[])
    with pytest.raises(InvalidSizeError, match="zero rows"):
        run_bootstrap(empty, Correlation(), 100)


def test_invalid_mode_and_backend(paired_dataset):
    with pytest.raises(ValueError, match="mode"):
        run_bootstrap(paired_dataset, Correlation(), 10, mode="gpu")
    with pytest.raises(ValueError, match="backend"):
        run_bootstrap(paired_dataset, Correlation(), 10, mode="parallel", backend="mpi")


def test_bootstrap_end_to_end_scenario():
    dataset = correlated_pairs(32, 0.6, seed=2024)
    point = np.corrcoef(dataset.column("x"), dataset.column("y"))[0, 1]

    small = bootstrap(dataset, Correlation(), n_resamples=2000, confidence_level=0.95, seed=1)
    large = bootstrap(dataset, Correlation(), n_resamples=20000, confidence_level=0.95, seed=1)

    for result in (small, large):
        assert result.point_estimate == pytest.approx(point)
        assert result.normal_ci.contains(result.point_estimate)
        assert result.percentile_ci.contains(result.point_estimate)
        assert math.isfinite(result.normal_ci.width) and result.normal_ci.width > 0
        assert math.isfinite(result.percentile_ci.width) and result.percentile_ci.width > 0
        assert result.percentile_ci.upper <= 1.0

    # more replicates sharpen the SE estimate, they do not shrink it towards zero
    assert large.standard_error <= small.standard_error * 1.1
    assert large.standard_error > 0.5 * small.standard_error
    assert large.replicates.shape == (20000,)


def test_bootstrap_result_payload(paired_dataset):
    result = bootstrap(
        paired_dataset,
        Correlation(),
        n_resamples=300,
        mode="parallel",
        workers=2,
        backend="thread",
        seed=4,
        keep_replicates=False,
    )
    payload = result.to_dict(include_replicates=True)

    assert result.replicates is None
    assert "replicates" not in payload
    assert payload["seed"] == 4
    assert payload["workers"] == 2
    assert payload["mode"] == "parallel"
    assert payload["normal_ci"][0] < payload["point_estimate"] < payload["normal_ci"][1]


def test_bootstrap_rejects_degenerate_point_estimate():
    dataset = Dataset.from_columns(x=[2.0, 2.0, 2.0], y=[1.0, 2.0, 3.0])
    with pytest.raises(DegenerateInputError):
        bootstrap(dataset, Correlation(), n_resamples=50, seed=0)
