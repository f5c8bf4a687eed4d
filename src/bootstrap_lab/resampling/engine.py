"""Bootstrap execution: sequential or across a worker pool.

Each trial draws an index set, evaluates the statistic on the rows it selects
and yields one replicate. Trials share nothing but the read-only
:class:`~bootstrap_lab.data.Dataset`.

Random streams
--------------
*Sequential* runs use a single generator seeded with the master seed and are
bit-identical across reruns. *Parallel* runs split the B trials into one
contiguous chunk per worker; chunk ``k`` draws from its own generator built
from ``SeedSequence(master).spawn(workers)[k]``. Streams are independent by
construction, and a given (seed, workers) pair always reproduces the same
replicate set. Sequential and parallel runs agree in distribution, not value
by value.

Failure policy
--------------
A run either returns exactly B replicates or raises. A degenerate resample
raises :class:`DegenerateInputError` with its trial number and indices; any
other worker failure cancels the pending chunks, shuts the pool down and
raises :class:`WorkerFailureError` carrying the chunk number and its trial
range.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from bootstrap_lab.config.constants import (
    DEFAULT_CONFIDENCE_LEVEL,
    EXECUTION_BACKENDS,
    EXECUTION_MODES,
    MIN_REPLICATES,
)
from bootstrap_lab.config.logging_conf import run_context
from bootstrap_lab.data.dataset import Dataset
from bootstrap_lab.errors import DegenerateInputError, InvalidSizeError, WorkerFailureError
from bootstrap_lab.resampling.aggregate import ConfidenceInterval, aggregate
from bootstrap_lab.resampling.indices import draw_indices
from bootstrap_lab.resampling.statistics import Statistic, evaluate
from bootstrap_lab.utils.parallel import parallel_map, split_evenly
from bootstrap_lab.utils.seed import (
    register_seed_logging,
    resolve_master_seed,
    rng_factory,
    spawn_seed_sequences,
)

__all__ = ["BootstrapResult", "bootstrap", "run_bootstrap", "resolve_workers"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ChunkTask:
    dataset: Dataset
    statistic: Statistic
    start: int
    stop: int
    seed_sequence: np.random.SeedSequence
    allow_nan: bool


def _run_trials(
    dataset: Dataset,
    statistic: Statistic,
    rng: np.random.Generator,
    start: int,
    stop: int,
    allow_nan: bool,
) -> np.ndarray:
    n_rows = dataset.n_rows
    out = np.empty(stop - start, dtype=float)
    for offset, trial in enumerate(range(start, stop)):
        indices = draw_indices(n_rows, rng)
        out[offset] = evaluate(
            statistic,
            dataset.take(indices),
            trial=trial,
            indices=indices,
            allow_nan=allow_nan,
        )
    return out


def _run_chunk(task: _ChunkTask) -> np.ndarray:
    rng = np.random.default_rng(task.seed_sequence)
    return _run_trials(
        task.dataset, task.statistic, rng, task.start, task.stop, task.allow_nan
    )


def resolve_workers(workers: Optional[int]) -> int:
    """Pool size, with ``None`` or ``0`` meaning one worker per CPU."""
    if workers is None or workers == 0:
        return os.cpu_count() or 1
    if workers < 0:
        raise ValueError("workers must be a positive integer")
    return int(workers)


def _check_request(dataset: Dataset, n_resamples: int, mode: str, backend: str) -> None:
    if mode not in EXECUTION_MODES:
        raise ValueError(f"mode must be one of {', '.join(EXECUTION_MODES)}; got '{mode}'")
    if backend not in EXECUTION_BACKENDS:
        raise ValueError(
            f"backend must be one of {', '.join(EXECUTION_BACKENDS)}; got '{backend}'"
        )
    if dataset.n_rows == 0:
        raise InvalidSizeError("dataset has zero rows")
    if isinstance(n_resamples, bool) or not isinstance(n_resamples, (int, np.integer)):
        raise InvalidSizeError("n_resamples must be an integer")
    if n_resamples < MIN_REPLICATES:
        raise InvalidSizeError(
            f"n_resamples must be at least {MIN_REPLICATES}, got {n_resamples}"
        )


def run_bootstrap(
    dataset: Dataset,
    statistic: Statistic,
    n_resamples: int,
    *,
    mode: str = "sequential",
    workers: Optional[int] = None,
    backend: str = "process",
    seed: Optional[int] = None,
    drop_nan: bool = False,
    timeout: Optional[float] = None,
) -> np.ndarray:
    """Generate the replicate set of ``statistic`` over ``n_resamples`` resamples.

    Parameters
    ----------
    dataset:
        Shared read-only table.
    statistic:
        Pure callable ``view -> float``. Must be picklable for the
        ``process`` and ``joblib`` backends.
    n_resamples:
        Number of replicates B (at least 2).
    mode:
        ``"sequential"`` or ``"parallel"``.
    workers:
        Pool size in parallel mode; ``None`` means one per CPU.
    backend:
        ``"process"``, ``"thread"`` or ``"joblib"`` (parallel mode only).
    seed:
        Master seed; ``None`` draws fresh entropy.
    drop_nan:
        Let undefined replicates through as NaN instead of failing.
    timeout:
        Wall-clock limit in seconds for a parallel run (per chunk with the
        ``joblib`` backend). Exceeding it raises :class:`WorkerFailureError`
        without waiting for busy workers.

    Returns
    -------
    numpy.ndarray
        Exactly ``n_resamples`` replicates.
    """

    _check_request(dataset, n_resamples, mode, backend)
    master_seed = resolve_master_seed(seed)
    n_resamples = int(n_resamples)
    start_time = time.perf_counter()

    if mode == "sequential":
        replicates = _run_trials(
            dataset, statistic, rng_factory(master_seed), 0, n_resamples, drop_nan
        )
        pool_size = 1
    else:
        bounds = split_evenly(n_resamples, resolve_workers(workers))
        pool_size = len(bounds)
        children = spawn_seed_sequences(master_seed, len(bounds))
        tasks = [
            _ChunkTask(dataset, statistic, start, stop, child, drop_nan)
            for (start, stop), child in zip(bounds, children)
        ]
        try:
            chunks = parallel_map(
                _run_chunk,
                tasks,
                backend=backend,
                max_workers=len(tasks),
                timeout=timeout,
                passthrough=(DegenerateInputError,),
            )
        except WorkerFailureError as exc:
            if exc.chunk is not None and exc.trials is None:
                exc.trials = bounds[exc.chunk]
            raise
        replicates = np.concatenate(chunks)

    if replicates.size != n_resamples:  # pragma: no cover - guarded by parallel_map
        raise RuntimeError(f"expected {n_resamples} replicates, collected {replicates.size}")

    logger.info(
        "Bootstrap concluído: B=%d mode=%s workers=%d em %.2fs",
        n_resamples,
        mode,
        pool_size,
        time.perf_counter() - start_time,
        extra={"n_resamples": n_resamples, "mode": mode, "workers": pool_size},
    )
    return replicates


@dataclass(frozen=True)
class BootstrapResult:
    """Outcome of :func:`bootstrap`."""

    point_estimate: float
    standard_error: float
    normal_ci: ConfidenceInterval
    percentile_ci: ConfidenceInterval
    confidence_level: float
    n_resamples: int
    n_excluded: int
    bias: float
    mode: str
    workers: int
    seed: int
    replicates: Optional[np.ndarray] = field(default=None, repr=False, compare=False)

    def to_dict(self, *, include_replicates: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "point_estimate": self.point_estimate,
            "standard_error": self.standard_error,
            "normal_ci": [self.normal_ci.lower, self.normal_ci.upper],
            "percentile_ci": [self.percentile_ci.lower, self.percentile_ci.upper],
            "confidence_level": self.confidence_level,
            "n_resamples": self.n_resamples,
            "n_excluded": self.n_excluded,
            "bias": self.bias,
            "mode": self.mode,
            "workers": self.workers,
            "seed": self.seed,
        }
        if include_replicates and self.replicates is not None:
            payload["replicates"] = [float(v) for v in self.replicates]
        return payload


def bootstrap(
    dataset: Dataset,
    statistic: Statistic,
    *,
    n_resamples: int,
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
    mode: str = "sequential",
    workers: Optional[int] = None,
    backend: str = "process",
    seed: Optional[int] = None,
    drop_nan: bool = False,
    keep_replicates: bool = True,
    timeout: Optional[float] = None,
) -> BootstrapResult:
    """Point estimate, replicate generation and interval derivation in one call.

    The point estimate is the statistic on the full dataset and must itself
    be well defined. Aggregation starts only after every trial has finished.
    Log records emitted during the run carry its seed, mode, pool size and B.
    """

    _check_request(dataset, n_resamples, mode, backend)
    if not 0.0 < float(confidence_level) < 1.0:
        raise ValueError("confidence_level must lie in (0, 1)")

    master_seed = resolve_master_seed(seed)
    pool_size = 1 if mode == "sequential" else min(resolve_workers(workers), int(n_resamples))

    with run_context(
        seed=master_seed, mode=mode, workers=pool_size, n_resamples=int(n_resamples)
    ):
        register_seed_logging(logger, master_seed)

        point_estimate = evaluate(statistic, dataset.view())
        replicates = run_bootstrap(
            dataset,
            statistic,
            n_resamples,
            mode=mode,
            workers=workers,
            backend=backend,
            seed=master_seed,
            drop_nan=drop_nan,
            timeout=timeout,
        )
        summary = aggregate(replicates, point_estimate, confidence_level, drop_nan=drop_nan)
        if summary.n_excluded:
            logger.warning(
                "%d de %d réplicas indefinidas foram excluídas",
                summary.n_excluded,
                n_resamples,
                extra={"n_excluded": summary.n_excluded},
            )

    return BootstrapResult(
        point_estimate=point_estimate,
        standard_error=summary.standard_error,
        normal_ci=summary.normal_ci,
        percentile_ci=summary.percentile_ci,
        confidence_level=float(confidence_level),
        n_resamples=int(n_resamples),
        n_excluded=summary.n_excluded,
        bias=summary.bias,
        mode=mode,
        workers=pool_size,
        seed=master_seed,
        replicates=replicates if keep_replicates else None,
    )
