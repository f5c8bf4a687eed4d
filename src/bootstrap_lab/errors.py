"""Exception hierarchy shared by the resampling modules.

Every failure raised by the bootstrap pipeline derives from
:class:`BootstrapError` so callers can catch the whole family at once. The
concrete classes also inherit from the closest builtin (``ValueError``,
``ArithmeticError``, ``RuntimeError``) to keep ``except ValueError`` blocks in
calling code working.
"""

from __future__ import annotations

from typing import Sequence

__all__ = [
    "BootstrapError",
    "InvalidSizeError",
    "DegenerateInputError",
    "InsufficientReplicatesError",
    "WorkerFailureError",
]


class BootstrapError(Exception):
    """Base class for bootstrap failures."""


class InvalidSizeError(BootstrapError, ValueError):
    """Raised when the dataset is empty or fewer than two resamples are requested."""


class DegenerateInputError(BootstrapError, ArithmeticError):
    """Raised when a statistic is undefined on a resample.

    Attributes
    ----------
    trial : int | None
        Zero-based trial number within the run, when known.
    indices : tuple[int, ...] | None
        Row indices of the offending resample, so the failure can be replayed.
    """

    def __init__(
        self,
        message: str,
        *,
        trial: int | None = None,
        indices: Sequence[int] | None = None,
    ) -> None:
        super().__init__(message)
        self.trial = trial
        self.indices = None if indices is None else tuple(int(i) for i in indices)

    def with_context(
        self, *, trial: int | None = None, indices: Sequence[int] | None = None
    ) -> "DegenerateInputError":
        """Return a copy carrying trial information (keeps existing values)."""

        message = str(self.args[0]) if self.args else "degenerate resample"
        if trial is not None and self.trial is None:
            message = f"trial {trial}: {message}"
        return DegenerateInputError(
            message,
            trial=self.trial if self.trial is not None else trial,
            indices=self.indices if self.indices is not None else indices,
        )

    def __reduce__(self):
        # keyword-only constructor arguments need an explicit pickle recipe
        return (_rebuild_degenerate, (str(self), self.trial, self.indices))


def _rebuild_degenerate(
    message: str, trial: int | None, indices: Sequence[int] | None
) -> DegenerateInputError:
    return DegenerateInputError(message, trial=trial, indices=indices)


class InsufficientReplicatesError(BootstrapError, ValueError):
    """Raised when fewer than two usable replicates reach the aggregator."""

    def __init__(self, message: str, *, available: int = 0) -> None:
        super().__init__(message)
        self.available = available

    def __reduce__(self):
        return (_rebuild_insufficient, (str(self), self.available))


def _rebuild_insufficient(message: str, available: int) -> InsufficientReplicatesError:
    return InsufficientReplicatesError(message, available=available)


class WorkerFailureError(BootstrapError, RuntimeError):
    """Raised when a worker task fails; the whole run is aborted."""

    def __init__(
        self,
        message: str,
        *,
        chunk: int | None = None,
        trials: tuple[int, int] | None = None,
    ) -> None:
        super().__init__(message)
        self.chunk = chunk
        self.trials = trials
