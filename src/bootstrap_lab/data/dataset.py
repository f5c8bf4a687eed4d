"""Read-only tabular dataset shared by every bootstrap trial."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Iterator, Sequence, Union

import numpy as np
import pandas as pd

__all__ = ["Dataset", "ResampledView"]

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray, pd.Series]


def _freeze(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


class ResampledView(Mapping):
    """Column mapping for one resample (rows repeated as the indices dictate)."""

    __slots__ = ("_columns", "_n_rows")

    def __init__(self, columns: Mapping[str, np.ndarray], n_rows: int) -> None:
        self._columns = dict(columns)
        self._n_rows = n_rows

    def __getitem__(self, key: str) -> np.ndarray:
        return self._columns[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    @property
    def n_rows(self) -> int:
        return self._n_rows

    def __repr__(self) -> str:
        return f"ResampledView(columns={list(self._columns)}, n_rows={self._n_rows})"


class Dataset:
    """Fixed-size table of named numeric columns.

    Columns are converted once to ``float64`` arrays flagged read-only, so the
    same object can be handed to every trial (and every thread) without
    copying. Worker processes receive one pickled copy per task chunk, never
    one per trial.

    Parameters
    ----------
    data : DataFrame or mapping of column name to 1-D array-like
        Source values. All columns must have the same length.
    columns : sequence of str, optional
        Subset (and order) of columns to keep. Defaults to all columns.

    Raises
    ------
    ValueError
        If no columns are selected, lengths differ, or values contain NaN/inf.
    TypeError
        If a selected column is not numeric.
    """

    __slots__ = ("_columns", "_n_rows")

    def __init__(
        self,
        data: pd.DataFrame | Mapping[str, ArrayLike],
        *,
        columns: Sequence[str] | None = None,
    ) -> None:
        frame = data if isinstance(data, pd.DataFrame) else pd.DataFrame(dict(data))
        if columns is not None:
            missing = [name for name in columns if name not in frame.columns]
            if missing:
                raise KeyError(f"Columns not found in dataset: {', '.join(map(str, missing))}")
            frame = frame.loc[:, list(columns)]
        if frame.shape[1] == 0:
            raise ValueError("Dataset requires at least one column")
        if frame.shape[0] == 0:
            # empty sequences carry no dtype; pandas infers object
            frame = frame.astype(float)

        converted: dict[str, np.ndarray] = {}
        for name in frame.columns:
            series = frame[name]
            if not pd.api.types.is_numeric_dtype(series) or pd.api.types.is_bool_dtype(series):
                raise TypeError(f"Column '{name}' is not numeric (dtype={series.dtype})")
            values = series.to_numpy(dtype=float, copy=True)
            bad = np.flatnonzero(~np.isfinite(values))
            if bad.size:
                shown = ", ".join(str(i) for i in bad[:10])
                raise ValueError(
                    f"Column '{name}' contains NaN/inf at rows: {shown}"
                    + (" ..." if bad.size > 10 else "")
                )
            converted[str(name)] = _freeze(values)

        self._columns = converted
        self._n_rows = int(frame.shape[0])

    # Construction helpers ---------------------------------------------------

    @classmethod
    def from_columns(cls, **columns: ArrayLike) -> "Dataset":
        """Build a dataset from keyword arrays, e.g. ``Dataset.from_columns(x=..., y=...)``."""
        lengths = {name: len(values) for name, values in columns.items()}
        if len(set(lengths.values())) > 1:
            raise ValueError(f"Columns must have equal length, got {lengths}")
        return cls({name: np.asarray(values) for name, values in columns.items()})

    @classmethod
    def from_csv(
        cls,
        path: str | Path,
        *,
        columns: Sequence[str] | None = None,
        **read_kwargs: Any,
    ) -> "Dataset":
        """Load a CSV file with :func:`pandas.read_csv`."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Dataset file not found: {path}")
        frame = pd.read_csv(path, **read_kwargs)
        logger.debug("Loaded %d rows x %d columns from %s", *frame.shape, path)
        return cls(frame, columns=columns)

    # Accessors ----------------------------------------------------------------

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self._columns)

    @property
    def n_rows(self) -> int:
        return self._n_rows

    def __len__(self) -> int:
        return self._n_rows

    def column(self, name: str) -> np.ndarray:
        try:
            return self._columns[name]
        except KeyError:
            raise KeyError(
                f"Unknown column '{name}'; available: {', '.join(self._columns)}"
            ) from None

    def view(self) -> ResampledView:
        """The full dataset as a view (no copy); used for the point estimate."""
        return ResampledView(self._columns, self._n_rows)

    def take(self, indices: np.ndarray) -> ResampledView:
        """Gather rows by position, preserving repeats."""
        idx = np.asarray(indices, dtype=np.intp)
        return ResampledView(
            {name: values.take(idx) for name, values in self._columns.items()},
            int(idx.size),
        )

    # Pickling (process pools) -------------------------------------------------

    def __getstate__(self) -> tuple[dict[str, np.ndarray], int]:
        return self._columns, self._n_rows

    def __setstate__(self, state: tuple[dict[str, np.ndarray], int]) -> None:
        columns, n_rows = state
        self._columns = {name: _freeze(values) for name, values in columns.items()}
        self._n_rows = n_rows

    def __repr__(self) -> str:
        return f"Dataset(n_rows={self._n_rows}, columns={list(self._columns)})"
