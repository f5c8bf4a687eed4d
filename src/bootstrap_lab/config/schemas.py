"""Pydantic schemas for run configuration files.

This module defines typed configuration schemas using Pydantic v2 for:
- Dataset source (CSV file or synthetic correlated sample)
- Bootstrap run parameters (statistic, B, confidence level, execution mode)

YAML files passed to ``bootstrap-lab run --config`` validate against
:class:`BootstrapConfig`.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import DEFAULT_CONFIDENCE_LEVEL, DEFAULT_N_RESAMPLES

__all__ = [
    "SyntheticDataConfig",
    "DataConfig",
    "BootstrapConfig",
]


class SyntheticDataConfig(BaseModel):
    """Bivariate normal sample with a target correlation.

    Attributes
    ----------
    n_rows : int
        Number of (x, y) pairs to draw
    rho : float
        Population correlation between x and y
    seed : Optional[int]
        Seed for the generator; None draws fresh entropy
    """

    n_rows: int = Field(default=32, gt=1, description="Number of rows")
    rho: float = Field(default=0.6, ge=-1, le=1, description="Target correlation")
    seed: int | None = Field(default=None, description="Generator seed")


class DataConfig(BaseModel):
    """Where the dataset comes from.

    Exactly one of ``path`` and ``synthetic`` must be given.
    """

    path: str | None = Field(default=None, description="CSV file with the dataset")
    columns: list[str] | None = Field(
        default=None, description="Subset of numeric columns to load"
    )
    synthetic: SyntheticDataConfig | None = Field(
        default=None, description="Synthetic sample specification"
    )

    @model_validator(mode="after")
    def validate_single_source(self) -> "DataConfig":
        """Ensure exactly one data source is configured."""
        if (self.path is None) == (self.synthetic is None):
            raise ValueError("Provide exactly one of 'path' or 'synthetic'")
        return self


class BootstrapConfig(BaseModel):
    """Bootstrap run configuration.

    Attributes
    ----------
    statistic : Literal
        Built-in statistic name (correlation, slope, mean)
    x, y : str
        Column names fed to the statistic (``mean`` only uses ``x``)
    n_resamples : int
        Number of bootstrap replicates (B >= 2)
    confidence_level : float
        Two-sided confidence level in (0, 1)
    mode : Literal
        ``sequential`` or ``parallel``
    workers : Optional[int]
        Pool size for parallel mode; None uses the settings default
    backend : Literal
        Pool implementation (process, thread, joblib)
    seed : Optional[int]
        Master seed; None falls back to ``Settings.random_seed``
    drop_nan : bool
        Exclude undefined replicates instead of failing the run
    """

    name: str = Field(default="bootstrap", description="Run identifier")
    data: DataConfig = Field(description="Dataset source")
    statistic: Literal["correlation", "slope", "mean"] = Field(
        default="correlation", description="Statistic evaluated on each resample"
    )
    x: str = Field(default="x", description="First column")
    y: str = Field(default="y", description="Second column")
    n_resamples: int = Field(
        default=DEFAULT_N_RESAMPLES, ge=2, description="Number of replicates (B)"
    )
    confidence_level: float = Field(
        default=DEFAULT_CONFIDENCE_LEVEL, gt=0, lt=1, description="Confidence level"
    )
    mode: Literal["sequential", "parallel"] = Field(
        default="sequential", description="Execution strategy"
    )
    workers: int | None = Field(default=None, ge=1, description="Worker pool size")
    backend: Literal["process", "thread", "joblib"] = Field(
        default="process", description="Worker pool backend"
    )
    seed: int | None = Field(default=None, description="Master seed")
    drop_nan: bool = Field(default=False, description="Exclude NaN replicates")

    @field_validator("x", "y")
    @classmethod
    def validate_column_name(cls, v: str) -> str:
        """Column names must be non-empty."""
        v = v.strip()
        if not v:
            raise ValueError("Column names must be non-empty")
        return v
