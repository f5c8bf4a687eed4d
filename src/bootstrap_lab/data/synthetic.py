"""Synthetic paired samples with a known population correlation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from bootstrap_lab.data.dataset import Dataset
from bootstrap_lab.utils.seed import rng_factory

__all__ = ["BivariateNormal", "correlated_pairs"]


@dataclass(frozen=True)
class BivariateNormal:
    """Population of (x, y) pairs with correlation ``rho``.

    Instances are picklable and callable as ``population(rng, n_rows)``, the
    sampler signature expected by :func:`bootstrap_lab.simulation.repeated_sampling`.
    """

    rho: float
    mean_x: float = 0.0
    mean_y: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0

    def __post_init__(self) -> None:
        if not -1.0 <= self.rho <= 1.0:
            raise ValueError("rho must lie in [-1, 1]")
        if self.scale_x <= 0 or self.scale_y <= 0:
            raise ValueError("scales must be positive")

    def sample(self, rng: np.random.Generator, n_rows: int) -> Dataset:
        if n_rows < 1:
            raise ValueError("n_rows must be positive")
        z1 = rng.standard_normal(n_rows)
        z2 = rng.standard_normal(n_rows)
        x = z1
        y = self.rho * z1 + np.sqrt(1.0 - self.rho**2) * z2
        return Dataset.from_columns(
            x=self.mean_x + self.scale_x * x,
            y=self.mean_y + self.scale_y * y,
        )

    __call__ = sample


def correlated_pairs(
    n_rows: int,
    rho: float,
    *,
    seed: Optional[int] = None,
    mean: tuple[float, float] = (0.0, 0.0),
    scale: tuple[float, float] = (1.0, 1.0),
) -> Dataset:
    """Draw ``n_rows`` pairs from a bivariate normal with correlation ``rho``."""
    population = BivariateNormal(
        rho=rho, mean_x=mean[0], mean_y=mean[1], scale_x=scale[0], scale_y=scale[1]
    )
    return population.sample(rng_factory(seed), n_rows)
