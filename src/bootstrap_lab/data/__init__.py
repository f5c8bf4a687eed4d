"""In-memory datasets: the read-only table and synthetic samples."""

from .dataset import Dataset, ResampledView
from .synthetic import BivariateNormal, correlated_pairs

__all__ = ["Dataset", "ResampledView", "BivariateNormal", "correlated_pairs"]
