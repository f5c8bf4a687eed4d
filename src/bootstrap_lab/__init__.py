"""
Pacote bootstrap_lab: erros-padrão e intervalos de confiança via bootstrap.

Reamostra um dataset em memória com reposição, calcula uma estatística em cada
réplica e resume a distribuição das réplicas em erro-padrão, intervalo normal
e intervalo percentil, sequencialmente ou em um pool de workers.

Funções de alto nível são expostas aqui para facilitar o consumo como biblioteca.
"""

from .data import Dataset, correlated_pairs
from .errors import (
    BootstrapError,
    DegenerateInputError,
    InsufficientReplicatesError,
    InvalidSizeError,
    WorkerFailureError,
)
from .resampling import (
    BootstrapResult,
    ConfidenceInterval,
    aggregate,
    bootstrap,
    draw_indices,
    run_bootstrap,
)

__version__ = "0.1.0"

__all__ = [
    "Dataset",
    "correlated_pairs",
    "BootstrapError",
    "DegenerateInputError",
    "InsufficientReplicatesError",
    "InvalidSizeError",
    "WorkerFailureError",
    "BootstrapResult",
    "ConfidenceInterval",
    "aggregate",
    "bootstrap",
    "draw_indices",
    "run_bootstrap",
    "__version__",
]
