"""Constantes centrais utilizadas em múltiplos módulos.

Consolida valores padrão da reamostragem (número de réplicas, nível de
confiança), a regra de quantis usada nos intervalos percentis e limites de
seed. A centralização evita literais mágicos espalhados pelo projeto.
"""

from __future__ import annotations

from typing import Final

__all__ = [
    "DEFAULT_CONFIDENCE_LEVEL",
    "DEFAULT_N_RESAMPLES",
    "DEFAULT_RANDOM_SEED",
    "EXECUTION_BACKENDS",
    "EXECUTION_MODES",
    "MAX_SEED_VALUE",
    "MIN_REPLICATES",
    "QUANTILE_METHOD",
]


DEFAULT_N_RESAMPLES: Final[int] = 2000
"""Número padrão de réplicas bootstrap (B)."""

DEFAULT_CONFIDENCE_LEVEL: Final[float] = 0.95

DEFAULT_RANDOM_SEED: Final[int] = 42

MIN_REPLICATES: Final[int] = 2
"""Menor B para o qual o desvio-padrão amostral (divisor B-1) existe."""

QUANTILE_METHOD: Final[str] = "linear"
"""Regra de quantis do ``numpy.quantile`` (Hyndman & Fan tipo 7)."""

MAX_SEED_VALUE: Final[int] = 2**32

EXECUTION_MODES: Final[tuple[str, ...]] = ("sequential", "parallel")

EXECUTION_BACKENDS: Final[tuple[str, ...]] = ("process", "thread", "joblib")
