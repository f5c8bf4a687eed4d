"""Deterministic seed management and independent random streams.

Nothing in the package touches the global ``numpy.random`` / ``random`` state.
Each run owns one master seed; sequential runs draw from a single
``numpy.random.Generator`` built from it, while parallel runs derive one child
stream per worker through :class:`numpy.random.SeedSequence`. Spawned children
are statistically independent and never overlap, unlike ``base_seed +
worker_id`` schemes.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from bootstrap_lab.config.constants import MAX_SEED_VALUE

__all__ = [
    "MAX_SEED_VALUE",
    "normalize_seed",
    "resolve_master_seed",
    "rng_factory",
    "spawn_seed_sequences",
    "derive_seeds",
    "register_seed_logging",
]


def normalize_seed(seed: int) -> int:
    """
    Normaliza a seed para o intervalo [0, 2**32 - 1].

    Seeds negativas ou maiores que 32 bits são aceitas e mapeadas de forma
    determinística, então o mesmo valor sempre gera o mesmo stream.
    """
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
        raise TypeError(f"seed must be an integer, got {type(seed).__name__}")
    return abs(int(seed)) % MAX_SEED_VALUE


def resolve_master_seed(seed: Optional[int] = None) -> int:
    """
    Retorna a seed mestre efetiva de uma execução.

    Quando ``seed`` é None uma seed nova é extraída da entropia do sistema.
    O valor resolvido é sempre devolvido para que a execução possa ser
    reproduzida depois.
    """
    if seed is None:
        return int(np.random.SeedSequence().entropy % MAX_SEED_VALUE)
    return normalize_seed(seed)


def rng_factory(seed: Optional[int] = None) -> np.random.Generator:
    """
    Cria um ``numpy.random.Generator`` isolado (PCG64).

    Args:
        seed (Optional[int]): A seed para o gerador. Se None, a inicialização
                              será não-determinística.
    """
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng(normalize_seed(seed))


def spawn_seed_sequences(seed: int, n_streams: int) -> List[np.random.SeedSequence]:
    """Derive ``n_streams`` independent child seed sequences from ``seed``.

    The children are picklable and cheap to ship to worker processes; stream
    ``k`` depends only on (``seed``, ``k``), so reruns with the same master
    seed and worker count are reproducible.
    """
    if n_streams < 1:
        raise ValueError("n_streams must be at least 1")
    return np.random.SeedSequence(normalize_seed(seed)).spawn(n_streams)


def derive_seeds(seed: int, n_seeds: int) -> List[int]:
    """
    Deriva ``n_seeds`` seeds inteiras independentes a partir da seed mestre.

    Usado quando duas etapas de uma mesma execução (ex.: gerar o dataset e
    reamostrá-lo) precisam de streams próprios, independentes também do stream
    de ``rng_factory(seed)``.
    """
    return [
        int(child.generate_state(1)[0]) for child in spawn_seed_sequences(seed, n_seeds)
    ]


def register_seed_logging(logger: logging.Logger, seed: int, **context: object) -> None:
    """
    Loga a seed que está sendo usada para fins de auditoria e reprodutibilidade.

    Args:
        logger (logging.Logger): A instância do logger a ser usada.
        seed (int): A seed que está sendo registrada.
    """
    logger.info("Execução utilizando a seed: %s", seed, extra={"seed": seed, **context})
