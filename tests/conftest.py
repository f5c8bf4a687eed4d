from __future__ import annotations

import logging
import os
from pathlib import Path

import numpy as np
import pytest

from bootstrap_lab.config import reset_settings_cache
from bootstrap_lab.data import Dataset, correlated_pairs


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Point every path setting at ``tmp_path`` and restore logging afterwards."""

    for name in list(os.environ):
        if name.startswith("BOOTSTRAP_LAB_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("BOOTSTRAP_LAB_PROJECT_ROOT", str(tmp_path))
    monkeypatch.setenv("BOOTSTRAP_LAB_LOGS_DIR", str(tmp_path / "logs"))
    reset_settings_cache()

    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            handler.close()
            root.removeHandler(handler)
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)
    reset_settings_cache()


@pytest.fixture
def paired_dataset() -> Dataset:
    """32 (x, y) pairs drawn with population correlation 0.6."""
    return correlated_pairs(32, 0.6, seed=2024)


@pytest.fixture
def two_point_dataset() -> Dataset:
    """Two rows: a resample repeating one row has zero variance."""
    return Dataset.from_columns(x=np.array([0.0, 1.0]), y=np.array([0.0, 2.0]))
