from __future__ import annotations

from pathlib import Path

import pytest

from bootstrap_lab.config.settings import (
    Settings,
    get_settings,
    load_env_file,
    reset_settings_cache,
)


def test_load_env_file_parses_key_value(tmp_path: Path) -> None:
    env_path = tmp_path / "custom.env"
    env_path.write_text(
        """
        # comment
        BOOTSTRAP_LAB_ENVIRONMENT=production
        BOOTSTRAP_LAB_RANDOM_SEED=101
        INVALID_LINE
        """.strip(),
        encoding="utf-8",
    )

    data = load_env_file(env_path)
    assert data["BOOTSTRAP_LAB_ENVIRONMENT"] == "production"
    assert data["BOOTSTRAP_LAB_RANDOM_SEED"] == "101"
    assert "INVALID_LINE" not in data


def test_settings_defaults(tmp_path: Path) -> None:
    settings = Settings.from_env(overrides={"project_root": tmp_path}, environ={})

    assert settings.project_root == tmp_path.resolve()
    assert settings.random_seed == 42
    assert settings.n_resamples == 2000
    assert settings.confidence_level == pytest.approx(0.95)
    assert settings.workers == 0
    assert settings.resolved_workers >= 1
    assert settings.backend == "process"
    assert settings.data_dir == tmp_path.resolve() / "data"


def test_settings_from_env_file(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text(
        "BOOTSTRAP_LAB_N_RESAMPLES=5000\nBOOTSTRAP_LAB_STRUCTURED_LOGGING=false\n",
        encoding="utf-8",
    )

    settings = Settings.from_env(overrides={"project_root": tmp_path}, environ={})

    assert settings.n_resamples == 5000
    assert not settings.structured_logging


def test_settings_precedence(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOOTSTRAP_LAB_WORKERS", "6")
    monkeypatch.setenv("BOOTSTRAP_LAB_CONFIDENCE_LEVEL", "0.9")

    settings = Settings.from_env(
        overrides={"project_root": tmp_path, "WORKERS": "2", "LOGS_DIR": "logs_alt"}
    )

    assert settings.workers == 2
    assert settings.resolved_workers == 2
    assert settings.confidence_level == pytest.approx(0.9)
    assert settings.logs_dir == tmp_path.resolve() / "logs_alt"


def test_settings_validation(tmp_path: Path) -> None:
    with pytest.raises(KeyError, match="Unknown override"):
        Settings.from_env(overrides={"project_root": tmp_path, "NOPE": 1}, environ={})
    with pytest.raises(ValueError, match="CONFIDENCE_LEVEL"):
        Settings.from_env(
            overrides={"project_root": tmp_path, "CONFIDENCE_LEVEL": 1.2}, environ={}
        )
    with pytest.raises(ValueError, match="BACKEND"):
        Settings.from_env(overrides={"project_root": tmp_path, "BACKEND": "mpi"}, environ={})


def test_get_settings_caches_until_reset(monkeypatch: pytest.MonkeyPatch) -> None:
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("BOOTSTRAP_LAB_RANDOM_SEED", "7")
    assert get_settings().random_seed == first.random_seed
    reset_settings_cache()
    assert get_settings().random_seed == 7


def test_settings_to_dict_lists_every_key(tmp_path: Path) -> None:
    settings = Settings.from_env(overrides={"project_root": tmp_path}, environ={})

    assert set(settings.to_dict()) == {
        "project_root",
        "data_dir",
        "configs_dir",
        "logs_dir",
        "environment",
        "random_seed",
        "n_resamples",
        "confidence_level",
        "workers",
        "backend",
        "structured_logging",
    }
