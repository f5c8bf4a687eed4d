from __future__ import annotations

import io
import json
import logging
from pathlib import Path

from bootstrap_lab.config.logging_conf import (
    LOG_FILE_NAME,
    configure_logging,
    current_run_context,
    run_context,
)
from bootstrap_lab.data import correlated_pairs
from bootstrap_lab.resampling import Correlation, bootstrap
from bootstrap_lab.config.settings import Settings


def test_configure_logging_structured_output(tmp_path: Path) -> None:
    stream = io.StringIO()
    settings = Settings.from_env(
        overrides={
            "project_root": tmp_path,
            "LOGS_DIR": tmp_path / "logs",
        }
    )

    configure_logging(
        settings=settings, structured=True, stream=stream, context={"run_id": "unit"}
    )

    logger = logging.getLogger("config.tests")
    logger.info("structured message", extra={"n_resamples": 2000})

    raw_line = stream.getvalue().strip().splitlines()[-1]
    payload = json.loads(raw_line)
    assert payload["run_id"] == "unit"
    assert payload["n_resamples"] == 2000
    assert payload["logger"] == "config.tests"
    assert payload["message"] == "structured message"

    log_file = settings.logs_dir / LOG_FILE_NAME
    assert log_file.exists()


def test_configure_logging_plaintext(tmp_path: Path) -> None:
    stream = io.StringIO()
    settings = Settings.from_env(
        overrides={"project_root": tmp_path, "LOGS_DIR": tmp_path / "logs"}
    )

    configure_logging(settings=settings, structured=False, stream=stream)

    logger = logging.getLogger("config.tests")
    logger.warning("plain message")

    output = stream.getvalue()
    assert "plain message" in output
    assert "WARNING" in output


def test_configure_logging_module_levels(tmp_path: Path) -> None:
    stream = io.StringIO()
    settings = Settings.from_env(
        overrides={"project_root": tmp_path, "LOGS_DIR": tmp_path / "logs"}
    )

    configure_logging(
        settings=settings,
        structured=False,
        stream=stream,
        module_levels={"bootstrap_lab.utils.parallel": "WARNING"},
    )
    logging.getLogger("bootstrap_lab.utils.parallel").info("hidden")
    logging.getLogger("bootstrap_lab.resampling").info("shown")

    output = stream.getvalue()
    assert "hidden" not in output
    assert "shown" in output
    logging.getLogger("bootstrap_lab.utils.parallel").setLevel(logging.NOTSET)


def test_run_context_nests_and_restores():
    assert current_run_context() == {}
    with run_context(seed=1, mode="sequential"):
        with run_context(workers=4) as inner:
            assert inner == {"seed": 1, "mode": "sequential", "workers": 4}
        assert current_run_context() == {"seed": 1, "mode": "sequential"}
    assert current_run_context() == {}


def test_plaintext_lines_carry_run_fields(tmp_path: Path) -> None:
    stream = io.StringIO()
    settings = Settings.from_env(
        overrides={"project_root": tmp_path, "LOGS_DIR": tmp_path / "logs"}
    )
    configure_logging(settings=settings, structured=False, stream=stream)

    logger = logging.getLogger("config.tests")
    with run_context(seed=7, mode="parallel"):
        logger.info("inside")
    logger.info("outside")

    inside, outside = stream.getvalue().strip().splitlines()[-2:]
    assert inside.endswith("[seed=7 mode=parallel]")
    assert outside.endswith("outside")


def test_bootstrap_records_carry_seed_mode_and_workers(tmp_path: Path) -> None:
    stream = io.StringIO()
    settings = Settings.from_env(
        overrides={"project_root": tmp_path, "LOGS_DIR": tmp_path / "logs"}
    )
    configure_logging(settings=settings, structured=True, stream=stream)

    bootstrap(
        correlated_pairs(20, 0.5, seed=3),
        Correlation(),
        n_resamples=40,
        mode="parallel",
        workers=2,
        backend="thread",
        seed=13,
    )

    records = [json.loads(line) for line in stream.getvalue().strip().splitlines()]
    run_records = [r for r in records if r["logger"].startswith("bootstrap_lab")]
    assert run_records
    for record in run_records:
        assert record["seed"] == 13
        assert record["mode"] == "parallel"
        assert record["workers"] == 2
        assert record["n_resamples"] == 40
