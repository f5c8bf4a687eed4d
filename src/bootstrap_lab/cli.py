"""Command line interface for the project.

Commands:
- show-settings: print the resolved :class:`Settings`
- run: bootstrap a statistic on a CSV file, a synthetic sample or a YAML config
- simulate: compare the bootstrap SE with repeated sampling from a known population
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from bootstrap_lab.config import (
    BootstrapConfig,
    ConfigError,
    Settings,
    configure_logging,
    get_settings,
    load_config,
)
from bootstrap_lab.errors import BootstrapError
from bootstrap_lab.utils.seed import derive_seeds

__all__ = ["build_parser", "main"]


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--statistic",
        choices=["correlation", "slope", "mean"],
        default="correlation",
        help="estatística calculada em cada reamostragem",
    )
    parser.add_argument("--x", default="x", help="coluna x")
    parser.add_argument("--y", default="y", help="coluna y")
    parser.add_argument("-B", "--n-resamples", type=int, help="número de réplicas")
    parser.add_argument("--level", type=float, help="nível de confiança em (0, 1)")
    parser.add_argument("--seed", type=int, help="seed mestre")
    parser.add_argument(
        "--workers",
        type=int,
        help="tamanho do pool; habilita o modo paralelo quando > 1",
    )
    parser.add_argument(
        "--backend",
        choices=["process", "thread", "joblib"],
        help="implementação do pool de workers",
    )
    parser.add_argument("--json", action="store_true", help="Formato JSON")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="bootstrap_lab CLI")
    parser.add_argument(
        "--structured-logs",
        dest="structured_logs",
        action="store_true",
        help="força logs estruturados em JSON",
    )
    parser.add_argument(
        "--plain-logs",
        dest="structured_logs",
        action="store_false",
        help="força logs texto simples",
    )
    parser.set_defaults(structured_logs=None)

    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show-settings", help="Exibe as Settings resolvidas")
    show.add_argument("--json", action="store_true", help="Formato JSON")

    run = subparsers.add_parser("run", help="Executa o bootstrap em um dataset")
    source = run.add_mutually_exclusive_group(required=True)
    source.add_argument("--csv", type=str, help="arquivo CSV com o dataset")
    source.add_argument(
        "--synthetic",
        type=int,
        metavar="N",
        help="gera N pares (x, y) normais com correlação --rho",
    )
    source.add_argument("--config", type=str, help="arquivo de configuração YAML")
    run.add_argument("--rho", type=float, default=0.6, help="correlação populacional")
    run.add_argument(
        "--drop-nan",
        action="store_true",
        help="exclui réplicas indefinidas em vez de abortar",
    )
    run.add_argument(
        "--replicates",
        action="store_true",
        help="inclui as réplicas na saída JSON",
    )
    _add_run_options(run)

    sim = subparsers.add_parser(
        "simulate",
        help="Compara o SE bootstrap com amostragem repetida da população",
    )
    sim.add_argument("--rho", type=float, default=0.6, help="correlação populacional")
    sim.add_argument("--sample-size", type=int, default=32, help="linhas por amostra")
    sim.add_argument(
        "--datasets", type=int, default=2000, help="amostras independentes simuladas"
    )
    _add_run_options(sim)

    return parser


def _configure_logging(
    structured: bool | None, settings: Settings, command: str
) -> None:
    configure_logging(
        settings=settings,
        structured=structured,
        context={"command": command, "environment": settings.environment},
    )


def _print_payload(payload: dict[str, Any], *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, sort_keys=True))
    else:
        for key, value in payload.items():
            print(f"{key}: {value}")


def _resolve_relative(value: str | Path, settings: Settings) -> Path:
    candidate = Path(value)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    for base in (settings.data_dir, settings.project_root):
        if (base / candidate).exists():
            return base / candidate
    return candidate


def _config_from_args(args: argparse.Namespace, settings: Settings) -> BootstrapConfig:
    if args.config:
        path = Path(args.config)
        if not path.is_absolute() and not path.exists():
            path = settings.configs_dir / path
        config = load_config(path, BootstrapConfig, project_root=settings.project_root)
    elif args.csv:
        config = BootstrapConfig(
            data={
                "path": str(_resolve_relative(args.csv, settings)),
                "columns": [args.x] if args.statistic == "mean" else [args.x, args.y],
            },
            statistic=args.statistic,
            x=args.x,
            y=args.y,
        )
    else:
        config = BootstrapConfig(
            data={"synthetic": {"n_rows": args.synthetic, "rho": args.rho}},
            statistic=args.statistic,
            x=args.x,
            y=args.y,
        )

    # Command-line flags win over the YAML file, which wins over Settings.
    updates: dict[str, Any] = {}
    if args.n_resamples is not None:
        updates["n_resamples"] = args.n_resamples
    elif not args.config:
        updates["n_resamples"] = settings.n_resamples
    if args.level is not None:
        updates["confidence_level"] = args.level
    elif not args.config:
        updates["confidence_level"] = settings.confidence_level
    if args.seed is not None:
        updates["seed"] = args.seed
    if args.workers is not None:
        updates["workers"] = args.workers
        updates["mode"] = "parallel" if args.workers > 1 else "sequential"
    if args.backend is not None:
        updates["backend"] = args.backend
    elif not args.config:
        updates["backend"] = settings.backend
    if getattr(args, "drop_nan", False):
        updates["drop_nan"] = True
    return BootstrapConfig.model_validate({**config.model_dump(), **updates})


def _load_dataset(config: BootstrapConfig, settings: Settings, data_seed: int):
    from bootstrap_lab.data import Dataset, correlated_pairs

    if config.data.synthetic is not None:
        synthetic = config.data.synthetic
        seed = synthetic.seed if synthetic.seed is not None else data_seed
        return correlated_pairs(synthetic.n_rows, synthetic.rho, seed=seed)
    path = _resolve_relative(config.data.path, settings)
    return Dataset.from_csv(path, columns=config.data.columns)


def _run(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    from bootstrap_lab.resampling import bootstrap, get_statistic

    config = _config_from_args(args, settings)
    master_seed = config.seed if config.seed is not None else settings.random_seed
    # dataset generation and resampling never share a stream
    data_seed, boot_seed = derive_seeds(master_seed, 2)
    dataset = _load_dataset(config, settings, data_seed)
    statistic = get_statistic(config.statistic, config.x, config.y)
    result = bootstrap(
        dataset,
        statistic,
        n_resamples=config.n_resamples,
        confidence_level=config.confidence_level,
        mode=config.mode,
        workers=config.workers if config.workers is not None else settings.resolved_workers,
        backend=config.backend,
        seed=boot_seed,
        drop_nan=config.drop_nan,
    )
    payload = result.to_dict(include_replicates=args.replicates and args.json)
    payload["name"] = config.name
    payload["master_seed"] = master_seed
    payload["statistic"] = config.statistic
    payload["n_rows"] = dataset.n_rows
    return payload


def _simulate(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    from bootstrap_lab.data import BivariateNormal
    from bootstrap_lab.resampling import get_statistic
    from bootstrap_lab.simulation import compare_with_bootstrap

    return compare_with_bootstrap(
        BivariateNormal(rho=args.rho),
        get_statistic(args.statistic, "x", "y"),
        sample_size=args.sample_size,
        n_datasets=args.datasets,
        n_resamples=args.n_resamples or settings.n_resamples,
        confidence_level=args.level or settings.confidence_level,
        seed=args.seed if args.seed is not None else settings.random_seed,
        workers=args.workers or 1,
        backend=args.backend or settings.backend,
    )


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    settings = get_settings()
    _configure_logging(args.structured_logs, settings, args.command)

    try:
        if args.command == "show-settings":
            _print_payload(settings.to_dict(), as_json=args.json)
        elif args.command == "run":
            _print_payload(_run(args, settings), as_json=args.json)
        elif args.command == "simulate":
            _print_payload(_simulate(args, settings), as_json=args.json)
        else:  # pragma: no cover - argparse rejects unknown commands
            parser.error(f"Unknown command: {args.command}")
    except (FileNotFoundError, ConfigError, ValidationError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    except BootstrapError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
