"""Logging do projeto: saída JSON ou texto, com o contexto da execução.

Além do formato, este módulo mantém o *contexto da execução* (seed mestre,
modo, workers, B). :func:`run_context` o associa ao fluxo atual e
:class:`RunContextFilter` o copia para cada registro emitido enquanto ele
estiver ativo, de modo que toda linha de log de um bootstrap possa ser
reproduzida a partir dela mesma.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Iterator, Mapping

from .settings import Settings, get_settings

__all__ = [
    "JSONFormatter",
    "LOG_FILE_NAME",
    "PlainFormatter",
    "RUN_FIELDS",
    "RunContextFilter",
    "configure_logging",
    "current_run_context",
    "run_context",
]


LOG_FILE_NAME = "bootstrap_lab.log"

RUN_FIELDS = ("seed", "mode", "workers", "n_resamples")
"""Campos de contexto exibidos também no formato texto."""

# atributos que todo LogRecord já possui
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}

_RUN_CONTEXT: ContextVar[Mapping[str, Any]] = ContextVar("bootstrap_lab_run", default={})


def current_run_context() -> dict[str, Any]:
    return dict(_RUN_CONTEXT.get())


@contextmanager
def run_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """Anexa ``fields`` a todos os registros emitidos dentro do bloco.

    Blocos aninhados acumulam campos; ao sair, o contexto anterior volta.
    """
    merged = {**_RUN_CONTEXT.get(), **fields}
    token = _RUN_CONTEXT.set(merged)
    try:
        yield merged
    finally:
        _RUN_CONTEXT.reset(token)


class RunContextFilter(logging.Filter):
    """Copia o contexto fixo e o da execução corrente para o ``LogRecord``.

    Campos passados via ``extra=`` no próprio registro têm precedência.
    """

    def __init__(self, defaults: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._defaults = dict(defaults or {})

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in {**self._defaults, **_RUN_CONTEXT.get()}.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """Serializa o registro e seus campos extras em uma linha JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                payload.setdefault(key, value)

        return json.dumps(payload, ensure_ascii=False, default=str)


class PlainFormatter(logging.Formatter):
    """Formato texto com os campos de :data:`RUN_FIELDS` ao final, quando houver."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = [
            f"{name}={getattr(record, name)}" for name in RUN_FIELDS if hasattr(record, name)
        ]
        return f"{line} [{' '.join(fields)}]" if fields else line


def configure_logging(
    *,
    settings: Settings | None = None,
    level: int | str = logging.INFO,
    structured: bool | None = None,
    module_levels: Mapping[str, int | str] | None = None,
    stream: IO[str] | None = None,
    context: Mapping[str, Any] | None = None,
    log_file: Path | None = None,
) -> None:
    """Substitui os handlers do *root logger* por stream + arquivo.

    Parameters
    ----------
    settings:
        Fonte de ``structured_logging`` e ``logs_dir``; por padrão
        :func:`get_settings`.
    level:
        Nível mínimo dos handlers.
    structured:
        ``True`` para JSON, ``False`` para texto; ``None`` segue as settings.
    module_levels:
        Mapeamento ``logger -> level`` para ajustes finos.
    stream:
        Destino do handler principal; por padrão ``sys.stderr``.
    context:
        Campos fixos anexados a todos os registros (ex.: ``{"command": "run"}``).
    log_file:
        Cópia dos logs em modo append; por padrão ``logs_dir / LOG_FILE_NAME``.
    """

    settings = settings or get_settings()
    structured = settings.structured_logging if structured is None else structured

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    formatter: logging.Formatter = JSONFormatter() if structured else PlainFormatter()
    context_filter = RunContextFilter(context)

    handlers: list[logging.Handler] = [logging.StreamHandler(stream)]
    file_target = log_file or (settings.logs_dir / LOG_FILE_NAME)
    try:
        file_target.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(file_target, encoding="utf-8"))
    except OSError:  # pragma: no cover - depende do sistema de arquivos
        root_logger.warning("Could not open log file %s; logging to stream only", file_target)

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    for logger_name, logger_level in (module_levels or {}).items():
        logging.getLogger(logger_name).setLevel(logger_level)
