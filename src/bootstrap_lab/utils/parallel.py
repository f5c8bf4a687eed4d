"""Parallel execution helpers with fail-fast semantics.

``parallel_map`` hides the choice between ``ThreadPoolExecutor``,
``ProcessPoolExecutor`` and joblib behind a ``map``-like call. Results come
back in input order. The first failing task aborts the job: pending tasks are
cancelled, the pool is torn down and the failure is raised to the caller, so a
partial result list is never returned.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import (
    FIRST_EXCEPTION,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from joblib import Parallel, delayed

from bootstrap_lab.errors import WorkerFailureError

__all__ = ["BACKENDS", "parallel_map", "split_evenly"]

logger = logging.getLogger(__name__)

BACKENDS = ("sequential", "thread", "process", "joblib")


def split_evenly(total: int, parts: int) -> List[Tuple[int, int]]:
    """
    Divide ``range(total)`` em até ``parts`` blocos contíguos ``(start, stop)``.

    Os tamanhos diferem no máximo em uma unidade e blocos vazios são omitidos.
    Ex: split_evenly(10, 3) --> [(0, 4), (4, 7), (7, 10)]
    """
    if total < 0:
        raise ValueError("total must be non-negative")
    if parts < 1:
        raise ValueError("parts must be at least 1")
    parts = min(parts, total) or 1
    base, extra = divmod(total, parts)
    bounds: List[Tuple[int, int]] = []
    start = 0
    for k in range(parts):
        stop = start + base + (1 if k < extra else 0)
        if stop > start:
            bounds.append((start, stop))
        start = stop
    return bounds


def _wrap_failure(
    exc: BaseException, index: Optional[int], job_name: str, passthrough: Tuple[Type[BaseException], ...]
) -> BaseException:
    if passthrough and isinstance(exc, passthrough):
        return exc
    where = f"tarefa {index}" if index is not None else "uma tarefa"
    failure = WorkerFailureError(
        f"Job '{job_name}' abortado: {where} falhou com {type(exc).__name__}: {exc}",
        chunk=index,
    )
    failure.__cause__ = exc
    return failure


class _TaskFailure(Exception):
    """Carrega o índice da tarefa que falhou através do joblib."""

    def __init__(self, index: int, error: BaseException) -> None:
        super().__init__(index, error)
        self.index = index
        self.error = error


def _call_indexed(func: Callable, index: int, item: Any) -> Any:
    try:
        return func(item)
    except Exception as exc:
        raise _TaskFailure(index, exc) from exc


def _terminate_workers(executor: Any) -> None:
    # processos ocupados não respeitam cancel_futures
    terminate = getattr(executor, "terminate_workers", None)
    if terminate is not None:
        terminate()
        return
    for process in list((getattr(executor, "_processes", None) or {}).values()):
        if process.is_alive():
            process.terminate()


def _run_executor(
    executor_cls: type,
    func: Callable,
    items: Sequence[Any],
    *,
    max_workers: Optional[int],
    timeout: Optional[float],
    job_name: str,
    passthrough: Tuple[Type[BaseException], ...],
) -> List[Any]:
    executor = executor_cls(max_workers=max_workers)
    aborted = True
    try:
        future_to_index: Dict[Future, int] = {
            executor.submit(func, item): index for index, item in enumerate(items)
        }
        done, not_done = wait(future_to_index, timeout=timeout, return_when=FIRST_EXCEPTION)

        failed = [f for f in done if not f.cancelled() and f.exception() is not None]
        if failed:
            first = min(failed, key=lambda f: future_to_index[f])
            index = future_to_index[first]
            exc = first.exception()
            logger.error("Worker da tarefa %s gerou uma exceção: %s", index, exc)
            raise _wrap_failure(exc, index, job_name, passthrough)
        if not_done:
            logger.error("Job '%s' excedeu o timeout global de %ss.", job_name, timeout)
            raise WorkerFailureError(
                f"Job '{job_name}' excedeu o timeout de {timeout}s com "
                f"{len(not_done)} tarefa(s) pendente(s)"
            )

        aborted = False
        return [future.result() for future in sorted(future_to_index, key=future_to_index.get)]
    finally:
        if aborted:
            # não espera tarefas em andamento: o job já falhou
            if executor_cls is ProcessPoolExecutor:
                _terminate_workers(executor)
            executor.shutdown(wait=False, cancel_futures=True)
        else:
            executor.shutdown(wait=True)


def parallel_map(
    func: Callable,
    iterable: Iterable,
    backend: str = "process",
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
    passthrough: Tuple[Type[BaseException], ...] = (),
) -> List[Any]:
    """
    Interface genérica semelhante a `map` para execução paralela de tarefas.

    Args:
        func (Callable): A função a ser aplicada a cada item do iterável. Com o
                         backend 'process' ela e os itens precisam ser picklable.
        iterable (Iterable): O conjunto de dados a ser processado.
        backend (str): 'process' (padrão), 'thread', 'joblib', ou 'sequential'
                       para debug.
        max_workers (Optional[int]): Número máximo de workers. Se None, usa o
                                     padrão do backend.
        timeout (Optional[float]): Tempo máximo em segundos para o job inteiro
                                   (por tarefa no backend 'joblib'). Tarefas
                                   em threads seguem em segundo plano; workers
                                   de processo são encerrados.
        passthrough (tuple): Tipos de exceção relançados sem embrulho.

    Returns:
        List[Any]: Resultados na mesma ordem do iterável de entrada.

    Raises:
        WorkerFailureError: Se qualquer tarefa falhar ou o timeout estourar;
                            a exceção original fica em ``__cause__``.
    """
    if backend not in BACKENDS:
        raise ValueError(
            f"Backend '{backend}' não reconhecido. Use {', '.join(repr(b) for b in BACKENDS)}."
        )
    if max_workers is not None and max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    items = list(iterable)
    job_name = getattr(func, "__name__", None) or getattr(
        getattr(func, "func", None), "__name__", "anonymous_job"
    )
    logger.info(
        "Iniciando job paralelo '%s' com backend '%s' (%d tarefas, workers=%s)...",
        job_name,
        backend,
        len(items),
        max_workers,
    )
    start_time = time.perf_counter()

    if backend == "sequential" or max_workers == 1:
        results = []
        for index, item in enumerate(items):
            try:
                results.append(func(item))
            except Exception as exc:
                raise _wrap_failure(exc, index, job_name, passthrough)
    elif backend == "joblib":
        # 'loky' é o backend de processo padrão e mais robusto do joblib
        try:
            results = Parallel(n_jobs=max_workers or -1, backend="loky", timeout=timeout)(
                delayed(_call_indexed)(func, index, item) for index, item in enumerate(items)
            )
        except _TaskFailure as failure:
            logger.error("Worker da tarefa %s gerou uma exceção: %s", failure.index, failure.error)
            raise _wrap_failure(failure.error, failure.index, job_name, passthrough)
        except Exception as exc:
            raise _wrap_failure(exc, None, job_name, passthrough)
    else:
        executor_cls = ThreadPoolExecutor if backend == "thread" else ProcessPoolExecutor
        results = _run_executor(
            executor_cls,
            func,
            items,
            max_workers=max_workers,
            timeout=timeout,
            job_name=job_name,
            passthrough=passthrough,
        )

    logger.info("Job '%s' concluído em %.2fs.", job_name, time.perf_counter() - start_time)
    return list(results)
