"""Thread-based execution backend.

Each context owns a dedicated single-worker thread executor, so messages sent
to one context never overlap while different contexts run in parallel.
Suited to I/O-bound routines or work that releases the GIL.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from loguru import logger

from workpool.backends.base import ExecutionBackend, ExecutionContext, Handler, WorkerContext
from workpool.backends.handlers import import_deps
from workpool.errors import ContextInitError


class _ThreadContext(ExecutionContext):
    def __init__(self, handler: Handler, slot_id: int, deps: tuple[str, ...]) -> None:
        self.slot_id = slot_id
        self._handler = handler
        self._context: WorkerContext | None = None
        self._init_error: BaseException | None = None
        self._log = logger.bind(component="thread-context", slot_id=slot_id)
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=f"workpool-slot-{slot_id}",
        )
        self._executor.submit(self._init, deps)

    def _init(self, deps: tuple[str, ...]) -> None:
        try:
            self._context = WorkerContext(slot_id=self.slot_id, deps=import_deps(deps))
        except Exception as e:
            self._log.error("Init failed: {err}", err=e)
            self._init_error = e
            return
        self._log.debug("Initialized with deps={deps}", deps=list(deps))

    def _run(self, event: Any, args: Any) -> Any:
        if self._init_error is not None:
            raise ContextInitError(self.slot_id, self._init_error)
        return self._handler(self._context, event, args)

    def send(self, event: Any, args: Any) -> Future[Any]:
        return self._executor.submit(self._run, event, args)

    def stop(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._log.debug("Stopped")


class ThreadBackend(ExecutionBackend):
    """One worker thread per execution context."""

    name = "thread"

    def open(self, handler: Handler, slot_id: int, deps: tuple[str, ...]) -> ExecutionContext:
        return _ThreadContext(handler, slot_id, deps)
