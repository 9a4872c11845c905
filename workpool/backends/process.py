"""Process-based execution backend.

Each context owns a single-worker loky process executor. The child resolves
the handler from its ``module:qualname`` reference and imports the dependency
list in its initializer, so every context is a fully isolated interpreter.
Arguments and results cross the process boundary through loky's cloudpickle
integration.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any

from loguru import logger
from loky import ProcessPoolExecutor

from workpool.backends.base import ExecutionBackend, ExecutionContext, Handler, WorkerContext
from workpool.backends.handlers import HandlerRef, handler_ref, import_deps, resolve_handler
from workpool.errors import ContextInitError

# Per-process state, populated by _init_process inside the child.
_handler: Handler | None = None
_context: WorkerContext | None = None
_init_error: BaseException | None = None


def _init_process(ref: HandlerRef, slot_id: int, deps: tuple[str, ...]) -> None:
    global _handler, _context, _init_error
    try:
        _handler = resolve_handler(ref)
        _context = WorkerContext(slot_id=slot_id, deps=import_deps(deps))
    except Exception as e:
        _init_error = ContextInitError(slot_id, e)


def _run_in_process(event: Any, args: Any) -> Any:
    """Execute one message inside the child. Module-level so loky can pickle it."""
    if _init_error is not None:
        raise _init_error
    if _handler is None:
        raise RuntimeError("Execution context is not initialized")
    return _handler(_context, event, args)


class _ProcessContext(ExecutionContext):
    def __init__(self, ref: HandlerRef, slot_id: int, deps: tuple[str, ...]) -> None:
        self.slot_id = slot_id
        self._log = logger.bind(component="process-context", slot_id=slot_id)
        self._executor = ProcessPoolExecutor(
            max_workers=1,
            initializer=_init_process,
            initargs=(ref, slot_id, deps),
        )
        self._log.debug("Opened for {ref}", ref=ref)

    def send(self, event: Any, args: Any) -> Future[Any]:
        return self._executor.submit(_run_in_process, event, args)

    def stop(self) -> None:
        self._executor.shutdown(wait=False, kill_workers=True)
        self._log.debug("Stopped")


class ProcessBackend(ExecutionBackend):
    """One worker process per execution context.

    The handler must be importable (defined at module level outside
    ``__main__``); otherwise opening a context raises HandlerResolutionError.
    """

    name = "process"

    def open(self, handler: Handler, slot_id: int, deps: tuple[str, ...]) -> ExecutionContext:
        return _ProcessContext(handler_ref(handler), slot_id, deps)
