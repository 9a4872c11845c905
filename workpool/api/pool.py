"""Synchronous facade over the dispatcher actor.

    from workpool import WorkerPool

    def handler(context, event, args):
        match event:
            case "square":
                return args * args

    with WorkerPool(handler, {"max_workers": 4}) as pool:
        pool.submit("square", 7, lambda err, result: print(err, result))
        future = pool.submit_future("square", 8)
        assert future.result() == 64

Internally, this facade:
1. Runs a casty ActorSystem on a private event loop in a background thread
2. Opens one execution context per slot and spawns a slot actor for each
3. Forwards submissions to the dispatcher actor, which owns all bookkeeping
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Coroutine, Mapping
from concurrent.futures import Future
from contextlib import suppress
from types import TracebackType
from typing import Any

from casty import ActorRef, ActorSystem, CastyConfig
from loguru import logger

from workpool.actors.dispatcher import dispatcher_actor
from workpool.actors.messages import (
    Broadcast,
    DispatcherMsg,
    GetSnapshot,
    PoolSnapshot,
    Submit,
    TaskCallback,
    Terminate,
    noop,
)
from workpool.actors.slot import slot_actor
from workpool.api.spec import ParallelismProvider, PoolOptions, available_parallelism, coerce_options
from workpool.backends import ExecutionBackend, Handler, backend_for
from workpool.errors import PoolTerminatedError
from workpool.observability.logging import LogConfig, setup_logging, teardown_logging


async def _cancel_pending_tasks() -> None:
    current = asyncio.current_task()
    pending = [t for t in asyncio.all_tasks() if t is not current and not t.done()]
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)


class WorkerPool:
    """Fixed-size pool of execution contexts running one task-handling routine.

    Args:
        handler: Routine invoked as ``handler(context, event, args)`` inside
            each execution context.
        options: PoolOptions, a mapping of PoolOptions field names, or None.
        backend: Execution backend override. Defaults to the backend named
            by ``options.executor``.
        parallelism: Provider of the available-parallelism hint. Defaults to
            the host CPU count.
        logging: True or a LogConfig to install log handlers for the pool's
            lifetime.

    Raises:
        TypeError: If ``handler`` is not callable or ``options`` is neither a
            mapping nor PoolOptions.
    """

    def __init__(
        self,
        handler: Handler,
        options: PoolOptions | Mapping[str, Any] | None = None,
        *,
        backend: ExecutionBackend | None = None,
        parallelism: ParallelismProvider | None = None,
        logging: bool | LogConfig = False,
    ) -> None:
        if not callable(handler):
            raise TypeError("handler argument must be callable")
        self.options = coerce_options(options)
        self.logging = logging

        self._handler = handler
        self._size = self.options.pool_size((parallelism or available_parallelism)())
        self._backend = backend or backend_for(self.options.resolved_executor)

        self._log_handler_ids: list[int] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread: threading.Thread | None = None
        self._system: ActorSystem | None = None
        self._dispatcher: ActorRef[DispatcherMsg] | None = None
        self._terminated = threading.Event()
        self._close_lock = threading.Lock()
        self._closed = False
        self._final: PoolSnapshot | None = None
        self._futures: set[Future[Any]] = set()
        self._futures_lock = threading.Lock()

        self._start()

    @classmethod
    def Named(cls, name: str, handler: Handler, **kwargs: Any) -> WorkerPool:
        """Build a pool from the ``[pools.<name>]`` table of the TOML config."""
        from workpool.config import resolve_options

        return cls(handler, resolve_options(name), **kwargs)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _start(self) -> None:
        match self.logging:
            case True:
                self._log_handler_ids = setup_logging(LogConfig())
            case LogConfig() as log_config:
                self._log_handler_ids = setup_logging(log_config)

        logger.info(
            "Starting pool with {n} slots ({backend})",
            n=self._size, backend=self._backend.name,
        )
        if self.options.timeout:
            logger.info(
                "Task timeout {t}s is recorded but not enforced",
                t=self.options.timeout,
            )

        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._run_loop,
            daemon=True,
            name="workpool-event-loop",
        )
        self._loop_thread.start()

        try:
            self._run_sync(self._start_async(), timeout=60.0)
        except Exception as e:
            logger.exception("Error starting pool: {err}", err=e)
            self._terminated.set()
            self._closed = True
            with suppress(Exception):
                self._run_sync(self._stop_async(), timeout=30.0)
            self._cleanup()
            teardown_logging(self._log_handler_ids)
            raise

    async def _start_async(self) -> None:
        self._system = ActorSystem("workpool", config=CastyConfig(
            suppress_dead_letters_on_shutdown=True
        ))
        await self._system.__aenter__()

        slot_refs = []
        for slot_id in range(self._size):
            context = self._backend.open(self._handler, slot_id, self.options.deps)
            slot_refs.append(self._system.spawn(slot_actor(slot_id, context), f"slot-{slot_id}"))

        self._dispatcher = self._system.spawn(
            dispatcher_actor(
                slot_refs,
                terminate_on_error=self.options.terminate_on_error,
                eager_dispatch=self.options.eager_dispatch,
                timeout=self.options.timeout,
                on_terminated=self._on_terminated,
                stop_requested=self._terminated.is_set,
            ),
            "dispatcher",
        )

    async def _stop_async(self) -> None:
        if self._system is not None:
            await self._system.__aexit__(None, None, None)
            self._system = None
        await _cancel_pending_tasks()

    def _on_terminated(self, final: PoolSnapshot) -> None:
        """Runs inside the dispatcher when the pool enters the terminated state."""
        self._final = final
        self._terminated.set()
        with self._futures_lock:
            pending = list(self._futures)
            self._futures.clear()
        for future in pending:
            future.cancel()

    def terminate(self) -> None:
        """Stop every execution context and drop queued tasks. Idempotent.

        From a task callback this only signals the dispatcher; the event loop
        and actor system are released by a later call or by leaving the
        ``with`` block.
        """
        if self._on_loop_thread():
            self._terminated.set()
            if self._dispatcher is None:
                raise RuntimeError("Pool is not active")
            self._dispatcher.tell(Terminate())
            return

        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            self._terminated.set()

            logger.info("Terminating pool...")
            try:
                if self._system is None or self._dispatcher is None:
                    raise RuntimeError("Pool is not active")
                dispatcher = self._dispatcher
                self._final = self._run_sync(
                    self._system.ask(
                        dispatcher,
                        lambda reply_to: Terminate(reply_to=reply_to),
                        timeout=30.0,
                    ),
                    timeout=30.0,
                )
                self._run_sync(self._stop_async(), timeout=30.0)
            except TimeoutError:
                logger.warning("Pool terminate timed out after 30s, forcing cleanup")
            finally:
                self._cleanup()
                logger.info("Pool terminated")
                if self._log_handler_ids:
                    teardown_logging(self._log_handler_ids)
                    self._log_handler_ids = []

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.terminate()

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def _tell(self, msg: DispatcherMsg) -> None:
        loop, dispatcher = self._loop, self._dispatcher
        if self._terminated.is_set() or loop is None or dispatcher is None:
            raise PoolTerminatedError("post")
        try:
            loop.call_soon_threadsafe(dispatcher.tell, msg)
        except RuntimeError as e:
            # loop closed by a concurrent terminate()
            raise PoolTerminatedError("post") from e

    def submit(self, event: Any, args: Any = None, callback: TaskCallback | None = None) -> None:
        """Queue a task. ``callback(error, result)`` is invoked exactly once
        when it completes, unless the pool terminates first.

        Raises:
            PoolTerminatedError: If the pool has been terminated.
        """
        if self._terminated.is_set():
            raise PoolTerminatedError("post")
        if callback is not None and not callable(callback):
            raise TypeError("callback argument must be callable")
        logger.debug("Submitting task: {event}", event=event)
        self._tell(Submit(event=event, args=args, callback=callback or noop))

    def submit_future(self, event: Any, args: Any = None) -> Future[Any]:
        """Queue a task and return a future for its outcome.

        The future is cancelled if the pool terminates before the task
        completes.
        """
        future: Future[Any] = Future()

        def _resolve(error: BaseException | None, result: Any) -> None:
            with self._futures_lock:
                self._futures.discard(future)
            if not future.set_running_or_notify_cancel():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        with self._futures_lock:
            self._futures.add(future)
        try:
            self.submit(event, args, _resolve)
        except PoolTerminatedError:
            with self._futures_lock:
                self._futures.discard(future)
            raise
        return future

    def broadcast(self, event: Any, args: Any = None) -> None:
        """Send ``{event, args}`` to every execution context, busy or idle.

        Bypasses the queue and the busy-slot accounting; outcomes are not
        reported back.

        Raises:
            PoolTerminatedError: If the pool has been terminated.
        """
        if self._terminated.is_set():
            raise PoolTerminatedError("post")
        logger.debug("Broadcasting {event} to {n} slots", event=event, n=self._size)
        self._tell(Broadcast(event=event, args=args))

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def snapshot(self) -> PoolSnapshot:
        """Current bookkeeping of the dispatcher (final state once closed)."""
        if self._closed:
            if self._final is None:
                raise PoolTerminatedError("snapshot")
            return self._final
        if self._on_loop_thread():
            raise RuntimeError("snapshot() cannot be called from a task callback")
        if self._system is None or self._dispatcher is None:
            raise RuntimeError("Pool is not active")
        dispatcher = self._dispatcher
        return self._run_sync(
            self._system.ask(
                dispatcher,
                lambda reply_to: GetSnapshot(reply_to=reply_to),
                timeout=10.0,
            ),
            timeout=10.0,
        )

    @property
    def size(self) -> int:
        """Number of execution contexts in the pool."""
        return self._size

    @property
    def is_terminated(self) -> bool:
        return self._terminated.is_set()

    def __repr__(self) -> str:
        status = "terminated" if self.is_terminated else "active"
        return f"WorkerPool(size={self._size}, backend={self._backend.name}, {status})"

    # -------------------------------------------------------------------------
    # Event loop plumbing
    # -------------------------------------------------------------------------

    def _on_loop_thread(self) -> bool:
        return threading.current_thread() is self._loop_thread

    def _run_loop(self) -> None:
        """Run event loop in background thread."""
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()  # type: ignore

    def _run_sync[T](self, coro: Coroutine[Any, Any, T], timeout: float) -> T:
        """Run coroutine on the pool's loop and wait for it."""
        if self._loop is None:
            raise RuntimeError("Event loop not running")

        future: Future[T] = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout=timeout)

    def _cleanup(self) -> None:
        loop = self._loop
        thread = self._loop_thread
        if loop is None:
            return

        loop.call_soon_threadsafe(loop.stop)
        logger.debug("Stopping event loop")

        if thread is not None:
            thread.join(timeout=10)
            if thread.is_alive():
                logger.warning("Event loop thread did not stop within 10s")

        if not loop.is_running():
            with suppress(Exception):
                loop.close()

        self._loop = None
        self._loop_thread = None
