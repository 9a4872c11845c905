"""workpool - run one task-handling routine across a fixed pool of execution contexts.

Example:

    from workpool import WorkerPool

    def handler(context, event, args):
        match event:
            case "double":
                return args * 2
            case "whoami":
                return context.slot_id

    with WorkerPool(handler, {"max_workers": 2, "terminate_on_error": True}) as pool:
        pool.submit("double", 21, lambda err, result: print(result))
        pool.broadcast("whoami")
"""

from workpool.actors.messages import PoolSnapshot, SlotView
from workpool.api.pool import WorkerPool
from workpool.api.spec import PoolOptions, available_parallelism
from workpool.backends import (
    ExecutionBackend,
    ExecutionContext,
    ProcessBackend,
    ThreadBackend,
    WorkerContext,
)
from workpool.errors import ContextInitError, HandlerResolutionError, PoolTerminatedError
from workpool.observability.logging import LogConfig

__all__ = [
    "ContextInitError",
    "ExecutionBackend",
    "ExecutionContext",
    "HandlerResolutionError",
    "LogConfig",
    "PoolOptions",
    "PoolSnapshot",
    "PoolTerminatedError",
    "ProcessBackend",
    "SlotView",
    "ThreadBackend",
    "WorkerContext",
    "WorkerPool",
    "available_parallelism",
]
