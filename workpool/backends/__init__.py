"""Execution backends: where the task-handling routine actually runs."""

from typing import Literal

from workpool.backends.base import (
    ExecutionBackend,
    ExecutionContext,
    Handler,
    WorkerContext,
)
from workpool.backends.handlers import handler_ref, resolve_handler
from workpool.backends.process import ProcessBackend
from workpool.backends.thread import ThreadBackend


def backend_for(executor: Literal["thread", "process"]) -> ExecutionBackend:
    """Build the backend named by a resolved executor kind."""
    match executor:
        case "thread":
            return ThreadBackend()
        case "process":
            return ProcessBackend()
    raise ValueError(f"Unknown executor '{executor}'. Valid: thread, process")


__all__ = [
    "ExecutionBackend",
    "ExecutionContext",
    "Handler",
    "ProcessBackend",
    "ThreadBackend",
    "WorkerContext",
    "backend_for",
    "handler_ref",
    "resolve_handler",
]
