"""Execution backend contract.

An execution backend turns the pool's task-handling routine into isolated
execution contexts, one per slot. Each context receives an init handshake
(its slot id and the dependency list) when it is opened, then accepts
``send(event, args)`` messages one at a time and reports each outcome through
the returned future: a result on success, the raised exception on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from concurrent.futures import Future
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any


@dataclass(frozen=True, slots=True)
class WorkerContext:
    """What the task-handling routine sees inside its execution context.

    The routine is called as ``handler(context, event, args)``.

    Attributes:
        slot_id: Position of the context in the pool.
        deps: Dependency modules imported at init, keyed by module name.
    """

    slot_id: int
    deps: Mapping[str, ModuleType] = field(default_factory=dict)


type Handler = Callable[[WorkerContext, Any, Any], Any]


class ExecutionContext(ABC):
    """One isolated execution context backing a slot."""

    slot_id: int

    @abstractmethod
    def send(self, event: Any, args: Any) -> Future[Any]:
        """Hand ``{event, args}`` to the context. Messages run in arrival order."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the context. Work still running is abandoned."""


class ExecutionBackend(ABC):
    """Factory of execution contexts."""

    name: str

    @abstractmethod
    def open(
        self,
        handler: Handler,
        slot_id: int,
        deps: tuple[str, ...],
    ) -> ExecutionContext:
        """Create a context for ``slot_id`` and start its init handshake."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
