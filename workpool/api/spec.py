"""Pool options.

Immutable configuration describing how a WorkerPool is sized and how it
reacts to failures. Built directly, from a mapping, or from a named TOML
table (see ``workpool.config``).
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, fields
from typing import Any, Literal

type WorkerExecutor = Literal["auto", "thread", "process"]

type ParallelismProvider = Callable[[], int]

_EXECUTORS: tuple[str, ...] = ("auto", "thread", "process")


def available_parallelism() -> int:
    """Host parallelism hint: CPUs usable by this process, at least 1."""
    if hasattr(os, "process_cpu_count"):
        count = os.process_cpu_count()
    else:
        count = os.cpu_count()
    return max(1, count or 1)


def normalize_deps(deps: str | Iterable[str] | None) -> tuple[str, ...]:
    """A bare string is a single dependency; None means no dependencies."""
    match deps:
        case None:
            return ()
        case str():
            return (deps,)
        case _:
            return tuple(deps)


@dataclass(frozen=True, slots=True)
class PoolOptions:
    """Options recognized by WorkerPool.

    Args:
        max_workers: Upper bound on pool size. The effective size is
            ``min(max_workers, parallelism)`` when positive, otherwise the
            available parallelism.
        timeout: Per-task timeout in seconds. Accepted, validated and
            reported in snapshots, but never enforced: a task runs until its
            execution context reports back.
        terminate_on_error: Terminate the whole pool when any task fails.
        deps: Module names imported inside every execution context at init
            and exposed to the handler as ``context.deps``.
        executor: Execution backend. "auto" (default) resolves to "thread";
            use "process" for CPU-bound pure-Python handlers.
        eager_dispatch: Assign as many queued tasks as there are idle slots
            per trigger instead of one.
    """

    max_workers: int = 0
    timeout: float = 0.0
    terminate_on_error: bool = False
    deps: tuple[str, ...] = ()
    executor: WorkerExecutor = "auto"
    eager_dispatch: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "deps", normalize_deps(self.deps))
        if self.max_workers < 0:
            raise ValueError(f"max_workers must be >= 0, got {self.max_workers}")
        if self.timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout}")
        if self.executor not in _EXECUTORS:
            raise ValueError(
                f"Unknown executor '{self.executor}'. Valid: {', '.join(_EXECUTORS)}"
            )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> PoolOptions:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise TypeError(
                f"Unknown pool option(s): {', '.join(unknown)}. Valid: {', '.join(sorted(known))}"
            )
        return cls(**raw)

    @property
    def resolved_executor(self) -> Literal["thread", "process"]:
        """Resolve "auto" to a concrete executor."""
        match self.executor:
            case "auto":
                return "thread"
            case concrete:
                return concrete

    def pool_size(self, parallelism: int) -> int:
        parallelism = max(1, parallelism)
        if self.max_workers > 0:
            return min(self.max_workers, parallelism)
        return parallelism


def coerce_options(options: PoolOptions | Mapping[str, Any] | None) -> PoolOptions:
    """Accept PoolOptions, a mapping of option names, or None."""
    match options:
        case None:
            return PoolOptions()
        case PoolOptions():
            return options
        case Mapping():
            return PoolOptions.from_mapping(options)
        case _:
            raise TypeError(
                f"options argument must be a mapping or PoolOptions, got {type(options).__name__}"
            )
