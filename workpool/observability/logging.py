"""Logging configuration for workpool.

Every module logs through loguru. The ``workpool`` namespace is disabled on
import (library behavior) and enabled while at least one pool created with
``logging=True`` or a ``LogConfig`` instance is alive.

Example:
    from workpool import LogConfig, WorkerPool

    # Simple: enable with defaults
    with WorkerPool(handler, logging=True) as pool:
        pool.submit("resize", {"width": 64})

    # Custom: configure level and file output
    with WorkerPool(
        handler,
        logging=LogConfig(level="DEBUG", file="workpool.log", console=True),
    ) as pool:
        pool.submit("resize", {"width": 64})
"""

from __future__ import annotations

import threading
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from loguru import logger
from rich.logging import RichHandler

logger.disable("workpool")

type LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "TRACE"]

_CONTEXT_KEYS = ("actor", "component", "slot_id")

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line}{extra[_ctx]} - {message}"
)

CONSOLE_FORMAT = "{message}{extra[_ctx]}"

_active: set[int] = set()
_active_lock = threading.Lock()


def _format_context(record: Any) -> str:
    extra = record["extra"]
    parts = [f"{k}={extra[k]}" for k in _CONTEXT_KEYS if k in extra]
    return f" [{' '.join(parts)}]" if parts else ""


def _patch_context(record: Any) -> None:
    record["extra"]["_ctx"] = _format_context(record)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration for WorkerPool.

    Attributes:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, TRACE).
        file: Path to log file, or None to skip file output.
        console: Whether to log to stderr through rich.
        rotation: File rotation policy (e.g., "50 MB", "1 day").
        retention: Number of rotated log files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = ".workpool/workpool.log"
    console: bool = False
    rotation: str = "50 MB"
    retention: int = 10


def setup_logging(config: LogConfig) -> list[int]:
    """Install handlers and return their IDs for cleanup.

    Args:
        config: Logging configuration.

    Returns:
        List of handler IDs that were added (for later removal).
    """
    # Default handler (ID=0) logs everything to stderr without a filter
    with suppress(ValueError):
        logger.remove(0)

    logger.configure(patcher=_patch_context)
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(logger.add(
            RichHandler(markup=False, rich_tracebacks=True, show_path=False),
            level=config.level,
            format=CONSOLE_FORMAT,
            filter="workpool",
        ))

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(logger.add(
            config.file,
            level=config.level,
            format=FILE_FORMAT,
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            diagnose=False,
            enqueue=False,
        ))

    with _active_lock:
        _active.update(handler_ids)
        logger.enable("workpool")
    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove handlers; disable logging once no pool holds handlers."""
    with _active_lock:
        for hid in handler_ids:
            if hid in _active:
                _active.discard(hid)
                logger.remove(hid)
        if not _active:
            logger.disable("workpool")
