"""Exceptions raised by workpool."""

from __future__ import annotations


class PoolTerminatedError(RuntimeError):
    """Raised when work is submitted to a pool that has been terminated."""

    def __init__(self, operation: str = "post") -> None:
        self.operation = operation
        super().__init__(f"Cannot {operation} (terminated)")


class HandlerResolutionError(ValueError):
    """Raised when a handler reference cannot be built or imported."""


class ContextInitError(RuntimeError):
    """Raised for every task sent to a context whose init handshake failed."""

    def __init__(self, slot_id: int, cause: BaseException) -> None:
        self.slot_id = slot_id
        self.cause = cause
        super().__init__(f"Execution context {slot_id} failed to initialize: {cause}")

    def __reduce__(self) -> tuple[type[ContextInitError], tuple[int, BaseException]]:
        return (type(self), (self.slot_id, self.cause))
