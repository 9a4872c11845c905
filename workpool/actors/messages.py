"""The vocabulary of workpool: every actor message and the values they carry.

Two actors exchange these messages:
- The dispatcher owns the slot table, the pending-task queue and the pool
  state. ``DispatcherMsg`` is its public API.
- Each slot actor wraps one execution context. ``SlotMsg`` is its API.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from time import monotonic
from typing import Any, Literal

from casty import ActorRef

type SlotId = int
type PoolState = Literal["active", "terminated"]
type SlotStatus = Literal["idle", "busy"]
type TaskCallback = Callable[[BaseException | None, Any], None]


def noop(error: BaseException | None, result: Any) -> None:
    pass


# =============================================================================
# Core Value Objects
# =============================================================================


@dataclass(frozen=True, slots=True)
class Task:
    """A queued, not yet dispatched unit of work."""

    event: Any
    args: Any
    callback: TaskCallback = noop
    submitted_at: float = field(default_factory=monotonic)


@dataclass(frozen=True, slots=True)
class Slot:
    """The dispatcher's view of one execution context.

    Owned by the dispatcher and replaced, never mutated, on every change.
    ``dispatched_at`` is the monotonic time of the last assignment.
    """

    slot_id: SlotId
    ref: ActorRef[Any]
    status: SlotStatus = "idle"
    callback: TaskCallback | None = None
    dispatched_at: float | None = None

    @property
    def idle(self) -> bool:
        return self.status == "idle"


@dataclass(frozen=True, slots=True)
class SlotView:
    slot_id: SlotId
    status: SlotStatus
    dispatched_at: float | None


@dataclass(frozen=True, slots=True)
class PoolSnapshot:
    """Read-only picture of the dispatcher's bookkeeping."""

    state: PoolState
    size: int
    working: int
    queued: int
    slots: tuple[SlotView, ...]
    timeout: float = 0.0

    @property
    def busy_slots(self) -> tuple[SlotId, ...]:
        return tuple(s.slot_id for s in self.slots if s.status == "busy")


# =============================================================================
# Dispatcher Messages
# =============================================================================


@dataclass(frozen=True, slots=True)
class Submit:
    """Queue one task; it runs on the first idle slot."""

    event: Any
    args: Any = None
    callback: TaskCallback = noop


@dataclass(frozen=True, slots=True)
class Broadcast:
    """Send a message to every slot, bypassing queue and accounting."""

    event: Any
    args: Any = None


@dataclass(frozen=True, slots=True)
class Terminate:
    """Stop every slot and drop queued tasks. Replies with the final snapshot."""

    reply_to: ActorRef[PoolSnapshot] | None = None


@dataclass(frozen=True, slots=True)
class GetSnapshot:
    reply_to: ActorRef[PoolSnapshot]


@dataclass(frozen=True, slots=True)
class SlotSucceeded:
    slot_id: SlotId
    value: Any


@dataclass(frozen=True, slots=True)
class SlotFailed:
    slot_id: SlotId
    error: BaseException


type DispatcherMsg = Submit | Broadcast | Terminate | GetSnapshot | SlotSucceeded | SlotFailed


# =============================================================================
# Slot Messages
# =============================================================================


type SlotReply = SlotSucceeded | SlotFailed


@dataclass(frozen=True, slots=True)
class RunTask:
    """Execute ``{event, args}`` in the slot's context.

    Dispatched tasks carry ``reply_to``; broadcast messages do not, and their
    outcome is only logged.
    """

    event: Any
    args: Any
    reply_to: ActorRef[SlotReply] | None = None


@dataclass(frozen=True, slots=True)
class StopSlot:
    pass


type SlotMsg = RunTask | StopSlot
