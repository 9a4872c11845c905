"""Dispatcher actor: assigns queued tasks to idle slots.

The dispatcher is the only writer of the pool's bookkeeping (slot table,
pending-task queue, busy count, pool state); its mailbox serializes every
mutation. Assignment is level-triggered: the dispatch step runs after every
submission and every completion or failure, and by default assigns at most
one task per trigger.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from time import monotonic
from typing import Any

from casty import ActorContext, ActorRef, Behavior, Behaviors
from loguru import logger

from workpool.actors.messages import (
    Broadcast,
    DispatcherMsg,
    GetSnapshot,
    PoolSnapshot,
    PoolState,
    RunTask,
    Slot,
    SlotFailed,
    SlotMsg,
    SlotSucceeded,
    SlotView,
    StopSlot,
    Submit,
    Task,
    TaskCallback,
    Terminate,
)

log = logger.bind(actor="dispatcher")

type TerminationHook = Callable[[PoolSnapshot], None]


@dataclass(slots=True)
class _State:
    slots: tuple[Slot, ...]
    queue: deque[Task]
    working: int
    terminate_on_error: bool
    eager_dispatch: bool
    timeout: float


def _snapshot(s: _State, state: PoolState) -> PoolSnapshot:
    return PoolSnapshot(
        state=state,
        size=len(s.slots),
        working=s.working,
        queued=len(s.queue),
        slots=tuple(
            SlotView(slot_id=slot.slot_id, status=slot.status, dispatched_at=slot.dispatched_at)
            for slot in s.slots
        ),
        timeout=s.timeout,
    )


def _with_slot(slots: tuple[Slot, ...], slot: Slot) -> tuple[Slot, ...]:
    return (*slots[:slot.slot_id], slot, *slots[slot.slot_id + 1:])


def _invoke(callback: TaskCallback | None, error: BaseException | None, result: Any) -> None:
    if callback is None:
        return
    try:
        callback(error, result)
    except Exception:
        log.exception("Task callback raised")


def _assign_one(s: _State, reply_to: ActorRef[Any]) -> _State:
    if s.working == len(s.slots) or not s.queue:
        return s
    for slot in s.slots:
        if slot.idle:
            task = s.queue.popleft()
            slot.ref.tell(RunTask(event=task.event, args=task.args, reply_to=reply_to))
            log.debug(
                "Dispatched {event} to slot {sid} (queue_size={qs})",
                event=task.event, sid=slot.slot_id, qs=len(s.queue),
            )
            busy = replace(
                slot, status="busy", callback=task.callback, dispatched_at=monotonic(),
            )
            return replace(s, slots=_with_slot(s.slots, busy), working=s.working + 1)
    return s


def _dispatch(s: _State, reply_to: ActorRef[Any]) -> _State:
    nxt = _assign_one(s, reply_to)
    if not s.eager_dispatch:
        return nxt
    while nxt is not s:
        s, nxt = nxt, _assign_one(nxt, reply_to)
    return nxt


def _release(s: _State, slot: Slot) -> _State:
    idle = replace(slot, status="idle", callback=None)
    return replace(s, slots=_with_slot(s.slots, idle), working=s.working - 1)


def dispatcher_actor(
    slot_refs: Sequence[ActorRef[SlotMsg]],
    *,
    terminate_on_error: bool = False,
    eager_dispatch: bool = False,
    timeout: float = 0.0,
    on_terminated: TerminationHook | None = None,
    stop_requested: Callable[[], bool] | None = None,
) -> Behavior[DispatcherMsg]:
    """Build the dispatcher behavior.

    ``stop_requested`` is polled before every message and after every task
    callback. Once it returns True the dispatcher terminates without assigning
    more work, even if the matching ``Terminate`` is still in the mailbox.
    """

    def _stopping() -> bool:
        return stop_requested is not None and stop_requested()

    def active(s: _State) -> Behavior[DispatcherMsg]:

        async def receive(
            ctx: ActorContext[DispatcherMsg], msg: DispatcherMsg,
        ) -> Behavior[DispatcherMsg]:
            if _stopping():
                match msg:
                    case Terminate(reply_to=reply_to) | GetSnapshot(reply_to=reply_to):
                        return _terminate(s, reply_to)
                log.debug("Termination requested, dropping {msg}", msg=type(msg).__name__)
                return _terminate(s)

            match msg:
                case Submit(event=event, args=args, callback=callback):
                    s.queue.append(Task(event=event, args=args, callback=callback))
                    return active(_dispatch(s, ctx.self))

                case Broadcast(event=event, args=args):
                    log.debug("Broadcasting {event} to {n} slots", event=event, n=len(s.slots))
                    for slot in s.slots:
                        slot.ref.tell(RunTask(event=event, args=args))
                    return Behaviors.same()

                case SlotSucceeded(slot_id=sid, value=value):
                    slot = s.slots[sid]
                    if slot.idle:
                        log.warning("Ignoring result from idle slot {sid}", sid=sid)
                        return Behaviors.same()
                    released = _release(s, slot)
                    _invoke(slot.callback, None, value)
                    if _stopping():
                        return _terminate(released)
                    return active(_dispatch(released, ctx.self))

                case SlotFailed(slot_id=sid, error=error):
                    slot = s.slots[sid]
                    if slot.idle:
                        log.warning("Ignoring failure from idle slot {sid}: {err}", sid=sid, err=error)
                        return Behaviors.same()
                    log.warning("Task failed on slot {sid}: {err}", sid=sid, err=error)
                    released = _release(s, slot)
                    _invoke(slot.callback, error, None)
                    if _stopping():
                        return _terminate(released)
                    if released.terminate_on_error:
                        log.info("Terminating pool after failure on slot {sid}", sid=sid)
                        return _terminate(released)
                    return active(_dispatch(released, ctx.self))

                case Terminate(reply_to=reply_to):
                    return _terminate(s, reply_to)

                case GetSnapshot(reply_to=reply_to):
                    reply_to.tell(_snapshot(s, "active"))
                    return Behaviors.same()

            return Behaviors.same()
        return Behaviors.receive(receive)

    def _terminate(
        s: _State, reply_to: ActorRef[PoolSnapshot] | None = None,
    ) -> Behavior[DispatcherMsg]:
        for slot in s.slots:
            slot.ref.tell(StopSlot())
        if s.queue:
            log.info("Dropping {n} queued tasks", n=len(s.queue))
        s.queue.clear()
        final = _snapshot(s, "terminated")
        log.info("Pool terminated ({busy} slots were busy)", busy=final.working)
        if on_terminated is not None:
            on_terminated(final)
        if reply_to is not None:
            reply_to.tell(final)
        return terminated(final)

    def terminated(final: PoolSnapshot) -> Behavior[DispatcherMsg]:

        async def receive(
            ctx: ActorContext[DispatcherMsg], msg: DispatcherMsg,
        ) -> Behavior[DispatcherMsg]:
            match msg:
                case Terminate(reply_to=reply_to) | GetSnapshot(reply_to=reply_to):
                    if reply_to is not None:
                        reply_to.tell(final)
                case SlotSucceeded(slot_id=sid) | SlotFailed(slot_id=sid):
                    log.debug("Ignoring outcome from slot {sid} after termination", sid=sid)
                case Submit(event=event) | Broadcast(event=event):
                    log.warning("Rejected {event}: pool terminated", event=event)
            return Behaviors.same()
        return Behaviors.receive(receive)

    log.info(
        "Dispatcher started (slots={n}, terminate_on_error={toe})",
        n=len(slot_refs), toe=terminate_on_error,
    )
    return active(_State(
        slots=tuple(Slot(slot_id=i, ref=ref) for i, ref in enumerate(slot_refs)),
        queue=deque(),
        working=0,
        terminate_on_error=terminate_on_error,
        eager_dispatch=eager_dispatch,
        timeout=timeout,
    ))
