from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from casty import ActorContext, ActorRef, Behavior, Behaviors
from loguru import logger

from workpool.actors.messages import (
    RunTask,
    SlotFailed,
    SlotId,
    SlotMsg,
    SlotReply,
    SlotSucceeded,
    StopSlot,
)
from workpool.backends.base import ExecutionContext


@dataclass(frozen=True, slots=True)
class _Done:
    value: Any
    reply_to: ActorRef[SlotReply] | None


@dataclass(frozen=True, slots=True)
class _Errored:
    error: BaseException
    reply_to: ActorRef[SlotReply] | None


def slot_actor(slot_id: SlotId, context: ExecutionContext) -> Behavior[SlotMsg | _Done | _Errored]:
    log = logger.bind(actor="slot", slot_id=slot_id)

    async def _send(event: Any, args: Any) -> Any:
        return await asyncio.wrap_future(context.send(event, args))

    async def receive(
        ctx: ActorContext[SlotMsg | _Done | _Errored], msg: SlotMsg | _Done | _Errored,
    ) -> Behavior[SlotMsg | _Done | _Errored]:
        match msg:
            case RunTask(event=event, args=args, reply_to=reply_to):
                log.debug("RunTask received, event={event}", event=event)
                ctx.pipe_to_self(
                    coro=_send(event, args),
                    mapper=lambda value: _Done(value=value, reply_to=reply_to),
                    on_failure=lambda e: _Errored(error=e, reply_to=reply_to),
                )
            case _Done(reply_to=None, value=value):
                log.debug("Broadcast handled, result={value!r}", value=value)
            case _Done(reply_to=reply_to, value=value):
                reply_to.tell(SlotSucceeded(slot_id=slot_id, value=value))
            case _Errored(reply_to=None, error=error):
                log.warning("Broadcast failed: {err}", err=error)
            case _Errored(reply_to=reply_to, error=error):
                log.debug("Task errored: {err}", err=error)
                reply_to.tell(SlotFailed(slot_id=slot_id, error=error))
            case StopSlot():
                log.debug("Stopping")
                return Behaviors.stopped()
        return Behaviors.same()

    async def _post_stop(_ctx: ActorContext[Any]) -> None:
        context.stop()

    return Behaviors.with_lifecycle(
        Behaviors.receive(receive),
        post_stop=_post_stop,
    )
