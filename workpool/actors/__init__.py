from workpool.actors.dispatcher import dispatcher_actor
from workpool.actors.slot import slot_actor

__all__ = [
    "dispatcher_actor",
    "slot_actor",
]
