"""Broadcasting Example.

Broadcast sends a message to every execution context, busy or idle, without
going through the queue. Useful for warming caches or pushing configuration.
"""

from workpool import WorkerPool

settings: dict[int, dict] = {}


def handler(context, event, args):
    match event:
        case "configure":
            settings[context.slot_id] = dict(args)
            print(f"[slot {context.slot_id}] configured: {args}")
        case "scale":
            factor = settings.get(context.slot_id, {}).get("factor", 1)
            return [x * factor for x in args]


if __name__ == "__main__":
    with WorkerPool(handler, {"max_workers": 4}) as pool:
        pool.broadcast("configure", {"factor": 10})

        futures = [pool.submit_future("scale", list(range(i, i + 3))) for i in range(8)]
        for future in futures:
            print(future.result())
