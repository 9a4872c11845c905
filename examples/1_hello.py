"""Hello, workpool.

Defines one task-handling routine and submits a few tasks to a pool sized
by the host CPU count. Callbacks receive ``(error, result)``.
"""

import threading

from workpool import WorkerPool


def handler(context, event, args):
    match event:
        case "sum":
            print(f"[slot {context.slot_id}] That's one expensive sum.")
            return sum(args)
    raise ValueError(f"unknown event {event!r}")


if __name__ == "__main__":
    done = threading.Event()
    remaining = [3]

    def on_result(error, result):
        print("error:", error, "result:", result)
        remaining[0] -= 1
        if remaining[0] == 0:
            done.set()

    with WorkerPool(handler, logging=True) as pool:
        pool.submit("sum", [1, 2], on_result)
        pool.submit("sum", [3, 4, 5], on_result)
        pool.submit("multiply", [6, 7], on_result)
        done.wait()
