"""Named pool from TOML configuration.

Builds pools defined in workpool.toml. The strict pool terminates on the
first failure and drops whatever is still queued.

    cd examples/4-named-pool
    python main.py
"""

import time

from workpool import PoolTerminatedError, WorkerPool


def handler(context, event, args):
    match event:
        case "encode":
            return context.deps["json"].dumps(args)
        case "check":
            time.sleep(0.1)
            if args < 0:
                raise ValueError(f"negative value: {args}")
            return args


if __name__ == "__main__":
    with WorkerPool.Named("io", handler) as pool:
        print(pool, pool.snapshot())
        print(pool.submit_future("encode", {"hello": "world"}).result())

    with WorkerPool.Named("strict", handler) as pool:
        for value in [1, 2, -3, 4, 5, 6]:
            pool.submit("check", value, lambda err, res: print("error:", err, "result:", res))

        while not pool.is_terminated:
            time.sleep(0.05)

        try:
            pool.submit("check", 7)
        except PoolTerminatedError as e:
            print(e)
        print(pool.snapshot())
