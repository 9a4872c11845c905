"""CPU-intensive work on the process backend.

Each slot is a separate interpreter, so pure-Python work runs in parallel.
The handler is resolved by reference (``primes:handler``) inside each child.

    cd examples/3-process-backend
    python main.py
"""

from primes import handler

from workpool import WorkerPool

CHUNK = 200_000

if __name__ == "__main__":
    options = {"executor": "process", "deps": ["hashlib"], "terminate_on_error": True}

    with WorkerPool(handler, options) as pool:
        print(f"Counting primes on {pool.size} processes...")
        futures = [
            pool.submit_future("count_primes", (lo, lo + CHUNK))
            for lo in range(0, 2_000_000, CHUNK)
        ]
        print("primes below 2M:", sum(f.result() for f in futures))
        print("checksum:", pool.submit_future("checksum", "workpool").result())
