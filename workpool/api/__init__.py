from workpool.api.pool import WorkerPool
from workpool.api.spec import PoolOptions, available_parallelism

__all__ = [
    "PoolOptions",
    "WorkerPool",
    "available_parallelism",
]
