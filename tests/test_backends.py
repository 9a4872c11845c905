from __future__ import annotations

import threading

import pytest

from workpool import ThreadBackend, WorkerContext
from workpool.errors import ContextInitError

pytestmark = [pytest.mark.unit]


def handler(context: WorkerContext, event, args):
    match event:
        case "context":
            return context
        case "append":
            log, item = args
            log.append((item, threading.current_thread().name))
            return item
        case "wait":
            return args.wait(timeout=5)
        case "signal_wait":
            started, gate = args
            started.set()
            return gate.wait(timeout=5)
        case "fail":
            raise ValueError(args)
    raise KeyError(event)


@pytest.fixture
def backend() -> ThreadBackend:
    return ThreadBackend()


class TestThreadBackend:
    def test_context_carries_slot_id_and_deps(self, backend):
        ctx = backend.open(handler, 3, ("json",))
        try:
            context = ctx.send("context", None).result(timeout=5)
        finally:
            ctx.stop()

        assert context.slot_id == 3
        assert list(context.deps) == ["json"]
        assert ctx.slot_id == 3

    def test_messages_run_in_arrival_order_on_one_thread(self, backend):
        ctx = backend.open(handler, 0, ())
        log: list = []
        try:
            futures = [ctx.send("append", (log, i)) for i in range(5)]
            assert [f.result(timeout=5) for f in futures] == list(range(5))
        finally:
            ctx.stop()

        assert [item for item, _ in log] == list(range(5))
        assert len({name for _, name in log}) == 1
        assert log[0][1].startswith("workpool-slot-0")

    def test_contexts_run_in_parallel(self, backend):
        gate = threading.Event()
        first = backend.open(handler, 0, ())
        second = backend.open(handler, 1, ())
        try:
            blocked = first.send("wait", gate)
            assert second.send("fail", "x").exception(timeout=5) is not None
            assert not blocked.done()
            gate.set()
            assert blocked.result(timeout=5) is True
        finally:
            first.stop()
            second.stop()

    def test_failure_is_reported_through_the_future(self, backend):
        ctx = backend.open(handler, 0, ())
        try:
            with pytest.raises(ValueError, match="bad input"):
                ctx.send("fail", "bad input").result(timeout=5)
        finally:
            ctx.stop()

    def test_failed_init_fails_every_message(self, backend):
        ctx = backend.open(handler, 1, ("workpool_no_such_module",))
        try:
            for _ in range(2):
                with pytest.raises(ContextInitError, match="Execution context 1") as info:
                    ctx.send("context", None).result(timeout=5)
                assert isinstance(info.value.cause, ImportError)
        finally:
            ctx.stop()

    def test_stop_cancels_pending_messages(self, backend):
        started, gate = threading.Event(), threading.Event()
        ctx = backend.open(handler, 0, ())
        running = ctx.send("signal_wait", (started, gate))
        assert started.wait(timeout=5)
        pending = ctx.send("context", None)

        ctx.stop()
        gate.set()

        assert running.result(timeout=5) is True
        assert pending.cancelled()

    def test_repr(self, backend):
        assert repr(backend) == "ThreadBackend()"
