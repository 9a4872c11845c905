from __future__ import annotations

import os

import pytest
from helpers import wait_until
from process_handlers import handler

from workpool import HandlerResolutionError, ProcessBackend, WorkerPool
from workpool.errors import ContextInitError

pytestmark = [pytest.mark.integration, pytest.mark.timeout(120)]


def make_pool(size: int, **options) -> WorkerPool:
    return WorkerPool(
        handler,
        {"max_workers": size, "executor": "process", **options},
        parallelism=lambda: size,
    )


class TestProcessBackend:
    def test_runs_handler_in_another_process(self):
        with make_pool(1) as pool:
            assert pool.submit_future("echo", {"a": [1, 2]}).result(timeout=60) == {"a": [1, 2]}
            assert pool.submit_future("pid").result(timeout=60) != os.getpid()

    def test_each_slot_is_its_own_process(self):
        with make_pool(2) as pool:
            ids = [pool.submit_future("whoami") for _ in range(2)]
            pids = [pool.submit_future("pid") for _ in range(2)]
            assert sorted(f.result(timeout=60) for f in ids) == [0, 1]
            assert all(f.result(timeout=60) != os.getpid() for f in pids)

    def test_failure_crosses_the_process_boundary(self):
        with make_pool(1) as pool:
            with pytest.raises(ValueError, match="failed: x"):
                pool.submit_future("fail", "x").result(timeout=60)
            assert pool.submit_future("echo", 1).result(timeout=60) == 1

    def test_deps_are_imported_in_the_child(self):
        with make_pool(1, deps=["json"]) as pool:
            assert pool.submit_future("deps").result(timeout=60) == ["json"]
            assert pool.submit_future("dumps", {"b": 1, "a": 2}).result(timeout=60) == '{"a": 2, "b": 1}'

    def test_bad_dep_fails_every_task(self):
        with make_pool(1, deps="workpool_no_such_module") as pool:
            for _ in range(2):
                with pytest.raises(ContextInitError) as info:
                    pool.submit_future("echo", 1).result(timeout=60)
                assert info.value.slot_id == 0

    def test_terminate_on_error_stops_the_pool(self):
        calls: list = []
        with make_pool(1, terminate_on_error=True) as pool:
            pool.submit("fail", "x", lambda err, res: calls.append(err))
            assert wait_until(lambda: pool.is_terminated, timeout=60)
            assert isinstance(calls[0], ValueError)


class TestHandlerReferences:
    def test_lambda_handler_is_rejected(self):
        with pytest.raises(HandlerResolutionError, match="module level"):
            ProcessBackend().open(lambda c, e, a: None, 0, ())

    def test_pool_start_fails_for_local_handler(self):
        def local(context, event, args):
            return args

        with pytest.raises(HandlerResolutionError):
            WorkerPool(local, {"executor": "process", "max_workers": 1}, parallelism=lambda: 1)


class TestChildState:
    def test_running_before_init_is_an_error(self):
        from workpool.backends import process

        with pytest.raises(RuntimeError, match="not initialized"):
            process._run_in_process("echo", 1)

    def test_init_failure_is_reported_for_every_message(self, monkeypatch: pytest.MonkeyPatch):
        from workpool.backends import process

        monkeypatch.setattr(process, "_handler", None)
        monkeypatch.setattr(process, "_context", None)
        monkeypatch.setattr(process, "_init_error", None)
        process._init_process("process_handlers:handler", 4, ("workpool_no_such_module",))

        with pytest.raises(ContextInitError, match="Execution context 4"):
            process._run_in_process("echo", 1)
