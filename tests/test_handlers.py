from __future__ import annotations

import json

import pytest

from workpool.backends.handlers import handler_ref, import_deps, resolve_handler
from workpool.errors import HandlerResolutionError

pytestmark = [pytest.mark.unit]


def module_level(context, event, args):
    return args


class Nested:
    @staticmethod
    def handle(context, event, args):
        return event


class TestHandlerRef:
    def test_module_level_function(self):
        assert handler_ref(module_level) == "test_handlers:module_level"

    def test_nested_qualname(self):
        assert handler_ref(Nested.handle) == "test_handlers:Nested.handle"

    def test_lambda_is_rejected(self):
        with pytest.raises(HandlerResolutionError, match="module level"):
            handler_ref(lambda c, e, a: None)

    def test_closure_is_rejected(self):
        def inner(context, event, args):
            return None

        with pytest.raises(HandlerResolutionError, match="module level"):
            handler_ref(inner)

    def test_main_module_is_rejected(self):
        def fake(context, event, args):
            return None

        fake.__module__ = "__main__"
        fake.__qualname__ = "fake"
        with pytest.raises(HandlerResolutionError, match="__main__"):
            handler_ref(fake)


class TestResolveHandler:
    def test_round_trip(self):
        assert resolve_handler(handler_ref(module_level)) is module_level

    def test_nested_attribute(self):
        assert resolve_handler("test_handlers:Nested.handle") is Nested.handle

    def test_stdlib_callable(self):
        assert resolve_handler("json:dumps") is json.dumps

    def test_missing_colon(self):
        with pytest.raises(HandlerResolutionError, match="module:qualname"):
            resolve_handler("json.dumps")

    def test_unknown_module(self):
        with pytest.raises(HandlerResolutionError, match="Cannot import"):
            resolve_handler("workpool_no_such_module:run")

    def test_unknown_attribute(self):
        with pytest.raises(HandlerResolutionError, match="not found"):
            resolve_handler("json:nope")

    def test_non_callable_target(self):
        with pytest.raises(HandlerResolutionError, match="callable"):
            resolve_handler("json:__name__")


class TestImportDeps:
    def test_imports_by_name(self):
        deps = import_deps(("json", "os.path"))
        assert deps["json"] is json
        assert set(deps) == {"json", "os.path"}

    def test_empty(self):
        assert import_deps(()) == {}

    def test_missing_module_raises(self):
        with pytest.raises(ImportError):
            import_deps(("workpool_no_such_module",))
