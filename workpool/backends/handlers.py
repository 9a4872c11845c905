"""Handler references.

Execution contexts that live in another process never receive the handler
object itself. They receive a ``module:qualname`` reference and import the
handler on their side, so handlers must be defined at module level.
"""

from __future__ import annotations

from collections.abc import Callable
from importlib import import_module
from types import ModuleType
from typing import Any

from workpool.errors import HandlerResolutionError

type HandlerRef = str


def handler_ref(fn: Callable[..., Any]) -> HandlerRef:
    """Build the ``module:qualname`` reference for a module-level callable."""
    module = getattr(fn, "__module__", None)
    qualname = getattr(fn, "__qualname__", None)
    if not module or not qualname:
        raise HandlerResolutionError(f"{fn!r} has no importable module path.")
    if "<locals>" in qualname or "<lambda>" in qualname:
        raise HandlerResolutionError(
            f"Handler '{qualname}' must be defined at module level to be referenced."
        )
    if module == "__main__":
        raise HandlerResolutionError(
            f"Handler '{qualname}' lives in __main__; move it to an importable module."
        )
    return f"{module}:{qualname}"


def resolve_handler(ref: HandlerRef) -> Callable[..., Any]:
    """Resolve a handler from a ``module.submodule:function_name`` reference."""
    if ":" not in ref:
        raise HandlerResolutionError(f"Handler reference must be 'module:qualname', got '{ref}'.")
    module_name, qualname = ref.split(":", 1)
    try:
        target: Any = import_module(module_name)
    except ImportError as e:
        raise HandlerResolutionError(f"Cannot import module '{module_name}': {e}") from e
    for part in qualname.split("."):
        target = getattr(target, part, None)
        if target is None:
            raise HandlerResolutionError(f"'{qualname}' not found in module '{module_name}'.")
    if not callable(target):
        raise HandlerResolutionError(f"'{ref}' does not reference a callable.")
    return target


def import_deps(deps: tuple[str, ...]) -> dict[str, ModuleType]:
    """Import every dependency of an execution context, keyed by its name."""
    return {name: import_module(name) for name in deps}
