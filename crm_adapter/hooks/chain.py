"""Sequential hook chain executor."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Iterable

from . import HookFn, HookResult

logger = logging.getLogger("crm-adapter.hooks")


def _as_async(hook: Callable[..., Any]) -> HookFn:
    """Wrap a sync hook so every registered hook can be awaited."""
    if inspect.iscoroutinefunction(hook):
        return hook

    async def async_wrapper(*args, _fn=hook, **kwargs):
        result = _fn(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    return async_wrapper


class HookChain:
    """Run an ordered list of hooks one at a time.

    Every hook is called with the same arguments. A hook signals failure by
    returning an exception; raising one counts the same. Hooks never overlap:
    each is awaited before the next one starts, since later hooks depend on
    what earlier ones changed.
    """

    def __init__(self, hooks: Iterable[Callable[..., Any]] = ()) -> None:
        self._hooks: list[tuple[str, HookFn]] = []
        for hook in hooks:
            self.register(getattr(hook, "__name__", repr(hook)), hook)

    def register(self, name: str, hook: Callable[..., Any]) -> None:
        """Append a hook to the end of the chain."""
        self._hooks.append((name, _as_async(hook)))
        logger.debug("Registered hook: %s", name)

    def list_hooks(self) -> list[str]:
        """Return registered hook names in execution order."""
        return [name for name, _ in self._hooks]

    def __len__(self) -> int:
        return len(self._hooks)

    async def run(self, *args: Any, short_circuit: bool = True) -> HookResult:
        """Run all hooks in order and return the first reported error.

        With ``short_circuit`` the chain stops at the first failure.
        Without it every hook still runs and the first failure is kept.
        """
        first_error: HookResult = None
        for name, hook in self._hooks:
            try:
                result = await hook(*args)
            except Exception as exc:
                logger.error("Hook %s failed", name, exc_info=True)
                result = exc

            if not isinstance(result, Exception):
                continue

            logger.debug("Hook %s reported %s", name, type(result).__name__)
            if short_circuit:
                return result
            if first_error is None:
                first_error = result
        return first_error
