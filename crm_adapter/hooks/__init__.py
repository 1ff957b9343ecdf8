"""Request/response hook system for the CRM adapter.

Before-hooks run ahead of every operation and shape the outgoing request.
After-hooks run once the remote call completes and may observe or replace
the outcome. Hooks execute sequentially; a hook reports failure by returning
(or raising) an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

if TYPE_CHECKING:
    from ..connection import Connection


class HookPhase(Enum):
    """Pipeline stages that accept hooks."""

    BEFORE = "before"  # Before the request is built and sent
    AFTER = "after"  # After the remote call completes


@dataclass
class RequestContext:
    """Per-call state threaded through the before-hooks.

    One instance exists per operation call. Hooks get exclusive, ordered
    access to it and may amend ``collection``, ``options`` and ``values``
    in place. ``connection`` is shared across calls and must not be mutated.
    """

    connection: Connection
    collection: str
    options: dict[str, Any] = field(default_factory=dict)
    values: list[dict[str, Any]] = field(default_factory=list)


HookResult = Union[Exception, None]

# Hook callables (sync or async). Return None to proceed, an exception to abort.
BeforeHook = Callable[..., Union[HookResult, Awaitable[HookResult]]]
AfterHook = Callable[..., Union[HookResult, Awaitable[HookResult]]]
HookFn = Callable[..., Awaitable[HookResult]]
