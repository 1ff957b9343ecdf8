"""Response handling: after-hooks, then normalization into an Outcome."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .connection import Connection


@dataclass(frozen=True)
class Outcome:
    """Terminal result of one operation: an error or the result data."""

    error: Exception | None = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return not self.error

    def __iter__(self):
        # Allows ``error, data = outcome``
        yield self.error
        yield self.data


async def handle_response(connection: Connection, error: Exception | None, response: Any) -> Outcome:
    """Run the after-hooks over ``(error, response)`` and build the outcome.

    An error reported by any after-hook replaces the original error and
    drops the data. The after-hooks always run in full, including when
    ``error`` is set.
    """
    hook_error = await connection.after_hooks.run(error, response, short_circuit=False)
    if hook_error:
        return Outcome(hook_error, None)
    if response is None:
        return Outcome(error, None)
    return Outcome(error, response.data)


def response_handler(connection: Connection):
    """Build an ``(error, response)`` handler for :meth:`RemoteRequest.end`."""

    async def handler(error: Exception | None, response: Any) -> Outcome:
        if response is not None and not error:
            error = None
        return await handle_response(connection, error, response)

    return handler
