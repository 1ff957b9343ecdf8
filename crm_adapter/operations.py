"""CRUD entry points called by the ORM layer.

Each operation assembles a :class:`RequestContext`, runs the connection's
before-hooks over it, performs the remote call and hands the raw outcome to
:func:`handle_response`. Every call yields exactly one :class:`Outcome`; when
a ``callback`` is given it is also invoked once with ``(error, data)``.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

from .client import CrmClient
from .connection import Connection
from .dispatch import Outcome, handle_response, response_handler
from .errors import ConfigurationError, RemoteApplicationError, RequestNotBuiltError
from .hooks import RequestContext
from .request import RemoteRequest

logger = logging.getLogger("crm-adapter.operations")

Callback = Callable[[Exception | None, Any], Any]

# Operations whose remote operation name must come from configuration
CONFIGURED_OPERATIONS = {"update", "destroy"}


async def _finish(outcome: Outcome, callback: Callback | None) -> Outcome:
    if callback is not None:
        result = callback(outcome.error, outcome.data)
        if inspect.isawaitable(result):
            await result
    return outcome


async def _prepare(
    connection: Connection,
    operation: str,
    collection: str,
    options: dict[str, Any] | None,
    values: list[dict[str, Any]] | None,
) -> tuple[Exception | None, RemoteRequest, RequestContext]:
    """Build the per-call context and run the before-hooks over it."""
    context = RequestContext(
        connection=connection,
        collection=collection,
        options=dict(options or {}),
        values=list(values or []),
    )
    request = RemoteRequest(
        method=connection.method_for(operation),
        timeout=connection.timeout,
        transport=connection.transport,
    )
    config: dict[str, Any] = {}

    error = await connection.before_hooks.run(request, operation, config, context)
    if error:
        logger.debug("%s on %s aborted by before-hook: %s", operation, collection, error)
        return error, request, context

    if request.url is None and config.get("endpoint"):
        request.bind(config["endpoint"])
    return None, request, context


async def find(
    connection: Connection,
    collection: str,
    options: dict[str, Any] | None = None,
    callback: Callback | None = None,
) -> Outcome:
    """Fetch records from ``collection``.

    Aliased collections are remapped to their remote resource; when the
    alias's id field is present in ``options`` a single record is fetched
    and returned as a one-element list. Other option keys are not sent.
    """
    error, _, context = await _prepare(connection, "find", collection, options, None)
    if error:
        return await _finish(Outcome(error, None), callback)

    resource = context.collection
    record_id = None
    alias = connection.resolve_alias(resource)
    if alias is not None:
        resource = alias.resource
        record_id = context.options.get(alias.id_field) or None

    operation = "getRecordById" if record_id is not None else "getRecords"
    client = connection.client or CrmClient.from_connection(connection)
    logger.debug("find %s -> %s %s id=%s", collection, resource, operation, record_id)

    try:
        result = await client.execute(connection.domain, resource, operation, record_id)
    except Exception as e:
        logger.warning("%s on %s failed: %s", operation, resource, e)
        outcome = await handle_response(connection, e, None)
        return await _finish(outcome, callback)

    if result.is_error():
        logger.warning("%s on %s reported: %s", operation, resource, result.message)
        app_error = RemoteApplicationError(result.message, getattr(result, "code", None))
        outcome = await handle_response(connection, app_error, result)
        return await _finish(outcome, callback)

    if record_id is not None:
        result.data = [result.data] if result.data is not None else []

    outcome = await handle_response(connection, None, result)
    return await _finish(outcome, callback)


async def _write(
    connection: Connection,
    operation: str,
    collection: str,
    options: dict[str, Any] | None,
    values: list[dict[str, Any]] | None,
    callback: Callback | None,
    *,
    with_query: bool,
    with_body: bool,
) -> Outcome:
    if operation in CONFIGURED_OPERATIONS and not connection.remote_operations.get(operation):
        error = ConfigurationError(
            f"No remote operation configured for '{operation}' "
            f"(set remote_operations.{operation} in the connection config)"
        )
        return await _finish(Outcome(error, None), callback)

    error, request, context = await _prepare(connection, operation, collection, options, values)
    if error:
        return await _finish(Outcome(error, None), callback)

    if request.url is None:
        return await _finish(Outcome(RequestNotBuiltError(operation), None), callback)

    if with_query:
        request.query(context.options)
    if with_body:
        request.send(context.values)

    logger.debug("%s %s -> %s %s", operation, collection, request.method, request.url)
    outcome = await request.end(response_handler(connection))
    return await _finish(outcome, callback)


async def create(
    connection: Connection,
    collection: str,
    values: list[dict[str, Any]],
    callback: Callback | None = None,
) -> Outcome:
    """Create records; ``values`` is sent as the request body."""
    return await _write(
        connection, "create", collection, None, values, callback,
        with_query=False, with_body=True,
    )


async def update(
    connection: Connection,
    collection: str,
    options: dict[str, Any],
    values: list[dict[str, Any]],
    callback: Callback | None = None,
) -> Outcome:
    """Update records matching ``options`` with ``values``."""
    return await _write(
        connection, "update", collection, options, values, callback,
        with_query=True, with_body=True,
    )


async def destroy(
    connection: Connection,
    collection: str,
    options: dict[str, Any],
    callback: Callback | None = None,
) -> Outcome:
    """Delete records matching ``options``."""
    return await _write(
        connection, "destroy", collection, options, None, callback,
        with_query=True, with_body=False,
    )
