"""Built-in hooks for endpoint resolution, authentication and logging."""

from __future__ import annotations

from typing import Any

from ..client import is_envelope, parse_envelope
from ..errors import RemoteApplicationError
from . import RequestContext


def resolve_endpoint(request, operation: str, config: dict[str, Any], ctx: RequestContext) -> None:
    """Set ``config["endpoint"]`` for the collection.

    Meant to be the first before-hook. The remote operation name configured
    for ``operation`` (if any) becomes the last path segment.
    """
    conn = ctx.connection
    endpoint = f"{conn.base_url.rstrip('/')}/{conn.domain}/private/json/{ctx.collection}"
    remote_op = conn.remote_operations.get(operation)
    if remote_op:
        endpoint = f"{endpoint}/{remote_op}"
    config["endpoint"] = endpoint
    return None


def attach_auth_token(request, operation: str, config: dict[str, Any], ctx: RequestContext) -> None:
    """Add the connection's auth token and API scope to the query string."""
    conn = ctx.connection
    if conn.authtoken:
        request.query({"authtoken": conn.authtoken, "scope": f"{conn.domain}api"})
    return None


async def log_request(
    request,
    operation: str,
    config: dict[str, Any],
    ctx: RequestContext,
    hook_config: dict[str, Any] | None = None,
) -> None:
    """Log outgoing request summary."""
    verbose = (hook_config or {}).get("verbose", False)
    print(f"[REQ] {operation} {ctx.collection} | {len(ctx.values)} values | {request.method}")
    if verbose and ctx.options:
        print(f"  Options: {ctx.options}")
    return None


async def log_response(error, response, hook_config: dict[str, Any] | None = None) -> None:
    """Log incoming response summary."""
    include_data = (hook_config or {}).get("include_data", False)
    if error:
        print(f"[RESP] error: {type(error).__name__}: {error}")
    elif response is None:
        print("[RESP] no response")
    else:
        data = getattr(response, "data", None)
        count = len(data) if isinstance(data, list) else (0 if data is None else 1)
        print(f"[RESP] {count} records")
        if include_data:
            print(f"  Data: {data}")
    return None


def unwrap_envelope(error, response) -> Exception | None:
    """Replace a raw CRM JSON envelope on ``response.data`` with plain records.

    Errors reported inside the envelope are returned as
    :class:`RemoteApplicationError` and supersede the outcome.
    """
    if response is None or not is_envelope(getattr(response, "data", None)):
        return None

    parsed = parse_envelope(response.data)
    if parsed.is_error():
        return RemoteApplicationError(parsed.message, parsed.code)
    response.data = parsed.data
    return None


DEFAULT_BEFORE_HOOKS = [resolve_endpoint, attach_auth_token]
