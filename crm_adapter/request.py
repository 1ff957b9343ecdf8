"""HTTP request builder used by write operations.

A ``RemoteRequest`` starts unbound (no URL). Before-hooks configure it
(headers, query params, endpoint) and ``end`` sends it with httpx.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

import httpx

from .connection import DEFAULT_TIMEOUT
from .errors import RemoteCallError, RemoteStatusError

logger = logging.getLogger("crm-adapter.request")

ResponseHandler = Callable[[Exception | None, "RemoteResponse | None"], Awaitable[Any]]


class RemoteResponse:
    """Decoded HTTP response handed to after-hooks and the caller."""

    def __init__(self, raw: httpx.Response) -> None:
        self.raw = raw
        self.status_code = raw.status_code
        self.headers = raw.headers
        self.text = raw.text
        self.data = _decode_json(raw)

    def __repr__(self) -> str:
        return f"<RemoteResponse [{self.status_code}]>"


def _decode_json(raw: httpx.Response) -> Any:
    if not raw.content:
        return None
    try:
        return raw.json()
    except ValueError:
        return None


def _query_value(value: Any) -> str:
    """Render one query option as a string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


class RemoteRequest:
    """Chainable request description, sent with ``await request.end(handler)``."""

    def __init__(
        self,
        method: str = "GET",
        url: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.method = method.upper()
        self.url = url
        self.headers: dict[str, str] = dict(headers or {})
        self.params: dict[str, str] = {}
        self.body: Any = None
        self.timeout = timeout
        self.transport = transport

    def bind(self, url: str) -> RemoteRequest:
        self.url = url
        return self

    def header(self, name: str, value: str) -> RemoteRequest:
        self.headers[name] = value
        return self

    def query(self, options: dict[str, Any] | None) -> RemoteRequest:
        """Merge ``options`` into the query string. ``None`` values are dropped."""
        for key, value in (options or {}).items():
            if value is None:
                continue
            self.params[key] = _query_value(value)
        return self

    def send(self, values: Any) -> RemoteRequest:
        """Set the JSON request body. Values JSON cannot encode (dates, decimals) are sent as strings."""
        self.body = values
        return self

    async def end(self, handler: ResponseHandler) -> Any:
        """Issue the request and pass ``(error, response)`` to ``handler`` once."""
        if self.url is None:
            raise RemoteCallError("Request has no URL; bind it before calling end()")

        error: Exception | None = None
        response: RemoteResponse | None = None

        headers = dict(self.headers)
        content = None
        if self.body is not None:
            try:
                content = json.dumps(self.body, default=str)
            except (TypeError, ValueError) as e:
                logger.warning("Cannot encode body for %s: %s", self.url, e)
                return await handler(RemoteCallError(f"Request body is not JSON encodable: {e}"), None)
            headers.setdefault("Content-Type", "application/json")

        logger.debug("%s %s params=%s", self.method, self.url, sorted(self.params))
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                raw = await client.request(
                    self.method,
                    self.url,
                    params=self.params or None,
                    headers=headers or None,
                    content=content,
                )
        except httpx.HTTPError as e:
            logger.warning("Request to %s failed: %s", self.url, e)
            error = RemoteCallError(str(e) or type(e).__name__)
        else:
            response = RemoteResponse(raw)
            if raw.status_code >= 400:
                error = RemoteStatusError(raw.status_code, response.data or response.text)

        return await handler(error, response)
