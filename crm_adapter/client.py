"""Zoho-style CRM API client.

Remote operations are addressed as ``{domain}/private/json/{resource}/{operation}``
and answered with a JSON envelope::

    {"response": {"result": {"Contacts": {"row": [{"no": "1", "FL": [...]}]}}}}
    {"response": {"error": {"code": "4600", "message": "..."}}}
    {"response": {"nodata": {"code": "4422", "message": "There is no data to show"}}}

Rows carry their fields as ``FL`` lists of ``{"val": name, "content": value}``
which are flattened into plain dicts.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .connection import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from .errors import RemoteCallError, RemoteStatusError

logger = logging.getLogger("crm-adapter.client")

SINGLE_RECORD_OPERATIONS = {"getRecordById"}


class CrmResult:
    """Result of one remote operation."""

    def __init__(
        self,
        data: Any = None,
        message: str = "",
        error: bool = False,
        code: str | None = None,
    ) -> None:
        self.data = data
        self.message = message
        self.code = code
        self._error = error

    def is_error(self) -> bool:
        return self._error

    def __repr__(self) -> str:
        if self._error:
            return f"<CrmResult error code={self.code} message={self.message!r}>"
        return f"<CrmResult data={self.data!r}>"


def _flatten_row(row: dict[str, Any]) -> dict[str, Any]:
    fields = row.get("FL", [])
    if isinstance(fields, dict):
        fields = [fields]
    return {f["val"]: f.get("content") for f in fields if "val" in f}


def _extract_rows(result: dict[str, Any]) -> list[dict[str, Any]]:
    """Collect rows from every module section of a ``result`` payload."""
    records: list[dict[str, Any]] = []
    for section in result.values():
        if not isinstance(section, dict):
            continue
        if "FL" in section:
            # Write results, e.g. {"recorddetail": {"FL": [...]}}
            records.append(_flatten_row(section))
            continue
        rows = section.get("row", [])
        if isinstance(rows, dict):
            rows = [rows]
        records.extend(_flatten_row(r) for r in rows if isinstance(r, dict))
    return records


def is_envelope(payload: Any) -> bool:
    return isinstance(payload, dict) and isinstance(payload.get("response"), dict)


def parse_envelope(payload: Any, operation: str = "getRecords") -> CrmResult:
    """Turn a JSON envelope into a :class:`CrmResult`.

    Single-record operations yield the first record (or ``None``);
    everything else yields a list.
    """
    single = operation in SINGLE_RECORD_OPERATIONS

    if not is_envelope(payload):
        return CrmResult(error=True, message="Malformed response envelope")

    body = payload["response"]

    if "error" in body:
        err = body["error"]
        if not isinstance(err, dict):
            err = {"message": err} if err else {}
        return CrmResult(
            error=True,
            message=str(err.get("message", "Unknown remote error")),
            code=str(err["code"]) if err.get("code") is not None else None,
        )

    if "nodata" in body:
        nodata = body["nodata"] if isinstance(body["nodata"], dict) else {}
        return CrmResult(data=None if single else [], message=str(nodata.get("message", "")))

    result = body.get("result")
    if not isinstance(result, dict):
        return CrmResult(data=None if single else [])

    records = _extract_rows(result)
    if single:
        return CrmResult(data=records[0] if records else None)
    return CrmResult(data=records)


class CrmClient:
    """Execute named remote operations against CRM resources."""

    def __init__(
        self,
        authtoken: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.authtoken = authtoken
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_connection(cls, connection) -> CrmClient:
        return cls(
            authtoken=connection.authtoken,
            base_url=connection.base_url,
            timeout=connection.timeout,
            transport=connection.transport,
        )

    def url_for(self, domain: str, resource: str, operation: str) -> str:
        return f"{self.base_url}/{domain}/private/json/{resource}/{operation}"

    async def execute(
        self,
        domain: str,
        resource: str,
        operation: str,
        record_id: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> CrmResult:
        """Run ``operation`` on ``resource``.

        Raises :class:`RemoteCallError` on transport failures or undecodable
        bodies and :class:`RemoteStatusError` on HTTP error statuses. Errors
        reported inside the envelope come back as an error ``CrmResult``.
        """
        query: dict[str, Any] = {"scope": f"{domain}api", "newFormat": 1}
        if self.authtoken:
            query["authtoken"] = self.authtoken
        if record_id is not None:
            query["id"] = record_id
        query.update(params or {})

        url = self.url_for(domain, resource, operation)
        logger.debug("execute %s %s id=%s", resource, operation, record_id)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url, params=query)
        except httpx.HTTPError as e:
            raise RemoteCallError(f"{operation} on {resource} failed: {e}") from e

        if resp.status_code >= 400:
            raise RemoteStatusError(resp.status_code, resp.text)

        try:
            payload = resp.json()
        except ValueError as e:
            raise RemoteCallError(f"{operation} on {resource} returned a non-JSON body") from e

        try:
            return parse_envelope(payload, operation)
        except (AttributeError, KeyError, TypeError) as e:
            raise RemoteCallError(f"{operation} on {resource} returned a malformed envelope") from e
