"""Connection configuration shared by all operations on one remote CRM."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .hooks.chain import HookChain

DEFAULT_BASE_URL = "https://crm.zoho.com"
DEFAULT_DOMAIN = "crm"
DEFAULT_TIMEOUT = 30.0

DEFAULT_METHODS = {
    "find": "GET",
    "create": "POST",
    "update": "PUT",
    "destroy": "DELETE",
}


@dataclass(frozen=True)
class ResourceAlias:
    """Maps a logical collection onto a remote resource."""

    resource: str
    id_field: str

    def to_dict(self) -> dict[str, str]:
        return {"resource": self.resource, "id_field": self.id_field}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceAlias:
        return cls(resource=data["resource"], id_field=data["id_field"])


def default_aliases() -> dict[str, ResourceAlias]:
    return {"member": ResourceAlias(resource="Contacts", id_field="CONTACTID")}


@dataclass
class Connection:
    """Per-connection settings owned by the caller.

    The adapter reads this object on every call but never modifies it,
    so one instance can serve concurrent operations.
    """

    authtoken: str | None = None
    base_url: str = DEFAULT_BASE_URL
    domain: str = DEFAULT_DOMAIN
    timeout: float = DEFAULT_TIMEOUT
    before_hooks: HookChain = field(default_factory=HookChain)
    after_hooks: HookChain = field(default_factory=HookChain)
    aliases: dict[str, ResourceAlias] = field(default_factory=default_aliases)
    remote_operations: dict[str, str] = field(default_factory=dict)
    methods: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_METHODS))
    transport: Any | None = None  # httpx.AsyncBaseTransport
    client: Any | None = None  # object with an async ``execute`` method

    def method_for(self, operation: str) -> str:
        """HTTP verb used for a logical operation."""
        return self.methods.get(operation, DEFAULT_METHODS.get(operation, "GET")).upper()

    def resolve_alias(self, collection: str) -> ResourceAlias | None:
        return self.aliases.get(collection)
