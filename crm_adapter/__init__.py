"""
crm-adapter - ORM adapter for a Zoho-style CRM HTTP API.

Operations run through a before-hook chain that shapes the request and an
after-hook chain that sees every response or error.
"""

from .connection import Connection, ResourceAlias
from .dispatch import Outcome, handle_response, response_handler
from .hooks import HookPhase, RequestContext
from .hooks.chain import HookChain
from .operations import create, destroy, find, update

__all__ = [
    "Connection",
    "ResourceAlias",
    "Outcome",
    "handle_response",
    "response_handler",
    "HookPhase",
    "RequestContext",
    "HookChain",
    "find",
    "create",
    "update",
    "destroy",
]
