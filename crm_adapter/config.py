"""
Configuration management for crm-adapter.

Loads the connection definition from ~/.config/crm-adapter/connection.yaml
and secrets from ~/.config/crm-adapter/.secrets (both YAML).
"""

from __future__ import annotations

import logging
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .connection import (
    DEFAULT_BASE_URL,
    DEFAULT_DOMAIN,
    DEFAULT_METHODS,
    DEFAULT_TIMEOUT,
    Connection,
    ResourceAlias,
    default_aliases,
)
from .errors import ConfigurationError
from .hooks import HookPhase
from .hooks.loader import load_hook_chains

logger = logging.getLogger("crm-adapter.config")

AUTHTOKEN_KEY = "CRM_AUTHTOKEN"

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


@dataclass
class SecretsConfig:
    """Secrets read from the .secrets file."""
    _data: dict[str, Any]

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self._data.get(key)
        return default if value is None else str(value)


def get_config_dir() -> Path:
    """Get configuration directory.

    Priority order:
    1. $CRM_ADAPTER_HOME (if set)
    2. $XDG_CONFIG_HOME/crm-adapter (if set)
    3. ~/.config/crm-adapter (default)
    """
    home = os.environ.get("CRM_ADAPTER_HOME")
    if home:
        return Path(home)

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / "crm-adapter"


def get_secrets_file() -> Path:
    return get_config_dir() / ".secrets"


def get_connection_file() -> Path:
    return get_config_dir() / "connection.yaml"


def expand_vars(value: Any) -> Any:
    """Expand ``${VAR}`` references in strings; unknown variables are left as-is."""
    if not isinstance(value, str) or "${" not in value:
        return value

    def expand_var(match):
        return os.environ.get(match.group(1), match.group(0))

    return _VAR_PATTERN.sub(expand_var, value)


def _read_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e


def load_secrets() -> SecretsConfig:
    """
    Load secrets from the .secrets file.

    Returns an empty SecretsConfig when the file does not exist.

    Example .secrets file:
    ---
    CRM_AUTHTOKEN: "your-token-here"
    """
    secrets_file = get_secrets_file()
    logger.debug("Loading secrets from: %s", secrets_file)

    if not secrets_file.exists():
        logger.debug("Secrets file not found, returning empty config")
        return SecretsConfig(_data={})

    data = _read_yaml(secrets_file) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Secrets file must contain a YAML dictionary, got {type(data)}")

    logger.debug("Loaded secrets with keys: %s", list(data.keys()))
    return SecretsConfig(_data=data)


def _resolve_authtoken(raw: dict[str, Any]) -> str | None:
    """Config value, then $CRM_AUTHTOKEN, then the secrets file."""
    token = expand_vars(raw.get("authtoken"))
    if token and "${" not in str(token):
        return str(token)
    env_token = os.environ.get(AUTHTOKEN_KEY)
    if env_token:
        return env_token
    return load_secrets().get(AUTHTOKEN_KEY)


def _parse_aliases(raw: Any) -> dict[str, ResourceAlias]:
    if raw is None:
        return default_aliases()
    if not isinstance(raw, dict):
        raise ConfigurationError("'aliases' must be a mapping of collection -> {resource, id_field}")
    aliases = {}
    for name, entry in raw.items():
        try:
            aliases[name] = ResourceAlias.from_dict(entry)
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"Alias '{name}' needs 'resource' and 'id_field'") from e
    return aliases


def connection_from_dict(raw: dict[str, Any]) -> Connection:
    """Build a :class:`Connection` from a parsed connection.yaml mapping."""
    known = {
        "base_url", "authtoken", "domain", "timeout", "aliases",
        "remote_operations", "methods", "hooks", "python_path",
    }
    for key in raw:
        if key not in known:
            logger.warning("Unknown connection setting: %s", key)

    chains = load_hook_chains(raw.get("hooks"), raw.get("python_path"))

    methods = dict(DEFAULT_METHODS)
    methods.update({k: str(v).upper() for k, v in (raw.get("methods") or {}).items()})

    try:
        timeout = float(raw.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid timeout: {raw.get('timeout')!r}") from e

    return Connection(
        authtoken=_resolve_authtoken(raw),
        base_url=expand_vars(raw.get("base_url", DEFAULT_BASE_URL)),
        domain=raw.get("domain", DEFAULT_DOMAIN),
        timeout=timeout,
        before_hooks=chains[HookPhase.BEFORE],
        after_hooks=chains[HookPhase.AFTER],
        aliases=_parse_aliases(raw.get("aliases")),
        remote_operations={k: str(v) for k, v in (raw.get("remote_operations") or {}).items()},
        methods=methods,
    )


def load_connection(path: Path | None = None) -> Connection:
    """Load the connection definition from ``path`` (default: connection.yaml)."""
    path = path or get_connection_file()
    logger.debug("Loading connection from: %s", path)

    if not path.exists():
        raise ConfigurationError(
            f"Connection config not found: {path}\n"
            "Create one with: crm-adapter init"
        )

    raw = _read_yaml(path) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Connection config must be a YAML dictionary, got {type(raw)}")
    return connection_from_dict(raw)


def create_config_template() -> str:
    """Return a documented connection.yaml template."""
    return """# crm-adapter connection configuration
# Location: ~/.config/crm-adapter/connection.yaml
#
# The auth token is read from (first match wins):
#   1. `authtoken` below (supports ${VAR} expansion)
#   2. $CRM_AUTHTOKEN
#   3. CRM_AUTHTOKEN in ~/.config/crm-adapter/.secrets

base_url: "https://crm.zoho.com"
domain: crm
timeout: 30
# authtoken: "${ZOHO_AUTHTOKEN}"

# Logical collections mapped onto remote resources
aliases:
  member:
    resource: Contacts
    id_field: CONTACTID

# Remote operation names for write operations (update/destroy are required)
remote_operations:
  create: insertRecords
  update: updateRecords
  destroy: deleteRecords

hooks:
  before:
    - name: resolve_endpoint
      module: crm_adapter.hooks.builtin
      function: resolve_endpoint
    - name: attach_auth_token
      module: crm_adapter.hooks.builtin
      function: attach_auth_token
    - name: log_request
      module: crm_adapter.hooks.builtin
      function: log_request
      enabled: false
      config:
        verbose: true
  after:
    - name: unwrap_envelope
      module: crm_adapter.hooks.builtin
      function: unwrap_envelope
"""


def ensure_config_template(force: bool = False) -> Path:
    """
    Ensure a connection.yaml exists, writing the template if missing.

    Returns the path to the connection file.
    """
    connection_file = get_connection_file()

    if connection_file.exists() and not force:
        logger.debug("Connection file already exists: %s", connection_file)
        return connection_file

    connection_file.parent.mkdir(parents=True, exist_ok=True)
    connection_file.write_text(create_config_template(), encoding="utf-8")

    print(f"Created connection template: {connection_file}", file=sys.stderr)
    print(f"Please edit {connection_file} and set your CRM credentials", file=sys.stderr)
    return connection_file
