"""Build hook chains from YAML hook definitions.

A definition names an importable function::

    hooks:
      before:
        - name: resolve_endpoint
          module: crm_adapter.hooks.builtin
          function: resolve_endpoint
        - name: log_request
          module: crm_adapter.hooks.builtin
          function: log_request
          config:
            verbose: true
      after:
        - name: unwrap_envelope
          module: crm_adapter.hooks.builtin
          function: unwrap_envelope
"""

from __future__ import annotations

import functools
import importlib
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable

import yaml

from . import HookPhase
from .builtin import DEFAULT_BEFORE_HOOKS
from .chain import HookChain

logger = logging.getLogger("crm-adapter.hooks")


def load_hook_chains(
    hooks_config: dict[str, Any] | None,
    python_path: list[str] | None = None,
) -> dict[HookPhase, HookChain]:
    """Return a chain per phase built from ``hooks_config``.

    Unknown phases and hooks that fail to import are logged and skipped.
    When no ``before`` list is given the built-in defaults are used.
    """
    for p in python_path or []:
        expanded = os.path.expandvars(p)
        if expanded not in sys.path:
            sys.path.insert(0, expanded)

    hooks_config = hooks_config or {}
    chains = {phase: HookChain() for phase in HookPhase}

    if HookPhase.BEFORE.value not in hooks_config:
        for fn in DEFAULT_BEFORE_HOOKS:
            chains[HookPhase.BEFORE].register(fn.__name__, fn)

    for phase_name, hook_list in hooks_config.items():
        try:
            phase = HookPhase(phase_name)
        except ValueError:
            logger.warning("Unknown hook phase: %s", phase_name)
            continue

        if not isinstance(hook_list, list):
            logger.warning("Hook list for %s is not a list", phase_name)
            continue

        for hook_def in hook_list:
            if not isinstance(hook_def, dict):
                logger.warning("Ignoring malformed %s hook entry: %r", phase_name, hook_def)
                continue
            if not hook_def.get("enabled", True):
                continue

            name = hook_def.get("name") or hook_def.get("function", "unnamed")
            try:
                fn = _load_hook_function(hook_def)
            except Exception:
                logger.error("Failed to load hook %s", name, exc_info=True)
                continue

            hook_config = hook_def.get("config", {})
            if hook_config:
                fn = functools.partial(fn, hook_config=hook_config)

            chains[phase].register(name, fn)

    return chains


def load_hooks_from_config(config_path: Path) -> dict[HookPhase, HookChain]:
    """Load hook chains from a YAML file with a top-level ``hooks`` mapping."""
    try:
        config = yaml.safe_load(config_path.read_text()) or {}
    except (OSError, yaml.YAMLError):
        logger.error("Failed to parse hooks config: %s", config_path, exc_info=True)
        config = {}

    if not isinstance(config, dict):
        logger.error("Hooks config must be a YAML mapping: %s", config_path)
        config = {}

    return load_hook_chains(config.get("hooks"), config.get("python_path"))


def _load_hook_function(hook_def: dict[str, Any]) -> Callable[..., Any]:
    """Import and return a hook function from a module path."""
    module = importlib.import_module(hook_def["module"])
    return getattr(module, hook_def["function"])
