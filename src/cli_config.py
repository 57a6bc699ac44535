"""Configuration file loading and CLI overrides for runtime tunables.

Precedence, lowest to highest: ``Constants`` defaults, the config file, CLI
flags. Unlike purely cosmetic settings, a malformed config file is an error:
silently ignoring repository or stability settings could rewrite the catalog
with versions the user excluded.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants
from errors import ValidationError
from repository.gradle_config import repositories_from_config

logger = logging.getLogger(__name__)

KNOWN_KEYS = ("stable_only", "alias_prefixes", "repositories", "request_timeout", "http_retries")


def find_config(project_root: str) -> Optional[str]:
    """Return the first default config file present in the project root."""
    for name in Constants.CONFIG_FILES:
        candidate = os.path.join(project_root, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load configuration from a YAML (or JSON) file.

    Args:
        config_path: Path to the config file, or None.

    Returns:
        Configuration dict (empty when no path was given).

    Raises:
        ValidationError: the file is missing, unreadable or not a mapping.
    """
    if not config_path:
        return {}
    if not os.path.isfile(config_path):
        raise ValidationError(f"Config file not found: {config_path}")
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.lower().endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ValidationError(f"Failed to load config {config_path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"Config {config_path} must contain a mapping")
    unknown = [key for key in data if key not in KNOWN_KEYS]
    if unknown:
        logger.warning("Ignoring unknown config key(s): %s", ", ".join(sorted(map(str, unknown))))
    return data


def _positive_int(data: Dict[str, Any], key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"Config '{key}' must be a positive integer, got {value!r}")
    return value


def apply_config(data: Dict[str, Any]) -> None:
    """Copy recognized config values onto ``Constants``.

    Raises:
        ValidationError: a value has the wrong type.
    """
    if "stable_only" in data:
        if not isinstance(data["stable_only"], bool):
            raise ValidationError("Config 'stable_only' must be true or false")
        Constants.STABLE_ONLY = data["stable_only"]
    if "alias_prefixes" in data:
        prefixes = data["alias_prefixes"]
        if not isinstance(prefixes, list) or not all(isinstance(p, str) for p in prefixes):
            raise ValidationError("Config 'alias_prefixes' must be a list of strings")
        Constants.ALIAS_PREFIXES = [p.lower() for p in prefixes]
    if "repositories" in data:
        repositories = data["repositories"] or []
        if not isinstance(repositories, list):
            raise ValidationError("Config 'repositories' must be a list")
        # Validate eagerly so errors surface before any network call
        repositories_from_config(repositories)
        Constants.EXTRA_REPOSITORIES = list(repositories)
    if "request_timeout" in data:
        Constants.REQUEST_TIMEOUT = _positive_int(data, "request_timeout")
    if "http_retries" in data:
        Constants.HTTP_RETRY_MAX = _positive_int(data, "http_retries")


def apply_cli_overrides(args) -> None:
    """Apply CLI flags over the config file (CLI has highest precedence)."""
    stable_only = getattr(args, "STABLE_ONLY", None)
    if stable_only:
        Constants.STABLE_ONLY = True
    if getattr(args, "INCLUDE_UNSTABLE", False):
        Constants.STABLE_ONLY = False
