"""Token parsing utilities for coordinates given on the command line or in a catalog."""

from __future__ import annotations

import re
from typing import Optional, Tuple

from errors import ParseError, ValidationError
from .models import Coordinate

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")
_PLUGIN_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+(?:\.[A-Za-z0-9_\-]+)+$")
LATEST = "latest"


def tokenize_rightmost_colon(s: str) -> Tuple[str, Optional[str]]:
    """Return (identifier, spec or None) using the rightmost-colon rule.

    Does not assume any coordinate syntax.
    """
    s = s.strip()
    if ':' not in s:
        return s, None
    parts = s.rsplit(':', 1)
    identifier = parts[0].strip()
    spec_part = parts[1].strip() if len(parts) > 1 else ''
    spec = spec_part if spec_part else None
    return identifier, spec


def _normalize_spec(spec: Optional[str]) -> Optional[str]:
    """Map an empty or "latest" version to None (resolve at runtime)."""
    if spec is None or spec.strip() == '' or spec.strip().lower() == LATEST:
        return None
    return spec.strip()


def split_module(module: str) -> Tuple[str, str]:
    """Split "group:artifact" into its two parts.

    Raises:
        ParseError: when either part is missing.
    """
    parts = [p.strip() for p in module.split(':')]
    if len(parts) != 2 or not all(parts):
        raise ParseError(f"Invalid module notation '{module}', expected 'group:artifact'")
    return parts[0], parts[1]


def split_inline_library(text: str) -> Tuple[str, str, Optional[str]]:
    """Split a catalog string library "g:a:v" (or "g:a") into its parts."""
    parts = [p.strip() for p in text.split(':')]
    if len(parts) == 2 and all(parts):
        return parts[0], parts[1], None
    if len(parts) == 3 and all(parts):
        return parts[0], parts[1], parts[2]
    raise ParseError(f"Invalid library notation '{text}', expected 'group:artifact[:version]'")


def split_inline_plugin(text: str) -> Tuple[str, Optional[str]]:
    """Split a catalog string plugin "id:version" (or "id")."""
    plugin_id, version = tokenize_rightmost_colon(text)
    if not plugin_id or ':' in plugin_id:
        raise ParseError(f"Invalid plugin notation '{text}', expected 'id[:version]'")
    return plugin_id, version


def parse_library_coordinate(token: str) -> Tuple[Coordinate, Optional[str]]:
    """Parse a CLI library token "group:artifact[:version]".

    A missing version or the literal "latest" yields None so the caller can
    resolve the newest version.

    Raises:
        ValidationError: for malformed coordinates.
    """
    parts = [p.strip() for p in token.strip().split(':')]
    if len(parts) not in (2, 3):
        raise ValidationError(
            f"Invalid library coordinate '{token}'. Expected format: group:artifact:version"
        )
    group, artifact = parts[0], parts[1]
    if not _SEGMENT_RE.match(group) or not _SEGMENT_RE.match(artifact):
        raise ValidationError(f"Invalid group or artifact in '{token}'")
    version = _normalize_spec(parts[2]) if len(parts) == 3 else None
    return Coordinate.library(group, artifact), version


def parse_plugin_coordinate(token: str) -> Tuple[Coordinate, Optional[str]]:
    """Parse a CLI plugin token "plugin.id[:version]".

    Raises:
        ValidationError: for malformed plugin ids.
    """
    plugin_id, spec = tokenize_rightmost_colon(token)
    if not _PLUGIN_ID_RE.match(plugin_id):
        raise ValidationError(
            f"Invalid plugin id '{plugin_id}'. Expected format: plugin.id:version"
        )
    return Coordinate.plugin(plugin_id), _normalize_spec(spec)

