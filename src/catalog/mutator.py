"""Catalog mutations: applying accepted updates and adding new entries."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from constants import Constants
from errors import DuplicateAlias, DuplicateCoordinate, ValidationError
from versioning.models import Coordinate, EntryKind, UpdateCandidate
from versioning.version import compare
from .document import format_inline_table, format_string
from .model import TABLE_NAMES, Catalog

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[.\-_\s]+")


@dataclass
class AddResult:
    """Outcome of ``add_entry``."""
    kind: EntryKind
    alias: str
    version_alias: str
    version: str
    version_alias_reused: bool = False


def apply_accepted(catalog: Catalog, candidates: Iterable[UpdateCandidate]) -> Catalog:
    """Write accepted candidates into the catalog document.

    Each candidate's version slot is overwritten in place; every other byte of
    the document is left as it was. A candidate that would not move the
    version forward is ignored.

    Args:
        catalog: Catalog to mutate.
        candidates: Accepted candidates, in any order.

    Returns:
        The same catalog, refreshed.
    """
    applied = 0
    for candidate in candidates:
        slot = catalog.slot_for(candidate.entry_kind, candidate.alias)
        if slot is None:
            logger.warning("No version slot for %s; skipping", candidate.display_name())
            continue
        current = slot.read(catalog.document)
        if current is not None and compare(candidate.proposed, current) <= 0:
            logger.debug(
                "Not applying %s: %s does not exceed %s",
                candidate.alias, candidate.proposed_version, current,
            )
            continue
        slot.write(catalog.document, candidate.proposed_version)
        applied += 1
    if applied:
        catalog.refresh()
    logger.debug("Applied %d update(s)", applied)
    return catalog


def _tokens(text: str, prefixes: Sequence[str]) -> List[str]:
    tokens = [t for t in _SEPARATORS.split(text.lower()) if t]
    while tokens and tokens[0] in prefixes:
        tokens.pop(0)
    collapsed: List[str] = []
    for token in tokens:
        if not collapsed or collapsed[-1] != token:
            collapsed.append(token)
    return collapsed


def normalize_alias(raw: str) -> str:
    """Lower-case an alias and turn separators into hyphens."""
    return "-".join(_tokens(raw, ()))


def derive_alias(coordinate: Coordinate, prefixes: Optional[Sequence[str]] = None) -> str:
    """Base alias for a coordinate.

    Libraries derive from the artifact, plugins from the last dot-segment of
    the id. Leading common prefixes are dropped.
    """
    prefix_list = list(prefixes if prefixes is not None else Constants.ALIAS_PREFIXES)
    if coordinate.is_plugin:
        base = coordinate.plugin_id.rsplit(".", 1)[-1]
        fallback = "plugin"
    else:
        base = coordinate.artifact
        fallback = "library"
    return "-".join(_tokens(base, prefix_list)) or fallback


def unique_alias(base: str, taken) -> str:
    """``base`` or the first free ``base-2``, ``base-3``, ..."""
    if base not in taken:
        return base
    suffix = 2
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"


def add_entry(
    catalog: Catalog,
    coordinate: Coordinate,
    version: str,
    alias: Optional[str] = None,
    version_alias: Optional[str] = None,
    prefixes: Optional[Sequence[str]] = None,
) -> AddResult:
    """Add a library or plugin that refers to a new ``[versions]`` alias.

    All conflicts are detected before the document is touched.

    Args:
        catalog: Catalog to mutate.
        coordinate: Library or plugin coordinate.
        version: Concrete version literal (already resolved by the caller).
        alias: Explicit entry alias; colliding is an error.
        version_alias: Explicit version alias; reused when it already holds
            ``version``, otherwise colliding is an error.
        prefixes: Leading tokens dropped from derived aliases.

    Returns:
        AddResult describing what was written.

    Raises:
        DuplicateCoordinate: the coordinate already exists under any alias.
        DuplicateAlias: an explicit alias collides.
        ValidationError: the version is empty, or a table that must receive a
            new entry is written inline.
    """
    if not version or not version.strip():
        raise ValidationError("A concrete version is required to add an entry")
    kind = EntryKind.PLUGIN if coordinate.is_plugin else EntryKind.LIBRARY
    table = TABLE_NAMES[kind]

    if coordinate.is_plugin:
        existing = catalog.find_plugin(coordinate.plugin_id)
    else:
        existing = catalog.find_library(coordinate.group, coordinate.artifact)
    if existing is not None:
        raise DuplicateCoordinate(table, str(coordinate), existing)

    if alias is not None:
        entry_alias = normalize_alias(alias)
        if not entry_alias:
            raise ValidationError(f"Invalid alias '{alias}'")
        if catalog.has_alias(kind, entry_alias):
            raise DuplicateAlias(table, entry_alias)
    else:
        taken = set(catalog.document.get((table,), {}) or {})
        entry_alias = unique_alias(derive_alias(coordinate, prefixes), taken)

    version_taken = catalog.document.get(("versions",), {}) or {}
    reused = False
    if version_alias is not None:
        ref_alias = normalize_alias(version_alias)
        if not ref_alias:
            raise ValidationError(f"Invalid version alias '{version_alias}'")
        if ref_alias in version_taken:
            if version_taken[ref_alias] != version:
                raise DuplicateAlias("versions", ref_alias)
            reused = True
    else:
        ref_alias = unique_alias(derive_alias(coordinate, prefixes), set(version_taken))

    document = catalog.document
    for name in (table, "versions"):
        if document.is_inline_table(name) and (name == table or not reused):
            raise ValidationError(
                f"Cannot add to '{name}': it is an inline table; use a [{name}] section instead"
            )
    if not reused:
        document.ensure_table("versions")
        document.insert_entry("versions", ref_alias, format_string(version))

    if coordinate.is_plugin:
        pairs = [("id", format_string(coordinate.plugin_id))]
    else:
        pairs = [("module", format_string(f"{coordinate.group}:{coordinate.artifact}"))]
    pairs.append(("version.ref", format_string(ref_alias)))
    document.ensure_table(table)
    document.insert_entry(table, entry_alias, format_inline_table(pairs))
    catalog.refresh()

    logger.info("Added %s '%s' with version alias '%s'", kind.value, entry_alias, ref_alias)
    return AddResult(kind, entry_alias, ref_alias, version, reused)

