"""In-memory view of a Gradle version catalog.

The ``Catalog`` interprets the ``[versions]``, ``[libraries]`` and
``[plugins]`` tables of a ``TomlDocument`` into entries and keeps, for each
entry that carries a version, a ``VersionSlot`` pointing at the exact text
token that owns it. Other tables (``bundles``, ``metadata``) are passed
through untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from constants import Constants
from errors import ParseError, ValidationError
from versioning.models import Coordinate, EntryKind, PerEntryError, Version
from versioning.parser import split_inline_library, split_inline_plugin, split_module
from versioning.version import parse
from .document import KeyPath, TomlDocument

logger = logging.getLogger(__name__)

TABLE_NAMES = {
    EntryKind.VERSION_REF: "versions",
    EntryKind.LIBRARY: "libraries",
    EntryKind.PLUGIN: "plugins",
}


class SlotShape(Enum):
    """How a version is written in the document."""
    LITERAL = "literal"          # versions.alias = "1.0"
    FIELD = "field"              # { ..., version = "1.0" }
    COORDINATE = "coordinate"    # "g:a:1.0" or "plugin.id:1.0"
    REF = "ref"                  # { ..., version.ref = "alias" }


@dataclass(frozen=True)
class VersionSlot:
    """Reads and overwrites one version token without touching anything else.

    ``path`` is the document path of the string that holds the version; for
    ``REF`` slots it is the referenced ``[versions]`` entry.
    """
    shape: SlotShape
    path: KeyPath
    ref: Optional[str] = None

    def read(self, document: TomlDocument) -> Optional[str]:
        value = document.get(self.path)
        if not isinstance(value, str):
            return None
        if self.shape is SlotShape.COORDINATE:
            return value.rsplit(":", 1)[1] if ":" in value else None
        return value

    def write(self, document: TomlDocument, version: str) -> None:
        if self.shape is SlotShape.COORDINATE:
            current = document.get(self.path)
            prefix = current.rsplit(":", 1)[0]
            document.set_string(self.path, f"{prefix}:{version}")
        else:
            document.set_string(self.path, version)


@dataclass
class CatalogEntry:
    """One alias in one of the three catalog tables."""
    alias: str
    kind: EntryKind
    coordinate: Optional[Coordinate] = None
    literal: Optional[str] = None
    ref: Optional[str] = None
    slot: Optional[VersionSlot] = None

    @property
    def uses_ref(self) -> bool:
        return self.ref is not None

    @property
    def has_version(self) -> bool:
        return self.literal is not None or self.ref is not None

    @property
    def version(self) -> Optional[Version]:
        return parse(self.literal) if self.literal is not None else None


class Catalog:
    """Edit-aware catalog backed by a format-preserving document."""

    def __init__(self, document: TomlDocument):
        self.document = document
        self.versions: Dict[str, CatalogEntry] = {}
        self.libraries: Dict[str, CatalogEntry] = {}
        self.plugins: Dict[str, CatalogEntry] = {}
        self.problems: List[PerEntryError] = []
        self.refresh()

    @classmethod
    def from_text(cls, text: str) -> "Catalog":
        return cls(TomlDocument(text))

    def render(self) -> str:
        return self.document.render()

    def refresh(self) -> None:
        """Rebuild entries from the current document text.

        Raises:
            ValidationError: when the top-level layout is not a version catalog.
        """
        data = self.document.data
        allowed = set(Constants.CATALOG_TABLES) | set(Constants.CATALOG_PASSTHROUGH_TABLES)
        unknown = [key for key in data if key not in allowed]
        if unknown:
            raise ValidationError(
                f"Unexpected top-level key(s) in version catalog: {', '.join(sorted(unknown))}"
            )
        for name in Constants.CATALOG_TABLES:
            if name in data and not isinstance(data[name], dict):
                raise ValidationError(f"[{name}] must be a table")

        self.versions, self.libraries, self.plugins = {}, {}, {}
        self.problems = []
        for alias, value in data.get("versions", {}).items():
            self._add(EntryKind.VERSION_REF, alias, self._parse_version_alias, value)
        for alias, value in data.get("libraries", {}).items():
            self._add(EntryKind.LIBRARY, alias, self._parse_library, value)
        for alias, value in data.get("plugins", {}).items():
            self._add(EntryKind.PLUGIN, alias, self._parse_plugin, value)

    def _add(self, kind: EntryKind, alias: str, parser, value: Any) -> None:
        try:
            entry = parser(alias, value)
        except ParseError as exc:
            exc.alias = alias
            logger.warning("Skipping %s '%s': %s", kind.value, alias, exc)
            self.problems.append(PerEntryError(alias, kind, exc))
            return
        self.table(kind)[alias] = entry

    def _string_slot(self, shape: SlotShape, path: KeyPath) -> VersionSlot:
        span = self.document.span(path)
        if span is None or span.kind != "string":
            raise ParseError(f"Cannot locate version text for '{'.'.join(path)}'")
        return VersionSlot(shape, path)

    def _parse_version_alias(self, alias: str, value: Any) -> CatalogEntry:
        if not isinstance(value, str):
            raise ParseError(f"Version '{alias}' must be a string, got {type(value).__name__}")
        slot = self._string_slot(SlotShape.LITERAL, ("versions", alias))
        return CatalogEntry(alias, EntryKind.VERSION_REF, literal=value, slot=slot)

    def _parse_version_field(self, base: KeyPath, version: Any) -> CatalogEntry:
        """Interpret the ``version`` key of a library or plugin table."""
        entry = CatalogEntry(alias=base[-1], kind=EntryKind.LIBRARY)
        if version is None:
            return entry
        if isinstance(version, str):
            entry.literal = version
            entry.slot = self._string_slot(SlotShape.FIELD, base + ("version",))
            return entry
        if isinstance(version, dict) and set(version) == {"ref"} and isinstance(version["ref"], str):
            entry.ref = version["ref"]
            entry.slot = VersionSlot(SlotShape.REF, ("versions", entry.ref), ref=entry.ref)
            return entry
        if isinstance(version, dict):
            raise ParseError(
                "Rich version declarations ("
                + ", ".join(sorted(version)) + ") are not supported"
            )
        raise ParseError(f"Unsupported version value of type {type(version).__name__}")

    def _parse_library(self, alias: str, value: Any) -> CatalogEntry:
        base = ("libraries", alias)
        if isinstance(value, str):
            group, artifact, literal = split_inline_library(value)
            slot = self._string_slot(SlotShape.COORDINATE, base) if literal else None
            return CatalogEntry(
                alias, EntryKind.LIBRARY, Coordinate.library(group, artifact), literal, None, slot
            )
        if not isinstance(value, dict):
            raise ParseError(f"Unsupported library declaration of type {type(value).__name__}")

        module = value.get("module")
        if module is not None:
            if not isinstance(module, str):
                raise ParseError("'module' must be a string")
            group, artifact = split_module(module)
        elif isinstance(value.get("group"), str) and isinstance(value.get("name"), str):
            group, artifact = value["group"], value["name"]
        else:
            raise ParseError("Library needs either 'module' or 'group' and 'name'")

        entry = self._parse_version_field(base, value.get("version"))
        entry.alias = alias
        entry.coordinate = Coordinate.library(group, artifact)
        return entry

    def _parse_plugin(self, alias: str, value: Any) -> CatalogEntry:
        base = ("plugins", alias)
        if isinstance(value, str):
            plugin_id, literal = split_inline_plugin(value)
            slot = self._string_slot(SlotShape.COORDINATE, base) if literal else None
            return CatalogEntry(
                alias, EntryKind.PLUGIN, Coordinate.plugin(plugin_id), literal, None, slot
            )
        if not isinstance(value, dict) or not isinstance(value.get("id"), str):
            raise ParseError("Plugin needs an 'id'")

        entry = self._parse_version_field(base, value.get("version"))
        entry.alias = alias
        entry.kind = EntryKind.PLUGIN
        entry.coordinate = Coordinate.plugin(value["id"])
        return entry

    # lookups

    def table(self, kind: EntryKind) -> Dict[str, CatalogEntry]:
        return {
            EntryKind.VERSION_REF: self.versions,
            EntryKind.LIBRARY: self.libraries,
            EntryKind.PLUGIN: self.plugins,
        }[kind]

    def has_alias(self, kind: EntryKind, alias: str) -> bool:
        """True when ``alias`` is taken in the table, malformed entries included."""
        raw = self.document.get((TABLE_NAMES[kind],), {}) or {}
        return alias in raw

    def iter_entries(self) -> Iterator[CatalogEntry]:
        """All entries in stable table order: versions, libraries, plugins."""
        yield from self.versions.values()
        yield from self.libraries.values()
        yield from self.plugins.values()

    def referrers(self, version_alias: str) -> List[CatalogEntry]:
        """Libraries then plugins whose version is a ref to ``version_alias``."""
        return [
            entry
            for entry in list(self.libraries.values()) + list(self.plugins.values())
            if entry.ref == version_alias
        ]

    def representative(self, version_alias: str) -> Optional[CatalogEntry]:
        """First library (else first plugin) that refers to ``version_alias``."""
        referrers = self.referrers(version_alias)
        return referrers[0] if referrers else None

    def resolved_version(self, entry: CatalogEntry) -> Optional[str]:
        """Version literal for an entry, following refs; None when unresolvable."""
        if entry.ref is not None:
            target = self.versions.get(entry.ref)
            return target.literal if target is not None else None
        return entry.literal

    def find_library(self, group: str, artifact: str) -> Optional[str]:
        for alias, entry in self.libraries.items():
            coordinate = entry.coordinate
            if coordinate is not None and (coordinate.group, coordinate.artifact) == (group, artifact):
                return alias
        return None

    def find_plugin(self, plugin_id: str) -> Optional[str]:
        for alias, entry in self.plugins.items():
            if entry.coordinate is not None and entry.coordinate.plugin_id == plugin_id:
                return alias
        return None

    def slot_for(self, kind: EntryKind, alias: str) -> Optional[VersionSlot]:
        entry = self.table(kind).get(alias)
        return entry.slot if entry is not None else None
