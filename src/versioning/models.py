"""Data models for versioning and update resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from constants import RepositoryKinds
from errors import GvcError


class VersionKind(Enum):
    """Parsed shape of a version literal."""
    SEMANTIC = "semantic"
    NUMERIC = "numeric"
    SNAPSHOT = "snapshot"
    ADHOC = "adhoc"


class EntryKind(Enum):
    """Catalog table an update candidate belongs to."""
    VERSION_REF = "version"
    LIBRARY = "library"
    PLUGIN = "plugin"


@dataclass(frozen=True)
class Version:
    """Immutable parsed version.

    ``release`` holds the integer components (the leading integers for ad-hoc
    literals), ``pre_release`` the SemVer pre-release identifiers and ``base``
    the literal in front of ``-SNAPSHOT`` for snapshots.
    """
    raw: str
    kind: VersionKind
    release: Tuple[int, ...] = ()
    pre_release: Tuple[str, ...] = ()
    base: Optional[str] = None

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True)
class StabilityTag:
    """Stable when ``token`` is None, otherwise unstable with the matched token."""
    token: Optional[str] = None

    @property
    def is_stable(self) -> bool:
        return self.token is None

    def __str__(self) -> str:
        return "stable" if self.token is None else "pre-release"


STABLE = StabilityTag()


@dataclass(frozen=True)
class Coordinate:
    """Maven coordinate; plugins are addressed through their marker artifact."""
    group: str
    artifact: str
    plugin_id: Optional[str] = None

    @classmethod
    def library(cls, group: str, artifact: str) -> "Coordinate":
        return cls(group=group, artifact=artifact)

    @classmethod
    def plugin(cls, plugin_id: str) -> "Coordinate":
        # Plugin ID org.x.y is published as org.x.y:org.x.y.gradle.plugin
        return cls(group=plugin_id, artifact=f"{plugin_id}.gradle.plugin", plugin_id=plugin_id)

    @property
    def is_plugin(self) -> bool:
        return self.plugin_id is not None

    def __str__(self) -> str:
        if self.plugin_id is not None:
            return self.plugin_id
        return f"{self.group}:{self.artifact}"


@dataclass
class RepositoryDescriptor:
    """A configured repository and its optional group include patterns."""
    base_url: str
    kind: RepositoryKinds = RepositoryKinds.CUSTOM
    group_include_patterns: List[str] = field(default_factory=list)
    name: str = ""

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        if not self.name:
            self.name = self.base_url


@dataclass
class ResolveOptions:
    """Behavior flags for one resolution run."""
    stable_only: bool = False
    alias_filter: Optional[str] = None


_KIND_LABELS = {
    EntryKind.VERSION_REF: "version alias",
    EntryKind.LIBRARY: "library",
    EntryKind.PLUGIN: "plugin",
}


def _display_name(kind: EntryKind, alias: str, coordinate: Optional[Coordinate]) -> str:
    label = _KIND_LABELS[kind]
    if coordinate is None:
        return f"{label} '{alias}'"
    return f"{label} '{alias}' ({coordinate})"


@dataclass
class UpdateCandidate:
    """A strictly newer version proposed for one catalog entry."""
    alias: str
    entry_kind: EntryKind
    current: Version
    proposed: Version
    stability: StabilityTag
    coordinate: Optional[Coordinate] = None

    @property
    def current_version(self) -> str:
        return self.current.raw

    @property
    def proposed_version(self) -> str:
        return self.proposed.raw

    def display_name(self) -> str:
        """Human readable label, e.g. "library 'okhttp' (com.squareup.okhttp3:okhttp)"."""
        return _display_name(self.entry_kind, self.alias, self.coordinate)


@dataclass
class UpdateTarget:
    """A catalog entry picked by alias for a hand-chosen version."""
    alias: str
    entry_kind: EntryKind
    current: Version
    coordinate: Coordinate

    @property
    def current_version(self) -> str:
        return self.current.raw

    def display_name(self) -> str:
        return _display_name(self.entry_kind, self.alias, self.coordinate)


@dataclass
class VersionChoice:
    """One published version offered for a target."""
    value: str
    is_stable: bool
    is_current: bool = False

    def labels(self) -> List[str]:
        labels = ["stable" if self.is_stable else "pre-release"]
        if self.is_current:
            labels.append("current")
        return labels


@dataclass
class PerEntryError:
    """Failure attached to a single catalog entry; never aborts the batch."""
    alias: str
    entry_kind: EntryKind
    error: GvcError

    @property
    def code(self) -> str:
        return type(self.error).__name__

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class UpdateReport:
    """Candidates grouped by catalog table, plus per-entry errors."""
    version_updates: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    library_updates: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    plugin_updates: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    errors: List[PerEntryError] = field(default_factory=list)

    @classmethod
    def from_candidates(
        cls,
        candidates: Iterable[UpdateCandidate],
        errors: Optional[Iterable[PerEntryError]] = None,
    ) -> "UpdateReport":
        report = cls()
        for candidate in candidates:
            report.add(candidate)
        report.errors.extend(errors or [])
        return report

    def add(self, candidate: UpdateCandidate) -> None:
        """Record a candidate under the table it belongs to."""
        target = {
            EntryKind.VERSION_REF: self.version_updates,
            EntryKind.LIBRARY: self.library_updates,
            EntryKind.PLUGIN: self.plugin_updates,
        }[candidate.entry_kind]
        target[candidate.alias] = (candidate.current_version, candidate.proposed_version)

    def is_empty(self) -> bool:
        return not (self.version_updates or self.library_updates or self.plugin_updates)

    def total_updates(self) -> int:
        return len(self.version_updates) + len(self.library_updates) + len(self.plugin_updates)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form used by the JSON export."""
        def _group(updates: Dict[str, Tuple[str, str]]) -> List[Dict[str, str]]:
            return [
                {"alias": alias, "current": old, "proposed": new}
                for alias, (old, new) in updates.items()
            ]

        return {
            "versionUpdates": _group(self.version_updates),
            "libraryUpdates": _group(self.library_updates),
            "pluginUpdates": _group(self.plugin_updates),
            "errors": [
                {
                    "alias": err.alias,
                    "kind": err.entry_kind.value,
                    "error": err.code,
                    "message": err.message,
                }
                for err in self.errors
            ],
        }
