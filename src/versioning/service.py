"""Update resolution over a catalog.

``UpdateResolver`` walks the catalog in stable table order (versions, then
libraries, then plugins), asks the version lookup for every resolvable entry
and proposes the highest strictly newer version. Per-entry failures are
collected next to the candidates and never abort the batch.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from catalog.model import Catalog, CatalogEntry
from common.logging_utils import LogContext, extra_context, is_debug_enabled
from errors import GvcError, NetworkError, UnresolvableVersionRef, ValidationError
from repository.filters import RepositoryFilterEngine
from .models import (
    Coordinate,
    EntryKind,
    PerEntryError,
    RepositoryDescriptor,
    ResolveOptions,
    UpdateCandidate,
    UpdateTarget,
    Version,
    VersionChoice,
)
from .version import classify, compare, maximum, parse, sort_descending

logger = logging.getLogger(__name__)

VersionLookup = Callable[[Coordinate, Sequence[RepositoryDescriptor]], Iterable[str]]


class AliasMatcher:
    """Case-insensitive glob over aliases, compiled once per run.

    ``*`` matches any run of characters and ``?`` a single one. A pattern
    without wildcards matches aliases containing it.
    """

    def __init__(self, pattern: str):
        self.pattern = pattern
        glob = (pattern or "").strip()
        if not glob:
            raise ValidationError("Filter pattern cannot be empty")
        if "*" not in glob and "?" not in glob:
            glob = f"*{glob}*"
        regex = re.escape(glob.lower()).replace(r"\*", ".*").replace(r"\?", ".")
        self._regex = re.compile(rf"^{regex}$")

    def matches(self, alias: str) -> bool:
        return self._regex.match(alias.lower()) is not None


class UpdateResolver:
    """Resolve update candidates for every entry of a catalog.

    Args:
        lookup: Callable returning raw version strings for a coordinate from
            an ordered list of repositories.
        repositories: Configured repositories, first-configured-first-tried.
        filter_engine: Repository selector; a default one is used when omitted.
        log: Logging context.
    """

    def __init__(
        self,
        lookup: VersionLookup,
        repositories: Sequence[RepositoryDescriptor],
        filter_engine: Optional[RepositoryFilterEngine] = None,
        log: Optional[LogContext] = None,
    ):
        self.lookup = lookup
        self.repositories = list(repositories)
        self.filter_engine = filter_engine or RepositoryFilterEngine()
        self.log = log or LogContext("resolver")

    def resolve(
        self,
        catalog: Catalog,
        options: Optional[ResolveOptions] = None,
    ) -> Tuple[List[UpdateCandidate], List[PerEntryError]]:
        """Compute update candidates for the catalog.

        Args:
            catalog: Loaded catalog.
            options: Stability and alias filter options.

        Returns:
            Tuple of (candidates in table order, per-entry errors).
        """
        options = options or ResolveOptions()
        matcher = AliasMatcher(options.alias_filter) if options.alias_filter else None
        candidates: List[UpdateCandidate] = []
        errors: List[PerEntryError] = [
            problem for problem in catalog.problems
            if matcher is None or matcher.matches(problem.alias)
        ]

        for entry in catalog.iter_entries():
            if matcher is not None and not matcher.matches(entry.alias):
                continue
            try:
                candidate = self._resolve_entry(catalog, entry, options)
            except GvcError as exc:
                self.log.warning("%s '%s': %s", entry.kind.value, entry.alias, exc)
                errors.append(PerEntryError(entry.alias, entry.kind, exc))
                continue
            if candidate is not None:
                candidates.append(candidate)

        if is_debug_enabled(logger):
            logger.debug(
                "Resolution finished",
                extra=extra_context(
                    event="function_exit",
                    component="resolver",
                    action="resolve",
                    outcome="candidates" if candidates else "up_to_date",
                    count=len(candidates),
                    errors=len(errors),
                ),
            )
        return candidates, errors

    def _lookup_target(self, catalog: Catalog, entry: CatalogEntry) -> Optional[Coordinate]:
        """Coordinate whose versions decide this entry, or None to skip it.

        Raises:
            UnresolvableVersionRef: the entry refers to a missing version alias.
        """
        if entry.kind is EntryKind.VERSION_REF:
            representative = catalog.representative(entry.alias)
            if representative is None:
                self.log.detail("Version alias '%s' is not referenced; skipping", entry.alias)
                return None
            return representative.coordinate

        if entry.uses_ref:
            if entry.ref not in catalog.versions:
                raise UnresolvableVersionRef(entry.alias, entry.ref)
            # Updated through its [versions] entry
            return None
        if entry.literal is None:
            return None
        return entry.coordinate

    def _fetch(self, coordinate: Coordinate) -> List[str]:
        repos = self.filter_engine.select_repositories(coordinate, self.repositories)
        if not repos:
            self.log.detail("No repository configured for %s", coordinate)
            return []
        try:
            return list(self.lookup(coordinate, repos))
        except NetworkError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise NetworkError(f"Lookup failed for {coordinate}: {exc}") from exc

    def _resolve_entry(
        self,
        catalog: Catalog,
        entry: CatalogEntry,
        options: ResolveOptions,
    ) -> Optional[UpdateCandidate]:
        coordinate = self._lookup_target(catalog, entry)
        current = entry.version
        if coordinate is None or current is None:
            return None
        literals = self._fetch(coordinate)
        best = self.select_newer(current, literals, options.stable_only)
        if best is None:
            self.log.detail("%s '%s' is up to date (%s)", entry.kind.value, entry.alias, current)
            return None
        self.log.detail(
            "%s '%s': %s -> %s", entry.kind.value, entry.alias, current, best,
            action="propose",
        )
        return UpdateCandidate(
            alias=entry.alias,
            entry_kind=entry.kind,
            current=current,
            proposed=best,
            stability=classify(best),
            coordinate=coordinate,
        )

    @staticmethod
    def select_newer(
        current: Version,
        literals: Iterable[str],
        stable_only: bool = False,
    ) -> Optional[Version]:
        """Highest version strictly newer than ``current``, honoring stability."""
        parsed = [parse(raw) for raw in dict.fromkeys(literals)]
        if stable_only:
            parsed = [v for v in parsed if classify(v).is_stable]
        newer = [v for v in parsed if compare(v, current) > 0]
        return maximum(newer)

    def available_versions(self, coordinate: Coordinate, stable_only: bool = False) -> List[str]:
        """All published versions of a coordinate, newest first.

        Raises:
            NetworkError: the lookup failed.
        """
        literals = self._fetch(coordinate)
        if stable_only:
            literals = [raw for raw in literals if classify(raw).is_stable]
        return sort_descending(dict.fromkeys(literals))

    def targets(self, catalog: Catalog, pattern: str) -> List[UpdateTarget]:
        """Entries matching ``pattern`` that can be updated to a chosen version.

        Only entries holding their own literal qualify: libraries and plugins
        with a ``version.ref`` are reached through their ``[versions]`` alias.
        """
        matcher = AliasMatcher(pattern)
        found: List[UpdateTarget] = []
        for entry in catalog.iter_entries():
            if not matcher.matches(entry.alias) or entry.uses_ref or not entry.has_version:
                continue
            coordinate = self._lookup_target(catalog, entry)
            if coordinate is None:
                continue
            found.append(UpdateTarget(entry.alias, entry.kind, entry.version, coordinate))
        self.log.detail("%d entr(ies) match '%s'", len(found), pattern)
        return found

    def version_choices(self, target: UpdateTarget, stable_only: bool = False) -> List[VersionChoice]:
        """Published versions of a target, newest first, labelled for display.

        Raises:
            NetworkError: the lookup failed.
        """
        return [
            VersionChoice(
                value=raw,
                is_stable=classify(raw).is_stable,
                is_current=raw == target.current_version,
            )
            for raw in self.available_versions(target.coordinate, stable_only)
        ]
