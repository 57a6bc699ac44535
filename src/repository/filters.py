"""Repository selection by coordinate group."""

from __future__ import annotations

import functools
import logging
import re
from typing import List, Optional, Sequence

from constants import Constants, RepositoryKinds
from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import Coordinate, RepositoryDescriptor

logger = logging.getLogger(__name__)


def _google_default_pattern() -> str:
    prefixes = "|".join(re.escape(p.rstrip(".")) for p in Constants.GOOGLE_GROUP_PREFIXES)
    # com.google.* and com.android.* are published on Google Maven too
    return rf"^(?:com\.)?(?:{prefixes})\..*"


@functools.lru_cache(maxsize=256)
def _compile(pattern: str) -> Optional["re.Pattern[str]"]:
    try:
        return re.compile(pattern)
    except re.error:
        logger.warning("Ignoring invalid repository group pattern: %s", pattern)
        return None


class RepositoryFilterEngine:
    """Decide which repositories may serve a coordinate.

    A repository is selected when it declares no include patterns or when the
    group fully matches one of them. Repositories without explicit patterns
    fall back to built-in defaults per kind: Google only serves Google and
    Android groups, the Plugin Portal only serves plugin markers and every
    other repository serves everything. Input order is preserved.
    """

    def patterns_for(self, repo: RepositoryDescriptor) -> List[str]:
        """Effective include patterns for a repository (empty means any group)."""
        if repo.group_include_patterns:
            return list(repo.group_include_patterns)
        if repo.kind is RepositoryKinds.GOOGLE:
            return [_google_default_pattern()]
        return []

    def accepts(self, repo: RepositoryDescriptor, coordinate: Coordinate) -> bool:
        """Return True when ``repo`` should be queried for ``coordinate``."""
        if repo.kind is RepositoryKinds.PLUGIN_PORTAL and not coordinate.is_plugin:
            return False
        patterns = self.patterns_for(repo)
        if not patterns:
            return True
        for pattern in patterns:
            compiled = _compile(pattern)
            if compiled is not None and compiled.fullmatch(coordinate.group):
                return True
        return False

    def select_repositories(
        self,
        coordinate: Coordinate,
        repos: Sequence[RepositoryDescriptor],
    ) -> List[RepositoryDescriptor]:
        """Ordered subset of ``repos`` eligible for ``coordinate``.

        Args:
            coordinate: Library or plugin coordinate; only its group is matched.
            repos: Configured repositories, first-configured-first-tried.

        Returns:
            List of repositories in input order.
        """
        selected = [repo for repo in repos if self.accepts(repo, coordinate)]
        if is_debug_enabled(logger):
            logger.debug(
                "Repositories selected",
                extra=extra_context(
                    event="select_repositories",
                    component="repository_filter",
                    action="select",
                    outcome="match" if selected else "empty",
                    target=str(coordinate),
                    count=len(selected),
                ),
            )
        return selected
