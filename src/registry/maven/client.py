"""Maven repository client: lists published versions from maven-metadata.xml."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional, Sequence

import requests

from constants import Constants
from common.http_client import robust_get
from common.logging_utils import LogContext, extra_context, is_debug_enabled, safe_url, Timer
from errors import NetworkError
from versioning.models import Coordinate, RepositoryDescriptor

logger = logging.getLogger(__name__)


def metadata_url(base_url: str, coordinate: Coordinate) -> str:
    """URL of maven-metadata.xml for a coordinate under a repository root."""
    group_path = coordinate.group.replace(".", "/")
    return f"{base_url.rstrip('/')}/{group_path}/{coordinate.artifact}/{Constants.METADATA_FILE}"


def parse_metadata_versions(text: str) -> List[str]:
    """Return versions listed in maven-metadata.xml in source order.

    Raises:
        ET.ParseError: when the payload is not XML.
    """
    root = ET.fromstring(text)
    versions_elem = root.find("versioning/versions")
    versions: List[str] = []
    if versions_elem is not None:
        for item in versions_elem.findall("version"):
            if isinstance(item.text, str) and item.text.strip():
                versions.append(item.text.strip())
    if not versions:
        # Some repositories only publish <release>/<latest>
        for tag in ("versioning/release", "versioning/latest", "version"):
            elem = root.find(tag)
            if elem is not None and elem.text and elem.text.strip():
                versions.append(elem.text.strip())
                break
    return versions


class MavenRepositoryClient:
    """Look up versions of a coordinate across an ordered list of repositories.

    Repositories are tried in order and the first one that publishes metadata
    for the coordinate wins. "Not found" answers move on to the next
    repository; transport failures are remembered and only raised when no
    repository produced an answer at all.
    """

    def __init__(self, log: Optional[LogContext] = None, session: Optional[requests.Session] = None):
        self.log = log or LogContext("maven")
        self.session = session

    def __call__(self, coordinate: Coordinate, repos: Sequence[RepositoryDescriptor]) -> List[str]:
        return self.fetch_versions(coordinate, repos)

    def fetch_versions(
        self,
        coordinate: Coordinate,
        repos: Sequence[RepositoryDescriptor],
    ) -> List[str]:
        """Fetch all published versions of ``coordinate``.

        Args:
            coordinate: Library coordinate or plugin marker coordinate.
            repos: Repositories to try, already filtered for the coordinate.

        Returns:
            List of raw version strings (possibly empty when nothing was found).

        Raises:
            NetworkError: no repository answered and at least one request
                failed with a transport or server error.
        """
        failures: List[str] = []
        answered = False
        for repo in repos:
            url = metadata_url(repo.base_url, coordinate)
            self.log.detail("Fetching %s", safe_url(url), action="fetch_metadata")
            with Timer() as timer:
                status, _, text = robust_get(url, session=self.session)

            if status == 200:
                try:
                    versions = parse_metadata_versions(text)
                except ET.ParseError as exc:
                    failures.append(f"{repo.name}: invalid metadata ({exc})")
                    continue
                if is_debug_enabled(logger):
                    logger.debug(
                        "Maven metadata parsed",
                        extra=extra_context(
                            event="function_exit",
                            component="maven_client",
                            action="fetch_versions",
                            outcome="found" if versions else "empty",
                            target=safe_url(url),
                            count=len(versions),
                            duration_ms=timer.duration_ms(),
                        ),
                    )
                if versions:
                    self.log.detail(
                        "Found %d version(s) of %s in %s", len(versions), coordinate, repo.name
                    )
                    return versions
                answered = True
                continue

            if status == 0 or status >= 500:
                reason = text if status == 0 else f"HTTP {status}"
                self.log.detail("Request to %s failed: %s", repo.name, reason)
                failures.append(f"{repo.name}: {reason}")
                continue

            # 404 and other client errors: artifact not hosted here
            self.log.detail("%s not found in %s (HTTP %d)", coordinate, repo.name, status)
            answered = True

        if failures and not answered:
            raise NetworkError(f"Unable to fetch versions for {coordinate}: " + "; ".join(failures))
        return []
