"""Repository discovery from Gradle settings and build scripts.

Scrapes ``settings.gradle(.kts)`` and ``build.gradle(.kts)`` for repository
declarations and their ``content { ... }`` group filters. This is a textual
scan, not a Gradle evaluation: it understands the common declaration forms
of both the Groovy and the Kotlin DSL.
"""
from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from constants import Constants, RepositoryKinds
from common.logging_utils import LogContext
from errors import ValidationError
from versioning.models import RepositoryDescriptor

logger = logging.getLogger(__name__)

_BUILTIN_RE = re.compile(r"\b(mavenCentral|google|gradlePluginPortal|jcenter)\s*\(\s*\)")
_BLOCK_START_RE = re.compile(r"\b(maven|google|mavenCentral)\s*(?:\(\s*\))?\s*\{")
_MAVEN_CALL_RE = re.compile(r"\bmaven\s*\(\s*(?:url\s*=\s*)?(?:uri\s*\(\s*)?[\"']([^\"']+)[\"']")
_URL_RE = re.compile(r"\burl\s*(?:=\s*)?(?:uri\s*\(\s*)?\(?\s*[\"']([^\"']+)[\"']")
_SETURL_RE = re.compile(r"\bsetUrl\s*\(\s*[\"']([^\"']+)[\"']")
_FILTER_RE = re.compile(
    r"\b(includeGroupByRegex|includeGroupAndSubgroups|includeGroupByPrefix|includeGroup)"
    r"\s*\(?\s*[\"']([^\"']+)[\"']"
)
_LINE_COMMENT_RE = re.compile(r"(?<!:)//[^\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)

JCENTER_URL = "https://jcenter.bintray.com"

_BUILTIN_URLS = {
    "mavenCentral": (Constants.MAVEN_CENTRAL_URL, RepositoryKinds.MAVEN_CENTRAL, "Maven Central"),
    "google": (Constants.GOOGLE_MAVEN_URL, RepositoryKinds.GOOGLE, "Google Maven"),
    "gradlePluginPortal": (
        Constants.PLUGIN_PORTAL_URL, RepositoryKinds.PLUGIN_PORTAL, "Gradle Plugin Portal"
    ),
    "jcenter": (JCENTER_URL, RepositoryKinds.CUSTOM, "JCenter"),
}


def filter_to_regex(kind: str, value: str) -> str:
    """Translate a Gradle content filter into a full-match regex."""
    if kind == "includeGroupByRegex":
        # script strings double the backslash: "com\\.x" is the regex com\.x
        return value.replace("\\\\", "\\")
    if kind == "includeGroupByPrefix":
        return re.escape(value) + ".*"
    if kind == "includeGroupAndSubgroups":
        return re.escape(value) + r"(?:\..*)?"
    return re.escape(value)


def default_repositories() -> List[RepositoryDescriptor]:
    """Maven Central and Google Maven, used when nothing is declared."""
    return [
        RepositoryDescriptor(Constants.MAVEN_CENTRAL_URL, RepositoryKinds.MAVEN_CENTRAL, name="Maven Central"),
        RepositoryDescriptor(Constants.GOOGLE_MAVEN_URL, RepositoryKinds.GOOGLE, name="Google Maven"),
    ]


def plugin_portal() -> RepositoryDescriptor:
    return RepositoryDescriptor(
        Constants.PLUGIN_PORTAL_URL, RepositoryKinds.PLUGIN_PORTAL, name="Gradle Plugin Portal"
    )


def _strip_comments(content: str) -> str:
    content = _BLOCK_COMMENT_RE.sub(lambda m: " " * len(m.group(0)), content)
    return _LINE_COMMENT_RE.sub(lambda m: " " * len(m.group(0)), content)


def _block_end(content: str, open_brace: int) -> int:
    """Index just past the brace closing the one at ``open_brace``."""
    depth = 0
    for idx in range(open_brace, len(content)):
        if content[idx] == "{":
            depth += 1
        elif content[idx] == "}":
            depth -= 1
            if depth == 0:
                return idx + 1
    return len(content)


def _kind_for_url(url: str) -> RepositoryKinds:
    normalized = url.rstrip("/")
    if normalized == Constants.MAVEN_CENTRAL_URL or "repo.maven.apache.org/maven2" in normalized:
        return RepositoryKinds.MAVEN_CENTRAL
    if normalized == Constants.GOOGLE_MAVEN_URL or "maven.google.com" in normalized:
        return RepositoryKinds.GOOGLE
    if normalized == Constants.PLUGIN_PORTAL_URL:
        return RepositoryKinds.PLUGIN_PORTAL
    return RepositoryKinds.CUSTOM


def _short_name(url: str) -> str:
    trimmed = re.sub(r"^https?://", "", url.rstrip("/"))
    return trimmed if len(trimmed) <= 40 else trimmed[:37] + "..."


def extract_repositories(content: str) -> List[RepositoryDescriptor]:
    """Extract repository declarations from one Gradle script, in source order.

    Args:
        content: Script text (Groovy or Kotlin DSL).

    Returns:
        List of RepositoryDescriptor in declaration order (not deduplicated).
    """
    text = _strip_comments(content)
    found: List[Tuple[int, RepositoryDescriptor]] = []
    covered: List[Tuple[int, int]] = []

    for match in _BLOCK_START_RE.finditer(text):
        start = match.start()
        if any(lo <= start < hi for lo, hi in covered):
            continue
        end = _block_end(text, match.end() - 1)
        body = text[match.end():end - 1]
        filters = [filter_to_regex(kind, value) for kind, value in _FILTER_RE.findall(body)]
        name = match.group(1)
        if name == "maven":
            url_match = _URL_RE.search(body) or _SETURL_RE.search(body)
            if url_match is None:
                continue
            url = url_match.group(1)
            repo = RepositoryDescriptor(url, _kind_for_url(url), filters, name=f"Custom ({_short_name(url)})")
        else:
            url, kind, label = _BUILTIN_URLS[name]
            repo = RepositoryDescriptor(url, kind, filters, name=label)
        covered.append((start, end))
        found.append((start, repo))

    for match in _BUILTIN_RE.finditer(text):
        if any(lo <= match.start() < hi for lo, hi in covered):
            continue
        url, kind, label = _BUILTIN_URLS[match.group(1)]
        found.append((match.start(), RepositoryDescriptor(url, kind, name=label)))

    for match in _MAVEN_CALL_RE.finditer(text):
        if any(lo <= match.start() < hi for lo, hi in covered):
            continue
        url = match.group(1)
        found.append((match.start(), RepositoryDescriptor(url, _kind_for_url(url), name=f"Custom ({_short_name(url)})")))

    found.sort(key=lambda item: item[0])
    return [repo for _, repo in found]


def deduplicate(repos: Iterable[RepositoryDescriptor]) -> List[RepositoryDescriptor]:
    """Drop repeated URLs (trailing slash ignored), keeping the first occurrence."""
    seen: Dict[str, RepositoryDescriptor] = {}
    for repo in repos:
        key = repo.base_url.rstrip("/").lower()
        if key not in seen:
            seen[key] = repo
    return list(seen.values())


def repositories_from_config(entries: Iterable[Dict[str, Any]]) -> List[RepositoryDescriptor]:
    """Build descriptors from ``repositories`` entries of the config file.

    Raises:
        ValidationError: an entry has no url or an unknown kind.
    """
    result: List[RepositoryDescriptor] = []
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("url"), str):
            raise ValidationError(f"Repository entry needs a 'url': {entry!r}")
        kind_name = entry.get("kind", RepositoryKinds.CUSTOM.value)
        try:
            kind = RepositoryKinds(kind_name)
        except ValueError as exc:
            raise ValidationError(f"Unknown repository kind '{kind_name}'") from exc
        include = entry.get("include") or []
        if isinstance(include, str):
            include = [include]
        result.append(
            RepositoryDescriptor(entry["url"], kind, [str(p) for p in include], name=entry.get("name", ""))
        )
    return result


class GradleConfigParser:
    """Collect the repositories a Gradle project declares.

    Args:
        project_path: Project root.
        log: Logging context.
    """

    def __init__(self, project_path: str, log: Optional[LogContext] = None):
        self.project_path = project_path
        self.log = log or LogContext("gradle")

    def _read(self, filename: str) -> Optional[str]:
        path = os.path.join(self.project_path, filename)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as handle:
                return handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            self.log.warning("Unable to read %s: %s", path, exc)
            return None

    def declared_repositories(self) -> List[RepositoryDescriptor]:
        """Repositories declared in the project's scripts, not deduplicated."""
        repos: List[RepositoryDescriptor] = []
        for filename in Constants.GRADLE_BUILD_FILES:
            content = self._read(filename)
            if content is None:
                continue
            extracted = extract_repositories(content)
            self.log.detail("Found %d repository declaration(s) in %s", len(extracted), filename)
            repos.extend(extracted)
        return repos

    def repositories(self) -> List[RepositoryDescriptor]:
        """Effective ordered repository list.

        Falls back to Maven Central plus Google Maven when the scripts declare
        nothing, appends repositories from the config file and always makes
        the Gradle Plugin Portal available for plugin lookups.
        """
        repos = self.declared_repositories()
        if not repos:
            self.log.info("No repositories found in Gradle config, using defaults")
            repos = default_repositories()
        repos.extend(repositories_from_config(Constants.EXTRA_REPOSITORIES))
        repos.append(plugin_portal())
        result = deduplicate(repos)
        for repo in result:
            self.log.detail("Repository %s (%s)", repo.name, repo.base_url)
        return result
