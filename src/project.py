"""Gradle project validation."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from constants import Constants
from errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ProjectInfo:
    """Validated project layout."""
    root: str
    catalog_path: str
    has_git: bool


def _under(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def validate_project_path(path: str) -> str:
    """Return the absolute, resolved project directory.

    Raises:
        ValidationError: the path is not a directory or lies in a system location.
    """
    absolute = os.path.abspath(path)
    resolved = os.path.realpath(absolute)
    if not os.path.isdir(resolved):
        raise ValidationError(f"Project path is not a directory: {path}")
    for forbidden in Constants.FORBIDDEN_ROOTS:
        if _under(absolute, forbidden) or _under(resolved, forbidden):
            raise ValidationError(f"Refusing to operate on system directory: {path}")
    return resolved


def validate_file_path(path: str, base: str) -> str:
    """Return ``path`` resolved, ensuring it stays inside ``base``.

    Raises:
        ValidationError: the path escapes the base directory.
    """
    resolved = os.path.realpath(os.path.join(base, path))
    if not _under(resolved, os.path.realpath(base)):
        raise ValidationError(f"Path escapes the project directory: {path}")
    return resolved


class ProjectScanner:
    """Check that a directory is a Gradle project with a version catalog."""

    def __init__(self, path: str):
        self.path = path

    def validate(self) -> ProjectInfo:
        """Validate the project and locate its catalog.

        Returns:
            ProjectInfo: root, catalog path and whether a git repository exists.

        Raises:
            ValidationError: not a Gradle project or catalog missing.
        """
        root = validate_project_path(self.path)
        markers = [m for m in Constants.GRADLE_MARKERS if os.path.isfile(os.path.join(root, m))]
        if not markers:
            raise ValidationError(
                f"Not a Gradle project (none of {', '.join(Constants.GRADLE_MARKERS)} found): {root}"
            )
        catalog_path = os.path.join(root, *Constants.CATALOG_RELATIVE_PATH.split("/"))
        if not os.path.isfile(catalog_path):
            raise ValidationError(
                f"Version catalog not found: {Constants.CATALOG_RELATIVE_PATH} in {root}"
            )
        has_git = os.path.exists(os.path.join(root, ".git"))
        logger.debug("Project %s validated (markers: %s, git: %s)", root, markers, has_git)
        return ProjectInfo(root=root, catalog_path=catalog_path, has_git=has_git)
