"""Git integration through the ``git`` executable."""
from __future__ import annotations

import datetime
import os
import re
import subprocess
from typing import List, Optional, Sequence

from constants import Constants
from common.logging_utils import LogContext
from errors import ValidationError, VersionControlError
from project import validate_file_path, validate_project_path

_DANGEROUS_CHARS = (";", "|", "&", "$", "`", "\n", "\r")
_BRANCH_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_/-]")


def safe_branch_name(date: Optional[datetime.date] = None) -> str:
    """``deps/update-YYYY-MM-DD`` restricted to safe characters and length."""
    stamp = (date or datetime.date.today()).strftime("%Y-%m-%d")
    name = _BRANCH_UNSAFE_RE.sub("-", f"{Constants.BRANCH_PREFIX}{stamp}")
    return name[:Constants.BRANCH_MAX_LENGTH]


class GitVersionControl:
    """Minimal git wrapper: clean check, branch, stage and commit.

    Args:
        project_path: Absolute project directory.
        log: Logging context.

    Raises:
        VersionControlError: the path is relative, unsafe or not a directory.
    """

    def __init__(self, project_path: str, log: Optional[LogContext] = None):
        self.log = log or LogContext("git")
        bad = next((ch for ch in _DANGEROUS_CHARS if ch in project_path), None)
        if bad is not None:
            raise VersionControlError(f"Path contains dangerous character: {bad!r}")
        if not os.path.isabs(project_path):
            raise VersionControlError("Only absolute paths are allowed for Git operations")
        try:
            self.project_path = validate_project_path(project_path)
        except ValidationError as exc:
            raise VersionControlError(f"Invalid Git path: {exc}") from exc

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        self.log.detail("git %s", " ".join(args), action="git")
        try:
            return subprocess.run(
                ["git", *args],
                cwd=self.project_path,
                capture_output=True,
                text=True,
                timeout=60,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise VersionControlError(f"Failed to execute git command '{' '.join(args)}': {exc}") from exc

    def _checked(self, args: List[str]) -> str:
        result = self._run(args)
        if result.returncode != 0:
            raise VersionControlError(f"git {args[0]} failed: {result.stderr.strip()}")
        return result.stdout

    def is_repository(self) -> bool:
        result = self._run(["rev-parse", "--is-inside-work-tree"])
        return result.returncode == 0 and result.stdout.strip() == "true"

    def ensure_clean(self) -> bool:
        """True when ``git status --porcelain`` reports nothing."""
        return self._checked(["status", "--porcelain"]).strip() == ""

    def create_branch(self, name: Optional[str] = None) -> str:
        branch = name or safe_branch_name()
        self._checked(["checkout", "-b", branch])
        return branch

    def commit(self, paths: Sequence[str], message: str = Constants.COMMIT_MESSAGE) -> str:
        """Create the update branch, stage ``paths`` and commit them.

        Returns:
            Name of the branch holding the commit.

        Raises:
            VersionControlError: a path is outside the project or git failed.
        """
        relative: List[str] = []
        for path in paths:
            try:
                resolved = validate_file_path(path, self.project_path)
            except ValidationError as exc:
                raise VersionControlError(f"Refusing to stage unsafe path: {exc}") from exc
            relative.append(os.path.relpath(resolved, self.project_path))
        branch = self.create_branch()
        self._checked(["add", "--", *relative])
        self._checked(["commit", "-m", message])
        self.log.info("Committed changes to branch %s", branch)
        return branch
