"""Console rendering and JSON export of catalog contents and update reports."""
from __future__ import annotations

import json
import logging
import sys
from typing import Dict, Optional, TextIO, Tuple

from catalog.model import Catalog
from errors import GvcError
from versioning.models import UpdateReport
from versioning.version import classify

logger = logging.getLogger(__name__)


def _section(out: TextIO, title: str, updates: Dict[str, Tuple[str, str]], show_stability: bool) -> None:
    if not updates:
        return
    print(f"\n{title}:", file=out)
    for alias, (old, new) in updates.items():
        suffix = ""
        if show_stability:
            suffix = f" ({classify(new)})"
        print(f"  • {alias} {old} → {new}{suffix}", file=out)


def print_update_report(report: UpdateReport, out: Optional[TextIO] = None, stable_only: Optional[bool] = None) -> None:
    """Print updates grouped by table, followed by per-entry errors.

    Args:
        report: Report to print.
        out: Target stream (stdout by default).
        stable_only: When given, mention which version channel was searched.
    """
    out = out or sys.stdout
    if report.is_empty():
        print("\nAll dependencies are up to date!", file=out)
    else:
        print(f"\nFound {report.total_updates()} update(s)", file=out)
        if stable_only is True:
            print("   (showing stable versions only)", file=out)
        elif stable_only is False:
            print("   (showing all versions including pre-releases)", file=out)
        _section(out, "Version updates", report.version_updates, False)
        _section(out, "Library updates", report.library_updates, True)
        _section(out, "Plugin updates", report.plugin_updates, False)

    if report.errors:
        print(f"\n{len(report.errors)} entr{'y' if len(report.errors) == 1 else 'ies'} could not be checked:", file=out)
        for err in report.errors:
            print(f"  ! [{err.entry_kind.value}] {err.alias}: {err.code}: {err.message}", file=out)


def print_catalog(catalog: Catalog, out: Optional[TextIO] = None) -> None:
    """Print versions, libraries (as group:artifact:version) and plugins."""
    out = out or sys.stdout

    if catalog.versions:
        print("\nVersions:", file=out)
        for alias in sorted(catalog.versions):
            print(f"  {alias} = {catalog.versions[alias].literal}", file=out)

    if catalog.libraries:
        print("\nLibraries:", file=out)
        for alias in sorted(catalog.libraries):
            entry = catalog.libraries[alias]
            version = catalog.resolved_version(entry)
            if version is None and entry.ref is not None:
                version = f"${{{entry.ref}}}"
            if version is None:
                print(f"  {entry.coordinate} (version unknown)", file=out)
            else:
                print(f"  {entry.coordinate}:{version}", file=out)

    if catalog.plugins:
        print("\nPlugins:", file=out)
        for alias in sorted(catalog.plugins):
            entry = catalog.plugins[alias]
            version = catalog.resolved_version(entry)
            if version is None:
                print(f"  {entry.coordinate} (version unknown)", file=out)
            else:
                print(f"  {entry.coordinate}:{version}", file=out)

    if catalog.problems:
        print("\nUnreadable entries:", file=out)
        for problem in catalog.problems:
            print(f"  ! [{problem.entry_kind.value}] {problem.alias}: {problem.message}", file=out)

    print(
        f"\nSummary: {len(catalog.versions)} version aliases, "
        f"{len(catalog.libraries)} libraries, {len(catalog.plugins)} plugins",
        file=out,
    )


def export_json(report: UpdateReport, path: str) -> None:
    """Exports the update report to a JSON file.

    Args:
        report: Update report.
        path: File path to export the JSON.

    Raises:
        GvcError: the file could not be written.
    """
    try:
        with open(path, 'w', encoding='utf-8') as file:
            json.dump(report.to_dict(), file, ensure_ascii=False, indent=4)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        raise GvcError(f"JSON file couldn't be written to disk: {e}") from e
