"""gvc: keep a Gradle version catalog (gradle/libs.versions.toml) up to date.

Entry point wiring the catalog engine to its collaborators: project
validation, repository discovery, Maven metadata lookups and git.
"""

from __future__ import annotations

import io
import logging
import sys
from typing import List, Optional, TextIO

from args import parse_args
from catalog.model import Catalog
from catalog.mutator import add_entry, apply_accepted
from catalog.storage import load_catalog, save_catalog
from cli_config import apply_cli_overrides, apply_config, find_config, load_config
from common.logging_utils import LogContext, configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from errors import (
    CancelledByUser,
    ConflictError,
    GvcError,
    NetworkError,
    ParseError,
    ValidationError,
    VersionControlError,
)
from project import ProjectInfo, ProjectScanner
from registry.maven.client import MavenRepositoryClient
from report import export_json, print_catalog, print_update_report
from repository.gradle_config import GradleConfigParser
from vcs import GitVersionControl
from versioning.models import (
    PerEntryError,
    RepositoryDescriptor,
    ResolveOptions,
    UpdateCandidate,
    UpdateReport,
)
from versioning.parser import parse_library_coordinate, parse_plugin_coordinate
from versioning.selector import ConsolePrompter, TargetedPrompter, run_targeted, select_candidates
from versioning.service import UpdateResolver
from versioning.version import latest

logger = logging.getLogger(__name__)


def _output(args) -> TextIO:
    return io.StringIO() if getattr(args, "QUIET", False) else sys.stdout


def load_project(args) -> ProjectInfo:
    """Validate the project and apply config file plus CLI settings."""
    info = ProjectScanner(args.PROJECT_PATH).validate()
    config_path = getattr(args, "CONFIG", None) or find_config(info.root)
    if config_path:
        logger.info("Using configuration %s", config_path)
    apply_config(load_config(config_path))
    apply_cli_overrides(args)
    return info


def discover_repositories(info: ProjectInfo, log: LogContext, out: TextIO) -> List[RepositoryDescriptor]:
    repos = GradleConfigParser(info.root, log.child("gradle")).repositories()
    print(f"   Found {len(repos)} repositories:", file=out)
    for repo in repos:
        print(f"   • {repo.name} ({repo.base_url})", file=out)
    return repos


def build_resolver(repos: List[RepositoryDescriptor], log: LogContext) -> UpdateResolver:
    client = MavenRepositoryClient(log.child("maven"))
    return UpdateResolver(client, repos, log=log.child("resolver"))


def _finish(report: UpdateReport, args) -> int:
    if report.errors and getattr(args, "ERROR_ON_WARNINGS", False):
        logger.warning("%d entr(ies) could not be checked", len(report.errors))
        return ExitCodes.EXIT_WARNINGS.value
    return ExitCodes.SUCCESS.value


def _select_targeted(args, catalog: Catalog, resolver: UpdateResolver, out: TextIO) -> List[UpdateCandidate]:
    """Filtered interactive run: one entry, one hand-picked version."""
    targets = resolver.targets(catalog, args.FILTER)
    if not targets:
        print(f"No entries matched pattern '{args.FILTER}'.", file=out)
    return run_targeted(
        targets,
        lambda target: resolver.version_choices(target, Constants.STABLE_ONLY),
        TargetedPrompter(output=out),
    )


def run_update(args, log: LogContext) -> int:
    """Resolve, select, apply and (optionally) commit catalog updates."""
    out = _output(args)
    if args.FILTER is not None and not args.FILTER.strip():
        raise ValidationError("Filter pattern cannot be empty")
    print("Starting dependency update process...", file=out)
    info = load_project(args)
    use_git = info.has_git and not args.NO_GIT and not args.DRY_RUN

    git: Optional[GitVersionControl] = None
    if use_git:
        git = GitVersionControl(info.root, log.child("git"))
        if not git.is_repository():
            logger.warning("%s is not a git work tree; changes will not be committed", info.root)
            git = None
        elif not git.ensure_clean():
            logger.warning(
                "Working directory has uncommitted changes. "
                "Please commit or stash your changes before proceeding."
            )
            return ExitCodes.VALIDATION_ERROR.value

    repos = discover_repositories(info, log, out)
    catalog = load_catalog(info.catalog_path)
    resolver = build_resolver(repos, log)

    errors: List[PerEntryError] = []
    try:
        if args.INTERACTIVE and args.FILTER:
            accepted = _select_targeted(args, catalog, resolver, out)
        else:
            options = ResolveOptions(stable_only=Constants.STABLE_ONLY, alias_filter=args.FILTER)
            candidates, errors = resolver.resolve(catalog, options)
            if args.FILTER and not candidates and not errors:
                logger.info("No updates found for entries matching '%s'", args.FILTER)
            accepted = select_candidates(
                candidates,
                interactive=args.INTERACTIVE,
                alias_filter=args.FILTER,
                prompter=ConsolePrompter(output=out),
            )
    except CancelledByUser:
        print("\nUpdate cancelled by user.", file=out)
        return ExitCodes.SUCCESS.value

    report = UpdateReport.from_candidates(accepted, errors)
    if accepted and not args.DRY_RUN:
        apply_accepted(catalog, accepted)
        save_catalog(info.catalog_path, catalog)
    print_update_report(report, out)

    if args.DRY_RUN:
        print("\nDry run: the catalog was not modified.", file=out)
    elif git is not None and accepted:
        branch = git.commit([info.catalog_path], Constants.COMMIT_MESSAGE)
        print(f"Changes committed to branch: {branch}", file=out)
    elif not accepted:
        print("\nNo updates were applied", file=out)
    return _finish(report, args)


def run_check(args, log: LogContext) -> int:
    """Report available updates without modifying anything."""
    out = _output(args)
    info = load_project(args)
    stable_only = not args.INCLUDE_UNSTABLE
    channel = "stable" if stable_only else "all"
    print(f"Checking for available updates ({channel} versions)...", file=out)

    repos = discover_repositories(info, log, out)
    catalog = load_catalog(info.catalog_path)
    candidates, errors = build_resolver(repos, log).resolve(
        catalog, ResolveOptions(stable_only=stable_only)
    )
    report = UpdateReport.from_candidates(candidates, errors)
    print_update_report(report, out, stable_only=stable_only)
    if not report.is_empty():
        print("\nTo apply these updates, run:", file=out)
        print("  gvc update --stable-only" if stable_only else "  gvc update", file=out)
    if args.OUTPUT:
        export_json(report, args.OUTPUT)
    return _finish(report, args)


def run_list(args, log: LogContext) -> int:  # pylint: disable=unused-argument
    """Print the catalog contents."""
    out = _output(args)
    info = load_project(args)
    catalog: Catalog = load_catalog(info.catalog_path)
    print_catalog(catalog, out)
    return ExitCodes.SUCCESS.value


def run_add(args, log: LogContext) -> int:
    """Add a library or plugin entry, resolving or verifying its version."""
    out = _output(args)
    info = load_project(args)
    if not args.COORDINATE or not args.COORDINATE.strip():
        raise ValidationError("Coordinate is required. Example: gvc add group:artifact:version")
    if args.PLUGIN:
        coordinate, version = parse_plugin_coordinate(args.COORDINATE)
    else:
        coordinate, version = parse_library_coordinate(args.COORDINATE)

    repos = discover_repositories(info, log, out)
    resolver = build_resolver(repos, log)
    available = resolver.available_versions(coordinate)
    if version is None:
        version = latest(available, stable_only=Constants.STABLE_ONLY)
        if version is None:
            raise ValidationError(f"No versions of '{coordinate}' found in configured repositories")
        print(f"   Resolved latest version of {coordinate}: {version}", file=out)
    elif version not in available:
        raise ValidationError(
            f"Version '{version}' for '{coordinate}' not found in configured repositories"
        )

    catalog = load_catalog(info.catalog_path)
    result = add_entry(
        catalog,
        coordinate,
        version,
        alias=args.ALIAS,
        version_alias=args.VERSION_ALIAS,
        prefixes=Constants.ALIAS_PREFIXES,
    )
    save_catalog(info.catalog_path, catalog)
    label = "Plugin" if coordinate.is_plugin else "Library"
    print(f"{label} '{result.alias}' added with version alias '{result.version_alias}'", file=out)
    return ExitCodes.SUCCESS.value


COMMANDS = {
    "update": run_update,
    "check": run_check,
    "list": run_list,
    "add": run_add,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(getattr(args, "LOG_LEVEL", None), getattr(args, "LOG_FILE", None))
    if getattr(args, "QUIET", False) and not getattr(args, "LOG_LEVEL", None):
        logging.getLogger().setLevel(logging.WARNING)
    log = LogContext("gvc", verbose=bool(getattr(args, "VERBOSE", False)))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main", target=args.COMMAND)
        )

    try:
        return COMMANDS[args.COMMAND](args, log)
    except CancelledByUser:
        logger.info("Operation cancelled by user.")
        return ExitCodes.SUCCESS.value
    except (ValidationError, ParseError) as exc:
        logger.error("%s", exc)
        return ExitCodes.VALIDATION_ERROR.value
    except ConflictError as exc:
        logger.error("%s", exc)
        return ExitCodes.CONFLICT.value
    except NetworkError as exc:
        logger.error("%s", exc)
        return ExitCodes.CONNECTION_ERROR.value
    except (VersionControlError, GvcError, OSError) as exc:
        logger.error("%s", exc)
        return ExitCodes.FILE_ERROR.value


if __name__ == "__main__":
    sys.exit(main())
