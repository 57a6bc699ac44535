"""Argument parsing functionality for gvc."""

import argparse

from constants import Constants


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="gvc",
        description="gvc - Gradle version catalog updater",
        add_help=True,
    )

    parser.add_argument("-p", "--path",
                        dest="PROJECT_PATH",
                        help="Path to the Gradle project (default: current directory)",
                        action="store",
                        type=str,
                        default=".")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-v", "--verbose",
                        dest="VERBOSE",
                        help="Show repository requests and resolution details.",
                        action="store_true")
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if per-entry errors are present.",
                        action="store_true")

    subparsers = parser.add_subparsers(dest="COMMAND", metavar="<command>")
    subparsers.required = True

    update = subparsers.add_parser("update", help="Update catalog versions to the latest releases")
    update.add_argument("-i", "--interactive",
                        dest="INTERACTIVE",
                        help="Confirm every update interactively.",
                        action="store_true")
    update.add_argument("-s", "--stable-only",
                        dest="STABLE_ONLY",
                        help="Only propose stable versions.",
                        action="store_true",
                        default=None)
    update.add_argument("-f", "--filter",
                        dest="FILTER",
                        help="Only update aliases matching this glob (e.g. '*okhttp*').",
                        action="store",
                        type=str)
    update.add_argument("--no-git",
                        dest="NO_GIT",
                        help="Do not check the working tree or commit the result.",
                        action="store_true")
    update.add_argument("--dry-run",
                        dest="DRY_RUN",
                        help="Show what would change without writing the catalog.",
                        action="store_true")

    check = subparsers.add_parser("check", help="Report available updates without changing anything")
    check.add_argument("--include-unstable",
                       dest="INCLUDE_UNSTABLE",
                       help="Also report pre-release versions.",
                       action="store_true")
    check.add_argument("-o", "--output",
                       dest="OUTPUT",
                       help="Write the update report to a JSON file",
                       action="store",
                       type=str)

    subparsers.add_parser("list", help="List catalog entries")

    add = subparsers.add_parser("add", help="Add a library or plugin to the catalog")
    target = add.add_mutually_exclusive_group()
    target.add_argument("--plugin",
                        dest="PLUGIN",
                        help="Treat the coordinate as a plugin (plugin.id:version).",
                        action="store_true")
    target.add_argument("--library",
                        dest="LIBRARY",
                        help="Treat the coordinate as a library (group:artifact:version, default).",
                        action="store_true")
    add.add_argument("COORDINATE",
                     help="group:artifact[:version] or plugin.id[:version]; 'latest' resolves the newest",
                     type=str)
    add.add_argument("--alias",
                     dest="ALIAS",
                     help="Alias for the new entry",
                     action="store",
                     type=str)
    add.add_argument("--version-alias",
                     dest="VERSION_ALIAS",
                     help="Alias for the [versions] entry",
                     action="store",
                     type=str)
    add.add_argument("-s", "--stable-only",
                     dest="STABLE_ONLY",
                     help="Resolve 'latest' to the newest stable version.",
                     action="store_true",
                     default=None)

    parser.epilog = (
        f"Configuration files searched in the project root: {', '.join(Constants.CONFIG_FILES)}"
    )
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
