"""Argument parsing functionality for jardeps."""

import argparse
from typing import List, Optional


def _add_spec(subparser: argparse.ArgumentParser, help_text: str) -> None:
    subparser.add_argument("SPEC",
                           help=help_text,
                           type=str)


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level parser with one sub-command per workflow."""
    parser = argparse.ArgumentParser(
        prog="jardeps",
        description="jardeps - resolve, download and track Maven jar dependencies",
        add_help=True,
    )

    parser.add_argument("-C", "--project",
                        dest="PROJECT",
                        help="Project directory holding the manifest and libs/ (default: .)",
                        action="store", type=str,
                        default=".")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help="Artifact cache directory (overrides JARDEPS_CACHE_DIR)",
                        action="store",
                        type=str)
    parser.add_argument("--repository-url",
                        dest="REPOSITORY_URL",
                        help="Base URL of the Maven2 layout repository",
                        action="store",
                        type=str)
    parser.add_argument("--search-url",
                        dest="SEARCH_URL",
                        help="URL of the solrsearch package index",
                        action="store",
                        type=str)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help="Timeout in seconds for every HTTP call",
                        action="store",
                        type=float)
    parser.add_argument("--retries",
                        dest="RETRIES",
                        help="Attempts per download or index query",
                        action="store",
                        type=int)
    parser.add_argument("--deadline",
                        dest="DEADLINE",
                        help="Abort the whole command after this many seconds",
                        action="store",
                        type=float)
    parser.add_argument("--no-verify",
                        dest="NO_VERIFY",
                        help="Skip .sha1 sidecar verification",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if warnings are present.",
                        action="store_true")

    sub = parser.add_subparsers(dest="COMMAND", metavar="COMMAND")
    sub.required = True

    _add_spec(sub.add_parser("add", help="Resolve, download and record a dependency"),
              "groupId:artifactId:version[:classifier], artifactId:version or artifactId")
    _add_spec(sub.add_parser("remove", help="Remove an installed dependency"),
              "Dependency to remove")
    sub.add_parser("list", help="List installed dependencies")
    sub.add_parser("update", help="Install the latest version of outdated dependencies")
    sub.add_parser("outdated", help="Report dependencies with newer versions")
    sub.add_parser("conflicts", help="Report version conflicts and incompatible artifacts")
    sub.add_parser("validate", help="Check installed files and report problems")
    sub.add_parser("stats", help="Show dependency statistics")

    search = sub.add_parser("search", help="Search the package index")
    search.add_argument("QUERY",
                        help="Free text query",
                        type=str)
    search.add_argument("-n", "--limit",
                        dest="LIMIT",
                        help="Maximum number of results (default: 20)",
                        action="store", type=int,
                        default=20)

    export = sub.add_parser("export", help="Export the manifest to a portable file")
    export.add_argument("PATH",
                        help="Export file to write",
                        type=str)

    import_ = sub.add_parser("import", help="Install dependencies from an export file")
    import_.add_argument("PATH",
                         help="Export file to read",
                         type=str)
    import_.add_argument("--skip-existing",
                         dest="SKIP_EXISTING",
                         help="Do not reinstall dependencies already in the manifest",
                         action="store_true")

    sub.add_parser("lock", help="Write the lock file with checksums")
    _add_spec(sub.add_parser("fetch", help="Install a dependency and the dependencies its POM declares"),
              "Dependency to fetch")
    sub.add_parser("clean-cache", help="Delete every cached artifact")

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
