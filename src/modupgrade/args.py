"""Argument parsing functionality for modupgrade."""

import argparse
from .constants import Constants

DESCRIPTION = """\
Upgrades the major version of a module - or the major version of one of its
dependencies - by editing the module's go.mod file and the corresponding
import paths in its Go files.

If no arguments are given, upgrades the major version of the module rooted in
the module directory: increments the major version component of its path in
go.mod (adding it if necessary), and in every import between the module's
packages. Giving the module's own path does the same, and also accepts a
target [version], to jump several major versions at once (or to downgrade).

If the path of a dependency is given instead, upgrades the dependency to the
given version or, without one, to the highest major version available, and
rewrites the imports of that dependency.

If the special target "all" is given, every direct dependency is upgraded to
the highest major version available.

[module] must be a fully qualified module path as written in go.mod,
including its major version suffix if it has one. [version] may be given at
any precision: v2, v2.3 or v2.3.4.

No version control tags or commits are created.
"""


def _positive_int(value):
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return number


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog=Constants.PROGRAM,
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=True,
    )

    parser.add_argument("module",
                        nargs="?",
                        default="",
                        help='Module path to upgrade, or "all" (default: the module itself)')
    parser.add_argument("version",
                        nargs="?",
                        default="",
                        help="Target version (default: next or highest available major)")

    parser.add_argument("-d", "--directory",
                        dest="DIRECTORY",
                        help="Module directory path",
                        action="store",
                        type=str,
                        default=".")
    parser.add_argument("-v", "--verbose",
                        dest="VERBOSE",
                        help="Verbose output: echo every query and rewritten import",
                        action="store_true")
    parser.add_argument("-n", "--dry-run",
                        dest="DRY_RUN",
                        help="Report the upgrades without writing any file",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help=f"Path to a YAML configuration file (default: {Constants.CONFIG_FILE} "
                             "in the module directory, if present)",
                        action="store",
                        type=str)

    parser.add_argument("--proxy",
                        dest="PROXY",
                        help="Module proxy list, GOPROXY syntax (default: $GOPROXY)",
                        action="store",
                        type=str)
    parser.add_argument("--batch-size",
                        dest="BATCH_SIZE",
                        help=f"Major versions probed per batch (default: {Constants.BATCH_SIZE})",
                        action="store",
                        type=_positive_int)
    parser.add_argument("--workers",
                        dest="MAX_WORKERS",
                        help=f"Dependencies resolved concurrently by \"all\" (default: {Constants.MAX_WORKERS})",
                        action="store",
                        type=_positive_int)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help=f"Module proxy request timeout in seconds (default: {Constants.REQUEST_TIMEOUT})",
                        action="store",
                        type=float)
    parser.add_argument("--lookup",
                        dest="LOOKUP",
                        help="How to find the module owning an import: from go.mod "
                             "requirements, or by running 'go list' (default: manifest)",
                        action="store",
                        type=str,
                        choices=Constants.LOOKUP_MODES)

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
