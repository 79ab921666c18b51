"""modupgrade - upgrade the major version of a Go module or of its dependencies.

    Returns:
        int: Exit code
"""
import logging
import sys

from .args import parse_args
from .cli_config import build_config, describe
from .common.logging_utils import Timer, configure_logging, extra_context, is_debug_enabled
from .constants import ExitCodes
from .errors import UpgradeError
from .upgrade import Upgrader

logger = logging.getLogger(__name__)


def run(args) -> int:
    """Run one upgrade with parsed arguments and print the changed paths.

    Raises:
        UpgradeError: any failure; nothing has been written unless the
            failure happened while writing files.
    """
    config = build_config(args)
    if is_debug_enabled(logger):
        logger.debug(
            "Effective configuration: %s", describe(config),
            extra=extra_context(event="config", component="cli", action="build_config"),
        )

    upgrader = Upgrader(config)
    with Timer() as timer:
        report = upgrader.run(args.module, args.version)

    for record in report.records:
        print(record.describe())

    if is_debug_enabled(logger):
        logger.debug(
            "Upgrade finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action="upgrade",
                count=len(report.records),
                files=len(report.staged),
                written=report.written,
                duration_ms=timer.duration_ms(),
            ),
        )
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(getattr(args, "LOG_LEVEL", None), getattr(args, "LOG_FILE", None))

    try:
        code = run(args)
    except UpgradeError as exc:
        logger.error("%s", exc)
        sys.exit(exc.exit_code.value)
    sys.exit(code)


if __name__ == "__main__":
    main()
