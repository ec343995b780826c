"""jardeps - Maven jar dependency manager

Resolves short dependency references against Maven Central, downloads jars
through a local cache and tracks them in a per-project manifest.
"""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from args import parse_args
from cli_commands import run_command
from cli_config import ManagerConfig
from common.errors import (
    DownloadError,
    JarDepsError,
    OperationCancelledError,
    RegistryError,
)
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from dependency_manager import DependencyManager

logger = logging.getLogger(__name__)

# Everything else maps to FILE_ERROR.
_CONNECTION_ERRORS = (RegistryError, DownloadError, OperationCancelledError)


def exit_code_for(exc: JarDepsError) -> ExitCodes:
    """Map a hard error to the process exit code."""
    if isinstance(exc, _CONNECTION_ERRORS):
        return ExitCodes.CONNECTION_ERROR
    return ExitCodes.FILE_ERROR


def main(argv: Optional[List[str]] = None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging(log_file=getattr(args, "LOG_FILE", None))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND),
        )

    config = ManagerConfig.from_args(args)
    manager = DependencyManager(Path(args.PROJECT), config)
    try:
        outcome = asyncio.run(run_command(manager, args))
    except JarDepsError as e:
        logger.error("%s", e)
        return exit_code_for(e).value
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return ExitCodes.CONNECTION_ERROR.value

    for message in outcome.errors:
        logger.error("%s", message)
    if outcome.errors:
        return ExitCodes.FILE_ERROR.value
    if outcome.warnings and args.ERROR_ON_WARNINGS:
        logger.warning("Warnings present, exiting with non-zero status code.")
        return ExitCodes.EXIT_WARNINGS.value
    return ExitCodes.SUCCESS.value


if __name__ == "__main__":
    sys.exit(main())
