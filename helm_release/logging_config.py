"""
Logging configuration for helm-release.

All log output goes through a Rich console bound to stderr so that
--print-computed-version can write the bare version to stdout.
"""

from loguru import logger
from rich.console import Console

LOG_FORMAT = '<green>{time:YYYY/MM/DD HH:mm:ss}</green> | <level>{level: <8}</level> - <level>{message}</level>'


def setup_logging(log_level: str = 'INFO', console: Console = None) -> None:
    """
    Set up logging configuration with a shared Rich console.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console: Rich Console instance to print through (optional)
    """
    logger.remove()

    if console:
        logger.add(
            lambda msg: console.print(msg, end='', markup=False, highlight=False),
            level=log_level,
            format=LOG_FORMAT,
        )
    else:
        import sys
        logger.add(
            sys.stderr,
            level=log_level,
            format=LOG_FORMAT,
            colorize=True,
        )
