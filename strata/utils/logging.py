"""
Logging configuration utilities.

Log records always go to standard error: standard output carries the
generated scripts and configuration.
"""
import logging
import sys


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for the application.

    Args:
        debug: Whether to enable debug logging, which includes every
            per-node compilation step
    """
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('strata').setLevel(level)
