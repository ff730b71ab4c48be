"""Logging setup for the gessage CLI.

Modules log through logging.getLogger(__name__). The CLI calls
setup_logging() once; --debug lowers the level to DEBUG.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(debug: bool = False) -> None:
    """Set up application logging on stderr.

    Args:
        debug: Show DEBUG records instead of only warnings and errors.
    """
    logger = logging.getLogger("gessage")
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    # Clear handlers from a previous call
    logger.handlers = []

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    # Suppress noisy libraries
    for name in ("httpx", "httpcore", "openai", "anthropic"):
        logging.getLogger(name).setLevel(logging.WARNING)
