"""Logging setup shared by all tmplgen modules."""

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "tmplgen"


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the package logger.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        Logger instance.
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Install a single rich handler on the package logger.

    Calling this more than once replaces the previous handler, so repeated
    CLI invocations in one process do not duplicate output.

    Args:
        verbose: Log at DEBUG level instead of WARNING.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        show_time=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False
    return logger
