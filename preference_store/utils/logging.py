"""
Console logging setup for applications embedding the preference store.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    level: str | int = "INFO", console: Console | None = None
) -> logging.Logger:
    """
    Attaches a rich console handler to the library's logger.

    Only the `preference_store` logger is configured, so the host
    application's own logging setup is left alone.

    Returns:
        The configured `preference_store` logger.
    """
    log = logging.getLogger("preference_store")
    for handler in list(log.handlers):
        if isinstance(handler, RichHandler):
            log.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        show_level=True,
        markup=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    log.addHandler(handler)
    log.setLevel(level.upper() if isinstance(level, str) else level)
    return log
