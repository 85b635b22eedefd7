"""Console logging setup shared by the CLI entrypoints."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

_HANDLER_NAME = "voice_queue.rich"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a rich console handler to the ``voice_queue`` logger once."""
    logger = logging.getLogger("voice_queue")
    logger.setLevel(level.upper())

    if not any(handler.get_name() == _HANDLER_NAME for handler in logger.handlers):
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    return logger
