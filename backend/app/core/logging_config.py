"""Module: logging_config."""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Attach a console handler to the ``app`` logger tree (once per process)."""
    app_logger = logging.getLogger("app")
    app_logger.setLevel(level.upper())
    if app_logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    app_logger.addHandler(handler)
