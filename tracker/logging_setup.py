"""Logging configuration for the tracker service."""

from __future__ import annotations

import logging
import sys


class _ServiceLogFilter(logging.Filter):
    """Keep tracker logs, but only pass third-party records at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == "tracker" or name.startswith("tracker."):
            return True
        if name.startswith("uvicorn"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: str | int = logging.INFO) -> None:
    """
    Configure root logging with a single stderr handler.

    Call this once, early in the application lifespan. Any handlers that were
    installed before are replaced so repeated app creation in tests does not
    duplicate output.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    stream = logging.StreamHandler(sys.stderr)
    stream.setLevel(level)
    stream.setFormatter(fmt)
    stream.addFilter(_ServiceLogFilter())
    root.addHandler(stream)

    logging.captureWarnings(True)
