"""Utilities to configure consistent logging across the pipeline."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Finer than DEBUG; used for per-record skips and remaps.
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def configure_logging(log_path: Path | None = None, level: int = logging.INFO) -> None:
    """Configure root logging handlers and formatting.

    Any handlers installed by an earlier call are replaced, so the CLI can
    reconfigure verbosity after parsing arguments.

    Args:
        log_path: Optional path to a file where logs will be written.
        level: Logging level (defaults to INFO).
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=handlers,
        force=True,
    )


def level_for_verbosity(verbose: int) -> int:
    """Map a count of `-v` flags to a logging level (INFO, DEBUG, TRACE)."""
    if verbose <= 0:
        return logging.INFO
    if verbose == 1:
        return logging.DEBUG
    return TRACE
