"""Per-run log file that is mirrored to the console."""

from __future__ import annotations

import logging
import sys
from itertools import count
from pathlib import Path
from typing import Optional, TextIO

LOG_FORMAT = "%(asctime)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_run_ids = count(1)


def run_log_path(log_dir: Path, release_dir: Path) -> Path:
    """The Run Log is named after the release directory."""
    return log_dir / f"{release_dir.name}.txt"


def open_run_log(
    log_path: Path,
    *,
    level: str | int = logging.INFO,
    console: Optional[TextIO] = None,
) -> logging.Logger:
    """Return a logger appending to ``log_path`` and echoing to the console.

    The file is created on first use. Each run gets its own logger object that
    does not propagate to the root logger, so lines are written exactly once.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)
    run_logger = logging.getLogger(f"release_deployer.run.{next(_run_ids)}")
    run_logger.setLevel(level)
    run_logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8", delay=True)
    file_handler.setFormatter(formatter)
    console_handler = logging.StreamHandler(console or sys.stdout)
    console_handler.setFormatter(formatter)
    run_logger.addHandler(file_handler)
    run_logger.addHandler(console_handler)
    return run_logger


def close_run_log(run_logger: logging.Logger) -> None:
    for handler in list(run_logger.handlers):
        run_logger.removeHandler(handler)
        handler.close()


def configure_logging(level: str | int = logging.INFO) -> None:
    """Configure the library loggers used outside of a run."""
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
