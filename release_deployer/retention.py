"""Run Log retention."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def prune_run_logs(log_dir: Path, max_logs: int) -> list[Path]:
    """Delete all but the newest ``max_logs`` run logs in ``log_dir``."""
    if max_logs < 1:
        raise ValueError("max_logs must be at least 1")
    if not log_dir.is_dir():
        return []
    logs = sorted(
        (path for path in log_dir.glob("*.txt") if path.is_file()),
        key=lambda path: (path.stat().st_mtime, path.name),
        reverse=True,
    )
    removed: list[Path] = []
    for path in logs[max_logs:]:
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Unable to remove old log %s: %s", path, exc)
            continue
        removed.append(path)
    if removed:
        logger.info("Removed %d old run log(s) from %s", len(removed), log_dir)
    return removed
