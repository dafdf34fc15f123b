"""Release directory allocation."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from release_deployer.application.ports import Clock

TIMESTAMP_FORMAT = "%Y%m%d-%H%M"


def allocate_release_dir(root_dir: Path, prefix: str, now: datetime) -> Path:
    """Return ``{root}/{prefix}-{timestamp}``, suffixed ``-1``, ``-2``... if taken."""
    base_name = f"{prefix}-{now.strftime(TIMESTAMP_FORMAT)}"
    candidate = root_dir / base_name
    suffix = 1
    while _occupied(candidate):
        candidate = root_dir / f"{base_name}-{suffix}"
        suffix += 1
    return candidate


def _occupied(path: Path) -> bool:
    # A dangling symlink still occupies the name.
    return path.exists() or path.is_symlink()


class ReleaseAllocator:
    """Computes the release directory for a run from the current time."""

    def __init__(self, *, root_dir: Path, prefix: str, clock: Clock):
        self._root_dir = root_dir
        self._prefix = prefix
        self._clock = clock

    def allocate(self) -> Path:
        return allocate_release_dir(self._root_dir, self._prefix, self._clock.now())
