"""Filesystem adapters: production pointer bookkeeping and shared links."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from release_deployer.application.ports import Clock, SymlinkStore
from release_deployer.errors import SymlinkError

logger = logging.getLogger(__name__)

HISTORY_LOG_NAME = ".prod-app-log"
PREVIOUS_TARGET_NAME = ".previous-prod-target"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def atomic_symlink(target: str | Path, link: Path) -> None:
    """Point ``link`` at ``target`` via create-then-rename.

    The link is never observably missing: a temporary symlink is created next
    to it and renamed over it in a single ``rename(2)``.
    """
    if link.exists() and not link.is_symlink():
        raise SymlinkError(f"Refusing to replace non-symlink {link} with a symlink")
    tmp_link = link.with_name(f".{link.name}.tmp-{os.getpid()}")
    try:
        if tmp_link.is_symlink() or tmp_link.exists():
            tmp_link.unlink()
        os.symlink(str(target), tmp_link)
        os.replace(tmp_link, link)
    except OSError as exc:
        tmp_link.unlink(missing_ok=True)
        raise SymlinkError(f"Unable to point {link} at {target}: {exc}") from exc


@dataclass(slots=True)
class FilesystemSymlinkManager(SymlinkStore):
    """Tracks and swaps the production symlink inside the install root."""

    root_dir: Path
    prod_symlink: str
    clock: Clock

    @property
    def pointer(self) -> Path:
        return self.root_dir / self.prod_symlink

    @property
    def history_log(self) -> Path:
        return self.root_dir / HISTORY_LOG_NAME

    @property
    def previous_target_file(self) -> Path:
        return self.root_dir / PREVIOUS_TARGET_NAME

    def current_target(self) -> Optional[str]:
        if not self.pointer.is_symlink():
            return None
        return os.readlink(self.pointer)

    def last_recorded_target(self) -> Optional[str]:
        """Return the value of the single-slot restore point, if any."""
        if not self.previous_target_file.is_file():
            return None
        value = self.previous_target_file.read_text(encoding="utf-8").strip()
        return value or None

    def capture_previous(self) -> Optional[str]:
        """Snapshot the live target and record it as the restore point.

        The history entry is written before promotion, so it records intent
        rather than outcome.
        """
        self.history_log.touch(exist_ok=True)
        self.previous_target_file.touch(exist_ok=True)
        previous = self.current_target()
        if previous:
            self._append_history(previous)
            self.previous_target_file.write_text(f"{previous}\n", encoding="utf-8")
        return previous

    def promote(self, target: Path) -> None:
        logger.debug("Promoting %s -> %s", self.pointer, target)
        atomic_symlink(target, self.pointer)

    def restore_previous(self, previous: Optional[str]) -> bool:
        if not previous:
            return False
        atomic_symlink(previous, self.pointer)
        self._append_history(f"Rolled back to {previous} due to deployment failure.")
        return True

    def _append_history(self, entry: str) -> None:
        stamp = self.clock.now().strftime(TIMESTAMP_FORMAT)
        with self.history_log.open("a", encoding="utf-8") as handle:
            handle.write(f"{stamp} - {entry}\n")


def link_shared_resource(source: Path, link: Path) -> None:
    """Replace ``link`` inside a release with a symlink to shared ``source``."""
    if link.is_symlink() or link.is_file():
        link.unlink()
    elif link.is_dir():
        shutil.rmtree(link)
    link.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(str(source), link)
