"""Port definitions for Hexagonal architecture."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence

from release_deployer.models import CommandResult, NotificationEvent


class Clock(Protocol):
    """Provides wall-clock timestamps."""

    def now(self) -> datetime:
        ...


class Logger(Protocol):
    """Light-weight logging port."""

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        ...

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        ...

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        ...

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        ...


class CommandRunner(Protocol):
    """Runs external commands and forwards their output to a logger."""

    def which(self, executable: str) -> Optional[str]:
        ...

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Optional[Path],
        env: Optional[Mapping[str, str]],
        logger: Logger,
    ) -> CommandResult:
        ...


class SymlinkStore(Protocol):
    """Reads and swaps the production pointer."""

    def current_target(self) -> Optional[str]:
        ...

    def capture_previous(self) -> Optional[str]:
        ...

    def promote(self, target: Path) -> None:
        ...

    def restore_previous(self, previous: Optional[str]) -> bool:
        ...


class Notifier(Protocol):
    """Best-effort delivery of lifecycle events."""

    def notify(
        self, event: NotificationEvent, message: str, *, logger: Optional[Logger] = None
    ) -> int:
        ...
