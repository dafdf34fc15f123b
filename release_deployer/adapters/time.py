"""Clock adapter for application services."""

from __future__ import annotations

from datetime import datetime

from release_deployer.application.ports import Clock


class SystemClock(Clock):
    """Local wall-clock time; release names and log lines use the host's timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()
