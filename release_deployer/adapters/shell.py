"""Subprocess-backed command runner."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from release_deployer.application.ports import CommandRunner, Logger
from release_deployer.models import CommandResult

_module_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SubprocessCommandRunner(CommandRunner):
    """Runs a command to completion, forwarding each output line to a logger.

    The exit status is taken from the spawned process itself; output is read
    from a pipe and logged independently, so a failing command can never be
    masked by whatever consumes its output.
    """

    timeout_seconds: Optional[float] = None

    def which(self, executable: str) -> Optional[str]:
        return shutil.which(executable)

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        logger: Optional[Logger] = None,
    ) -> CommandResult:
        output: Logger = logger or _module_logger
        process_env = dict(os.environ)
        if env:
            process_env.update(env)
        _module_logger.debug("Running command: %s", " ".join(command))
        try:
            process = subprocess.Popen(
                list(command),
                cwd=str(cwd) if cwd else None,
                env=process_env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as exc:
            output.error("Unable to start %s: %s", command[0], exc)
            return CommandResult(returncode=None, error_message=str(exc))

        timed_out = threading.Event()
        timer: Optional[threading.Timer] = None
        if self.timeout_seconds:
            timer = threading.Timer(self.timeout_seconds, _kill, args=(process, timed_out))
            timer.start()
        try:
            for line in process.stdout or ():
                line = line.rstrip("\r\n")
                if line:
                    output.info("%s", line)
            returncode = process.wait()
        finally:
            if timer:
                timer.cancel()
            if process.stdout:
                process.stdout.close()

        if timed_out.is_set():
            message = f"timed out after {self.timeout_seconds:g} seconds"
            output.error("%s %s", command[0], message)
            return CommandResult(returncode=returncode, error_message=message)
        return CommandResult(returncode=returncode)


def _kill(process: subprocess.Popen, flag: threading.Event) -> None:
    flag.set()
    process.kill()
