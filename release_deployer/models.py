"""Pydantic models representing release deployer domain objects."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RunStatusType = Literal["success", "failed"]
NotificationEvent = Literal["on_start", "on_success", "on_error"]


class PipelineStep(BaseModel):
    """One external command invocation used to provision a release."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    command: tuple[str, ...]
    requires: Optional[str] = Field(None, description="Executable that must be on PATH")
    in_release_dir: bool = True
    env: dict[str, str] = Field(default_factory=dict)


class CommandResult(BaseModel):
    """Outcome of running an external command."""

    returncode: Optional[int]
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and self.error_message is None


class StepResult(BaseModel):
    """Success/failure result of a single pipeline step."""

    step: str
    ok: bool
    returncode: Optional[int] = None
    error_message: Optional[str] = None


class DeploymentOutcome(BaseModel):
    """Final result of a deployment run."""

    status: RunStatusType
    release_dir: Path
    log_file: Path
    previous_target: Optional[str] = None
    started_at: datetime
    completed_at: datetime
    steps_completed: list[str]
    failed_step: Optional[str] = None
    error_message: Optional[str] = None
    rolled_back_to: Optional[str] = None
    release_deleted: bool = False
    rollback_errors: list[str] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 0 if self.status == "success" else 1


class CheckResult(BaseModel):
    """Result of one server validation check."""

    name: str
    ok: bool
    detail: str = ""
