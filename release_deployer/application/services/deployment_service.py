"""Deployment orchestration service."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence

from release_deployer.adapters.filesystem import link_shared_resource
from release_deployer.application.ports import Clock, CommandRunner, Logger, Notifier, SymlinkStore
from release_deployer.application.services.pipeline import (
    LINK_STEP,
    PROMOTE_STEP,
    build_laravel_steps,
)
from release_deployer.application.services.release_service import ReleaseAllocator
from release_deployer.config import DeployConfig
from release_deployer.errors import DeployerError
from release_deployer.models import DeploymentOutcome, PipelineStep, StepResult
from release_deployer.run_log import run_log_path

LogFactory = Callable[[Path], Logger]
StepBuilder = Callable[[DeployConfig, Path], Sequence[PipelineStep]]

NO_PREVIOUS_DEPLOYMENT = "No previous deployment available."


@dataclass(slots=True)
class RunContext:
    """Mutable state of a single deployment run."""

    release_dir: Path
    log_file: Path
    logger: Logger
    started_at: datetime
    previous_target: Optional[str] = None
    steps_completed: list[str] = field(default_factory=list)
    promoted: bool = False
    rolled_back: bool = False


@dataclass(slots=True)
class _RollbackReport:
    rolled_back_to: Optional[str] = None
    release_deleted: bool = False
    errors: list[str] = field(default_factory=list)


class DeploymentService:
    """Provisions a release, promotes it, and rolls back on the first failure."""

    def __init__(
        self,
        *,
        config: DeployConfig,
        root_dir: Path,
        allocator: ReleaseAllocator,
        symlinks: SymlinkStore,
        runner: CommandRunner,
        notifier: Notifier,
        clock: Clock,
        log_factory: LogFactory,
        step_builder: StepBuilder = build_laravel_steps,
    ):
        self._config = config
        self._root_dir = root_dir
        self._allocator = allocator
        self._symlinks = symlinks
        self._runner = runner
        self._notifier = notifier
        self._clock = clock
        self._log_factory = log_factory
        self._step_builder = step_builder

    def deploy(self) -> DeploymentOutcome:
        release_dir = self._allocator.allocate()
        log_file = run_log_path(self._config.log_dir, release_dir)
        context = RunContext(
            release_dir=release_dir,
            log_file=log_file,
            logger=self._log_factory(log_file),
            started_at=self._clock.now(),
        )
        try:
            return self._execute(context)
        except (Exception, KeyboardInterrupt) as exc:
            if context.rolled_back:
                raise
            if context.promoted:
                # A promoted release is live and is never rolled back.
                context.logger.error(
                    "Error after promotion, %s stays live: %s",
                    context.release_dir,
                    str(exc) or type(exc).__name__,
                )
                return self._success_outcome(context)
            context.logger.error("Unexpected error during deployment: %s", exc)
            return self._rollback(context, step=None, reason=str(exc) or type(exc).__name__)

    def _execute(self, context: RunContext) -> DeploymentOutcome:
        release_dir = context.release_dir
        log = context.logger

        context.previous_target = self._symlinks.capture_previous()
        if context.previous_target:
            log.info("Previous deployment target: %s", context.previous_target)

        release_dir.mkdir(parents=True, exist_ok=False)
        self._notifier.notify(
            "on_start",
            f"**Deployment started!**\nDeploying to: `{self._relative(release_dir)}`",
            logger=log,
        )
        log.info("Starting deployment in directory: %s", release_dir)

        if not self._config.deploy_key.is_file():
            log.error("Deploy key not found: %s", self._config.deploy_key)
            return self._rollback(
                context, step=None, reason=f"Deploy key not found: {self._config.deploy_key}"
            )

        steps = list(self._step_builder(self._config, release_dir))
        for index, step in enumerate(steps):
            result = self._run_step(context, step)
            if not result.ok:
                return self._rollback(context, step=result.step, reason=result.error_message)
            context.steps_completed.append(step.name)
            if index == 0:
                result = self._link_shared_resources(context)
                if not result.ok:
                    return self._rollback(context, step=result.step, reason=result.error_message)
                context.steps_completed.append(LINK_STEP)

        result = self._promote(context)
        if not result.ok:
            return self._rollback(context, step=result.step, reason=result.error_message)
        context.promoted = True
        context.steps_completed.append(PROMOTE_STEP)

        self._notifier.notify(
            "on_success",
            f"**Deployment completed successfully!**\nNow running: `{self._relative(release_dir)}`",
            logger=log,
        )
        log.info("Deployment completed successfully!")
        return self._success_outcome(context)

    def _success_outcome(self, context: RunContext) -> DeploymentOutcome:
        return DeploymentOutcome(
            status="success",
            release_dir=context.release_dir,
            log_file=context.log_file,
            previous_target=context.previous_target,
            started_at=context.started_at,
            completed_at=self._clock.now(),
            steps_completed=list(context.steps_completed),
        )

    def _run_step(self, context: RunContext, step: PipelineStep) -> StepResult:
        log = context.logger
        log.info("%s", step.description)
        if step.requires and not self._runner.which(step.requires):
            message = f"Required tool '{step.requires}' not found on PATH"
            log.error("%s", message)
            return StepResult(step=step.name, ok=False, error_message=message)

        command_result = self._runner.run(
            step.command,
            cwd=context.release_dir if step.in_release_dir else None,
            env=step.env or None,
            logger=log,
        )
        if command_result.ok:
            return StepResult(step=step.name, ok=True, returncode=command_result.returncode)

        message = command_result.error_message or f"exited with status {command_result.returncode}"
        log.error("Step '%s' failed: %s", step.name, message)
        return StepResult(
            step=step.name,
            ok=False,
            returncode=command_result.returncode,
            error_message=message,
        )

    def _link_shared_resources(self, context: RunContext) -> StepResult:
        log = context.logger
        links = (
            (self._config.env_file, context.release_dir / ".env"),
            (self._config.storage_symlink, context.release_dir / "storage"),
        )
        for source, link in links:
            log.info("Linking %s -> %s", link, source)
            try:
                link_shared_resource(source, link)
            except OSError as exc:
                log.error("Unable to link %s: %s", link, exc)
                return StepResult(step=LINK_STEP, ok=False, error_message=str(exc))
        return StepResult(step=LINK_STEP, ok=True)

    def _promote(self, context: RunContext) -> StepResult:
        context.logger.info("Switching %s to %s", self._config.prod_symlink, context.release_dir)
        try:
            self._symlinks.promote(context.release_dir)
        except DeployerError as exc:
            context.logger.error("Promotion failed: %s", exc)
            return StepResult(step=PROMOTE_STEP, ok=False, error_message=str(exc))
        return StepResult(step=PROMOTE_STEP, ok=True)

    def _rollback(
        self, context: RunContext, *, step: Optional[str], reason: Optional[str]
    ) -> DeploymentOutcome:
        """Restore the pointer, optionally discard the release, then report failure.

        Runs at most once per run. Errors raised while restoring or deleting are
        logged and collected; they never prevent the failure notification.
        """
        log = context.logger
        if context.rolled_back:
            raise RuntimeError("Rollback already performed for this run")
        context.rolled_back = True
        report = _RollbackReport()

        summary = NO_PREVIOUS_DEPLOYMENT
        if context.previous_target:
            log.info("Rolling back to previous deployment: %s", context.previous_target)
            try:
                if self._symlinks.restore_previous(context.previous_target):
                    report.rolled_back_to = context.previous_target
                    summary = f"Rolled back to {self._relative(Path(context.previous_target))}"
            except (DeployerError, OSError) as exc:
                log.error("Failed to restore previous deployment: %s", exc)
                report.errors.append(f"restore: {exc}")

        if self._config.delete_failed_deploy:
            log.info("Deleting failed deployment directory: %s", context.release_dir)
            try:
                if context.release_dir.exists():
                    shutil.rmtree(context.release_dir)
                report.release_deleted = True
            except OSError as exc:
                log.error("Failed to delete %s: %s", context.release_dir, exc)
                report.errors.append(f"delete: {exc}")

        self._notifier.notify(
            "on_error",
            f"**Deployment failed!**\nCheck log: `{self._relative(context.log_file)}`\n{summary}",
            logger=log,
        )
        log.error("Deployment failed. Check logs for details.")
        return DeploymentOutcome(
            status="failed",
            release_dir=context.release_dir,
            log_file=context.log_file,
            previous_target=context.previous_target,
            started_at=context.started_at,
            completed_at=self._clock.now(),
            steps_completed=list(context.steps_completed),
            failed_step=step,
            error_message=reason,
            rolled_back_to=report.rolled_back_to,
            release_deleted=report.release_deleted,
            rollback_errors=report.errors,
        )

    def _relative(self, path: Path) -> str:
        try:
            return str(path.relative_to(self._root_dir))
        except ValueError:
            return str(path)
