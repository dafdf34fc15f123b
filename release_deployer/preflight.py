"""Non-interactive server validation."""

from __future__ import annotations

import logging
from typing import Optional

from release_deployer.application.ports import CommandRunner, Notifier
from release_deployer.application.services.pipeline import REQUIRED_TOOLS, git_ssh_command
from release_deployer.config import DeployConfig
from release_deployer.models import CheckResult

logger = logging.getLogger(__name__)


def check_tools(runner: CommandRunner, tools: tuple[str, ...] = REQUIRED_TOOLS) -> list[CheckResult]:
    results: list[CheckResult] = []
    for tool in tools:
        location = runner.which(tool)
        results.append(
            CheckResult(
                name=f"tool:{tool}",
                ok=location is not None,
                detail=location or f"{tool} is missing",
            )
        )
    return results


def check_deploy_key(config: DeployConfig) -> CheckResult:
    exists = config.deploy_key.is_file()
    return CheckResult(
        name="deploy_key",
        ok=exists,
        detail=str(config.deploy_key) if exists else f"Deploy key not found: {config.deploy_key}",
    )


def check_repository(config: DeployConfig, runner: CommandRunner) -> CheckResult:
    result = runner.run(
        ("git", "ls-remote", config.repository_url),
        cwd=None,
        env={"GIT_SSH_COMMAND": git_ssh_command(config.deploy_key)},
        logger=logger,
    )
    if result.ok:
        return CheckResult(name="repository", ok=True, detail=config.repository_url)
    return CheckResult(
        name="repository",
        ok=False,
        detail=f"Cannot access repository: {config.repository_url}",
    )


def check_webhooks(config: DeployConfig, notifier: Notifier) -> list[CheckResult]:
    results: list[CheckResult] = []
    for event, urls in sorted(config.webhooks.items()):
        delivered = notifier.notify(event, f"Test notification from release-deployer ({event})")
        results.append(
            CheckResult(
                name=f"webhook:{event}",
                ok=delivered == len(urls),
                detail=f"{delivered}/{len(urls)} endpoint(s) reached",
            )
        )
    return results


def validate_server(
    config: DeployConfig,
    runner: CommandRunner,
    *,
    notifier: Optional[Notifier] = None,
) -> list[CheckResult]:
    """Run every readiness check; webhooks are exercised only when a notifier is given."""
    results = check_tools(runner)
    key_check = check_deploy_key(config)
    results.append(key_check)
    if key_check.ok and runner.which("git"):
        results.append(check_repository(config, runner))
    else:
        results.append(
            CheckResult(name="repository", ok=False, detail="Skipped: deploy key or git missing")
        )
    if notifier is not None:
        results.extend(check_webhooks(config, notifier))
    return results
