"""Ordered provisioning steps for a Laravel release."""

from __future__ import annotations

import shlex
from pathlib import Path

from release_deployer.config import DeployConfig
from release_deployer.models import PipelineStep

CLONE_STEP = "git clone"
LINK_STEP = "link shared resources"
PROMOTE_STEP = "promote release"

REQUIRED_TOOLS: tuple[str, ...] = ("php", "composer", "npm", "node", "git")


def git_ssh_command(deploy_key: Path) -> str:
    return f"ssh -i {shlex.quote(str(deploy_key))} -o StrictHostKeyChecking=no"


def build_laravel_steps(config: DeployConfig, release_dir: Path) -> list[PipelineStep]:
    """Return the fixed step sequence; shared links and promotion are handled by the service."""
    return [
        PipelineStep(
            name=CLONE_STEP,
            description=f"Cloning repository using deploy key: {config.repository_url}",
            command=("git", "clone", config.repository_url, str(release_dir)),
            requires="git",
            in_release_dir=False,
            env={"GIT_SSH_COMMAND": git_ssh_command(config.deploy_key)},
        ),
        _step(
            "composer install",
            "composer",
            "install",
            "--no-dev",
            "--no-interaction",
            "--prefer-dist",
            "--optimize-autoloader",
        ),
        _step("npm install", "npm", "install"),
        _step("php artisan down", "php", "artisan", "down"),
        _step("php artisan clear-compiled", "php", "artisan", "clear-compiled"),
        _step("php artisan optimize", "php", "artisan", "optimize"),
        _step("npm run prod", "npm", "run", "prod"),
        _step("php artisan migrate --force", "php", "artisan", "migrate", "--force"),
        _step("php artisan up", "php", "artisan", "up"),
    ]


def _step(name: str, *command: str) -> PipelineStep:
    return PipelineStep(
        name=name,
        description=f"Running {name}",
        command=tuple(command),
        requires=command[0],
    )
