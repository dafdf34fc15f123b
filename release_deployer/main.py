"""Command line entry point and composition root."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from release_deployer.adapters.filesystem import FilesystemSymlinkManager
from release_deployer.adapters.shell import SubprocessCommandRunner
from release_deployer.adapters.time import SystemClock
from release_deployer.adapters.webhooks import NullNotifier, WebhookNotifier
from release_deployer.application.ports import Clock, CommandRunner, Logger, Notifier
from release_deployer.application.services.deployment_service import DeploymentService, LogFactory
from release_deployer.application.services.release_service import ReleaseAllocator
from release_deployer.config import DeployConfig, Settings, load_config
from release_deployer.errors import ConfigurationError
from release_deployer.preflight import validate_server
from release_deployer.retention import prune_run_logs
from release_deployer.run_log import close_run_log, configure_logging, open_run_log


def build_notifier(config: DeployConfig, settings: Settings) -> Notifier:
    if not config.webhooks:
        return NullNotifier()
    return WebhookNotifier(webhooks=config.webhooks, timeout=settings.webhook_timeout_seconds)


def build_deployment_service(
    config: DeployConfig,
    settings: Settings,
    *,
    notifier: Notifier,
    log_factory: LogFactory,
    runner: Optional[CommandRunner] = None,
    clock: Optional[Clock] = None,
) -> DeploymentService:
    clock = clock or SystemClock()
    return DeploymentService(
        config=config,
        root_dir=settings.root_dir,
        allocator=ReleaseAllocator(
            root_dir=settings.root_dir, prefix=config.deployment_prefix, clock=clock
        ),
        symlinks=FilesystemSymlinkManager(
            root_dir=settings.root_dir, prod_symlink=config.prod_symlink, clock=clock
        ),
        runner=runner or SubprocessCommandRunner(timeout_seconds=settings.step_timeout_seconds),
        notifier=notifier,
        clock=clock,
        log_factory=log_factory,
    )


def cmd_deploy(config: DeployConfig, settings: Settings) -> int:
    notifier = build_notifier(config, settings)
    opened: list[logging.Logger] = []

    def log_factory(path: Path) -> Logger:
        run_logger = open_run_log(path, level=settings.log_level)
        opened.append(run_logger)
        return run_logger

    try:
        service = build_deployment_service(
            config, settings, notifier=notifier, log_factory=log_factory
        )
        outcome = service.deploy()
    finally:
        for run_logger in opened:
            close_run_log(run_logger)
        if isinstance(notifier, WebhookNotifier):
            notifier.close()
    return outcome.exit_code


def cmd_validate(config: DeployConfig, settings: Settings, *, test_webhooks: bool) -> int:
    notifier: Optional[Notifier] = None
    if test_webhooks:
        notifier = build_notifier(config, settings)
    try:
        results = validate_server(config, SubprocessCommandRunner(), notifier=notifier)
    finally:
        if isinstance(notifier, WebhookNotifier):
            notifier.close()
    for result in results:
        marker = "OK  " if result.ok else "FAIL"
        print(f"[{marker}] {result.name}: {result.detail}")
    return 0 if all(result.ok for result in results) else 1


def cmd_prune_logs(config: DeployConfig) -> int:
    removed = prune_run_logs(config.log_dir, config.max_logs)
    print(f"Removed {len(removed)} log file(s) from {config.log_dir}")
    return 0


def cmd_status(config: DeployConfig, settings: Settings) -> int:
    symlinks = FilesystemSymlinkManager(
        root_dir=settings.root_dir, prod_symlink=config.prod_symlink, clock=SystemClock()
    )
    print(f"current: {symlinks.current_target() or '-'}")
    print(f"previous: {symlinks.last_recorded_target() or '-'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-deployer",
        description="Deploy a Laravel application into timestamped release directories",
    )
    parser.add_argument("--root", default=None, help="Install root (default: DEPLOY_ROOT or cwd)")
    parser.add_argument(
        "--config", default=None, help="Configuration file (default: <root>/deploy-config.json)"
    )
    parser.add_argument("--env-file", default=None, help="Optional .env file with settings")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("deploy", help="Provision and promote a new release (default)")
    validate = subparsers.add_parser("validate", help="Check that the server is ready to deploy")
    validate.add_argument(
        "--test-webhooks",
        action="store_true",
        help="Send a test notification to every configured webhook",
    )
    subparsers.add_parser("prune-logs", help="Delete run logs beyond max_logs")
    subparsers.add_parser("status", help="Show the live and last recorded release")
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env(args.env_file)
    if args.root:
        root_dir = Path(args.root).expanduser().resolve()
        settings = dataclasses.replace(
            settings, root_dir=root_dir, config_path=root_dir / settings.config_path.name
        )
    if args.config:
        config_path = Path(args.config).expanduser()
        if not config_path.is_absolute():
            config_path = settings.root_dir / config_path
        settings = dataclasses.replace(settings, config_path=config_path)
    return settings


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = resolve_settings(args)
    configure_logging(settings.log_level)

    try:
        config = load_config(settings.config_path, settings.root_dir)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    command = args.command or "deploy"
    if command == "validate":
        return cmd_validate(config, settings, test_webhooks=args.test_webhooks)
    if command == "prune-logs":
        return cmd_prune_logs(config)
    if command == "status":
        return cmd_status(config, settings)
    return cmd_deploy(config, settings)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
