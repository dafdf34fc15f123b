"""Configuration management for the release deployer."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, get_args

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .models import NotificationEvent

CONFIG_FILENAME = "deploy-config.json"

REQUIRED_KEYS: tuple[str, ...] = (
    "deployment_prefix",
    "repository_url",
    "deploy_key",
    "env_file",
    "storage_symlink",
    "prod_symlink",
    "log_dir",
    "max_logs",
    "delete_failed_deploy",
)

WEBHOOK_EVENTS: tuple[str, ...] = get_args(NotificationEvent)


@dataclass(slots=True)
class Settings:
    """Runtime settings loaded from environment variables."""

    root_dir: Path
    config_path: Path
    log_level: str
    webhook_timeout_seconds: float
    step_timeout_seconds: Optional[float]

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Create settings from environment variables (optionally loading a .env file)."""
        if env_file:
            load_dotenv(env_file, override=True)
        else:
            load_dotenv(override=False)

        root_dir = Path(os.environ.get("DEPLOY_ROOT") or os.getcwd()).expanduser().resolve()
        raw_config = os.environ.get("DEPLOY_CONFIG_FILE")
        config_path = _resolve_path(raw_config, root_dir) if raw_config else root_dir / CONFIG_FILENAME
        step_timeout = os.environ.get("STEP_TIMEOUT_SECONDS", "").strip()

        return cls(
            root_dir=root_dir,
            config_path=config_path,
            log_level=os.environ.get("DEPLOY_LOG_LEVEL", "INFO").strip().upper() or "INFO",
            webhook_timeout_seconds=float(os.environ.get("WEBHOOK_TIMEOUT_SECONDS", "10")),
            step_timeout_seconds=float(step_timeout) if step_timeout else None,
        )


class DeployConfig(BaseModel):
    """Immutable deployment configuration read once per run."""

    model_config = ConfigDict(frozen=True)

    deployment_prefix: str
    repository_url: str
    deploy_key: Path
    env_file: Path
    storage_symlink: Path
    prod_symlink: str
    log_dir: Path
    max_logs: int = Field(..., gt=0)
    delete_failed_deploy: bool
    webhooks: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    @field_validator("delete_failed_deploy", mode="before")
    @classmethod
    def _coerce_bool(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in _TRUE_VALUES:
                return True
            if normalized in _FALSE_VALUES:
                return False
            raise ValueError(f"not a boolean: {value!r}")
        return value

    @field_validator("webhooks", mode="before")
    @classmethod
    def _normalize_webhooks(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("webhooks must be a mapping of event name to URL list")
        normalized: dict[str, tuple[str, ...]] = {}
        for event, urls in value.items():
            if event not in WEBHOOK_EVENTS:
                raise ValueError(
                    f"unknown webhook event {event!r} (expected one of {', '.join(WEBHOOK_EVENTS)})"
                )
            if urls is None:
                continue
            if isinstance(urls, str):
                urls = [urls]
            elif not isinstance(urls, (list, tuple)):
                raise ValueError(f"webhooks.{event} must be a URL or a list of URLs")
            cleaned = tuple(str(url).strip() for url in urls if url and str(url).strip())
            if cleaned:
                normalized[str(event)] = cleaned
        return normalized

    def webhook_urls(self, event: str) -> tuple[str, ...]:
        """Return the endpoints configured for an event (possibly none)."""
        return self.webhooks.get(event, ())

    def resolve(self, root_dir: Path) -> "DeployConfig":
        """Return a copy with relative paths anchored at the install root."""
        return self.model_copy(
            update={
                "deploy_key": _resolve_path(str(self.deploy_key), root_dir),
                "env_file": _resolve_path(str(self.env_file), root_dir),
                "storage_symlink": _resolve_path(str(self.storage_symlink), root_dir),
                "log_dir": _resolve_path(str(self.log_dir), root_dir),
            }
        )


def load_config(path: Path, root_dir: Optional[Path] = None) -> DeployConfig:
    """Read, validate and resolve the configuration document.

    Nothing on disk is touched besides reading ``path``; every required key
    must be present and non-empty or :class:`ConfigurationError` is raised.
    """
    if not path.is_file():
        raise ConfigurationError(f"Configuration file '{path}' not found.")
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Unable to read configuration file '{path}': {exc}") from exc
    return parse_config(document, root_dir or path.parent)


def parse_config(document: Any, root_dir: Path) -> DeployConfig:
    if not isinstance(document, dict):
        raise ConfigurationError("Configuration document must be a JSON object.")
    for key in REQUIRED_KEYS:
        if _is_blank(document.get(key)):
            raise ConfigurationError(f"Missing or empty value for '{key}' in configuration file.")
    try:
        config = DeployConfig.model_validate(document)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "configuration"
        raise ConfigurationError(f"Invalid value for '{location}': {first.get('msg')}") from exc
    return config.resolve(root_dir)


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip() or value.strip() == "null"
    return False


def _resolve_path(raw: str, root_dir: Path) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = root_dir / path
    return path
