import json

import pytest
from pydantic import ValidationError

from release_deployer.config import REQUIRED_KEYS, Settings, load_config, parse_config
from release_deployer.errors import ConfigurationError


def base_document(**overrides):
    document = {
        "deployment_prefix": "prod",
        "repository_url": "git@github.com:acme/shop.git",
        "deploy_key": "keys/deploy_key",
        "env_file": "shared/.env",
        "storage_symlink": "shared/storage",
        "prod_symlink": "current",
        "log_dir": "logs",
        "max_logs": 10,
        "delete_failed_deploy": True,
    }
    document.update(overrides)
    return document


def test_load_config_resolves_relative_paths(tmp_path):
    path = tmp_path / "deploy-config.json"
    path.write_text(json.dumps(base_document()))

    loaded = load_config(path)

    assert loaded.deployment_prefix == "prod"
    assert loaded.deploy_key == tmp_path / "keys/deploy_key"
    assert loaded.log_dir == tmp_path / "logs"
    assert loaded.max_logs == 10
    assert loaded.delete_failed_deploy is True
    assert loaded.webhooks == {}


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "missing.json")


def test_load_config_invalid_json(tmp_path):
    path = tmp_path / "deploy-config.json"
    path.write_text("{not json")

    with pytest.raises(ConfigurationError):
        load_config(path)


@pytest.mark.parametrize("key", REQUIRED_KEYS)
def test_missing_required_key_is_rejected(tmp_path, key):
    document = base_document()
    del document[key]

    with pytest.raises(ConfigurationError, match=key):
        parse_config(document, tmp_path)


@pytest.mark.parametrize("value", ["", "   ", None, "null"])
def test_empty_required_value_is_rejected(tmp_path, value):
    with pytest.raises(ConfigurationError, match="repository_url"):
        parse_config(base_document(repository_url=value), tmp_path)


def test_false_flag_is_not_treated_as_missing(tmp_path):
    loaded = parse_config(base_document(delete_failed_deploy=False), tmp_path)

    assert loaded.delete_failed_deploy is False


def test_string_values_are_coerced(tmp_path):
    loaded = parse_config(base_document(delete_failed_deploy="false", max_logs="5"), tmp_path)

    assert loaded.delete_failed_deploy is False
    assert loaded.max_logs == 5


@pytest.mark.parametrize("value", [0, -3, "many"])
def test_invalid_max_logs(tmp_path, value):
    with pytest.raises(ConfigurationError, match="max_logs"):
        parse_config(base_document(max_logs=value), tmp_path)


def test_invalid_flag(tmp_path):
    with pytest.raises(ConfigurationError, match="delete_failed_deploy"):
        parse_config(base_document(delete_failed_deploy="sometimes"), tmp_path)


def test_webhooks_are_normalized(tmp_path):
    loaded = parse_config(
        base_document(
            webhooks={
                "on_start": "https://hooks.example/start",
                "on_error": ["https://hooks.example/a", "", "  "],
                "on_success": [],
            }
        ),
        tmp_path,
    )

    assert loaded.webhook_urls("on_start") == ("https://hooks.example/start",)
    assert loaded.webhook_urls("on_error") == ("https://hooks.example/a",)
    assert loaded.webhook_urls("on_success") == ()
    assert "on_success" not in loaded.webhooks


def test_null_webhooks_means_none(tmp_path):
    loaded = parse_config(base_document(webhooks=None), tmp_path)

    assert loaded.webhooks == {}


def test_config_is_immutable(tmp_path):
    loaded = parse_config(base_document(), tmp_path)

    with pytest.raises(ValidationError):
        loaded.deployment_prefix = "other"


def test_settings_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DEPLOY_ROOT", str(tmp_path))
    monkeypatch.setenv("DEPLOY_CONFIG_FILE", "conf/deploy.json")
    monkeypatch.setenv("DEPLOY_LOG_LEVEL", "debug")
    monkeypatch.setenv("WEBHOOK_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("STEP_TIMEOUT_SECONDS", "600")

    settings = Settings.from_env()

    assert settings.root_dir == tmp_path.resolve()
    assert settings.config_path == tmp_path.resolve() / "conf/deploy.json"
    assert settings.log_level == "DEBUG"
    assert settings.webhook_timeout_seconds == 2.5
    assert settings.step_timeout_seconds == 600


def test_settings_defaults(tmp_path, monkeypatch):
    for name in (
        "DEPLOY_ROOT",
        "DEPLOY_CONFIG_FILE",
        "DEPLOY_LOG_LEVEL",
        "WEBHOOK_TIMEOUT_SECONDS",
        "STEP_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    settings = Settings.from_env(str(tmp_path / "absent.env"))

    assert settings.root_dir == tmp_path.resolve()
    assert settings.config_path == tmp_path.resolve() / "deploy-config.json"
    assert settings.log_level == "INFO"
    assert settings.step_timeout_seconds is None


def test_settings_loaded_from_env_file(tmp_path, monkeypatch):
    monkeypatch.setenv("DEPLOY_ROOT", "placeholder")
    monkeypatch.setenv("DEPLOY_LOG_LEVEL", "placeholder")
    env_file = tmp_path / "deployer.env"
    env_file.write_text(f"DEPLOY_ROOT={tmp_path}\nDEPLOY_LOG_LEVEL=warning\n")

    settings = Settings.from_env(str(env_file))

    assert settings.root_dir == tmp_path.resolve()
    assert settings.log_level == "WARNING"


@pytest.mark.parametrize("value", [5, {"url": "https://hooks.example"}, True])
def test_webhook_urls_must_be_string_or_list(tmp_path, value):
    with pytest.raises(ConfigurationError, match="webhooks"):
        parse_config(base_document(webhooks={"on_start": value}), tmp_path)


def test_unknown_webhook_event_is_rejected(tmp_path):
    with pytest.raises(ConfigurationError, match="on_deploy"):
        parse_config(base_document(webhooks={"on_deploy": ["https://hooks.example"]}), tmp_path)


def test_malformed_webhooks_exit_cleanly_from_load_config(tmp_path):
    path = tmp_path / "deploy-config.json"
    path.write_text(json.dumps(base_document(webhooks={"on_error": 5})))

    with pytest.raises(ConfigurationError):
        load_config(path)
