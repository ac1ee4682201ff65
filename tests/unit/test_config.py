"""
Unit tests for configuration loading.

Each test points GMAILBOX_CONFIG_FILE at an isolated file under tmp_path.
"""

from pathlib import Path

import pytest
import yaml

from gmailbox.sdk.config import (
    MailboxConfig,
    get_config_value,
    load_config,
    load_mailbox_config,
    set_config_value,
)
from gmailbox.sdk.exceptions import ConfigError


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "config.yaml"
    monkeypatch.setenv("GMAILBOX_CONFIG_FILE", str(path))
    monkeypatch.delenv("GMAILBOX_APP_PASSWORD", raising=False)
    return path


def _write(path: Path, data) -> None:
    with open(path, "w") as f:
        yaml.dump(data, f)


def test_missing_file_gives_defaults(config_file):
    assert load_config() == {"default_mailbox": None, "mailboxes": {}}


def test_missing_file_has_no_mailbox(config_file):
    with pytest.raises(ConfigError, match="No mailbox selected"):
        load_mailbox_config()


def test_load_named_mailbox(config_file):
    _write(config_file, {
        "default_mailbox": "personal",
        "mailboxes": {
            "personal": {"from_address": "me@example.com", "token_file": "personal.json",
                         "scopes": ["mail-modify", "mail-send"], "log_level": "debug"},
            "work": {"from_address": "me@work.example.com", "smtp_port": 587, "smtp_use_tls": False},
        },
    })

    personal = load_mailbox_config()
    work = load_mailbox_config("work")

    assert personal.name == "personal"
    assert personal.scopes == (
        "https://www.googleapis.com/auth/gmail.modify",
        "https://www.googleapis.com/auth/gmail.send",
    )
    assert personal.token_path == config_file.parent / "personal.json"
    assert personal.log_level == "DEBUG"
    assert work.smtp_port == 587
    assert work.smtp_use_tls is False
    assert work.batch_concurrency == 10


def test_single_mailbox_is_implicit_default(config_file):
    _write(config_file, {"mailboxes": {"only": {"user_id": "me"}}})

    assert load_mailbox_config().name == "only"


def test_unknown_mailbox(config_file):
    _write(config_file, {"mailboxes": {"only": {}}})

    with pytest.raises(ConfigError, match="Mailbox not found"):
        load_mailbox_config("other")


def test_unknown_keys_rejected(config_file):
    _write(config_file, {"mailboxes": {"only": {"pasword": "typo"}}})

    with pytest.raises(ConfigError, match="pasword"):
        load_mailbox_config()


def test_app_password_from_environment(config_file, monkeypatch):
    _write(config_file, {"mailboxes": {"only": {"app_password": "from-file"}}})
    monkeypatch.setenv("GMAILBOX_APP_PASSWORD", "from-env")

    assert load_mailbox_config().app_password == "from-env"


def test_invalid_yaml_raises_config_error(config_file):
    config_file.write_text("mailboxes: [unclosed")

    with pytest.raises(ConfigError):
        load_config()


def test_set_and_get_config_value(config_file):
    set_config_value("mailboxes.new.from_address", "new@example.com")

    assert get_config_value("mailboxes.new.from_address") == "new@example.com"
    assert get_config_value("mailboxes.missing.key", "fallback") == "fallback"
    assert load_mailbox_config("new").from_address == "new@example.com"


def test_mailbox_config_validation():
    with pytest.raises(ConfigError):
        MailboxConfig(name="")
    with pytest.raises(ConfigError):
        MailboxConfig(name="x", batch_concurrency=0)


def test_unknown_log_level_rejected():
    with pytest.raises(ConfigError):
        MailboxConfig(name="x", log_level="verbose")
    assert MailboxConfig(name="x", log_level="warning").log_level == "WARNING"


def test_mailbox_config_is_immutable():
    config = MailboxConfig(name="x")

    with pytest.raises(AttributeError):
        config.user_id = "other"


def test_absolute_token_file_ignores_token_dir(tmp_path):
    config = MailboxConfig(name="x", token_dir="/somewhere", token_file=str(tmp_path / "t.json"))

    assert config.token_path == tmp_path / "t.json"
