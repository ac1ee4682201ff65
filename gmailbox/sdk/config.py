"""Configuration management for gmailbox.

Handles loading and saving YAML configuration from ~/.config/gmailbox/ and
building the per-mailbox MailboxConfig objects the facade is constructed with.
"""

import os
import yaml
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional, Tuple

from .auth import DEFAULT_SCOPES, resolve_scope_alias
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SMTP_HOST = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 465
DEFAULT_BATCH_CONCURRENCY = 10


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    env_path = os.getenv("GMAILBOX_CONFIG_DIR")
    if env_path:
        return Path(env_path)
    return Path.home() / ".config" / "gmailbox"


def get_config_file_path() -> Path:
    """
    Get the path to the config file, respecting the GMAILBOX_CONFIG_FILE env var.
    """
    env_path = os.getenv("GMAILBOX_CONFIG_FILE")
    if env_path:
        return Path(env_path)
    return get_config_dir() / "config.yaml"


def _default_config() -> dict:
    return {"default_mailbox": None, "mailboxes": {}}


def load_config() -> dict:
    """Load the gmailbox configuration from the config file."""
    config_file = get_config_file_path()
    if not config_file.exists():
        logger.debug(f"Config file not found at {config_file}, using default config.")
        return _default_config()

    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error loading config file {config_file}: {e}") from e

    if config is None:
        return _default_config()
    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping")
    return _deep_merge(_default_config(), config)


def save_config(config_data: dict):
    """Save the gmailbox configuration to the config file."""
    config_file = get_config_file_path()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, 'w') as f:
        yaml.safe_dump(config_data, f, default_flow_style=False)
    logger.debug(f"Configuration saved to {config_file}")


def get_config_value(key: str, default: Any = None) -> Any:
    """Retrieve a configuration value using a dot-separated key."""
    config_data = load_config()
    keys = key.split('.')
    value = config_data
    for k in keys:
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default
    return value


def set_config_value(key: str, value: Any):
    """Set a configuration value using a dot-separated key and save."""
    config_data = load_config()
    keys = key.split('.')
    current_level = config_data
    for i, k in enumerate(keys):
        if i == len(keys) - 1:
            current_level[k] = value
        else:
            if k not in current_level or not isinstance(current_level[k], dict):
                current_level[k] = {}
            current_level = current_level[k]
    save_config(config_data)


def _deep_merge(base: dict, new: dict) -> dict:
    """Recursively merge dictionary `new` into `base`."""
    for k, v in new.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            base[k] = _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


@dataclass(frozen=True)
class MailboxConfig:
    """Identity, credentials and transport settings for one mailbox."""

    name: str
    user_id: str = "me"
    scopes: Tuple[str, ...] = field(default_factory=lambda: tuple(DEFAULT_SCOPES))
    token_file: Optional[str] = None
    token_dir: Optional[str] = None
    client_secret_file: Optional[str] = None
    from_address: Optional[str] = None
    app_password: Optional[str] = None
    smtp_host: str = DEFAULT_SMTP_HOST
    smtp_port: int = DEFAULT_SMTP_PORT
    smtp_use_tls: bool = True
    log_level: str = "INFO"
    batch_concurrency: int = DEFAULT_BATCH_CONCURRENCY

    def __post_init__(self):
        if not self.name:
            raise ConfigError("Mailbox name must not be empty")
        if self.batch_concurrency < 1:
            raise ConfigError(
                f"batch_concurrency must be >= 1, got {self.batch_concurrency}"
            )
        # Normalize aliases and lists so the frozen instance stays hashable.
        object.__setattr__(
            self, "scopes", tuple(resolve_scope_alias(s) for s in self.scopes)
        )
        log_level = str(self.log_level).upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigError(f"Unknown log_level {self.log_level!r}")
        object.__setattr__(self, "log_level", log_level)

    @property
    def token_path(self) -> Optional[Path]:
        """Resolved location of the stored OAuth token, if any."""
        if not self.token_file:
            return None
        path = Path(self.token_file).expanduser()
        if not path.is_absolute() and self.token_dir:
            path = Path(self.token_dir).expanduser() / path
        return path

    @property
    def client_secret_path(self) -> Optional[Path]:
        if not self.client_secret_file:
            return None
        path = Path(self.client_secret_file).expanduser()
        if not path.is_absolute() and self.token_dir:
            path = Path(self.token_dir).expanduser() / path
        return path


_MAILBOX_FIELDS = {
    "user_id", "scopes", "token_file", "token_dir", "client_secret_file",
    "from_address", "app_password", "smtp_host", "smtp_port", "smtp_use_tls",
    "log_level", "batch_concurrency",
}


def load_mailbox_config(name: Optional[str] = None) -> MailboxConfig:
    """
    Build a MailboxConfig from the config file.

    Args:
        name: Mailbox entry to load (defaults to `default_mailbox`)

    Returns:
        MailboxConfig for the requested mailbox

    Raises:
        ConfigError: If no mailbox is selected, the entry does not exist,
            or the entry contains unknown keys
    """
    config_data = load_config()
    mailboxes = config_data.get("mailboxes") or {}

    name = name or config_data.get("default_mailbox")
    if not name:
        if len(mailboxes) == 1:
            name = next(iter(mailboxes))
        else:
            raise ConfigError(
                "No mailbox selected. Pass --mailbox or set 'default_mailbox' "
                f"in {get_config_file_path()}"
            )

    entry = mailboxes.get(name)
    if entry is None:
        raise ConfigError(f"Mailbox not found in config: {name}")
    if not isinstance(entry, dict):
        raise ConfigError(f"Mailbox entry '{name}' must be a mapping")

    unknown = set(entry) - _MAILBOX_FIELDS
    if unknown:
        raise ConfigError(
            f"Unknown keys for mailbox '{name}': {', '.join(sorted(unknown))}"
        )

    settings = dict(entry)
    if "scopes" in settings:
        settings["scopes"] = tuple(settings["scopes"] or ())
    # Relative paths in the file are relative to the config directory.
    settings.setdefault("token_dir", str(get_config_file_path().parent))

    mailbox_config = MailboxConfig(name=name, **settings)

    app_password = os.getenv("GMAILBOX_APP_PASSWORD")
    if app_password:
        mailbox_config = replace(mailbox_config, app_password=app_password)

    logger.debug(f"Loaded mailbox config '{name}' from {get_config_file_path()}")
    return mailbox_config
