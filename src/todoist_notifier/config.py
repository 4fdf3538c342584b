"""Configuration management for the notifier."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

NOTIFIER_HOME = Path(os.environ.get("TODOIST_NOTIFIER_HOME", Path.home() / ".todoist-notifier"))
CONFIG_FILE = NOTIFIER_HOME / "config" / "notifier.conf"

# Config field -> environment variable. Environment wins over the conf file.
ENV_VARS = {
    "todoist_token": "TODOIST_TOKEN",
    "telegram_bot_token": "TELEGRAM_BOT_TOKEN",
    "telegram_chat_id": "TELEGRAM_CHAT_ID",
    "schedule": "SCHEDULE",
    "timezone": "TIMEZONE",
    "prioritize_time": "PRIORITIZE_TIME",
    "project_cache_ttl": "PROJECT_CACHE_TTL",
    "env": "ENV",
}


class ConfigError(Exception):
    """Raised when required configuration is missing or malformed."""

    pass


@dataclass
class Config:
    """Notifier configuration."""

    todoist_token: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: int = 0
    schedule: str = "0 9-23 * * *"
    timezone: str = "Europe/Kyiv"
    # HH:MM for the nightly prioritization prompt; empty disables it
    prioritize_time: str = ""
    project_cache_ttl: int = 24 * 60 * 60
    env: str = "prod"

    @property
    def dev(self) -> bool:
        return self.env == "dev"

    def validate(self) -> None:
        """Raise ConfigError listing every missing required setting."""
        missing = []
        if not self.todoist_token:
            missing.append("TODOIST_TOKEN")
        if not self.telegram_bot_token:
            missing.append("TELEGRAM_BOT_TOKEN")
        if not self.telegram_chat_id:
            missing.append("TELEGRAM_CHAT_ID")
        if missing:
            raise ConfigError(f"Required settings not configured: {', '.join(missing)}")


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def _apply(config: Config, key: str, value: str) -> None:
    match key:
        case "telegram_chat_id":
            try:
                config.telegram_chat_id = int(value)
            except ValueError:
                raise ConfigError(f"TELEGRAM_CHAT_ID must be an integer, got {value!r}") from None
        case "project_cache_ttl":
            try:
                config.project_cache_ttl = int(value)
            except ValueError:
                raise ConfigError(f"PROJECT_CACHE_TTL must be seconds, got {value!r}") from None
        case "todoist_token" | "telegram_bot_token" | "schedule" | "timezone" | "prioritize_time" | "env":
            setattr(config, key, value)
        case _:
            logger.warning(f"Unknown config key: {key}")


def load_config(config_file: Path | None = None, environ: dict | None = None) -> Config:
    """Load configuration from notifier.conf, then override from the environment."""
    config = Config()
    config_file = config_file or CONFIG_FILE
    environ = os.environ if environ is None else environ

    if config_file.exists():
        for line in config_file.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            _apply(config, key.strip().lower(), _unquote(value.strip()))

    for key, env_var in ENV_VARS.items():
        if environ.get(env_var):
            _apply(config, key, environ[env_var])

    return config
