"""
Configuration management for pluginscope.

Precedence: explicit values > env vars > .env file > config.yaml > defaults

Config file: $PLUGINSCOPE_CONFIG or ~/.config/pluginscope/config.yaml
"""

import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Keys accepted from config.yaml
CONFIG_KEYS = {
    "github_token", "archive_base_url", "archive_format", "request_timeout",
    "user_agent", "allow_manifestless", "log_level", "log_format",
}


def get_config_path() -> Path:
    """Resolve the config.yaml location from env or the default."""
    raw = os.environ.get("PLUGINSCOPE_CONFIG", "")
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".config" / "pluginscope" / "config.yaml"


def _load_yaml_config(config_file: Path) -> dict[str, Any]:
    """Load config.yaml, returning {} when missing or unusable."""
    if not config_file.exists():
        return {}
    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(f"config.yaml is not a dict, ignoring: {config_file}")
            return {}
        return data
    except (yaml.YAMLError, OSError) as e:
        logger.warning(f"Error loading config.yaml: {e}")
        return {}


class Settings(BaseSettings):
    """Discovery configuration. Precedence: env vars > .env > config.yaml > defaults."""

    # GitHub access
    github_token: Optional[str] = Field(
        default=None,
        description="Token sent as a bearer credential (falls back to GITHUB_TOKEN)",
    )
    archive_base_url: str = Field(
        default="https://codeload.github.com",
        description="Base URL of the codeload-style archive endpoint",
    )
    archive_format: Literal["tar.gz", "zip"] = Field(
        default="tar.gz",
        description="Archive container requested from the endpoint",
    )
    request_timeout: float = Field(default=60.0, description="Transport timeout in seconds")
    user_agent: str = Field(default="pluginscope/0.1", description="User-Agent header")

    # Discovery
    allow_manifestless: bool = Field(
        default=False,
        description="Synthesize a plugin from skills/, commands/, agents/ when no manifest exists",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    model_config = {
        "env_prefix": "PLUGINSCOPE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _inject_yaml_config(cls, data: Any) -> Any:
        """Inject config.yaml values as fallbacks below env vars and .env."""
        if not isinstance(data, dict):
            data = {}

        yaml_config = _load_yaml_config(get_config_path())

        for key, value in yaml_config.items():
            if key not in CONFIG_KEYS:
                logger.debug(f"Ignoring unknown config key: {key}")
                continue
            if key not in data or data[key] is None:
                env_val = os.environ.get(f"PLUGINSCOPE_{key.upper()}")
                if env_val is None:
                    data[key] = value

        if not data.get("github_token") and not os.environ.get("PLUGINSCOPE_GITHUB_TOKEN"):
            token = os.environ.get("GITHUB_TOKEN")
            if token:
                data["github_token"] = token

        return data


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the shared settings instance, creating it on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
