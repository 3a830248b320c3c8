"""Configuration with JSON/YAML file and env variable support.

Load order (later overrides earlier):
1. config.json - base configuration
2. config.yml - optional repo-root overlay
3. Environment variables - runtime overrides (``RELAY_`` prefix, plus ``PORT``)
"""

import json
import os
from pathlib import Path

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.enums import ResolverBackend

ENV_PREFIX = "RELAY_"


def _find_repo_root(*, start: Path) -> Path:
    """Best-effort repository root discovery.

    Relative paths (log files, config overlays) are resolved against the repo
    root so the service can be launched from any working directory.

    Root detection:
    - first directory containing `pyproject.toml`
    - otherwise fall back to the current working directory
    """

    try:
        start = start.resolve()
        for p in [start, *start.parents]:
            if (p / "pyproject.toml").exists():
                return p
    except OSError:
        pass

    return Path.cwd()


class RelayConfig(BaseSettings):
    """Service configuration.

    Prefix: RELAY_ (e.g., RELAY_EXTRACTOR_TIMEOUT_SECONDS). The listening
    port is also read from the plain ``PORT`` variable.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # HTTP server
    api_host: str = Field(default="0.0.0.0")
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("port", "PORT", f"{ENV_PREFIX}PORT"),
    )

    # Admission control
    rate_limit_window_seconds: float = Field(default=60.0)
    rate_limit_max_requests: int = Field(default=5)
    trust_forwarded_for: bool = Field(
        default=False,
        description=(
            "Identify clients by the left-most X-Forwarded-For entry instead of "
            "the peer address. Enable only behind a trusted reverse proxy."
        ),
    )

    # Media URL resolution
    resolver_backend: ResolverBackend = Field(default=ResolverBackend.SUBPROCESS)
    extractor_command: str = Field(default="yt-dlp")
    extractor_timeout_seconds: float = Field(default=30.0)

    # Upstream relay
    upstream_connect_timeout_seconds: float = Field(default=10.0)
    upstream_read_timeout_seconds: float = Field(
        default=30.0,
        description=(
            "Idle bound for the upstream transfer: the relay gives up when no "
            "byte arrives for this long."
        ),
    )
    platform_referer: str = Field(default="https://www.tiktok.com/")

    # Web UI
    web_ui_enabled: bool = Field(default=True)

    # Logging
    log_level: str = Field(default="INFO")
    error_log_file_enabled: bool = Field(default=False)
    error_log_file_path: str = Field(default="./logs/errors.log")
    error_log_level: str = Field(default="WARNING")
    error_log_max_bytes: int = Field(default=10_485_760)
    error_log_backup_count: int = Field(default=5)

    @field_validator(
        "rate_limit_window_seconds",
        "rate_limit_max_requests",
        "extractor_timeout_seconds",
        "upstream_connect_timeout_seconds",
        "upstream_read_timeout_seconds",
    )
    @classmethod
    def _must_be_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("port")
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("port must be between 1 and 65535")
        return value

    @classmethod
    def from_json_file(cls, config_path: str = "config.json") -> "RelayConfig":
        """Load config from JSON (+ optional config.yml) with env var overrides.

        Args:
            config_path: Path to JSON config file.

        Returns:
            Configured RelayConfig instance.
        """
        config_data: dict = {}

        json_path = Path(config_path)
        if json_path.exists():
            with open(json_path) as f:
                config_data = json.load(f)

        # Precedence: config.json < config.yml < env
        cfg_yml = _find_repo_root(start=Path(__file__)) / "config.yml"
        if cfg_yml.is_file():
            with cfg_yml.open("r", encoding="utf-8") as f:
                yml_data = yaml.safe_load(f) or {}
            if isinstance(yml_data, dict):
                config_data.update(yml_data)

        # Drop file values that an env var overrides; init kwargs would
        # otherwise win over the environment.
        for key in list(config_data):
            env_keys = {f"{ENV_PREFIX}{key.upper()}"}
            if key == "port":
                env_keys.add("PORT")
            if env_keys & set(os.environ):
                del config_data[key]

        return cls(**config_data)
