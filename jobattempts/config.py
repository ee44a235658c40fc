"""
Configuration management for jobattempts.

Loads config.yaml from the jobattempts home directory
($JOBATTEMPTS_HOME, default ~/.config/jobattempts).
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from dotenv import load_dotenv


DEFAULT_HOME = "~/.config/jobattempts"

SNAPSHOT_BACKENDS = ("bigquery", "sqlite")


class ConfigError(Exception):
    """Configuration validation error."""
    pass


@dataclass
class JobAttemptsConfig:
    """Settings for the live API client, the snapshot store and logging."""
    api_server_uri: str
    namespace: str = "default"
    bearer_token_env: str = "K8S_BEARER_TOKEN"
    verify_tls: Union[bool, str] = True
    request_timeout: float = 30.0
    object_kind: str = "Framework"
    snapshot_backend: Optional[str] = None
    snapshot_table: str = "fc_objectsnapshots"
    bigquery_project: Optional[str] = None
    bigquery_dataset: Optional[str] = None
    sqlite_path: Optional[str] = None
    log_level: str = "INFO"
    log_format: str = "structured"
    env_file: Optional[str] = None

    def __post_init__(self):
        self.validate()

    @property
    def bearer_token(self) -> Optional[str]:
        """API token read from the environment (populated from env_file)."""
        return os.environ.get(self.bearer_token_env) or None

    @property
    def snapshot_enabled(self) -> bool:
        return self.snapshot_backend is not None

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.api_server_uri:
            raise ConfigError("api_server_uri is required")

        if self.snapshot_backend is not None and self.snapshot_backend not in SNAPSHOT_BACKENDS:
            raise ConfigError(
                f"snapshot_backend must be one of {SNAPSHOT_BACKENDS} or null, "
                f"got '{self.snapshot_backend}'"
            )

        if self.snapshot_backend == "bigquery" and not (self.bigquery_project and self.bigquery_dataset):
            raise ConfigError("bigquery snapshot backend requires bigquery_project and bigquery_dataset")

        if self.snapshot_backend == "sqlite" and not self.sqlite_path:
            raise ConfigError("sqlite snapshot backend requires sqlite_path")

        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")

        if self.log_format not in ("structured", "pretty"):
            raise ConfigError(f"log_format must be 'structured' or 'pretty', got '{self.log_format}'")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobAttemptsConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
        if "api_server_uri" not in data:
            raise ConfigError("api_server_uri is required")
        return cls(**data)


def get_jobattempts_home() -> Path:
    """Return the jobattempts home directory."""
    return Path(os.environ.get("JOBATTEMPTS_HOME", DEFAULT_HOME)).expanduser()


def load_config(config_path: Optional[Path] = None) -> JobAttemptsConfig:
    """
    Load jobattempts configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to <home>/config.yaml

    Returns:
        JobAttemptsConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If config is empty or invalid
    """
    if config_path is None:
        config_path = get_jobattempts_home() / "config.yaml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"jobattempts config.yaml not found at {config_path}. Run 'jobattempts init'."
        )

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if not data:
        raise ConfigError("Configuration file is empty")
    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping")

    env_file = data.get("env_file")
    if env_file:
        load_dotenv(Path(env_file).expanduser())

    return JobAttemptsConfig.from_dict(data)
