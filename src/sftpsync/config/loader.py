"""
Configuration loading.

Settings come from the environment (optionally seeded from a `.env` file), on
top of an optional `sftpsync.yaml` (+ `sftpsync.{env}.yaml`) in the project
directory. Environment variables win over file values.
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from sftpsync.config.resolver import resolve_config
from sftpsync.connections.sftp import SFTPConfig
from sftpsync.exceptions import ConfigurationError
from sftpsync.sync.types import (
    DEFAULT_EXTENSION,
    DEFAULT_OPERATION_TIMEOUT_S,
    DEFAULT_RECONCILE_INTERVAL_S,
    DEFAULT_RECONNECT_DELAY_S,
    IngestorSpec,
    SyncSettings,
)

CONFIG_FILENAME = "sftpsync.yaml"

DEFAULTS: dict[str, Any] = {
    "sftp": {"port": 22},
    "sync": {
        "local_dir": "files",
        "remote_dir": "/",
        "extension": DEFAULT_EXTENSION,
        "reconcile_interval_s": DEFAULT_RECONCILE_INTERVAL_S,
        "reconnect_delay_s": DEFAULT_RECONNECT_DELAY_S,
        "operation_timeout_s": DEFAULT_OPERATION_TIMEOUT_S,
        "watch_local_dir": True,
    },
    "logging": {"level": "INFO", "file": "log.txt", "console_type": "plain"},
    "ingestion": {"name": "noop"},
}


class Config:
    """sftpsync configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any]):
        self.data = data

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        keys = key.split(".")
        value = self.data
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def __getitem__(self, key: str) -> Any:
        """Dict-like access: config['key'] or config['nested.key']."""
        if "." in key:
            return self.get(key)
        if key in self.data:
            return self.data[key]
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def validate(self) -> None:
        """Validate configuration structure and content."""
        errors = []

        if not self.get("sftp.host"):
            errors.append("sftp.host is required (set SFTP_HOST)")

        try:
            port = int(self.get("sftp.port", 22))
            if not 0 < port < 65536:
                errors.append(f"sftp.port out of range: {port}")
        except (TypeError, ValueError):
            errors.append(f"sftp.port must be an integer, got {self.get('sftp.port')!r}")

        for key in ("reconcile_interval_s", "reconnect_delay_s", "operation_timeout_s"):
            value = self.get(f"sync.{key}")
            try:
                if float(value) <= 0:
                    errors.append(f"sync.{key} must be > 0, got {value}")
            except (TypeError, ValueError):
                errors.append(f"sync.{key} must be a number, got {value!r}")

        extension = str(self.get("sync.extension", ""))
        if not extension.startswith(".") or len(extension) < 2:
            errors.append(f"sync.extension must look like '.csv', got {extension!r}")

        if errors:
            raise ConfigurationError("Invalid configuration:\n  " + "\n  ".join(errors))


def load_config(project_path: Path | None = None, env: str | None = None) -> Config:
    """
    Load sftpsync configuration.

    Args:
        project_path: Directory holding `.env` / `sftpsync.yaml` (default: current directory)
        env: Environment name; selects the `sftpsync.{env}.yaml` overlay

    Returns:
        Config instance with merged configuration
    """
    if project_path is None:
        project_path = Path.cwd()

    # Real environment variables take precedence over .env
    load_dotenv(project_path / ".env", override=False)

    config_data: dict[str, Any] = {}
    _merge_dict(config_data, _copy(DEFAULTS))
    _merge_dict(config_data, _read_yaml(project_path / CONFIG_FILENAME))
    if env:
        _merge_dict(config_data, _read_yaml(project_path / f"sftpsync.{env}.yaml"))

    config_data = resolve_config(config_data, env or "dev")
    return Config(config_data)


def build_settings(config: Config, project_path: Path | None = None) -> SyncSettings:
    """
    Turn a loaded Config into typed SyncSettings.

    Relative local directories are resolved against `project_path` when given.
    """
    config.validate()
    sync = config.get("sync", {})

    local_dir = Path(str(sync["local_dir"]))
    if project_path is not None and not local_dir.is_absolute():
        local_dir = project_path / local_dir

    ingestion = config.get("ingestion", {}) or {}
    return SyncSettings(
        sftp=SFTPConfig.from_config(config.get("sftp", {})),
        local_dir=str(local_dir),
        remote_dir=str(sync["remote_dir"]),
        extension=str(sync["extension"]),
        reconcile_interval_s=float(sync["reconcile_interval_s"]),
        reconnect_delay_s=float(sync["reconnect_delay_s"]),
        operation_timeout_s=float(sync["operation_timeout_s"]),
        watch_local_dir=_as_bool(sync.get("watch_local_dir", True)),
        ingestion=IngestorSpec(name=str(ingestion.get("name", "noop")), config=ingestion.get("config")),
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    if not path.is_file():
        raise ConfigurationError(f"Configuration path is not a file: {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        if hasattr(e, "problem_mark"):
            mark = e.problem_mark
            raise ConfigurationError(
                f"Error parsing {path.name} at line {mark.line + 1}, column {mark.column + 1}:\n"
                f"  {e}\n"
                f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes"
            ) from e
        raise ConfigurationError(f"Error parsing {path.name}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping, got {type(data).__name__}")
    return data


def _merge_dict(base: dict, override: dict):
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value


def _copy(data: dict[str, Any]) -> dict[str, Any]:
    return {k: _copy(v) if isinstance(v, dict) else v for k, v in data.items()}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)
