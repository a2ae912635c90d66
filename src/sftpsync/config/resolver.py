"""
Configuration resolution and environment variable substitution.

Substitutes ${VAR_NAME} placeholders and overlays the well-known
environment variables onto the configuration tree.
"""

import os
import re
from typing import Any

# Environment variable -> dotted config path
ENV_OVERRIDES: dict[str, str] = {
    "SFTP_HOST": "sftp.host",
    "SFTP_PORT": "sftp.port",
    "SFTP_USER": "sftp.username",
    "SFTP_PASSWORD": "sftp.password",
    "SFTP_PRIVATE_KEY_PATH": "sftp.private_key_path",
    "LOCAL_PATH": "sync.local_dir",
    "REMOTE_PATH": "sync.remote_dir",
    "LOG_PATH": "logging.file",
    "INGEST_COMMAND": "ingestion.config.command",
}


def resolve_config(config_data: dict[str, Any], env: str = "dev") -> dict[str, Any]:
    """
    Resolve configuration with environment variable substitution.

    Substitutes ${VAR_NAME} and {env} placeholders, then applies ENV_OVERRIDES.

    Args:
        config_data: Configuration dictionary
        env: Current environment name

    Returns:
        Resolved configuration
    """
    resolved = _resolve_value(config_data, env)
    return apply_env_overrides(resolved, os.environ)


def apply_env_overrides(config_data: dict[str, Any], environ: Any) -> dict[str, Any]:
    """Set config values from environment variables that are present and non-empty."""
    for var_name, dotted in ENV_OVERRIDES.items():
        value = environ.get(var_name)
        if value in (None, ""):
            continue
        if var_name == "INGEST_COMMAND":
            ingestion = config_data.setdefault("ingestion", {})
            if ingestion.get("name") in (None, "noop"):
                ingestion["name"] = "command"
        _set_dotted(config_data, dotted, value)
    return config_data


def _set_dotted(data: dict[str, Any], dotted: str, value: Any) -> None:
    keys = dotted.split(".")
    node = data
    for k in keys[:-1]:
        child = node.get(k)
        if not isinstance(child, dict):
            child = {}
            node[k] = child
        node = child
    node[keys[-1]] = value


def _resolve_value(value: Any, env: str) -> Any:
    """Recursively resolve values in configuration."""
    if isinstance(value, dict):
        return {k: _resolve_value(v, env) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_value(item, env) for item in value]
    elif isinstance(value, str):
        # Substitute ${VAR_NAME}
        result = re.sub(r"\${([^}]+)}", lambda m: os.getenv(m.group(1), m.group(0)), value)
        # Substitute {env} placeholder
        result = result.replace("{env}", env)
        return result
    else:
        return value
