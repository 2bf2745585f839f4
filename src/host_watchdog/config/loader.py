"""Configuration loading with YAML, environment override, and Docker secrets support."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml
from pydantic import ValidationError

from host_watchdog.config.settings import WatchdogSettings
from host_watchdog.exceptions import WatchdogError

ENV_PREFIX = "WATCHDOG_"
SECRET_SUFFIX = "_FILE"


class ConfigurationError(WatchdogError):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def resolve_file_secrets() -> Dict[str, str]:
    """Resolve Docker secrets pattern (_FILE suffix) from environment.

    Scans environment for variables matching WATCHDOG_*_FILE pattern,
    reads the file contents, and returns a dict of the base variable
    names to their values.

    Example:
        WATCHDOG_SMTP_PASSWORD_FILE=/run/secrets/smtp_password
        -> Returns {"SMTP_PASSWORD": "<file contents>"}
    """
    secrets: Dict[str, str] = {}

    for key, filepath in os.environ.items():
        if key.startswith(ENV_PREFIX) and key.endswith(SECRET_SUFFIX):
            base_name = key[len(ENV_PREFIX) : -len(SECRET_SUFFIX)]
            path = Path(filepath)
            if not path.exists():
                structlog.get_logger().warning(
                    "secret_file_not_found",
                    env_var=key,
                    path=filepath,
                )
                continue
            try:
                secrets[base_name] = path.read_text().strip()
            except PermissionError:
                raise ConfigurationError(
                    f"Cannot read secret file '{filepath}' specified by {key}: permission denied"
                )
            except OSError as e:
                raise ConfigurationError(
                    f"Error reading secret file '{filepath}' specified by {key}: {e}"
                )

    return secrets


def load_yaml_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file if specified.

    Args:
        config_path: Path to YAML config file. If None, checks CONFIG_PATH env var.

    Returns:
        Dict of configuration values from YAML, or empty dict if no file.
    """
    path = config_path or os.environ.get("CONFIG_PATH")

    if not path:
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            hint="Ensure CONFIG_PATH points to a valid YAML file, or unset it to use environment variables only.",
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file {path}: {e}")
    except PermissionError:
        raise ConfigurationError(f"Cannot read configuration file {path}: permission denied")


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[str]:
    """Format Pydantic validation errors into user-friendly messages."""
    messages: List[str] = []
    for error in errors:
        loc = ".".join(str(part) for part in error.get("loc", []))
        msg = error.get("msg", "Invalid value")
        input_val = error.get("input")

        if not loc:
            messages.append(f"Configuration error: {msg}")
        elif "missing" in msg.lower() or "required" in msg.lower():
            hint = f"Set {ENV_PREFIX}{loc.upper()} environment variable or add '{loc}:' to config file."
            messages.append(f"Configuration error: '{loc}' is required. {hint}")
        elif input_val is not None:
            messages.append(f"Configuration error: '{loc}' {msg}, got: {input_val}")
        else:
            messages.append(f"Configuration error: '{loc}' {msg}")

    return messages


def load_config(config_path: Optional[str] = None) -> WatchdogSettings:
    """Load and validate configuration.

    Args:
        config_path: Optional path to YAML config file (sets CONFIG_PATH env).

    Returns:
        Validated WatchdogSettings instance.

    Raises:
        ConfigurationError: If configuration file cannot be read.
        SystemExit: If validation fails (exits with code 1 after printing errors).
    """
    if config_path:
        os.environ["CONFIG_PATH"] = config_path

    # Surface YAML problems with a clear message before pydantic swallows them
    _ = load_yaml_config()

    secrets = resolve_file_secrets()
    for key, value in secrets.items():
        env_key = f"{ENV_PREFIX}{key}"
        if env_key not in os.environ:
            os.environ[env_key] = value

    try:
        return WatchdogSettings()
    except ValidationError as e:
        for msg in format_validation_errors(e.errors()):
            print(msg, file=sys.stderr)
        sys.exit(1)
