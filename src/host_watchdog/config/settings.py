"""Pydantic settings models for Host Watchdog configuration."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Literal, Optional, Tuple, Type

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from host_watchdog.models import ThresholdConfig


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads values from a YAML file.

    The YAML file path is determined by the CONFIG_PATH environment variable.
    """

    def get_field_value(
        self, field: Any, field_name: str
    ) -> Tuple[Any, str, bool]:
        """Get field value from YAML config."""
        yaml_config = self._load_yaml_config()
        field_value = yaml_config.get(field_name)
        return field_value, field_name, False

    def _load_yaml_config(self) -> Dict[str, Any]:
        """Load YAML configuration file."""
        config_path = os.environ.get("CONFIG_PATH")
        if not config_path:
            return {}

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except (FileNotFoundError, yaml.YAMLError, PermissionError):
            # Errors will be handled by loader.py
            return {}

    def __call__(self) -> Dict[str, Any]:
        """Return the YAML config values."""
        return self._load_yaml_config()


class WatchdogSettings(BaseSettings):
    """Host Watchdog configuration settings.

    Configuration is loaded in the following precedence (highest to lowest):
    1. Environment variables (WATCHDOG_ prefix)
    2. Docker secrets (_FILE pattern, applied via env)
    3. YAML configuration file (via CONFIG_PATH)
    4. Default values

    Settings are read once at startup; there is no runtime reload.
    """

    model_config = SettingsConfigDict(
        env_prefix="WATCHDOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Polling
    poll_interval: int = Field(
        default=60,
        description="Seconds between watchdog ticks",
        gt=0,
    )

    # Thresholds
    cpu_threshold: float = Field(
        default=80.0,
        description="CPU usage alert threshold (percent)",
        ge=0.0,
        le=100.0,
    )
    memory_threshold: float = Field(
        default=90.0,
        description="Memory usage alert threshold (percent)",
        ge=0.0,
        le=100.0,
    )
    disk_threshold: float = Field(
        default=85.0,
        description="Disk usage alert threshold (percent)",
        ge=0.0,
        le=100.0,
    )

    # Metrics source
    cpu_sample_interval: float = Field(
        default=1.0,
        description="Seconds over which CPU utilization is averaged",
        gt=0.0,
        le=30.0,
    )
    disk_paths: str = Field(
        default="",
        description="Comma-separated mount points to measure (empty = all physical partitions)",
    )

    # Inventory source
    docker_enabled: bool = Field(
        default=True,
        description="Monitor Docker containers",
    )
    docker_base_url: Optional[str] = Field(
        default=None,
        description="Docker Engine URL (defaults to DOCKER_HOST or the local socket)",
    )

    # Timeout and retry settings
    source_timeout: float = Field(
        default=30.0,
        description="Seconds allowed for one metrics sample or container listing",
        gt=0,
    )
    channel_timeout: float = Field(
        default=30.0,
        description="Seconds allowed for one notification send attempt",
        gt=0,
    )
    channel_max_attempts: int = Field(
        default=1,
        description="Send attempts per channel per alert (1 = no retry)",
        ge=1,
        le=10,
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: json (production) or text (development)",
    )

    # Email channel
    email_enabled: bool = Field(
        default=False,
        description="Enable email alerts",
    )
    smtp_host: Optional[str] = Field(
        default=None,
        description="SMTP server hostname",
    )
    smtp_port: int = Field(
        default=587,
        description="SMTP server port (587 for STARTTLS, 465 for implicit TLS)",
        ge=1,
        le=65535,
    )
    smtp_user: Optional[str] = Field(
        default=None,
        description="SMTP authentication username",
    )
    smtp_password: Optional[str] = Field(
        default=None,
        description="SMTP authentication password",
    )
    smtp_use_tls: bool = Field(
        default=True,
        description="Use TLS for SMTP connection",
    )
    email_from: str = Field(
        default="host-watchdog@localhost",
        description="From address for alert emails",
    )
    email_to: Optional[str] = Field(
        default=None,
        description="Recipient address for alert emails",
    )

    # Webhook channel
    webhook_enabled: bool = Field(
        default=False,
        description="Enable chat-ops webhook alerts",
    )
    webhook_url: Optional[str] = Field(
        default=None,
        description="Incoming webhook URL",
    )
    webhook_channel: Optional[str] = Field(
        default=None,
        description="Chat channel override (e.g. #monitoring)",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to set precedence.

        Order (first = highest priority):
        1. init_settings (constructor arguments - tests)
        2. env_settings (environment variables with WATCHDOG_ prefix)
        3. dotenv_settings (.env file)
        4. yaml_settings (CONFIG_PATH YAML file)
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized == "WARN":
            normalized = "WARNING"
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: DEBUG, INFO, WARNING, ERROR"
            )
        return normalized

    @model_validator(mode="after")
    def validate_email_config(self) -> "WatchdogSettings":
        """If email_enabled is True, smtp_host and email_to must be set."""
        if self.email_enabled and not self.smtp_host:
            raise ValueError("smtp_host is required when email_enabled is True")
        if self.email_enabled and not self.email_to:
            raise ValueError("email_to is required when email_enabled is True")
        return self

    @model_validator(mode="after")
    def validate_webhook_config(self) -> "WatchdogSettings":
        """If webhook_enabled is True, webhook_url must be set."""
        if self.webhook_enabled and not self.webhook_url:
            raise ValueError("webhook_url is required when webhook_enabled is True")
        return self

    def get_thresholds(self) -> ThresholdConfig:
        """Build the immutable threshold configuration."""
        return ThresholdConfig(
            cpu_threshold_percent=self.cpu_threshold,
            memory_threshold_percent=self.memory_threshold,
            disk_threshold_percent=self.disk_threshold,
        )

    def get_disk_paths(self) -> List[str]:
        """Parse disk_paths string into a list of mount points."""
        if not self.disk_paths:
            return []
        return [p.strip() for p in self.disk_paths.split(",") if p.strip()]
