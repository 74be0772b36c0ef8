"""Configuration loading and validation."""

from .models import (
    AppConfig,
    CategoryRule,
    DatabaseConfig,
    FetchConfig,
    LoggingConfig,
    NotificationConfig,
    PortalConfig,
    RetryPolicy,
    ScheduleConfig,
    SchedulerConfig,
    ScheduleType,
    StorageConfig,
)
from .loader import (
    ConfigError,
    load_all_portal_configs,
    load_app_config,
    load_portal_config,
    portal_overrides,
)

__all__ = [
    "AppConfig",
    "CategoryRule",
    "DatabaseConfig",
    "FetchConfig",
    "LoggingConfig",
    "NotificationConfig",
    "PortalConfig",
    "RetryPolicy",
    "ScheduleConfig",
    "SchedulerConfig",
    "ScheduleType",
    "StorageConfig",
    "ConfigError",
    "load_all_portal_configs",
    "load_app_config",
    "load_portal_config",
    "portal_overrides",
]
