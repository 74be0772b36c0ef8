"""
Configuration schema.

app.yaml maps onto AppConfig; each file under <config_dir>/portals/ maps
onto one PortalConfig. Every section has defaults, so an empty or
missing app.yaml gives a working setup that collects Comprasnet twice a
day and once a week.
"""

from __future__ import annotations

from datetime import time
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class ScheduleType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    CRON = "cron"


# =============================================================================
# HTTP
# =============================================================================

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class FetchConfig(BaseModel):
    """Outbound HTTP settings shared by every portal."""

    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)
    # Off only for local mirrors with self-signed certificates
    verify_tls: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    chunk_size: int = Field(default=64 * 1024, ge=1024, description="Bytes per streamed download chunk")
    download_concurrency: int = Field(default=4, ge=1, le=20)


# =============================================================================
# Portals
# =============================================================================


class PortalConfig(BaseModel):
    """Where a portal lives and how its pages are laid out.

    The selector defaults match Comprasnet's result and detail tables.
    """

    name: str = Field(..., min_length=1, max_length=100, description="Portal id, e.g. comprasnet")
    display_name: str | None = None
    base_url: str = Field(..., description="Origin that relative links resolve against")
    search_path: str = "/"
    row_selector: str = "table.resultados tr"
    min_columns: int = Field(default=6, ge=1, description="Rows with fewer cells are not notices")
    detail_table_selector: str = "table.detalhes tr"
    document_link_pattern: str = Field(default="edital", description="Substring marking document hrefs")
    source_tag: str | None = Field(default=None, description="Notice source value; display name if unset")
    enabled: bool = True
    implemented: bool = Field(default=True, description="False while the adapter is a placeholder")

    @field_validator("base_url")
    @classmethod
    def http_origin(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v.rstrip("/")

    @property
    def effective_display_name(self) -> str:
        return self.display_name or self.name

    @property
    def effective_source_tag(self) -> str:
        return self.source_tag or self.effective_display_name

    @property
    def search_url(self) -> str:
        return f"{self.base_url}/{self.search_path.lstrip('/')}"


# =============================================================================
# Categories, storage, notifications
# =============================================================================


class CategoryRule(BaseModel):
    """A category and the object-text substrings that select it."""

    name: str = Field(..., min_length=1)
    keywords: list[str] = Field(..., min_length=1)
    description: str | None = None

    @field_validator("keywords")
    @classmethod
    def lowercase_keywords(cls, v: list[str]) -> list[str]:
        return [k.lower() for k in v if k.strip()]


class StorageConfig(BaseModel):
    documents_dir: Path = Path("data/documents")


class NotificationConfig(BaseModel):
    # Users holding this role hear about every newly collected notice
    reviewer_role: str = Field(default="analyst", min_length=1)


# =============================================================================
# Scheduling
# =============================================================================


class RetryPolicy(BaseModel):
    """Backoff for scheduled runs whose listing fetch failed transiently."""

    max_attempts: int = Field(default=3, ge=1, le=10)
    min_wait_seconds: float = Field(default=30.0, ge=0)
    max_wait_seconds: float = Field(default=600.0, ge=0)


class ScheduleConfig(BaseModel):
    """One named schedule: which portal, when, and how far back to look.

    daily and weekly schedules fire at each of times_of_day (weekly only on
    day_of_week); cron schedules use cron_expression instead.
    """

    name: str = Field(..., min_length=1, max_length=100)
    enabled: bool = True
    portal: str = "comprasnet"
    schedule_type: ScheduleType = ScheduleType.DAILY
    times_of_day: list[time] = Field(default_factory=lambda: [time(9, 0)], min_length=1)
    day_of_week: str = "mon"
    cron_expression: str | None = Field(default=None, description="Five-field crontab line")
    timezone: str = "America/Sao_Paulo"
    lookback_days: int = Field(default=1, ge=0, le=90, description="Days before today in the date range")
    max_runtime_minutes: int = Field(default=120, ge=1, description="Run lock lifetime")


def _default_schedules() -> list[ScheduleConfig]:
    return [
        ScheduleConfig(
            name="collect_comprasnet_daily",
            times_of_day=[time(9, 0), time(15, 0)],
        ),
        ScheduleConfig(
            name="collect_comprasnet_weekly",
            schedule_type=ScheduleType.WEEKLY,
            times_of_day=[time(23, 0)],
            day_of_week="mon",
            lookback_days=7,
        ),
    ]


class SchedulerConfig(BaseModel):
    enabled: bool = True
    data_store_url: str = Field(
        default="sqlite+aiosqlite:///data/schedules.db",
        description="Where APScheduler keeps its schedules and jobs",
    )
    schedules: list[ScheduleConfig] = Field(default_factory=_default_schedules)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)


# =============================================================================
# Database and logging
# =============================================================================


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///data/bidwatch.db"
    echo: bool = Field(default=False, description="Log every SQL statement")
    pool_size: int = Field(default=5, ge=1, le=50, description="Ignored for SQLite")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Console level; the file always gets DEBUG")
    file: Path | None = Path("logs/bidwatch.log")
    json_format: bool = True
    rich_console: bool = True


# =============================================================================
# app.yaml
# =============================================================================


class AppConfig(BaseModel):
    """Everything in app.yaml."""

    config_dir: Path = Path("configs")
    data_dir: Path = Path("data")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    # Checked in order; empty means the built-in table
    categories: list[CategoryRule] = Field(default_factory=list)
    default_category: str = Field(default="Other", min_length=1)
    default_status: str = Field(default="New", min_length=1)

    portals: dict[str, PortalConfig] = Field(default_factory=dict, description="Overrides keyed by portal id")

    @property
    def portals_dir(self) -> Path:
        return self.config_dir / "portals"

    def ensure_directories(self) -> None:
        """Create the config, data and documents directories and the log file's parent."""
        directories = [self.config_dir, self.data_dir, self.storage.documents_dir]
        if self.logging.file:
            directories.append(self.logging.file.parent)
        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)
