"""
Configuration Management Module

Responsibilities:
1. Read process settings (database path, log level) from environment variables
2. Read aggregation config (schedules, cache, backfill, stock minimums) from
   aggregation_config.json
3. Config validation and defaults

Environment Variables:
    LEDGERPULSE_DB_PATH      - SQLite database path (default: data/ledgerpulse.db)
    LEDGERPULSE_REPORTS_DIR  - Directory for job status files (default: reports)
    LEDGERPULSE_LOG_LEVEL    - Logging level (default: INFO)
    LEDGERPULSE_LOG_FILE     - Optional log file path
    LEDGERPULSE_CONFIG_PATH  - Aggregation config JSON path
"""

import json
import re
from pathlib import Path
from typing import Optional

import pytz
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledgerpulse.exceptions import ConfigError

_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

# Minimum stock (kg/units) per material before a low-stock alert is raised
DEFAULT_MIN_LEVELS: dict[str, float] = {
    "ferro": 100,
    "aluminio": 80,
    "cobre": 50,
    "latinha": 200,
    "panela": 25,
    "bloco2": 15,
    "chapa": 50,
    "perfil pintado": 30,
    "perfil natural": 30,
    "bloco": 20,
    "metal": 60,
    "inox": 30,
    "bateria": 40,
    "motor_gel": 10,
    "roda": 15,
    "papelao": 100,
    "rad_metal": 35,
    "rad_cobre": 30,
    "rad_chapa": 25,
    "tela": 50,
    "antimonio": 10,
    "cabo_ai": 40,
    "tubo_limpo": 20,
}


class ServiceConfig(BaseSettings):
    """Process-level settings.

    Loaded in this priority order:
    1. Environment variables (LEDGERPULSE_*)
    2. .env file (if exists)
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGERPULSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_path: Path = Field(default=Path("data/ledgerpulse.db"), description="SQLite database path")
    reports_dir: Path = Field(default=Path("reports"), description="Job status directory")
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Optional log file")
    config_path: str = Field(default="aggregation_config.json", description="Aggregation config JSON")


class ScheduleConfig(BaseSettings):
    """Scheduled job configuration (HH:MM, local to `timezone`)."""

    enabled: bool = Field(True, description="Enable the job scheduler")
    timezone: str = Field("America/Sao_Paulo", description="Business timezone for date keys and schedules")
    rollup_time: str = Field("00:05", description="Finalize yesterday's daily aggregate")
    daily_reset_time: str = Field("00:00", description="Zero today counters")
    monthly_reset_time: str = Field("00:00", description="Zero month counters on day 1")
    low_stock_time: str = Field("08:00", description="Stock threshold check")

    @field_validator("rollup_time", "daily_reset_time", "monthly_reset_time", "low_stock_time")
    def validate_time(cls, value: str) -> str:
        if not _TIME_PATTERN.match(value):
            raise ValueError(f"Invalid time format: {value}")
        return value

    @field_validator("timezone")
    def validate_timezone(cls, value: str) -> str:
        if value not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {value}")
        return value


class CacheConfig(BaseSettings):
    """In-memory query cache configuration."""

    enabled: bool = Field(True, description="Enable read-through query cache")
    ttl_seconds: int = Field(60, ge=1, le=3600, description="Cache TTL in seconds")
    max_size: int = Field(1000, ge=10, le=100000, description="Max cached entries")


class BackfillConfig(BaseSettings):
    """Ledger scan and batch write configuration."""

    page_size: int = Field(500, ge=1, le=5000, description="Ledger entries per scan page")
    write_batch_size: int = Field(400, ge=1, le=500, description="Daily records per write transaction")
    default_months: int = Field(12, ge=1, le=120, description="Default backfill window in months")


class StockConfig(BaseSettings):
    """Low-stock thresholds."""

    default_minimum: float = Field(10, ge=0, description="Minimum for materials without an entry")
    minimums: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_MIN_LEVELS))


class RetryConfig(BaseSettings):
    """Retry policy for the strongly consistent aggregate commit."""

    attempts: int = Field(5, ge=1, le=20, description="Max commit attempts")
    backoff_seconds: float = Field(0.05, ge=0, le=5, description="Base backoff, doubled per attempt")


class EventConfig(BaseSettings):
    """Change-event deduplication."""

    dedup_retention_days: int = Field(7, ge=1, le=365, description="Days to keep processed event ids")


class AggregationConfig(BaseSettings):
    """Complete aggregation configuration."""

    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    backfill: BackfillConfig = Field(default_factory=BackfillConfig)
    stock: StockConfig = Field(default_factory=StockConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    events: EventConfig = Field(default_factory=EventConfig)

    _config_path: str = "aggregation_config.json"

    @classmethod
    def load(cls, path: str = "aggregation_config.json") -> "AggregationConfig":
        """Load config from JSON file. Raises ConfigError on unreadable or invalid content."""
        config_path = Path(path)
        if config_path.exists():
            try:
                with config_path.open("r", encoding="utf-8") as handle:
                    data = json.load(handle)
                instance = cls(**data)
            except (json.JSONDecodeError, ValidationError, TypeError) as exc:
                raise ConfigError(f"Invalid aggregation config {path}: {exc}") from exc
        else:
            instance = cls()
        instance._config_path = path
        return instance

    def save(self) -> None:
        """Save config to JSON file."""
        with open(self._config_path, "w", encoding="utf-8") as handle:
            json.dump(self.model_dump(), handle, indent=2, ensure_ascii=False)

    def reload(self) -> None:
        """Reload config (for detecting runtime changes)."""
        new_config = AggregationConfig.load(self._config_path)
        self.schedule = new_config.schedule
        self.cache = new_config.cache
        self.backfill = new_config.backfill
        self.stock = new_config.stock
        self.retry = new_config.retry
        self.events = new_config.events

    @property
    def tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.schedule.timezone)


class Config:
    """Main Config Class - Factory Pattern (NOT Singleton).

    Use FastAPI's Depends() / app.state for dependency injection instead of a
    module-level singleton, so tests can build their own instance.
    """

    def __init__(
        self,
        aggregation: AggregationConfig,
        db_path: Path = Path("data/ledgerpulse.db"),
        reports_dir: Path = Path("reports"),
        log_level: str = "INFO",
        log_file: Optional[Path] = None,
    ):
        self.aggregation = aggregation
        self.db_path = db_path
        self.reports_dir = reports_dir
        self.log_level = log_level
        self.log_file = log_file

    @classmethod
    def load(cls) -> "Config":
        """Factory method to load config.

        Process settings: Environment variables > .env
        Aggregation config: aggregation_config.json (path overridable by env)
        """
        service = ServiceConfig()
        return cls(
            aggregation=AggregationConfig.load(service.config_path),
            db_path=service.db_path,
            reports_dir=service.reports_dir,
            log_level=service.log_level,
            log_file=service.log_file,
        )
