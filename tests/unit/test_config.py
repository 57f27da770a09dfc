"""Tests for ledgerpulse/config.py"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from ledgerpulse.config import (
    DEFAULT_MIN_LEVELS,
    AggregationConfig,
    Config,
    ScheduleConfig,
    ServiceConfig,
    StockConfig,
)
from ledgerpulse.exceptions import ConfigError


class TestScheduleConfig:
    def test_defaults(self):
        config = ScheduleConfig()
        assert config.enabled is True
        assert config.timezone == "America/Sao_Paulo"
        assert config.rollup_time == "00:05"
        assert config.low_stock_time == "08:00"

    @pytest.mark.parametrize("value", ["24:00", "8am", "07:60", ""])
    def test_invalid_time_rejected(self, value):
        with pytest.raises(ValidationError):
            ScheduleConfig(rollup_time=value)

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError):
            ScheduleConfig(timezone="Mars/Olympus_Mons")


class TestStockConfig:
    def test_minimums_default_to_material_table(self):
        config = StockConfig()
        assert config.minimums == DEFAULT_MIN_LEVELS
        assert config.minimums["ferro"] == 100
        assert config.default_minimum == 10

    def test_minimums_are_not_shared(self):
        config = StockConfig()
        config.minimums["ferro"] = 1
        assert DEFAULT_MIN_LEVELS["ferro"] == 100


class TestAggregationConfig:
    def test_load_missing_file_uses_defaults(self, tmp_path: Path):
        config = AggregationConfig.load(str(tmp_path / "missing.json"))
        assert config.backfill.page_size == 500
        assert config.backfill.write_batch_size == 400
        assert config.cache.ttl_seconds == 60

    def test_load_from_json(self, tmp_path: Path):
        path = tmp_path / "aggregation_config.json"
        path.write_text(
            json.dumps({"schedule": {"timezone": "UTC"}, "retry": {"attempts": 2}}),
            encoding="utf-8",
        )

        config = AggregationConfig.load(str(path))

        assert config.schedule.timezone == "UTC"
        assert config.retry.attempts == 2
        assert config.tz.zone == "UTC"

    def test_save_and_reload(self, tmp_path: Path):
        path = tmp_path / "aggregation_config.json"
        config = AggregationConfig.load(str(path))
        config.stock.default_minimum = 25
        config.save()

        other = AggregationConfig.load(str(path))
        other.stock.default_minimum = 99
        other.reload()

        assert other.stock.default_minimum == 25

    def test_invalid_batch_size_rejected(self):
        with pytest.raises(ValidationError):
            AggregationConfig(backfill={"write_batch_size": 501})


class TestServiceConfig:
    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("LEDGERPULSE_DB_PATH", "/tmp/other.db")
        monkeypatch.setenv("LEDGERPULSE_LOG_LEVEL", "DEBUG")

        settings = ServiceConfig(_env_file=None)

        assert settings.db_path == Path("/tmp/other.db")
        assert settings.log_level == "DEBUG"

    def test_config_load_reads_aggregation_path(self, monkeypatch, tmp_path: Path):
        path = tmp_path / "agg.json"
        path.write_text(json.dumps({"events": {"dedup_retention_days": 3}}), encoding="utf-8")
        monkeypatch.setenv("LEDGERPULSE_CONFIG_PATH", str(path))
        monkeypatch.setenv("LEDGERPULSE_REPORTS_DIR", str(tmp_path / "reports"))

        config = Config.load()

        assert config.aggregation.events.dedup_retention_days == 3
        assert config.reports_dir == tmp_path / "reports"


class TestConfigErrors:
    def test_invalid_json_raises_config_error(self, tmp_path: Path):
        path = tmp_path / "aggregation_config.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(ConfigError):
            AggregationConfig.load(str(path))

    def test_invalid_values_raise_config_error(self, tmp_path: Path):
        path = tmp_path / "aggregation_config.json"
        path.write_text(json.dumps({"schedule": {"rollup_time": "25:00"}}), encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid aggregation config"):
            AggregationConfig.load(str(path))
