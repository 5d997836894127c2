"""Tests for smartbee.config - YAML loading and threshold overrides."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from smartbee.aggregator import TimeScale
from smartbee.config import MonitorYAMLConfig, build_threshold_table, load_yaml_config
from smartbee.thresholds import AlertCategory

_FULL_YAML = """\
api:
  base_url: http://bee.test/api
  timeout_s: 5
  email: ana@example.com
  password: secret

monitor:
  poll_interval_s: 2
  window_hours: 3
  fetch_timeout_s: 4
  time_scale: minute
  duration_s: 60
  log_level: DEBUG

thresholds:
  temperatura:
    warning_high: [36, 39]
    critical_above: 39
  co2:
    unit: ppm
    normal_range: [400, 1500]
    critical_above: 3000

consumers:
  - type: console
    fmt: json
  - type: webhook
    url: http://hooks.test/alerts
"""

# -----------------------------------------------------------------------
# MonitorYAMLConfig
# -----------------------------------------------------------------------


class TestMonitorYAMLConfig:
    def test_defaults(self) -> None:
        cfg = MonitorYAMLConfig()
        assert cfg.base_url == "http://localhost:8080/api"
        assert cfg.poll_interval_s == 5.0
        assert cfg.fetch_timeout_s == 10.0
        assert cfg.time_scale is TimeScale.SECOND
        assert cfg.duration_s is None
        assert cfg.consumer_configs == []
        assert len(cfg.threshold_table()) == 3

    def test_invalid_time_scale(self) -> None:
        with pytest.raises(ValidationError):
            MonitorYAMLConfig(time_scale="fortnight")


# -----------------------------------------------------------------------
# load_yaml_config
# -----------------------------------------------------------------------


class TestLoadYamlConfig:
    """YAML file parsing."""

    def test_full_file(self, tmp_path: Path) -> None:
        path = tmp_path / "smartbee.yaml"
        path.write_text(_FULL_YAML, encoding="utf-8")
        cfg = load_yaml_config(path)

        assert cfg.base_url == "http://bee.test/api"
        assert cfg.timeout_s == 5
        assert cfg.email == "ana@example.com"
        assert cfg.poll_interval_s == 2
        assert cfg.window_hours == 3
        assert cfg.fetch_timeout_s == 4
        assert cfg.time_scale is TimeScale.MINUTE
        assert cfg.duration_s == 60
        assert cfg.log_level == "DEBUG"
        assert [c["type"] for c in cfg.consumer_configs] == ["console", "webhook"]

        table = cfg.threshold_table()
        assert table.lookup("temperatura").critical_above == 39
        assert table.lookup("co2").unit == "ppm"

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        cfg = load_yaml_config(path)
        assert cfg.model_dump() == MonitorYAMLConfig().model_dump()

    def test_partial_sections(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.yaml"
        path.write_text("monitor:\n  poll_interval_s: 1\n", encoding="utf-8")
        cfg = load_yaml_config(path)
        assert cfg.poll_interval_s == 1
        assert cfg.base_url == "http://localhost:8080/api"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_yaml_config(tmp_path / "nope.yaml")

    def test_bad_threshold_fails_early(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("thresholds:\n  humedad:\n    normal_range: [40, 30]\n", encoding="utf-8")
        with pytest.raises(ValidationError):
            load_yaml_config(path)


# -----------------------------------------------------------------------
# build_threshold_table
# -----------------------------------------------------------------------


class TestBuildThresholdTable:
    """Merging overrides into the built-in table."""

    def test_override_keeps_other_fields(self) -> None:
        table = build_threshold_table({"temperatura": {"warning_high": [36, 39], "critical_above": 39}})
        profile = table.lookup("temperatura")
        assert profile.critical_above == 39
        assert profile.critical_below == 30
        assert profile.unit == "°C"
        assert "temp" in profile.aliases

    def test_override_changes_classification(self) -> None:
        from smartbee.classifier import AlertClassifier

        table = build_threshold_table({"temperatura": {"warning_high": [36, 39], "critical_above": 39}})
        analysis = AlertClassifier(table).classify("temperatura", "38.5°C")
        assert analysis.category is AlertCategory.WARNING

    def test_override_by_alias(self) -> None:
        table = build_threshold_table({"humidity": {"critical_above": 45, "warning_high": [38, 45]}})
        assert table.lookup("humedad").critical_above == 45
        assert len(table) == 3

    def test_new_topic_gets_defaults(self) -> None:
        table = build_threshold_table({"CO2": {"normal_range": [400, 1500]}})
        profile = table.lookup("co2")
        assert profile.topic == "co2"
        assert profile.label == "Co2"
        assert len(table) == 4

    def test_new_topic_requires_normal_range(self) -> None:
        with pytest.raises(ValidationError):
            build_threshold_table({"co2": {"unit": "ppm"}})

    def test_empty_overrides(self) -> None:
        assert len(build_threshold_table({})) == 3

    def test_gap_below_critical_above_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        from smartbee.classifier import AlertClassifier

        with caplog.at_level(logging.WARNING, logger="smartbee.config"):
            table = build_threshold_table({"temperatura": {"critical_above": 39}})
        assert "between 38.0°C and 39.0°C" in caplog.text

        analysis = AlertClassifier(table).classify("temperatura", "38.5")
        assert analysis.category is AlertCategory.UNKNOWN
        assert analysis.range == "gap 38.0°C - 39.0°C"

    def test_gap_above_critical_below_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="smartbee.config"):
            build_threshold_table({"peso": {"critical_below": 5, "warning_low": [8, 20]}})
        assert "between 5.0 kg and 8.0 kg" in caplog.text

    def test_contiguous_override_logs_no_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="smartbee.config"):
            build_threshold_table({"temperatura": {"warning_high": [36, 39], "critical_above": 39}})
        assert caplog.records == []
