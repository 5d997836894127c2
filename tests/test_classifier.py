"""Tests for smartbee.classifier - value extraction and alert classification."""

from __future__ import annotations

import pytest

from smartbee.classifier import AlertClassifier, classify, extract_value, format_value
from smartbee.models import Inspection
from smartbee.thresholds import AlertCategory, AlertPriority, TopicProfile, default_table

# -----------------------------------------------------------------------
# extract_value
# -----------------------------------------------------------------------


class TestExtractValue:
    """First decimal number in a free-form payload."""

    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ("35.2°C", 35.2),
            ("61%", 61.0),
            ("45 kg", 45.0),
            ("temp=34.0", 34.0),
            ("-3.5", -3.5),
            ("12.5 then 99", 12.5),
            (42, 42.0),
        ],
    )
    def test_extracts_first_number(self, payload: object, expected: float) -> None:
        assert extract_value(payload) == expected

    @pytest.mark.parametrize("payload", ["", "n/a", "°C", "error", None, "--"])
    def test_no_number(self, payload: object) -> None:
        assert extract_value(payload) is None


# -----------------------------------------------------------------------
# classify
# -----------------------------------------------------------------------


class TestClassify:
    """Classification against the built-in table."""

    def test_critical_high_temperature(self) -> None:
        analysis = classify("temperatura", "39.2°C")
        assert analysis.category is AlertCategory.CRITICAL
        assert analysis.priority is AlertPriority.URGENT
        assert analysis.message == "Temperature critically high"
        assert analysis.range == "> 38.0°C"
        assert analysis.color == "red"
        assert analysis.icon == "🚨"
        assert analysis.value == 39.2
        assert analysis.display == "39.2°C"
        assert "Ventilate the hive immediately" in analysis.suggestions
        assert analysis.is_critical

    def test_normal_temperature(self) -> None:
        analysis = classify("temperatura", "34.8°C")
        assert analysis.category is AlertCategory.NORMAL
        assert analysis.priority is AlertPriority.NORMAL
        assert analysis.color == "green"
        assert not analysis.is_critical

    def test_warning_maps_to_medium(self) -> None:
        analysis = classify("temperatura", "37°C")
        assert analysis.category is AlertCategory.WARNING
        assert analysis.priority is AlertPriority.MEDIUM
        assert analysis.color == "orange"
        assert analysis.message == "Temperature above optimal range"

    @pytest.mark.parametrize(
        ("payload", "category"),
        [
            ("25%", AlertCategory.CRITICAL),
            ("35%", AlertCategory.NORMAL),
            ("31%", AlertCategory.WARNING),
            ("45%", AlertCategory.CRITICAL),
        ],
    )
    def test_humidity_limits(self, payload: str, category: AlertCategory) -> None:
        assert classify("humedad", payload).category is category

    def test_weight_display_has_space(self) -> None:
        analysis = classify("peso", "5 kg")
        assert analysis.category is AlertCategory.CRITICAL
        assert analysis.message == "Weight critically low"
        assert analysis.display == "5.0 kg"

    @pytest.mark.parametrize("payload", ["", "sensor offline", "°C", "NaN%"])
    def test_payload_without_digits_is_unknown(self, payload: str) -> None:
        analysis = classify("temperatura", payload)
        assert analysis.category is AlertCategory.UNKNOWN
        assert analysis.priority is AlertPriority.NORMAL
        assert analysis.color == "gray"
        assert analysis.icon == "❓"
        assert analysis.value is None
        assert analysis.display is None
        assert analysis.range == "n/a"

    @pytest.mark.parametrize("payload", ["39.2°C", "0", "garbage", ""])
    def test_unknown_topic_is_unknown(self, payload: str) -> None:
        analysis = classify("presion", payload)
        assert analysis.category is AlertCategory.UNKNOWN
        assert analysis.range == "n/a"
        assert analysis.suggestions == ()
        assert "presion" in analysis.message

    def test_non_string_topic_never_raises(self) -> None:
        analysis = classify(None, "35")  # type: ignore[arg-type]
        assert analysis.category is AlertCategory.UNKNOWN

    def test_topic_alias_and_case(self) -> None:
        assert classify("Temperature", "39.2").topic == "temperatura"
        assert classify(" TEMPERATURA ", "39.2").category is AlertCategory.CRITICAL

    def test_idempotent(self) -> None:
        assert classify("humedad", "38.5%") == classify("humedad", "38.5%")


# -----------------------------------------------------------------------
# AlertClassifier with a custom table
# -----------------------------------------------------------------------


class TestAlertClassifier:
    """Custom tables and helper methods."""

    def test_custom_topic(self) -> None:
        co2 = TopicProfile(
            topic="co2",
            label="CO2",
            unit="ppm",
            unit_separator=" ",
            decimals=0,
            normal_range=(400, 1500),
            warning_high=(1500, 3000),
            critical_above=3000,
        )
        classifier = AlertClassifier(default_table().with_profiles([co2]))
        analysis = classifier.classify("co2", "3500 ppm")
        assert analysis.category is AlertCategory.CRITICAL
        assert analysis.display == "3500 ppm"
        assert analysis.range == "> 3000 ppm"

    def test_value_between_bands_is_unknown(self) -> None:
        sparse = TopicProfile(topic="co2", label="CO2", normal_range=(400, 1000), critical_above=3000)
        classifier = AlertClassifier(default_table().with_profiles([sparse]))
        analysis = classifier.classify("co2", "2000")
        assert analysis.category is AlertCategory.UNKNOWN
        assert analysis.message == "CO2 outside configured thresholds"
        assert analysis.range == "gap 1000.0 - 3000.0"

    def test_classify_value_none(self) -> None:
        analysis = AlertClassifier().classify_value("humedad", None)
        assert analysis.category is AlertCategory.UNKNOWN
        assert analysis.message == "No numeric humidity value in payload"

    def test_classify_value_nan(self) -> None:
        analysis = AlertClassifier().classify_value("humedad", float("nan"))
        assert analysis.category is AlertCategory.UNKNOWN

    def test_format_value(self) -> None:
        assert format_value("temperatura", 35.3) == "35.3°C"
        assert format_value("peso", 42) == "42.0 kg"
        assert format_value("presion", 1013.0) == "1013"

    def test_classify_inspection(self) -> None:
        inspection = Inspection.model_validate(
            {"colmena_id": 1, "temperatura": 39.5, "humedad": "", "peso": 55}
        )
        results = AlertClassifier().classify_inspection(inspection)
        assert set(results) == {"temperatura", "peso"}
        assert results["temperatura"].category is AlertCategory.CRITICAL
        assert results["peso"].category is AlertCategory.NORMAL
