"""Tests for smartbee.thresholds - topic profiles and the threshold table."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from smartbee.thresholds import (
    DEFAULT_PROFILES,
    AlertPriority,
    Band,
    ThresholdTable,
    TopicKind,
    TopicProfile,
    default_table,
)

# -----------------------------------------------------------------------
# TopicProfile
# -----------------------------------------------------------------------


class TestTopicProfile:
    """Band lookup, formatting and validation."""

    def _temperature(self) -> TopicProfile:
        profile = default_table().lookup("temperatura")
        assert profile is not None
        return profile

    @pytest.mark.parametrize(
        ("value", "band"),
        [
            (29.9, Band.CRITICAL_LOW),
            (30.0, Band.WARNING_LOW),
            (32.5, Band.WARNING_LOW),
            (33.0, Band.WARNING_LOW),
            (34.5, Band.NORMAL),
            (36.0, Band.WARNING_HIGH),
            (38.0, Band.WARNING_HIGH),
            (38.1, Band.CRITICAL_HIGH),
        ],
    )
    def test_temperature_bands(self, value: float, band: Band) -> None:
        assert self._temperature().band_for(value) is band

    def test_gap_between_bands_is_out_of_bands(self) -> None:
        profile = TopicProfile(
            topic="co2",
            label="CO2",
            normal_range=(400, 1000),
            warning_high=(1500, 2000),
            critical_above=2000,
        )
        assert profile.band_for(1200) is Band.OUT_OF_BANDS
        assert profile.band_for(100) is Band.OUT_OF_BANDS

    def test_format_value_uses_decimals_and_separator(self) -> None:
        weight = default_table().lookup("peso")
        assert weight is not None
        assert weight.format_value(45.3) == "45.3 kg"
        assert self._temperature().format_value(35.0) == "35.0°C"

    def test_describe_band(self) -> None:
        profile = self._temperature()
        assert profile.describe_band(Band.CRITICAL_HIGH) == "> 38.0°C"
        assert profile.describe_band(Band.CRITICAL_LOW) == "< 30.0°C"
        assert profile.describe_band(Band.WARNING_HIGH) == "36.0°C - 38.0°C"
        assert profile.describe_band(Band.NORMAL) == "33.0°C - 36.0°C"

    def test_describe_band_names_gap(self) -> None:
        profile = TopicProfile(
            topic="co2",
            label="CO2",
            decimals=0,
            normal_range=(400, 1000),
            warning_high=(1500, 2000),
            critical_above=2500,
        )
        assert profile.describe_band(Band.OUT_OF_BANDS, 1200) == "gap 1000 - 1500"
        assert profile.describe_band(Band.OUT_OF_BANDS, 2500) == "gap 2000 - 2500"
        assert profile.describe_band(Band.OUT_OF_BANDS, 100) == "gap < 400"
        assert profile.describe_band(Band.OUT_OF_BANDS) == "outside 400 - 2500"

    def test_describe_band_without_value(self) -> None:
        assert self._temperature().describe_band(Band.NO_VALUE) == "n/a"

    def test_suggestions_for_band(self) -> None:
        steps = self._temperature().suggestions_for(Band.CRITICAL_HIGH)
        assert steps[0] == "Ventilate the hive immediately"
        assert self._temperature().suggestions_for(Band.OUT_OF_BANDS) == ()

    def test_inverted_band_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TopicProfile(topic="x", label="X", normal_range=(10, 5))

    def test_inverted_critical_limits_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TopicProfile(topic="x", label="X", normal_range=(5, 10), critical_below=20, critical_above=1)

    def test_profile_is_frozen(self) -> None:
        with pytest.raises(ValidationError):
            self._temperature().unit = "F"  # type: ignore[misc]


# -----------------------------------------------------------------------
# ThresholdTable
# -----------------------------------------------------------------------


class TestThresholdTable:
    """Lookup and immutability of the table."""

    def test_default_table_has_builtin_topics(self) -> None:
        table = default_table()
        assert len(table) == len(DEFAULT_PROFILES) == 3
        assert {p.topic for p in table} == {k.value for k in TopicKind}

    def test_lookup_is_case_and_whitespace_insensitive(self) -> None:
        table = default_table()
        assert table.lookup(" Temperatura ").topic == "temperatura"
        assert table.lookup("HUMEDAD").topic == "humedad"

    def test_aliases_resolve(self) -> None:
        table = default_table()
        assert table.lookup("temperature").topic == "temperatura"
        assert table.lookup("weight").topic == "peso"
        assert table.canonical("hum") == "humedad"

    def test_unknown_topic(self) -> None:
        table = default_table()
        assert table.lookup("presion") is None
        assert table.lookup("") is None
        assert "presion" not in table
        assert table.canonical(" Presion ") == "presion"

    def test_empty_table(self) -> None:
        table = ThresholdTable()
        assert len(table) == 0
        assert table.lookup("temperatura") is None

    def test_with_profiles_returns_new_table(self) -> None:
        table = default_table()
        co2 = TopicProfile(topic="co2", label="CO2", unit="ppm", normal_range=(400, 1500))
        extended = table.with_profiles([co2])
        assert "co2" in extended
        assert "co2" not in table
        assert len(extended) == 4

    def test_replacing_profile_drops_old_aliases(self) -> None:
        table = default_table()
        replacement = TopicProfile(topic="temperatura", label="Temp", normal_range=(30, 40))
        updated = table.with_profiles([replacement])
        assert updated.lookup("temperatura").label == "Temp"
        assert updated.lookup("temp") is None
        assert len(updated) == 3


# -----------------------------------------------------------------------
# AlertPriority
# -----------------------------------------------------------------------


class TestAlertPriority:
    def test_rank_order(self) -> None:
        ranks = [p.rank for p in (AlertPriority.URGENT, AlertPriority.HIGH, AlertPriority.MEDIUM, AlertPriority.NORMAL)]
        assert ranks == sorted(ranks, reverse=True)
        assert AlertPriority.URGENT.rank > AlertPriority.HIGH.rank
