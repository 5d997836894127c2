"""Declarative per-topic table for hive sensor readings.

Each known topic has one :class:`TopicProfile` that carries everything the
classifier and the display layer need: the unit and precision used to
format values, the threshold bands, and the remediation suggestions for
every band.  Keeping parsing, formatting and thresholds in a single table
means a new topic is a data change, never a code change.
"""

from __future__ import annotations

try:
    from enum import StrEnum
except ImportError:  # Python < 3.11
    from enum import Enum

    class StrEnum(str, Enum):  # type: ignore[no-redef]
        """Minimal backport of ``enum.StrEnum`` for Python 3.10."""

from pydantic import BaseModel, Field, model_validator

__all__ = [
    "DEFAULT_PROFILES",
    "AlertCategory",
    "AlertPriority",
    "Band",
    "ThresholdTable",
    "TopicKind",
    "TopicProfile",
    "default_table",
]


class TopicKind(StrEnum):
    """Built-in measurement kinds reported by hive nodes."""

    TEMPERATURE = "temperatura"
    HUMIDITY = "humedad"
    WEIGHT = "peso"


class AlertCategory(StrEnum):
    """Severity category of a classified reading."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class AlertPriority(StrEnum):
    """Display priority derived from the category."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    NORMAL = "normal"

    @property
    def rank(self) -> int:
        """Higher is more urgent."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    AlertPriority.URGENT: 3,
    AlertPriority.HIGH: 2,
    AlertPriority.MEDIUM: 1,
    AlertPriority.NORMAL: 0,
}


class Band(StrEnum):
    """Which part of a profile a value fell into."""

    CRITICAL_LOW = "critical_low"
    CRITICAL_HIGH = "critical_high"
    WARNING_LOW = "warning_low"
    WARNING_HIGH = "warning_high"
    NORMAL = "normal"
    OUT_OF_BANDS = "out_of_bands"
    NO_VALUE = "no_value"


class TopicProfile(BaseModel):
    """Thresholds, formatting and suggestions for one topic.

    Attributes:
        topic: Canonical topic name, e.g. ``"temperatura"``.
        label: Human-readable name used in messages, e.g. ``"Temperature"``.
        unit: Unit suffix, e.g. ``"°C"``.
        unit_separator: Text between the number and the unit (``" "`` for kg).
        decimals: Digits after the decimal point when formatting.
        aliases: Extra topic spellings resolved to this profile.
        normal_range: Inclusive ``[low, high]`` band considered healthy.
        warning_low: Optional inclusive band below the normal range.
        warning_high: Optional inclusive band above the normal range.
        critical_below: Values strictly below this are critical.
        critical_above: Values strictly above this are critical.
        suggestions: Ordered remediation steps keyed by :class:`Band` value.
    """

    model_config = {"frozen": True}

    topic: str
    label: str
    unit: str = ""
    unit_separator: str = ""
    decimals: int = 1
    aliases: tuple[str, ...] = ()
    normal_range: tuple[float, float]
    warning_low: tuple[float, float] | None = None
    warning_high: tuple[float, float] | None = None
    critical_below: float | None = None
    critical_above: float | None = None
    suggestions: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_bands(self) -> TopicProfile:
        for name in ("normal_range", "warning_low", "warning_high"):
            band = getattr(self, name)
            if band is not None and band[0] > band[1]:
                raise ValueError(f"{name} lower bound {band[0]} exceeds upper bound {band[1]}")
        if (
            self.critical_below is not None
            and self.critical_above is not None
            and self.critical_below > self.critical_above
        ):
            raise ValueError("critical_below must not exceed critical_above")
        return self

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def band_for(self, value: float) -> Band:
        """Return the band *value* falls into (first match wins)."""
        if self.critical_below is not None and value < self.critical_below:
            return Band.CRITICAL_LOW
        if self.critical_above is not None and value > self.critical_above:
            return Band.CRITICAL_HIGH
        if self.warning_low is not None and _within(value, self.warning_low):
            return Band.WARNING_LOW
        if self.warning_high is not None and _within(value, self.warning_high):
            return Band.WARNING_HIGH
        if _within(value, self.normal_range):
            return Band.NORMAL
        return Band.OUT_OF_BANDS

    def suggestions_for(self, band: Band) -> tuple[str, ...]:
        return self.suggestions.get(band.value, ())

    def format_value(self, value: float) -> str:
        """Render *value* with this topic's precision and unit, e.g. ``35.2°C``."""
        return f"{value:.{self.decimals}f}{self.unit_separator}{self.unit}"

    def describe_band(self, band: Band, value: float | None = None) -> str:
        """Render the threshold band as a string for display.

        For :attr:`Band.OUT_OF_BANDS` the uncovered gap around *value* is
        named instead; :attr:`Band.NO_VALUE` renders as ``n/a``.
        """
        fmt = self.format_value
        if band is Band.NO_VALUE:
            return "n/a"
        if band is Band.OUT_OF_BANDS:
            return self._describe_gap(value)
        if band is Band.CRITICAL_LOW and self.critical_below is not None:
            return f"< {fmt(self.critical_below)}"
        if band is Band.CRITICAL_HIGH and self.critical_above is not None:
            return f"> {fmt(self.critical_above)}"
        if band is Band.WARNING_LOW and self.warning_low is not None:
            return f"{fmt(self.warning_low[0])} - {fmt(self.warning_low[1])}"
        if band is Band.WARNING_HIGH and self.warning_high is not None:
            return f"{fmt(self.warning_high[0])} - {fmt(self.warning_high[1])}"
        low, high = self.normal_range
        return f"{fmt(low)} - {fmt(high)}"

    def _describe_gap(self, value: float | None) -> str:
        edges = sorted(self._edges())
        fmt = self.format_value
        if value is None:
            return f"outside {fmt(edges[0])} - {fmt(edges[-1])}"
        # Critical limits are exclusive, so a value sitting on one is still in the gap.
        lower = max((e for e in edges if e < value or e == self.critical_below), default=None)
        upper = min((e for e in edges if e > value or e == self.critical_above), default=None)
        if lower is not None and upper is not None:
            return f"gap {fmt(lower)} - {fmt(upper)}"
        if upper is not None:
            return f"gap < {fmt(upper)}"
        return f"gap > {fmt(lower)}"

    def _edges(self) -> list[float]:
        edges = [*self.normal_range]
        for band in (self.warning_low, self.warning_high):
            if band is not None:
                edges.extend(band)
        for limit in (self.critical_below, self.critical_above):
            if limit is not None:
                edges.append(limit)
        return edges

    @property
    def names(self) -> tuple[str, ...]:
        """All lower-cased spellings that resolve to this profile."""
        return (self.topic.lower(), *(alias.lower() for alias in self.aliases))


def _within(value: float, band: tuple[float, float]) -> bool:
    return band[0] <= value <= band[1]


# ---------------------------------------------------------------------------
# Threshold table
# ---------------------------------------------------------------------------


class ThresholdTable:
    """Immutable lookup from topic spelling to :class:`TopicProfile`.

    Lookups are case-insensitive and ignore surrounding whitespace.
    :meth:`with_profiles` returns a new table, so a table handed to a
    classifier never changes underneath it.
    """

    def __init__(self, profiles: list[TopicProfile] | tuple[TopicProfile, ...] = ()) -> None:
        self._profiles: dict[str, TopicProfile] = {}
        self._index: dict[str, str] = {}
        for profile in profiles:
            self._register(profile)

    def _register(self, profile: TopicProfile) -> None:
        key = profile.topic.lower()
        previous = self._profiles.get(key)
        if previous is not None:
            for name in previous.names:
                self._index.pop(name, None)
        self._profiles[key] = profile
        for name in profile.names:
            self._index[name] = key

    def lookup(self, topic: str | None) -> TopicProfile | None:
        """Return the profile for *topic*, or ``None`` if it is not in the table."""
        if not topic:
            return None
        key = self._index.get(topic.strip().lower())
        return self._profiles.get(key) if key is not None else None

    def canonical(self, topic: str) -> str:
        """Canonical topic name, or the normalised input for unknown topics."""
        profile = self.lookup(topic)
        return profile.topic if profile is not None else topic.strip().lower()

    def with_profiles(self, profiles: list[TopicProfile]) -> ThresholdTable:
        """Return a copy of this table with *profiles* added or replaced."""
        return ThresholdTable([*self._profiles.values(), *profiles])

    def __contains__(self, topic: object) -> bool:
        return isinstance(topic, str) and self.lookup(topic) is not None

    def __iter__(self):
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)


# ---------------------------------------------------------------------------
# Built-in profiles
# ---------------------------------------------------------------------------

DEFAULT_PROFILES: tuple[TopicProfile, ...] = (
    TopicProfile(
        topic=TopicKind.TEMPERATURE.value,
        label="Temperature",
        unit="°C",
        aliases=("temperature", "temp"),
        normal_range=(33.0, 36.0),
        warning_low=(30.0, 33.0),
        warning_high=(36.0, 38.0),
        critical_below=30.0,
        critical_above=38.0,
        suggestions={
            Band.CRITICAL_HIGH.value: (
                "Ventilate the hive immediately",
                "Reduce hive insulation",
                "Inspect for overcrowding",
                "Provide shade and a nearby water source",
            ),
            Band.CRITICAL_LOW.value: (
                "Add insulation around the hive",
                "Reduce the entrance size",
                "Check colony strength and food reserves",
            ),
            Band.WARNING_HIGH.value: (
                "Improve ventilation",
                "Monitor the temperature trend",
            ),
            Band.WARNING_LOW.value: (
                "Check insulation",
                "Monitor the brood nest temperature",
            ),
            Band.NORMAL.value: ("Brood nest temperature is optimal; no action needed",),
        },
    ),
    TopicProfile(
        topic=TopicKind.HUMIDITY.value,
        label="Humidity",
        unit="%",
        aliases=("humidity", "hum"),
        normal_range=(32.0, 38.0),
        warning_low=(30.0, 32.0),
        warning_high=(38.0, 40.0),
        critical_below=30.0,
        critical_above=40.0,
        suggestions={
            Band.CRITICAL_HIGH.value: (
                "Improve ventilation to avoid honey fermentation",
                "Check for water leaks into the hive",
                "Inspect combs for mould",
            ),
            Band.CRITICAL_LOW.value: (
                "Provide a water source near the apiary",
                "Reduce excess ventilation",
                "Check larvae for dehydration",
            ),
            Band.WARNING_HIGH.value: (
                "Increase ventilation",
                "Monitor the humidity trend",
            ),
            Band.WARNING_LOW.value: (
                "Check the nearby water supply",
                "Monitor the humidity trend",
            ),
            Band.NORMAL.value: ("Humidity is within the optimal range",),
        },
    ),
    TopicProfile(
        topic=TopicKind.WEIGHT.value,
        label="Weight",
        unit="kg",
        unit_separator=" ",
        aliases=("weight",),
        normal_range=(20.0, 80.0),
        warning_low=(10.0, 20.0),
        warning_high=(80.0, 100.0),
        critical_below=10.0,
        critical_above=100.0,
        suggestions={
            Band.CRITICAL_HIGH.value: (
                "Harvest honey supers",
                "Add a super to prevent swarming",
                "Check the scale calibration",
            ),
            Band.CRITICAL_LOW.value: (
                "Check for swarming or absconding",
                "Feed the colony",
                "Inspect for robbing",
            ),
            Band.WARNING_HIGH.value: (
                "Plan a harvest",
                "Consider adding a super",
            ),
            Band.WARNING_LOW.value: (
                "Check food reserves",
                "Consider supplementary feeding",
            ),
            Band.NORMAL.value: ("Weight is consistent with a healthy colony",),
        },
    ),
)


def default_table() -> ThresholdTable:
    """Return a table holding the built-in temperature, humidity and weight profiles."""
    return ThresholdTable(DEFAULT_PROFILES)
