"""Alert classifier - maps a ``(topic, payload)`` pair to an :class:`AlertAnalysis`.

Classification is a pure function of its inputs and the (immutable)
threshold table: no clock, no randomness, no hidden state.  It never
raises; anything it cannot make sense of is reported as ``unknown``.

Quick start::

    from smartbee.classifier import classify

    analysis = classify("temperatura", "39.2°C")
    analysis.category   # AlertCategory.CRITICAL
    analysis.priority   # AlertPriority.URGENT
"""

from __future__ import annotations

import math
import re

from smartbee.models import AlertAnalysis, Inspection
from smartbee.thresholds import (
    AlertCategory,
    AlertPriority,
    Band,
    ThresholdTable,
    TopicProfile,
    default_table,
)

__all__ = [
    "AlertClassifier",
    "classify",
    "extract_value",
    "format_value",
]

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")

_PRIORITY_BY_CATEGORY = {
    AlertCategory.CRITICAL: AlertPriority.URGENT,
    AlertCategory.WARNING: AlertPriority.MEDIUM,
    AlertCategory.NORMAL: AlertPriority.NORMAL,
    AlertCategory.UNKNOWN: AlertPriority.NORMAL,
}

# (color, icon) per category
_STYLE_BY_CATEGORY = {
    AlertCategory.CRITICAL: ("red", "🚨"),
    AlertCategory.WARNING: ("orange", "⚠️"),
    AlertCategory.NORMAL: ("green", "✅"),
    AlertCategory.UNKNOWN: ("gray", "❓"),
}

_CATEGORY_BY_BAND = {
    Band.CRITICAL_LOW: AlertCategory.CRITICAL,
    Band.CRITICAL_HIGH: AlertCategory.CRITICAL,
    Band.WARNING_LOW: AlertCategory.WARNING,
    Band.WARNING_HIGH: AlertCategory.WARNING,
    Band.NORMAL: AlertCategory.NORMAL,
    Band.OUT_OF_BANDS: AlertCategory.UNKNOWN,
    Band.NO_VALUE: AlertCategory.UNKNOWN,
}

_MESSAGE_BY_BAND = {
    Band.CRITICAL_LOW: "{label} critically low",
    Band.CRITICAL_HIGH: "{label} critically high",
    Band.WARNING_LOW: "{label} below optimal range",
    Band.WARNING_HIGH: "{label} above optimal range",
    Band.NORMAL: "{label} within normal range",
    Band.OUT_OF_BANDS: "{label} outside configured thresholds",
    Band.NO_VALUE: "No numeric {label_lower} value in payload",
}


def extract_value(payload: object) -> float | None:
    """Return the first decimal number found in *payload*, or ``None``.

    ``"35.2°C"`` -> ``35.2``; ``"61 %"`` -> ``61.0``; ``"n/a"`` -> ``None``.
    """
    if payload is None:
        return None
    match = _NUMBER_RE.search(str(payload))
    if match is None:
        return None
    value = float(match.group())
    return value if math.isfinite(value) else None


class AlertClassifier:
    """Classifies readings against a :class:`ThresholdTable`.

    Parameters:
        table: Topic profiles to classify against.  Defaults to the
            built-in temperature / humidity / weight table.
    """

    def __init__(self, table: ThresholdTable | None = None) -> None:
        self.table = table if table is not None else default_table()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(self, topic: str, payload: object) -> AlertAnalysis:
        """Classify a raw *payload* string reported under *topic*."""
        return self.classify_value(topic, extract_value(payload))

    def classify_value(self, topic: str, value: float | None) -> AlertAnalysis:
        """Classify an already-numeric reading (``None`` means no value)."""
        topic = topic if isinstance(topic, str) else ""
        profile = self.table.lookup(topic)
        if profile is None:
            return _unknown_topic(topic, value)

        if value is None or not math.isfinite(value):
            return self._build(profile, Band.NO_VALUE, None)
        return self._build(profile, profile.band_for(value), value)

    def classify_inspection(self, inspection: Inspection) -> dict[str, AlertAnalysis]:
        """Classify the environmental measurements recorded in an inspection.

        Only measurements that were actually taken are included; the keys are
        canonical topic names.
        """
        readings = {
            "temperatura": inspection.temperature,
            "humedad": inspection.humidity,
            "peso": inspection.weight,
        }
        return {
            self.table.canonical(topic): self.classify_value(topic, value)
            for topic, value in readings.items()
            if value is not None
        }

    def format_value(self, topic: str, value: float) -> str:
        """Render *value* with the unit and precision configured for *topic*."""
        profile = self.table.lookup(topic)
        if profile is None:
            return f"{value:g}"
        return profile.format_value(value)

    def canonical_topic(self, topic: str) -> str:
        return self.table.canonical(topic)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _build(self, profile: TopicProfile, band: Band, value: float | None) -> AlertAnalysis:
        category = _CATEGORY_BY_BAND[band]
        color, icon = _STYLE_BY_CATEGORY[category]
        message = _MESSAGE_BY_BAND[band].format(label=profile.label, label_lower=profile.label.lower())
        return AlertAnalysis(
            category=category,
            priority=_PRIORITY_BY_CATEGORY[category],
            message=message,
            range=profile.describe_band(band, value),
            suggestions=profile.suggestions_for(band),
            color=color,
            icon=icon,
            topic=profile.topic,
            value=value,
            display=profile.format_value(value) if value is not None else None,
        )


def _unknown_topic(topic: str, value: float | None) -> AlertAnalysis:
    color, icon = _STYLE_BY_CATEGORY[AlertCategory.UNKNOWN]
    name = topic.strip().lower()
    return AlertAnalysis(
        category=AlertCategory.UNKNOWN,
        priority=_PRIORITY_BY_CATEGORY[AlertCategory.UNKNOWN],
        message=f"No thresholds configured for topic '{name}'",
        range="n/a",
        color=color,
        icon=icon,
        topic=name,
        value=value,
        display=f"{value:g}" if value is not None else None,
    )


# ---------------------------------------------------------------------------
# Module-level shortcuts over the built-in table
# ---------------------------------------------------------------------------

_default = AlertClassifier()


def classify(topic: str, payload: object) -> AlertAnalysis:
    """Classify *payload* with the built-in threshold table."""
    return _default.classify(topic, payload)


def format_value(topic: str, value: float) -> str:
    """Format *value* with the built-in table's unit for *topic*."""
    return _default.format_value(topic, value)
