"""Real-time aggregator - latest value per ``topic|node_id`` plus a capped
chart series, fed by batches of polled :class:`SensorMessage` objects.

The aggregator is plain, synchronous, single-owner state.  It holds no lock:
whoever owns it (normally :class:`smartbee.monitor.Monitor`) must call
:meth:`~RealTimeAggregator.ingest` and :meth:`~RealTimeAggregator.snapshot`
from one task, with no ``await`` in between.
"""

from __future__ import annotations

import collections
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone

from smartbee.classifier import AlertClassifier, extract_value
from smartbee.models import ChartPoint, RealTimeDataPoint, SensorMessage, ensure_utc, make_key
from smartbee.thresholds import AlertCategory, StrEnum

__all__ = ["RealTimeAggregator", "TimeScale", "rank_alerts"]

logger = logging.getLogger("smartbee.aggregator")


class TimeScale(StrEnum):
    """Chart time scales.  Each has a unit length and a point cap."""

    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @property
    def unit(self) -> timedelta:
        """Minimum spacing between two chart points."""
        return _SCALE_UNITS[self]

    @property
    def max_points(self) -> int:
        return _SCALE_POINTS[self]


_SCALE_UNITS = {
    TimeScale.SECOND: timedelta(seconds=1),
    TimeScale.MINUTE: timedelta(minutes=1),
    TimeScale.HOUR: timedelta(hours=1),
    TimeScale.DAY: timedelta(days=1),
    TimeScale.WEEK: timedelta(weeks=1),
    TimeScale.MONTH: timedelta(days=30),
}

_SCALE_POINTS = {
    TimeScale.SECOND: 60,
    TimeScale.MINUTE: 60,
    TimeScale.HOUR: 24,
    TimeScale.DAY: 30,
    TimeScale.WEEK: 52,
    TimeScale.MONTH: 12,
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def rank_alerts(points: Iterable[RealTimeDataPoint]) -> list[RealTimeDataPoint]:
    """Order points most urgent first, then most recent first.

    Points equal on both are ordered by key so the result is deterministic.
    """
    by_key = sorted(points, key=lambda p: p.key)
    return sorted(by_key, key=lambda p: (p.analysis.priority.rank, p.timestamp), reverse=True)


class RealTimeAggregator:
    """Keeps the latest reading per ``topic|node_id`` and a chart series.

    Parameters:
        classifier: Used to extract values and compute each key's analysis.
        time_scale: Active chart scale; sets the series cap and the minimum
            spacing between snapshots.
        clock: Returns the current time (timezone-aware).  Injected in tests.
    """

    def __init__(
        self,
        classifier: AlertClassifier | None = None,
        *,
        time_scale: TimeScale | str = TimeScale.SECOND,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.classifier = classifier if classifier is not None else AlertClassifier()
        self._clock = clock
        self._scale = TimeScale(time_scale)
        self._latest: dict[str, RealTimeDataPoint] = {}
        self._series: collections.deque[ChartPoint] = collections.deque(maxlen=self._scale.max_points)

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    def ingest(self, messages: Iterable[SensorMessage]) -> list[str]:
        """Upsert the latest value per key from *messages*.

        Messages without a numeric value are skipped.  A message older than
        the one already stored for its key is ignored, so ingesting the same
        batch twice leaves the state unchanged.

        Returns:
            Keys whose stored reading changed, in first-seen order.
        """
        changed: dict[str, None] = {}
        skipped = 0
        for msg in messages:
            value = extract_value(msg.payload)
            if value is None:
                skipped += 1
                continue

            topic = self.classifier.canonical_topic(msg.topic)
            key = make_key(topic, msg.node_id)
            current = self._latest.get(key)
            if current is not None and _order(msg) < _order_point(current):
                continue
            if current is not None and _order(msg) == _order_point(current) and current.value == value:
                # Same message seen again.
                continue

            self._latest[key] = RealTimeDataPoint(
                key=key,
                topic=topic,
                node_id=msg.node_id,
                value=value,
                timestamp=msg.timestamp,
                analysis=self.classifier.classify_value(topic, value),
                message_id=msg.id,
            )
            changed.setdefault(key)

        if skipped:
            logger.debug("Skipped %d messages without a numeric payload", skipped)
        return list(changed)

    # ------------------------------------------------------------------
    # Chart series
    # ------------------------------------------------------------------

    def snapshot(self) -> ChartPoint | None:
        """Append a chart point built from the current latest values.

        Returns ``None`` (and appends nothing) when there are no values yet,
        or when the newest existing point is younger than one scale unit.
        """
        if not self._latest:
            return None

        now = ensure_utc(self._clock())
        if self._series and now - self._series[-1].timestamp < self._scale.unit:
            logger.debug("Snapshot discarded - last point is younger than one %s", self._scale.value)
            return None

        point = ChartPoint(
            timestamp=now,
            values={key: dp.value for key, dp in sorted(self._latest.items())},
        )
        self._series.append(point)
        return point

    @property
    def series(self) -> list[ChartPoint]:
        """Chart points, oldest first."""
        return list(self._series)

    @property
    def time_scale(self) -> TimeScale:
        return self._scale

    def set_time_scale(self, time_scale: TimeScale | str) -> None:
        """Switch scale; the series keeps its most recent points up to the new cap."""
        scale = TimeScale(time_scale)
        if scale is self._scale:
            return
        self._scale = scale
        self._series = collections.deque(self._series, maxlen=scale.max_points)
        logger.info("Time scale set to '%s' (max %d points)", scale.value, scale.max_points)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, key: str) -> RealTimeDataPoint | None:
        return self._latest.get(key)

    @property
    def latest(self) -> dict[str, RealTimeDataPoint]:
        return dict(self._latest)

    def alerts(self, categories: Iterable[AlertCategory | str] | None = None) -> list[RealTimeDataPoint]:
        """Ranked data points, optionally restricted to *categories*."""
        points: Iterable[RealTimeDataPoint] = self._latest.values()
        if categories is not None:
            wanted = {AlertCategory(c) for c in categories}
            points = [p for p in points if p.analysis.category in wanted]
        return rank_alerts(points)

    def critical_keys(self) -> list[str]:
        """Keys whose current analysis is critical, most urgent and most recent first."""
        return [p.key for p in self.alerts([AlertCategory.CRITICAL])]

    def clear(self) -> None:
        self._latest.clear()
        self._series.clear()

    def __len__(self) -> int:
        return len(self._latest)


def _order(msg: SensorMessage) -> tuple[datetime, tuple[int, int | str]]:
    return msg.timestamp, _id_order(msg.id)


def _order_point(point: RealTimeDataPoint) -> tuple[datetime, tuple[int, int | str]]:
    return point.timestamp, _id_order(point.message_id)


def _id_order(message_id: int | str | None) -> tuple[int, int | str]:
    # Integer ids compare numerically; unsaved messages sort first.
    if message_id is None:
        return (-1, 0)
    if isinstance(message_id, int):
        return (0, message_id)
    return (1, str(message_id))
