#!/usr/bin/env python3
"""Offline classification examples -- 3 cases demonstrating the classifier,
the real-time aggregator and custom thresholds.

Directly runnable (no backend required).

Usage::

    python examples/scenarios/classify_payloads_example.py           # Case 1 (default)
    python examples/scenarios/classify_payloads_example.py --case 2  # Aggregator + ranking
    python examples/scenarios/classify_payloads_example.py --case 3  # Custom thresholds
"""

from __future__ import annotations

import argparse

# ---------------------------------------------------------------------------
# Case 1: Classify raw payloads
# ---------------------------------------------------------------------------


def run_case_1() -> None:
    """Classify a handful of payloads as they arrive from hive nodes.

    Shows:
      - unit-suffixed payloads   -> "39.2°C", "61%", "45 kg"
      - unparseable payloads     -> category "unknown", never an exception
      - unknown topics           -> category "unknown"
    """
    from smartbee import classify

    print("=== Case 1: Classify raw payloads ===\n")

    readings = [
        ("temperatura", "34.8°C"),
        ("temperatura", "37.1°C"),
        ("temperatura", "39.2°C"),
        ("humedad", "35%"),
        ("humedad", "44%"),
        ("peso", "8 kg"),
        ("peso", "sensor offline"),
        ("presion", "1013 hPa"),
    ]
    for topic, payload in readings:
        a = classify(topic, payload)
        print(f"  {a.icon} {topic:<12s} {payload:>15s}  {a.category.value:<8s} {a.priority.value:<7s} {a.message}")
        for step in a.suggestions[:2]:
            print(f"       - {step}")


# ---------------------------------------------------------------------------
# Case 2: Aggregator and alert ranking
# ---------------------------------------------------------------------------


def run_case_2() -> None:
    """Feed two batches into the aggregator and list critical keys.

    Shows:
      - latest value per topic|node_id
      - out-of-order messages do not overwrite newer ones
      - critical keys ordered most urgent, then most recent, first
    """
    from datetime import datetime, timedelta, timezone

    from smartbee import RealTimeAggregator, SensorMessage

    print("=== Case 2: Aggregator and alert ranking ===\n")

    t0 = datetime.now(timezone.utc) - timedelta(minutes=5)

    def msg(i: int, node: int, topic: str, payload: str, minutes: int) -> SensorMessage:
        return SensorMessage(id=i, node_id=node, topic=topic, payload=payload, timestamp=t0 + timedelta(minutes=minutes))

    agg = RealTimeAggregator()
    agg.ingest(
        [
            msg(1, 1, "temperatura", "35.0°C", 0),
            msg(2, 2, "temperatura", "39.5°C", 1),
            msg(3, 2, "humedad", "28%", 2),
            msg(4, 3, "peso", "52 kg", 2),
        ]
    )
    print(f"  after batch 1: critical = {agg.critical_keys()}")

    changed = agg.ingest(
        [
            msg(5, 1, "temperatura", "38.6°C", 3),
            msg(0, 2, "temperatura", "34.0°C", -10),  # stale, ignored
        ]
    )
    print(f"  batch 2 changed: {changed}")
    print(f"  after batch 2: critical = {agg.critical_keys()}\n")

    for point in agg.alerts():
        a = point.analysis
        print(f"  {a.icon} {point.key:<16s} {a.display:>9s}  {a.category.value}")

    chart = agg.snapshot()
    if chart is not None:
        print(f"\n  chart point @ {chart.timestamp:%H:%M:%S}: {chart.values}")


# ---------------------------------------------------------------------------
# Case 3: Custom thresholds
# ---------------------------------------------------------------------------


def run_case_3() -> None:
    """Override the temperature limits and add a CO2 topic.

    Shows:
      - build_threshold_table()  -> same merge the YAML "thresholds:" section uses
      - AlertClassifier(table)   -> classifier bound to the custom table
    """
    from smartbee import AlertClassifier
    from smartbee.config import build_threshold_table

    print("=== Case 3: Custom thresholds ===\n")

    table = build_threshold_table(
        {
            "temperatura": {"warning_high": [36, 39], "critical_above": 39},
            "co2": {
                "label": "CO2",
                "unit": "ppm",
                "unit_separator": " ",
                "decimals": 0,
                "normal_range": [400, 1500],
                "warning_high": [1500, 3000],
                "critical_above": 3000,
            },
        }
    )
    custom = AlertClassifier(table)
    default = AlertClassifier()

    for topic, payload in [("temperatura", "38.5°C"), ("co2", "1800 ppm"), ("co2", "3400 ppm")]:
        before = default.classify(topic, payload).category.value
        after = custom.classify(topic, payload)
        print(f"  {topic:<12s} {payload:>9s}  default={before:<8s} custom={after.category.value:<8s} range={after.range}")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline classification examples")
    parser.add_argument("--case", type=int, default=1, choices=[1, 2, 3], help="Which example case to run (default: 1)")
    args = parser.parse_args()

    cases = {
        1: run_case_1,
        2: run_case_2,
        3: run_case_3,
    }
    cases[args.case]()


if __name__ == "__main__":
    main()
