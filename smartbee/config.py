"""Configuration loader for the monitor's YAML file.

Parses YAML files with the following top-level sections::

    api:          # backend URL, timeout and credentials
    monitor:      # poll interval, window, time scale, log level, …
    thresholds:   # per-topic overrides and additional topics
    consumers:    # list of consumer configs

Example:

.. code-block:: yaml

    api:
      base_url: http://localhost:8080/api
      timeout_s: 15
      email: apicultor@example.com
      password: secret

    monitor:
      poll_interval_s: 5
      window_hours: 1
      time_scale: second

    thresholds:
      temperatura:
        warning_high: [36, 39]
        critical_above: 39
      co2:
        label: CO2
        unit: ppm
        unit_separator: " "
        decimals: 0
        normal_range: [400, 1500]
        warning_high: [1500, 3000]
        critical_above: 3000

    consumers:
      - type: console
        fmt: text
      - type: webhook
        url: https://example.com/alerts
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from smartbee.aggregator import TimeScale
from smartbee.thresholds import ThresholdTable, TopicProfile, default_table

__all__ = ["MonitorYAMLConfig", "build_threshold_table", "load_yaml_config"]

logger = logging.getLogger("smartbee.config")


class MonitorYAMLConfig(BaseModel):
    """Parsed representation of the full YAML configuration.

    Attributes:
        base_url: REST API root.
        timeout_s: Per-request HTTP timeout.
        email: Login email (optional; no login when absent).
        password: Login password.
        token: Pre-issued bearer token, used instead of email/password.
        poll_interval_s: Seconds between poll starts.
        window_hours: History window requested on each poll.
        fetch_timeout_s: Timeout for one poll's fetch.
        time_scale: Chart scale name.
        duration_s: Optional run duration (seconds).
        log_level: Logging level string.
        threshold_overrides: Raw per-topic dicts, merged over the built-in table.
        consumer_configs: Raw dicts passed to the consumer factory.
    """

    base_url: str = "http://localhost:8080/api"
    timeout_s: float = 15.0
    email: str | None = None
    password: str | None = None
    token: str | None = None
    poll_interval_s: float = 5.0
    window_hours: float = 1.0
    fetch_timeout_s: float = 10.0
    time_scale: TimeScale = TimeScale.SECOND
    duration_s: float | None = None
    log_level: str = "INFO"
    threshold_overrides: dict[str, dict[str, Any]] = Field(default_factory=dict)
    consumer_configs: list[dict[str, Any]] = Field(default_factory=list)

    def threshold_table(self) -> ThresholdTable:
        return build_threshold_table(self.threshold_overrides)


def load_yaml_config(path: str | Path) -> MonitorYAMLConfig:
    """Load and validate a YAML configuration file.

    Returns a :class:`MonitorYAMLConfig` ready to be passed to
    :class:`~smartbee.monitor.Monitor`.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    api = raw.get("api") or {}
    mon = raw.get("monitor") or {}

    config = MonitorYAMLConfig(
        **_present(
            base_url=api.get("base_url"),
            timeout_s=api.get("timeout_s"),
            email=api.get("email"),
            password=api.get("password"),
            token=api.get("token"),
            poll_interval_s=mon.get("poll_interval_s"),
            window_hours=mon.get("window_hours"),
            fetch_timeout_s=mon.get("fetch_timeout_s"),
            time_scale=mon.get("time_scale"),
            duration_s=mon.get("duration_s"),
            log_level=mon.get("log_level"),
        ),
        threshold_overrides=raw.get("thresholds") or {},
        consumer_configs=raw.get("consumers") or [],
    )
    # Fail early on bad threshold definitions.
    table = config.threshold_table()

    logger.info(
        "Loaded config: %s, %d topics, %d consumers",
        config.base_url,
        len(table),
        len(config.consumer_configs),
    )
    return config


def build_threshold_table(
    overrides: dict[str, dict[str, Any]],
    base: ThresholdTable | None = None,
) -> ThresholdTable:
    """Merge per-topic override dicts into *base* (default: built-in table).

    For a topic already in the table only the given keys change; a new topic
    must define at least ``normal_range``.
    """
    base = base if base is not None else default_table()
    profiles: list[TopicProfile] = []
    for topic, fields in overrides.items():
        fields = dict(fields or {})
        existing = base.lookup(topic)
        if existing is not None:
            profiles.append(TopicProfile.model_validate({**existing.model_dump(), **fields}))
            logger.debug("Overriding thresholds for topic '%s': %s", existing.topic, sorted(fields))
        else:
            fields.setdefault("topic", topic.strip().lower())
            fields.setdefault("label", topic.strip().capitalize())
            profiles.append(TopicProfile.model_validate(fields))
            logger.debug("Adding topic '%s'", fields["topic"])
        _warn_on_gaps(profiles[-1])
    return base.with_profiles(profiles)


def _warn_on_gaps(profile: TopicProfile) -> None:
    """Log readings that would fall between a warning band and its critical limit."""
    fmt = profile.format_value
    if profile.critical_above is not None:
        upper = profile.warning_high[1] if profile.warning_high else profile.normal_range[1]
        if upper < profile.critical_above:
            logger.warning(
                "Topic '%s': readings between %s and %s match no band and classify as unknown",
                profile.topic,
                fmt(upper),
                fmt(profile.critical_above),
            )
    if profile.critical_below is not None:
        lower = profile.warning_low[0] if profile.warning_low else profile.normal_range[0]
        if profile.critical_below < lower:
            logger.warning(
                "Topic '%s': readings between %s and %s match no band and classify as unknown",
                profile.topic,
                fmt(profile.critical_below),
                fmt(lower),
            )


def _present(**kwargs: Any) -> dict[str, Any]:
    """Drop keys whose value is ``None`` so model defaults apply."""
    return {key: value for key, value in kwargs.items() if value is not None}
