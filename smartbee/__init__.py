"""SmartBee monitor - classify beehive sensor readings into alerts and keep a
rolling real-time view of every node's latest values.

Quick start::

    from smartbee import Monitor, SmartBeeClient, classify
    from smartbee.consumers import ConsoleConsumer

    print(classify("temperatura", "39.2°C").message)

    client = SmartBeeClient("http://localhost:8080/api")
    monitor = Monitor(client, poll_interval_s=5.0)
    monitor.add_consumer(ConsoleConsumer())
    monitor.run(duration_s=60)
"""

from __future__ import annotations

from smartbee.aggregator import RealTimeAggregator, TimeScale
from smartbee.classifier import AlertClassifier, classify, format_value
from smartbee.client import ApiError, SmartBeeClient
from smartbee.models import AlertAnalysis, MonitorUpdate, RealTimeDataPoint, SensorMessage
from smartbee.monitor import Monitor
from smartbee.session import SessionManager
from smartbee.thresholds import AlertCategory, AlertPriority, ThresholdTable, TopicProfile

__all__ = [
    "AlertAnalysis",
    "AlertCategory",
    "AlertClassifier",
    "AlertPriority",
    "ApiError",
    "Monitor",
    "MonitorUpdate",
    "RealTimeAggregator",
    "RealTimeDataPoint",
    "SensorMessage",
    "SessionManager",
    "SmartBeeClient",
    "ThresholdTable",
    "TimeScale",
    "TopicProfile",
    "classify",
    "format_value",
]

__version__ = "0.1.0"
