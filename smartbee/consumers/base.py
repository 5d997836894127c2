"""Consumer abstraction - receivers of each poll cycle's :class:`MonitorUpdate`.

Provides:
- ``Consumer``       - abstract base class that every concrete consumer implements.
- ``ConsumerConfig`` - per-consumer filtering knobs.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from pydantic import BaseModel

from smartbee.models import MonitorUpdate

__all__ = ["Consumer", "ConsumerConfig"]

logger = logging.getLogger("smartbee.consumers")


class ConsumerConfig(BaseModel):
    """Per-consumer filtering knobs.

    Attributes:
        only_alerts:
            Deliver only updates that carry new critical keys or an error.
        include_errors:
            Deliver updates for failed poll cycles.
    """

    only_alerts: bool = False
    include_errors: bool = True


class Consumer(ABC):
    """Abstract base class for all consumers.

    Concrete consumers implement ``open``, ``handle`` and ``close``.  The
    monitor calls :meth:`accepts` before :meth:`handle`, so filtering
    configured through ``ConsumerConfig`` applies uniformly.
    """

    def __init__(self, *, only_alerts: bool = False, include_errors: bool = True) -> None:
        self.consumer_config = ConsumerConfig(only_alerts=only_alerts, include_errors=include_errors)

    def accepts(self, update: MonitorUpdate) -> bool:
        cfg = self.consumer_config
        if update.error is not None:
            return cfg.include_errors
        if cfg.only_alerts:
            return bool(update.new_critical_keys)
        return True

    @abstractmethod
    async def open(self) -> None:
        """Acquire resources."""

    @abstractmethod
    async def handle(self, update: MonitorUpdate) -> None:
        """Process one cycle's update."""

    @abstractmethod
    async def close(self) -> None:
        """Release resources."""
