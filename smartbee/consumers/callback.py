"""Callback consumer – delegates to a user-provided Python callable.

This allows users to hook any custom logic into the monitor without
having to subclass :class:`Consumer`::

    monitor.add_consumer(lambda update: print(update.critical_keys))
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable

from smartbee.consumers.base import Consumer
from smartbee.models import MonitorUpdate

__all__ = ["CallbackConsumer"]


class CallbackConsumer(Consumer):
    """Wraps a user-supplied function as a consumer.

    The callable receives one :class:`MonitorUpdate` per poll cycle.  It can
    be a regular function, a coroutine function, or a lambda.

    Parameters:
        callback: ``(update: MonitorUpdate) -> None`` or async variant.
        **kwargs: Forwarded to :class:`Consumer`.
    """

    def __init__(self, callback: Callable[[MonitorUpdate], Any], **kwargs) -> None:
        super().__init__(**kwargs)
        self._callback = callback
        self._is_async = inspect.iscoroutinefunction(callback)

    async def open(self) -> None:
        """No-op."""

    async def handle(self, update: MonitorUpdate) -> None:
        if self._is_async:
            await self._callback(update)
        else:
            # Run sync callback in executor to avoid blocking the event loop
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._callback, update)

    async def close(self) -> None:
        """No-op."""
