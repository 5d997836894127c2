"""Pluggable consumers of monitor updates.

Import any consumer you need directly from this package::

    from smartbee.consumers import ConsoleConsumer, CallbackConsumer
"""

from __future__ import annotations

import importlib
from typing import Any

from smartbee.consumers.base import Consumer, ConsumerConfig
from smartbee.consumers.callback import CallbackConsumer
from smartbee.consumers.console import ConsoleConsumer

__all__ = [
    "CallbackConsumer",
    "ConsoleConsumer",
    "Consumer",
    "ConsumerConfig",
]


def __getattr__(name: str) -> Any:
    """Lazy-import consumers that open network clients."""
    _lazy = {
        "WebhookConsumer": "smartbee.consumers.webhook",
    }
    if name in _lazy:
        mod = importlib.import_module(_lazy[name])
        return getattr(mod, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
