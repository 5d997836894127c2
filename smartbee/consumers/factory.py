"""Consumer factory – creates consumer instances from configuration dicts.

Used by the config-driven (YAML) mode to instantiate consumers declaratively::

    consumers:
      - type: console
        fmt: text
      - type: webhook
        url: https://example.com/alerts

A callable cannot be written in YAML, so
:class:`~smartbee.consumers.callback.CallbackConsumer` is not registered;
attach it with ``Monitor.add_consumer(fn)``.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from smartbee.consumers.base import Consumer

__all__ = ["create_consumer", "register_consumer"]

logger = logging.getLogger("smartbee.consumers.factory")

# Registry of type names → (module_path, class_name)
_CONSUMER_REGISTRY: dict[str, tuple[str, str]] = {
    "console": ("smartbee.consumers.console", "ConsoleConsumer"),
    "webhook": ("smartbee.consumers.webhook", "WebhookConsumer"),
}


def create_consumer(config: dict[str, Any]) -> Consumer:
    """Create a consumer instance from a configuration dict.

    The dict must contain a ``"type"`` key matching a registered consumer
    name.  All other keys are forwarded as keyword arguments to the
    consumer constructor.

    Example::

        consumer = create_consumer({
            "type": "webhook",
            "url": "https://example.com/alerts",
            "timeout_s": 5,
        })

    Returns:
        A fully-constructed :class:`Consumer` instance (not yet opened).
    """
    config = dict(config)  # shallow copy
    consumer_type = config.pop("type", None)

    if consumer_type is None:
        raise ValueError("Consumer config must include a 'type' key")

    consumer_type = consumer_type.lower().strip()

    if consumer_type not in _CONSUMER_REGISTRY:
        raise ValueError(
            f"Unknown consumer type '{consumer_type}'.  "
            f"Available: {sorted(_CONSUMER_REGISTRY)}"
        )

    module_path, class_name = _CONSUMER_REGISTRY[consumer_type]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)

    logger.debug("Creating %s with config: %s", class_name, config)
    return cls(**config)


def register_consumer(name: str, module_path: str, class_name: str) -> None:
    """Register a custom consumer type for config-driven instantiation.

    Example::

        from smartbee.consumers.factory import register_consumer
        register_consumer("sms", "mypackage.alerts", "SmsConsumer")

    Then in YAML::

        consumers:
          - type: sms
            phone: "+56 9 1234 5678"
    """
    _CONSUMER_REGISTRY[name.lower().strip()] = (module_path, class_name)
