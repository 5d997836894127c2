"""Tests for smartbee.consumers.__init__ and smartbee.__init__ exports."""

from __future__ import annotations

import pytest

import smartbee
import smartbee.consumers as consumers_pkg


class TestConsumersPackage:
    """Consumers package __all__ and lazy imports."""

    def test_direct_exports(self) -> None:
        for name in ("Consumer", "ConsumerConfig", "ConsoleConsumer", "CallbackConsumer"):
            assert hasattr(consumers_pkg, name)
            assert name in consumers_pkg.__all__

    def test_lazy_import_webhook(self) -> None:
        cls = consumers_pkg.WebhookConsumer
        from smartbee.consumers.webhook import WebhookConsumer

        assert cls is WebhookConsumer

    def test_lazy_import_unknown_raises(self) -> None:
        with pytest.raises(AttributeError, match="has no attribute"):
            _ = consumers_pkg.NonExistentConsumer  # type: ignore[attr-defined]


class TestTopLevelPackage:
    def test_exports_resolve(self) -> None:
        for name in smartbee.__all__:
            assert getattr(smartbee, name) is not None

    def test_version(self) -> None:
        assert smartbee.__version__ == "0.1.0"

    def test_classify_shortcut(self) -> None:
        assert smartbee.classify("temperatura", "39.2°C").category is smartbee.AlertCategory.CRITICAL
