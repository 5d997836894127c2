"""Monitor - top-level orchestrator that polls the backend for recent sensor
messages, feeds them to a :class:`RealTimeAggregator` and fans each cycle's
result out to one or more consumers.

Each poll cycle is: fetch recent messages -> ingest -> snapshot -> dispatch.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from smartbee.aggregator import RealTimeAggregator
from smartbee.client import ApiError, SmartBeeClient
from smartbee.consumers.base import Consumer
from smartbee.consumers.callback import CallbackConsumer
from smartbee.models import MessageAnalysis, MonitorUpdate

__all__ = ["Monitor"]

logger = logging.getLogger("smartbee.monitor")


class Monitor:
    """Polls sensor messages on a fixed interval and publishes updates.

    Example::

        from smartbee import Monitor, SmartBeeClient
        from smartbee.consumers import ConsoleConsumer

        client = SmartBeeClient("http://localhost:8080/api")
        monitor = Monitor(client, poll_interval_s=5.0)
        monitor.add_consumer(ConsoleConsumer())
        monitor.run(duration_s=60)

    Parameters:
        client:
            Source of sensor messages.
        aggregator:
            State to update.  The monitor is its only writer while running.
        poll_interval_s:
            Seconds between the starts of two poll cycles.
        window_hours:
            How far back each poll asks the backend for messages.
        fetch_timeout_s:
            A fetch slower than this is abandoned and the cycle skipped.
    """

    def __init__(
        self,
        client: SmartBeeClient,
        *,
        aggregator: RealTimeAggregator | None = None,
        poll_interval_s: float = 5.0,
        window_hours: float = 1.0,
        fetch_timeout_s: float = 10.0,
    ) -> None:
        if poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be positive")
        if fetch_timeout_s <= 0:
            raise ValueError("fetch_timeout_s must be positive")
        self._client = client
        self.aggregator = aggregator if aggregator is not None else RealTimeAggregator()
        self.poll_interval_s = poll_interval_s
        self.window_hours = window_hours
        self.fetch_timeout_s = fetch_timeout_s
        self._consumers: list[Consumer] = []
        self._started = 0
        self._running = False
        self._stop_event: asyncio.Event | None = None
        self.stale_discarded = 0
        self.failed_cycles = 0

    # ------------------------------------------------------------------
    # Consumer management
    # ------------------------------------------------------------------

    def add_consumer(
        self,
        consumer: Consumer | Callable[[MonitorUpdate], Any],
        **kwargs: Any,
    ) -> None:
        """Register a consumer (or callable) to receive every cycle's update.

        Extra keyword arguments are forwarded to :class:`CallbackConsumer`
        when *consumer* is a bare callable.
        """
        if not isinstance(consumer, Consumer):
            consumer = CallbackConsumer(consumer, **kwargs)
        self._consumers.append(consumer)

    @property
    def consumers(self) -> list[Consumer]:
        return list(self._consumers)

    @property
    def cycles_started(self) -> int:
        return self._started

    # ------------------------------------------------------------------
    # One poll cycle
    # ------------------------------------------------------------------

    async def poll_once(self) -> MonitorUpdate | None:
        """Run one fetch -> ingest -> snapshot -> dispatch cycle.

        Returns the dispatched update, or ``None`` when the result was
        discarded because a newer poll started while this one was fetching.
        """
        self._started += 1
        seq = self._started

        try:
            messages = await asyncio.wait_for(
                self._client.get_recent_messages(self.window_hours),
                timeout=self.fetch_timeout_s,
            )
        except (ApiError, asyncio.TimeoutError) as exc:
            if seq != self._started:
                return self._discard(seq)
            reason = (
                f"fetch timed out after {self.fetch_timeout_s:.1f}s"
                if isinstance(exc, asyncio.TimeoutError)
                else str(exc)
            )
            self.failed_cycles += 1
            logger.warning("Poll #%d failed: %s - keeping last state", seq, reason)
            update = MonitorUpdate(
                cycle=seq,
                timestamp=datetime.now(timezone.utc),
                critical_keys=self.aggregator.critical_keys(),
                error=reason,
            )
            await self._dispatch(update)
            return update

        if seq != self._started:
            return self._discard(seq)

        # ingest and snapshot run back to back: no await until dispatch.
        before = set(self.aggregator.critical_keys())
        changed = self.aggregator.ingest(messages)
        point = self.aggregator.snapshot()
        critical = self.aggregator.critical_keys()
        new_critical = [key for key in critical if key not in before]

        classifier = self.aggregator.classifier
        update = MonitorUpdate(
            cycle=seq,
            timestamp=datetime.now(timezone.utc),
            analyses=[
                MessageAnalysis(message=msg, analysis=classifier.classify(msg.topic, msg.payload))
                for msg in messages
            ],
            critical_keys=critical,
            new_critical_keys=new_critical,
            chart_point=point,
        )

        if new_critical:
            logger.warning("New critical readings: %s", ", ".join(new_critical))
        logger.debug(
            "Poll #%d - %d messages, %d keys changed, %d critical",
            seq,
            len(messages),
            len(changed),
            len(critical),
        )

        await self._dispatch(update)
        return update

    def _discard(self, seq: int) -> None:
        self.stale_discarded += 1
        logger.debug("Discarding poll #%d - superseded by poll #%d", seq, self._started)
        return None

    async def _dispatch(self, update: MonitorUpdate) -> None:
        for consumer in self._consumers:
            if not consumer.accepts(update):
                continue
            try:
                await consumer.handle(update)
            except Exception as exc:
                logger.error(
                    "%s failed to handle poll #%d: %s",
                    type(consumer).__name__,
                    update.cycle,
                    exc,
                )

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, duration_s: float | None = None) -> None:
        """Blocking entry point - starts the event loop.

        Works inside environments that already have a running event loop
        (Jupyter, IPython) by spawning a dedicated background thread with
        its own loop.  The monitor and its aggregator then live entirely on
        that thread.

        Parameters:
            duration_s: If provided, stop automatically after this many
                        seconds.  ``None`` means run until Ctrl-C.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None and loop.is_running():
            exc: list[BaseException | None] = [None]

            def _target() -> None:
                try:
                    asyncio.run(self.run_async(duration_s=duration_s))
                except KeyboardInterrupt:
                    logger.info("Interrupted by user")
                except BaseException as e:
                    exc[0] = e

            t = threading.Thread(target=_target, daemon=True)
            t.start()
            t.join()
            if exc[0] is not None:
                raise exc[0]
        else:
            try:
                asyncio.run(self.run_async(duration_s=duration_s))
            except KeyboardInterrupt:
                logger.info("Interrupted by user")

    async def run_async(self, duration_s: float | None = None) -> None:
        """Async entry point - runs inside an existing event loop."""
        if not self._consumers:
            logger.warning("No consumers registered - updates will only be logged.")

        logger.info(
            "Starting monitor: every %.1fs, window %.1fh, timeout %.1fs, %d consumers",
            self.poll_interval_s,
            self.window_hours,
            self.fetch_timeout_s,
            len(self._consumers),
        )

        opened_client = not self._client.is_open
        if opened_client:
            await self._client.open()
        for consumer in self._consumers:
            await consumer.open()

        self._running = True
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        start_time = loop.time()

        # Install signal handlers for graceful shutdown.
        # NotImplementedError: raised on Windows where signal handlers are unsupported.
        # RuntimeError: raised when running in a non-main thread (e.g. notebook env).
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self._stop_event.set)

        pending: set[asyncio.Task[MonitorUpdate | None]] = set()
        try:
            while self._running:
                if self._stop_event.is_set():
                    logger.info("Stop signal received - shutting down")
                    break

                remaining: float | None = None
                if duration_s is not None:
                    remaining = duration_s - (loop.time() - start_time)
                    if remaining <= 0:
                        logger.info("Duration reached (%.1fs) - stopping", duration_s)
                        break

                task = asyncio.create_task(self.poll_once(), name=f"poll-{self._started + 1}")
                pending.add(task)
                task.add_done_callback(pending.discard)
                task.add_done_callback(_log_task_failure)

                wait_s = self.poll_interval_s if remaining is None else min(self.poll_interval_s, remaining)
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stop_event.wait(), timeout=wait_s)

        except asyncio.CancelledError:
            logger.info("Monitor cancelled")
        finally:
            self._running = False
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
                    loop.remove_signal_handler(sig)
            logger.info("Closing %d consumers...", len(self._consumers))
            for consumer in self._consumers:
                try:
                    await consumer.close()
                except Exception as exc:
                    logger.error("%s failed to close: %s", type(consumer).__name__, exc)
            if opened_client:
                await self._client.close()
            logger.info(
                "Monitor stopped after %d polls (%d failed, %d stale).",
                self._started,
                self.failed_cycles,
                self.stale_discarded,
            )

    def stop(self) -> None:
        """Ask a running monitor to stop (call from the monitor's own loop)."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()


def _log_task_failure(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Poll task %s crashed: %r", task.get_name(), exc)
