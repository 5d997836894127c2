#!/usr/bin/env python3
"""Monitor examples -- poll a backend, print alerts and forward new critical
readings to a callback.

Case 1 serves ``mensajes/recientes`` from an in-process httpx MockTransport,
so it is directly runnable.  Case 2 talks to a real SmartBee backend.

Usage::

    python examples/scenarios/monitor_example.py                     # Case 1 (default)
    python examples/scenarios/monitor_example.py --case 2 \\
        --base-url http://localhost:8080/api --email ana@example.com --password secret

Equivalent CLI for case 2::

    smartbee monitor --config examples/configs/monitor_config.yaml
"""

from __future__ import annotations

import argparse
import logging

# ---------------------------------------------------------------------------
# Case 1: In-process backend
# ---------------------------------------------------------------------------


def run_case_1() -> None:
    """A hive warming past 38 °C while the monitor polls every second.

    Knobs demonstrated:
      - transport=MockTransport   -> no network needed
      - poll_interval_s=1.0       -> one cycle per second
      - callback with only_alerts -> called only when a key turns critical
    """
    from datetime import datetime, timezone

    import httpx

    from smartbee import Monitor, SmartBeeClient
    from smartbee.consumers import ConsoleConsumer

    print("=== Case 1: In-process backend ===\n")

    state = {"tick": 0}

    def backend(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/mensajes/recientes"):
            state["tick"] += 1
            tick = state["tick"]
            now = datetime.now(timezone.utc).isoformat()
            rows = [
                {"id": tick * 10 + 1, "nodo_id": 3, "topico": "temperatura", "payload": f"{35.5 + 0.6 * tick:.1f}°C", "fecha": now},
                {"id": tick * 10 + 2, "nodo_id": 3, "topico": "humedad", "payload": f"{36 - tick}%", "fecha": now},
                {"id": tick * 10 + 3, "nodo_id": 4, "topico": "peso", "payload": "48.3 kg", "fecha": now},
            ]
            return httpx.Response(200, json=rows)
        return httpx.Response(404, json={"error": "Not found"})

    client = SmartBeeClient("http://smartbee.local/api", transport=httpx.MockTransport(backend))
    monitor = Monitor(client, poll_interval_s=1.0, fetch_timeout_s=2.0)
    monitor.add_consumer(ConsoleConsumer())
    monitor.add_consumer(
        lambda update: print(f"  >>> ALERT: {', '.join(update.new_critical_keys)} became critical"),
        only_alerts=True,
        include_errors=False,
    )
    monitor.run(duration_s=8)

    print(f"\n  Chart points collected: {len(monitor.aggregator.series)}")


# ---------------------------------------------------------------------------
# Case 2: Real backend
# ---------------------------------------------------------------------------


def run_case_2(base_url: str, email: str | None, password: str | None) -> None:
    """Log in (when credentials are given) and monitor for one minute.

    Knobs demonstrated:
      - explicit session   -> client.login() starts it, a 401 ends it
      - window_hours=1     -> history requested on every poll
    """
    import asyncio

    from smartbee import Monitor, SmartBeeClient
    from smartbee.consumers import ConsoleConsumer

    print("=== Case 2: Real backend ===\n")

    async def _main() -> None:
        async with SmartBeeClient(base_url) as client:
            if email and password:
                await client.login(email, password)
            monitor = Monitor(client, poll_interval_s=5.0, window_hours=1.0)
            monitor.add_consumer(ConsoleConsumer())
            await monitor.run_async(duration_s=60)

    asyncio.run(_main())


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main() -> None:
    parser = argparse.ArgumentParser(description="Monitor examples")
    parser.add_argument("--case", type=int, default=1, choices=[1, 2], help="Which example case to run (default: 1)")
    parser.add_argument("--base-url", default="http://localhost:8080/api")
    parser.add_argument("--email", default=None)
    parser.add_argument("--password", default=None)
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.case == 1:
        run_case_1()
    else:
        run_case_2(args.base_url, args.email, args.password)


if __name__ == "__main__":
    main()
