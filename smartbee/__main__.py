"""CLI entry point for the SmartBee monitor.

Usage::

    smartbee monitor --base-url http://localhost:8080/api --duration 60
    smartbee monitor --config smartbee.yaml
    smartbee classify temperatura "39.2°C"
    smartbee list-topics
    smartbee send 3 temperatura "35.1°C" --base-url http://localhost:8080/api
    smartbee list-consumers
    smartbee init-config --output smartbee.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import textwrap

# ---------------------------------------------------------------------------
# Sample YAML config template for init-config
# ---------------------------------------------------------------------------
_SAMPLE_CONFIG = """\
# SmartBee monitor configuration

api:
  base_url: http://localhost:8080/api   # SmartBee REST API root
  timeout_s: 15                          # per-request timeout
  # email: apicultor@example.com         # optional: log in before polling
  # password: change-me
  # token: eyJhbGciOi...                 # optional: pre-issued bearer token

monitor:
  poll_interval_s: 5          # seconds between polls
  window_hours: 1             # history requested on each poll
  fetch_timeout_s: 10         # skip the cycle if the fetch takes longer
  time_scale: second          # second, minute, hour, day, week, month
  # duration_s: 300           # optional: auto-stop after N seconds
  # log_level: INFO           # DEBUG, INFO, WARNING, ERROR

# Optional: adjust built-in thresholds or add topics
# thresholds:
#   temperatura:
#     warning_high: [36, 39]
#     critical_above: 39
#   co2:
#     label: CO2
#     unit: ppm
#     unit_separator: " "
#     decimals: 0
#     normal_range: [400, 1500]
#     warning_high: [1500, 3000]
#     critical_above: 3000

# Consumers receive every poll cycle's update.
consumers:
  - type: console
    fmt: text                 # text or json

  # - type: webhook
  #   url: https://example.com/alerts
  #   only_alerts: true       # only cycles with new critical readings
  #   headers:
  #     Authorization: Bearer my-token
"""


# ======================================================================
# Main entry point
# ======================================================================


def main(argv: list[str] | None = None) -> None:
    epilog = textwrap.dedent("""\
        examples:
          smartbee monitor --base-url http://localhost:8080/api --duration 60
          smartbee monitor --config smartbee.yaml
          smartbee classify temperatura "39.2°C"
          smartbee list-topics
          smartbee send 3 humedad "35%" --base-url http://localhost:8080/api
          smartbee init-config --output smartbee.yaml
    """)

    parser = argparse.ArgumentParser(
        prog="smartbee",
        description="Monitor beehive sensors and classify readings into alerts.",
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", title="commands")

    # -- monitor -----------------------------------------------------------
    monitor_parser = subparsers.add_parser(
        "monitor",
        help="Poll recent sensor messages and report alerts.",
    )
    monitor_parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML config file. Command-line flags override its values.",
    )
    monitor_parser.add_argument("--base-url", type=str, default=None, help="REST API root URL.")
    monitor_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between polls (default: 5).",
    )
    monitor_parser.add_argument(
        "--window-hours",
        type=float,
        default=None,
        help="History window requested on each poll (default: 1).",
    )
    monitor_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Skip a poll whose fetch takes longer than this (default: 10).",
    )
    monitor_parser.add_argument("--email", type=str, default=None, help="Login email.")
    monitor_parser.add_argument("--password", type=str, default=None, help="Login password.")
    monitor_parser.add_argument("--token", type=str, default=None, help="Pre-issued bearer token.")
    monitor_parser.add_argument(
        "--scale",
        type=str,
        default=None,
        choices=["second", "minute", "hour", "day", "week", "month"],
        help="Chart time scale (default: second).",
    )
    monitor_parser.add_argument(
        "--duration",
        "-d",
        type=float,
        default=None,
        help="Run duration in seconds (default: indefinite, Ctrl-C to stop).",
    )
    monitor_parser.add_argument(
        "--format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Console output format when no consumers are configured (default: text).",
    )
    monitor_parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO).",
    )

    # -- classify ----------------------------------------------------------
    classify_parser = subparsers.add_parser(
        "classify",
        help="Classify a single reading offline.",
    )
    classify_parser.add_argument("topic", type=str, help="Topic, e.g. temperatura.")
    classify_parser.add_argument("payload", type=str, help="Payload, e.g. '39.2°C'.")
    classify_parser.add_argument("--config", "-c", type=str, default=None, help="Apply threshold overrides.")
    classify_parser.add_argument("--json", action="store_true", help="Print the analysis as JSON.")

    # -- list-topics -------------------------------------------------------
    topics_parser = subparsers.add_parser(
        "list-topics",
        help="List known topics and their thresholds.",
    )
    topics_parser.add_argument("--config", "-c", type=str, default=None, help="Apply threshold overrides.")

    # -- send --------------------------------------------------------------
    send_parser = subparsers.add_parser(
        "send",
        help="Store a sensor message (testing and field checks).",
    )
    send_parser.add_argument("node_id", type=str, help="Node identifier.")
    send_parser.add_argument("topic", type=str, help="Topic, e.g. temperatura.")
    send_parser.add_argument("payload", type=str, help="Payload, e.g. '35.1°C'.")
    send_parser.add_argument("--config", "-c", type=str, default=None, help="Read API settings from YAML.")
    send_parser.add_argument("--base-url", type=str, default=None, help="REST API root URL.")

    # -- list-consumers ----------------------------------------------------
    subparsers.add_parser(
        "list-consumers",
        help="List all available consumer types.",
    )

    # -- init-config -------------------------------------------------------
    init_parser = subparsers.add_parser(
        "init-config",
        help="Generate a sample YAML configuration file.",
    )
    init_parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Write config to this file instead of stdout.",
    )

    # If the first arg is a flag rather than a subcommand, assume "monitor"
    # so that `smartbee --config smartbee.yaml` works.
    _known_commands = {"monitor", "classify", "list-topics", "send", "list-consumers", "init-config"}
    raw_args = argv if argv is not None else sys.argv[1:]
    if raw_args and raw_args[0] not in _known_commands and raw_args[0] not in ("-h", "--help"):
        raw_args = ["monitor", *list(raw_args)]

    args = parser.parse_args(raw_args)

    if args.command is None:
        parser.print_help()
        return

    # -- Dispatch ----------------------------------------------------------
    if args.command == "monitor":
        _cmd_monitor(args)
    elif args.command == "classify":
        _cmd_classify(args.topic, args.payload, args.config, args.json)
    elif args.command == "list-topics":
        _cmd_list_topics(args.config)
    elif args.command == "send":
        _cmd_send(args)
    elif args.command == "list-consumers":
        _cmd_list_consumers()
    elif args.command == "init-config":
        _cmd_init_config(args.output)
    else:
        parser.print_help()


# ======================================================================
# Command implementations
# ======================================================================


def _load_config(path: str | None):
    from smartbee.config import MonitorYAMLConfig, load_yaml_config

    return load_yaml_config(path) if path else MonitorYAMLConfig()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )


def _cmd_monitor(args: argparse.Namespace) -> None:
    """Build the monitor from config + flags and run it."""
    _configure_logging(args.log_level or "INFO")
    cfg = _load_config(args.config)

    overrides = {
        "base_url": args.base_url,
        "poll_interval_s": args.interval,
        "window_hours": args.window_hours,
        "fetch_timeout_s": args.timeout,
        "email": args.email,
        "password": args.password,
        "token": args.token,
        "duration_s": args.duration,
        "log_level": args.log_level,
    }
    cfg = cfg.model_copy(update={k: v for k, v in overrides.items() if v is not None})
    if args.scale is not None:
        from smartbee.aggregator import TimeScale

        cfg = cfg.model_copy(update={"time_scale": TimeScale(args.scale)})
    logging.getLogger().setLevel(getattr(logging, cfg.log_level.upper(), logging.INFO))

    try:
        asyncio.run(_monitor_main(cfg, console_fmt=args.format or "text"))
    except KeyboardInterrupt:
        logging.getLogger("smartbee").info("Interrupted by user")


async def _monitor_main(cfg, console_fmt: str = "text") -> None:
    from smartbee.aggregator import RealTimeAggregator
    from smartbee.classifier import AlertClassifier
    from smartbee.client import ApiError, SmartBeeClient
    from smartbee.consumers.factory import create_consumer
    from smartbee.monitor import Monitor

    aggregator = RealTimeAggregator(AlertClassifier(cfg.threshold_table()), time_scale=cfg.time_scale)

    async with SmartBeeClient(cfg.base_url, timeout_s=cfg.timeout_s) as client:
        if cfg.token:
            client.session.start(token=cfg.token)
        elif cfg.email and cfg.password:
            try:
                await client.login(cfg.email, cfg.password)
            except ApiError as exc:
                print(f"Error: login failed: {exc}", file=sys.stderr)
                sys.exit(1)

        monitor = Monitor(
            client,
            aggregator=aggregator,
            poll_interval_s=cfg.poll_interval_s,
            window_hours=cfg.window_hours,
            fetch_timeout_s=cfg.fetch_timeout_s,
        )
        if cfg.consumer_configs:
            for consumer_dict in cfg.consumer_configs:
                monitor.add_consumer(create_consumer(consumer_dict))
        else:
            from smartbee.consumers.console import ConsoleConsumer

            monitor.add_consumer(ConsoleConsumer(fmt=console_fmt))

        await monitor.run_async(duration_s=cfg.duration_s)


# -- classify ---------------------------------------------------------------


def _cmd_classify(topic: str, payload: str, config_path: str | None, as_json: bool) -> None:
    from smartbee.classifier import AlertClassifier

    cfg = _load_config(config_path)
    analysis = AlertClassifier(cfg.threshold_table()).classify(topic, payload)

    if as_json:
        print(analysis.model_dump_json(indent=2))
        return

    print(f"\n{analysis.icon} {analysis.message}")
    print(f"  Category:  {analysis.category.value}")
    print(f"  Priority:  {analysis.priority.value}")
    print(f"  Value:     {analysis.display or '-'}")
    print(f"  Range:     {analysis.range}")
    if analysis.suggestions:
        print("  Suggestions:")
        for step in analysis.suggestions:
            print(f"    - {step}")
    print()


# -- list-topics ------------------------------------------------------------


def _cmd_list_topics(config_path: str | None) -> None:
    cfg = _load_config(config_path)
    table = cfg.threshold_table()

    print(f"\n{'Topic':<14} {'Unit':<6} {'Crit <':>8} {'Warn low':>14} {'Normal':>14} {'Warn high':>14} {'Crit >':>8}")
    print("-" * 84)
    for profile in table:
        print(
            f"{profile.topic:<14} {profile.unit:<6} "
            f"{_num(profile.critical_below):>8} {_band(profile.warning_low):>14} "
            f"{_band(profile.normal_range):>14} {_band(profile.warning_high):>14} "
            f"{_num(profile.critical_above):>8}"
        )
    print()


def _num(value: float | None) -> str:
    return "-" if value is None else f"{value:g}"


def _band(band: tuple[float, float] | None) -> str:
    return "-" if band is None else f"{band[0]:g}-{band[1]:g}"


# -- send -------------------------------------------------------------------


def _cmd_send(args: argparse.Namespace) -> None:
    from smartbee.classifier import AlertClassifier
    from smartbee.client import ApiError, SmartBeeClient

    cfg = _load_config(args.config)
    base_url = args.base_url or cfg.base_url
    node_id: int | str = int(args.node_id) if args.node_id.isdigit() else args.node_id

    async def _send():
        async with SmartBeeClient(base_url, timeout_s=cfg.timeout_s) as client:
            if cfg.token:
                client.session.start(token=cfg.token)
            elif cfg.email and cfg.password:
                await client.login(cfg.email, cfg.password)
            return await client.create_message(node_id, args.topic, args.payload)

    try:
        message = asyncio.run(_send())
    except ApiError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    analysis = AlertClassifier(cfg.threshold_table()).classify(message.topic, message.payload)
    print(f"Stored message {message.id} for node {message.node_id}: {analysis.icon} {analysis.message}")


# -- list-consumers ---------------------------------------------------------


def _cmd_list_consumers() -> None:
    from smartbee.consumers.factory import _CONSUMER_REGISTRY

    print(f"\n{'Consumer Type':<16} {'Class'}")
    print("-" * 40)
    for name, (_module_path, class_name) in _CONSUMER_REGISTRY.items():
        print(f"{name:<16} {class_name}")
    print("\nProgrammatic only: callback (CallbackConsumer) via Monitor.add_consumer(fn)")
    print()


# -- init-config ------------------------------------------------------------


def _cmd_init_config(output_path: str | None) -> None:
    if output_path:
        from pathlib import Path

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_text(_SAMPLE_CONFIG, encoding="utf-8")
        print(f"Sample config written to {output_path}")
    else:
        print(_SAMPLE_CONFIG)


# ======================================================================
if __name__ == "__main__":
    main()
