"""Console consumer - prints each cycle's readings and alerts.

Useful for watching an apiary from a terminal and for verifying the
polling pipeline is working.
"""

from __future__ import annotations

import sys
from typing import IO

from smartbee.consumers.base import Consumer
from smartbee.models import MonitorUpdate

__all__ = ["ConsoleConsumer"]


class ConsoleConsumer(Consumer):
    """Writes monitor updates to the console (stdout by default).

    Parameters:
        fmt: Output format - ``"text"`` (human-readable) or ``"json"``
             (one JSON object per update).
        stream: Writable file-like object (defaults to ``sys.stdout``).
        **kwargs: Forwarded to :class:`Consumer`.
    """

    def __init__(self, *, fmt: str = "text", stream: IO[str] | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        if fmt not in ("text", "json"):
            raise ValueError(f"Unknown console format '{fmt}' (expected 'text' or 'json')")
        self._fmt = fmt
        self._stream = stream or sys.stdout

    async def open(self) -> None:
        """No-op - stdout is always available."""

    async def handle(self, update: MonitorUpdate) -> None:
        if self._fmt == "json":
            self._stream.write(update.to_json() + "\n")
        else:
            self._stream.write(_render_text(update))
        self._stream.flush()

    async def close(self) -> None:
        """No-op - we do not own stdout."""


def _render_text(update: MonitorUpdate) -> str:
    stamp = update.timestamp.strftime("%H:%M:%S")
    if update.error is not None:
        return f"[{stamp}] poll #{update.cycle} failed: {update.error} (keeping last data)\n"

    lines = [f"[{stamp}] poll #{update.cycle}: {len(update.analyses)} messages"]
    for item in update.analyses:
        msg, analysis = item.message, item.analysis
        shown = analysis.display or msg.payload
        lines.append(
            f"  {analysis.icon} {msg.topic}|{msg.node_id:<8} {shown:>10s}  "
            f"{analysis.category.value:<8s} {analysis.message}"
        )
    for key in update.new_critical_keys:
        lines.append(f"  NEW CRITICAL: {key}")
    if update.critical_keys:
        lines.append(f"  critical now: {', '.join(update.critical_keys)}")
    return "\n".join(lines) + "\n"
