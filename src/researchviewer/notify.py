"""User-visible notices.

Two kinds: blocking alerts (export failures, empty transcript) and brief toasts that dismiss
themselves after a few seconds.
"""

from __future__ import annotations

import asyncio

from rich.console import Console

from researchviewer.logging import get_logger

logger = get_logger(__name__)


class Toast:
    """A single transient notice slot; showing a new message replaces the old one."""

    def __init__(self, duration_s: float = 3.0) -> None:
        self._duration_s = duration_s
        self._timer: asyncio.TimerHandle | None = None
        self.message: str | None = None
        self.visible = False

    def show(self, message: str) -> None:
        self._cancel_timer()
        self.message = message
        self.visible = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside an event loop the toast stays up until hide() is called.
            return
        self._timer = loop.call_later(self._duration_s, self.hide)

    def hide(self) -> None:
        self._cancel_timer()
        self.visible = False

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class ConsoleNotifier:
    """Notifier that prints to a rich console and keeps a record of what was shown."""

    def __init__(self, *, toast_duration_s: float = 3.0, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)
        self.toast_slot = Toast(toast_duration_s)
        self.alerts: list[str] = []

    def alert(self, message: str) -> None:
        self.alerts.append(message)
        logger.warning("Alert: %s", message)
        self._console.print(f"[bold red]{message}[/bold red]")

    def toast(self, message: str) -> None:
        self.toast_slot.show(message)
        self._console.print(f"[green]{message}[/green]")
