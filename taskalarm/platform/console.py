"""Console notification platform (rich panels in the terminal)."""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm

from taskalarm.platform.base import NotificationPlatform


class ConsoleNotificationPlatform(NotificationPlatform):
    """
    Renders notifications as panels on a rich console.

    Permission starts as "default"; the prompt is a yes/no question on the
    terminal (run in a worker thread so the event loop keeps ticking).
    With ``assume_yes`` the prompt is skipped and permission is granted.
    """

    supported = True

    def __init__(self, console: Console | None = None, assume_yes: bool = False):
        self.console = console or Console()
        self.assume_yes = assume_yes
        self._permission = "default"
        self._ids = itertools.count(1)
        self._open: set[int] = set()

    def permission(self) -> str:
        return self._permission

    async def request_permission(self) -> str:
        if self._permission != "default":
            return self._permission
        if self.assume_yes:
            allowed = True
        else:
            allowed = await asyncio.to_thread(
                Confirm.ask, "Allow taskalarm to show reminder notifications?", console=self.console
            )
        self._permission = "granted" if allowed else "denied"
        return self._permission

    async def show(
        self,
        title: str,
        body: str,
        *,
        tag: str | None = None,
        require_interaction: bool = False,
    ) -> int:
        handle = next(self._ids)
        subtitle = datetime.now().strftime("%H:%M")
        if tag:
            subtitle = f"{subtitle} · {tag}"
        self.console.print(
            Panel(body, title=f"[bold]{title}[/bold]", subtitle=f"[dim]{subtitle}[/dim]", border_style="cyan")
        )
        self._open.add(handle)
        return handle

    def close(self, handle: int) -> None:
        if handle in self._open:
            self._open.discard(handle)
            logger.debug(f"[Console] Notification {handle} closed")
