"""Permission Gate: explicit wrapper over the platform notification permission."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable

from loguru import logger

from taskalarm.engine.errors import NotificationsUnsupported, PermissionDenied, PermissionNotGranted
from taskalarm.platform.base import NotificationPlatform


class PermissionState(str, Enum):
    UNSUPPORTED = "unsupported"
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


PermissionListener = Callable[[PermissionState, PermissionState], None]


def _coerce(raw: str | None) -> PermissionState:
    """Map a platform value to a state. Unknown values count as undecided."""
    try:
        return PermissionState(raw or "default")
    except ValueError:
        return PermissionState.DEFAULT


class PermissionGate:
    """Tracks the notification permission and requests it at most once.

    The gate never touches timers. Listeners (the orchestrator) are called
    with ``(old, new)`` on every transition and react themselves.
    """

    def __init__(self, platform: NotificationPlatform | None):
        self.platform = platform
        self._listeners: list[PermissionListener] = []
        self._pending: asyncio.Future[bool] | None = None
        self._state = self._read_platform()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def current_state(self) -> PermissionState:
        return self._state

    def subscribe(self, listener: PermissionListener) -> Callable[[], None]:
        """Register a transition listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def refresh(self) -> PermissionState:
        """Re-read the platform (the user may change browser/OS settings)."""
        self._set_state(self._read_platform())
        return self._state

    async def request(self) -> bool:
        """Prompt for permission if still undecided.

        granted -> True without prompting; denied/unsupported -> False
        without prompting (platforms refuse to re-prompt once denied).
        Concurrent callers share one in-flight prompt.
        """
        state = self.refresh()
        if state == PermissionState.GRANTED:
            return True
        if state in (PermissionState.DENIED, PermissionState.UNSUPPORTED):
            return False

        if self._pending is not None:
            return await asyncio.shield(self._pending)

        loop = asyncio.get_running_loop()
        self._pending = loop.create_future()
        try:
            granted = await self._prompt()
            self._pending.set_result(granted)
            return granted
        finally:
            if not self._pending.done():
                self._pending.set_result(False)
            self._pending = None

    def ensure_granted(self) -> None:
        """Raise the matching error unless permission is granted."""
        if self._state == PermissionState.UNSUPPORTED:
            raise NotificationsUnsupported("Notifications are not supported on this platform")
        if self._state == PermissionState.DENIED:
            raise PermissionDenied("Notification permission was denied")
        if self._state == PermissionState.DEFAULT:
            raise PermissionNotGranted("Notification permission has not been granted yet")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _prompt(self) -> bool:
        logger.info("[Permission] Requesting notification permission")
        try:
            raw = await self.platform.request_permission()
        except Exception as e:
            logger.error(f"[Permission] Request failed: {e}")
            return False

        self._set_state(_coerce(raw))
        granted = self._state == PermissionState.GRANTED
        logger.info(f"[Permission] Request resolved: {self._state.value}")
        return granted

    def _read_platform(self) -> PermissionState:
        if self.platform is None or not getattr(self.platform, "supported", False):
            return PermissionState.UNSUPPORTED
        try:
            return _coerce(self.platform.permission())
        except Exception as e:
            logger.warning(f"[Permission] Platform query failed: {e}")
            return PermissionState.DEFAULT

    def _set_state(self, new: PermissionState) -> None:
        old = self._state
        if new == old:
            return
        self._state = new
        logger.debug(f"[Permission] {old.value} -> {new.value}")
        for listener in list(self._listeners):
            try:
                listener(old, new)
            except Exception as e:
                logger.error(f"[Permission] Listener failed: {e}")
