"""Base class for notification platforms."""

from abc import ABC, abstractmethod
from typing import Any


class NotificationPlatform(ABC):
    """
    Abstract notification capability of the host platform.

    Permission values follow the platform vocabulary:
    "default", "granted" or "denied". A platform without any
    notification capability reports ``supported = False``.
    """

    supported: bool = True

    @abstractmethod
    def permission(self) -> str:
        """Current platform permission value."""
        pass

    @abstractmethod
    async def request_permission(self) -> str:
        """Show the platform permission prompt and return the resulting value."""
        pass

    @abstractmethod
    async def show(
        self,
        title: str,
        body: str,
        *,
        tag: str | None = None,
        require_interaction: bool = False,
    ) -> Any:
        """
        Display one notification.

        Returns:
            Opaque per-call handle accepted by ``close``.
        """
        pass

    def close(self, handle: Any) -> None:
        """Close a notification previously returned by ``show``."""
        return None
