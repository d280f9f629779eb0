"""Notification platforms."""

from taskalarm.platform.base import NotificationPlatform
from taskalarm.platform.console import ConsoleNotificationPlatform

__all__ = [
    "NotificationPlatform",
    "ConsoleNotificationPlatform",
]
