"""taskalarm - reminder scheduling and notification dispatch for to-do lists."""

__version__ = "0.1.0"
__logo__ = "⏰"
