"""Tests for the rich console notification platform."""

from unittest.mock import patch

import pytest
from rich.console import Console

from taskalarm.platform.console import ConsoleNotificationPlatform


@pytest.fixture
def console():
    return Console(record=True, width=100)


class TestPermission:
    @pytest.mark.asyncio
    async def test_assume_yes_grants(self, console):
        platform = ConsoleNotificationPlatform(console, assume_yes=True)
        assert platform.permission() == "default"

        assert await platform.request_permission() == "granted"
        assert platform.permission() == "granted"

    @pytest.mark.asyncio
    async def test_prompt_answer_no_denies(self, console):
        platform = ConsoleNotificationPlatform(console)
        with patch("taskalarm.platform.console.Confirm.ask", return_value=False) as ask:
            assert await platform.request_permission() == "denied"
            assert await platform.request_permission() == "denied"

        ask.assert_called_once()


class TestShow:
    @pytest.mark.asyncio
    async def test_renders_panel(self, console):
        platform = ConsoleNotificationPlatform(console, assume_yes=True)

        handle = await platform.show("Reminder: X", "Bring slides", tag="reminder-t1")

        text = console.export_text()
        assert "Reminder: X" in text
        assert "Bring slides" in text
        assert "reminder-t1" in text
        assert handle == 1

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, console):
        platform = ConsoleNotificationPlatform(console)
        handle = await platform.show("a", "b")

        platform.close(handle)
        platform.close(handle)
