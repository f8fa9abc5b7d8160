"""Tests for the chat command surface."""

import pytest

from sigmon_app.commands import HELP_TEXT, CommandHandler
from sigmon_app.config.defaults import AVAILABLE_SYMBOLS


@pytest.fixture
def handler(manager) -> CommandHandler:
    return CommandHandler(manager)


class TestCommandHandler:

    @pytest.mark.parametrize("command", ["/start", "/help", "/HELP", "/help@sigmon_bot"])
    def test_help(self, handler, command):
        assert handler.handle(command) == HELP_TEXT

    def test_list_marks_active_symbols(self, handler):
        reply = handler.handle("/list")
        assert reply.startswith("Available symbols:")
        assert "✅ XAU/USD - Gold" in reply
        assert "▫️ BTC/USD - Bitcoin" in reply
        assert len(reply.splitlines()) == len(AVAILABLE_SYMBOLS) + 1

    def test_active(self, handler):
        assert handler.handle("/active") == "Active symbols:\n• EUR/USD\n• XAU/USD"

    def test_active_when_empty(self, handler, manager):
        manager.unsubscribe_all()
        assert "not subscribed" in handler.handle("/active")

    def test_subscribe_is_case_insensitive(self, handler, manager):
        assert handler.handle("/subscribe btc/usd") == "Subscribed to BTC/USD."
        assert "BTC/USD" in manager.get_active_symbols()

    def test_subscribe_twice(self, handler):
        handler.handle("/subscribe GBP/USD")
        assert handler.handle("/subscribe GBP/USD") == "Already subscribed to GBP/USD."

    def test_subscribe_unknown_symbol_does_not_mutate(self, handler, manager):
        reply = handler.handle("/subscribe DOGE/USD")
        assert reply.startswith("Unknown symbol: DOGE/USD")
        assert manager.get_active_symbols() == ["EUR/USD", "XAU/USD"]

    def test_subscribe_without_symbol(self, handler):
        assert handler.handle("/subscribe").startswith("Usage: /subscribe")

    def test_unsubscribe(self, handler, manager):
        assert handler.handle("/unsubscribe xau/usd") == "Unsubscribed from XAU/USD."
        assert handler.handle("/unsubscribe XAU/USD") == "You were not subscribed to XAU/USD."
        assert manager.get_active_symbols() == ["EUR/USD"]

    def test_all_and_none(self, handler, manager):
        count = len(AVAILABLE_SYMBOLS)
        assert handler.handle("/all") == f"Subscribed to all symbols ({count} active)."
        assert handler.handle("/none") == f"Unsubscribed from all symbols ({count} removed)."
        assert manager.get_active_symbols() == []

    def test_unknown_command(self, handler):
        assert handler.handle("/moon").startswith("Unknown command: /moon")

    def test_empty_input(self, handler):
        assert handler.handle("   ").startswith("Empty command")
