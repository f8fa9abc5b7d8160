"""
Channel command surface.

Maps chat-style text commands onto preference changes and returns a
human-readable reply for each.
"""

from typing import Callable, Optional, Sequence

import structlog

from .config.defaults import AVAILABLE_SYMBOLS, SymbolInfo
from .notifications.manager import NotificationManager

logger = structlog.get_logger(__name__)

HELP_TEXT = (
    "Signal alerts bot\n"
    "\n"
    "/list - available symbols\n"
    "/active - symbols you are subscribed to\n"
    "/subscribe SYMBOL - start alerts for a symbol\n"
    "/unsubscribe SYMBOL - stop alerts for a symbol\n"
    "/all - subscribe to every symbol\n"
    "/none - unsubscribe from everything\n"
    "/help - this message"
)


class CommandHandler:
    """Text command adapter over NotificationManager preferences."""

    def __init__(
        self,
        notifications: NotificationManager,
        catalogue: Sequence[SymbolInfo] = AVAILABLE_SYMBOLS
    ):
        self.logger = logger
        self.notifications = notifications
        self.catalogue = tuple(catalogue)
        self._commands: dict[str, Callable[[Optional[str]], str]] = {
            "/start": self._help,
            "/help": self._help,
            "/list": self._list,
            "/active": self._active,
            "/subscribe": self._subscribe,
            "/unsubscribe": self._unsubscribe,
            "/all": self._all,
            "/none": self._none,
        }

    def handle(self, text: str) -> str:
        """Execute one command line and return the reply."""
        parts = (text or "").strip().split(maxsplit=1)
        if not parts:
            return "Empty command. Send /help for the list of commands."

        # Telegram appends the bot name in groups: /list@my_bot
        command = parts[0].split("@", 1)[0].lower()
        argument = parts[1].strip() if len(parts) > 1 else None

        handler = self._commands.get(command)
        if handler is None:
            return f"Unknown command: {command}. Send /help for the list of commands."

        self.logger.info("Handling command", command=command, argument=argument)
        return handler(argument)

    def _help(self, _argument: Optional[str]) -> str:
        return HELP_TEXT

    def _list(self, _argument: Optional[str]) -> str:
        active = set(self.notifications.get_active_symbols())
        lines = ["Available symbols:"]
        for info in self.catalogue:
            marker = "✅" if info.symbol in active else "▫️"
            lines.append(f"{marker} {info.symbol} - {info.display_name}")
        return "\n".join(lines)

    def _active(self, _argument: Optional[str]) -> str:
        active = self.notifications.get_active_symbols()
        if not active:
            return "You are not subscribed to any symbols. Use /subscribe SYMBOL or /all."
        return "Active symbols:\n" + "\n".join(f"• {symbol}" for symbol in active)

    def _subscribe(self, argument: Optional[str]) -> str:
        if not argument:
            return "Usage: /subscribe SYMBOL (for example /subscribe XAU/USD)"

        info = self._lookup(argument)
        if info is None:
            return f"Unknown symbol: {argument}. Send /list for available symbols."

        if self.notifications.subscribe(info.symbol):
            return f"Subscribed to {info.symbol}."
        return f"Already subscribed to {info.symbol}."

    def _unsubscribe(self, argument: Optional[str]) -> str:
        if not argument:
            return "Usage: /unsubscribe SYMBOL (for example /unsubscribe XAU/USD)"

        info = self._lookup(argument)
        symbol = info.symbol if info else argument.strip().upper()

        if self.notifications.unsubscribe(symbol):
            return f"Unsubscribed from {symbol}."
        return f"You were not subscribed to {symbol}."

    def _all(self, _argument: Optional[str]) -> str:
        count = self.notifications.subscribe_all(info.symbol for info in self.catalogue)
        return f"Subscribed to all symbols ({count} active)."

    def _none(self, _argument: Optional[str]) -> str:
        count = self.notifications.unsubscribe_all()
        return f"Unsubscribed from all symbols ({count} removed)."

    def _lookup(self, symbol: str) -> Optional[SymbolInfo]:
        wanted = symbol.strip().upper()
        for info in self.catalogue:
            if info.symbol.upper() == wanted:
                return info
        return None
