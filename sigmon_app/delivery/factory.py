"""Notifier construction from channel configuration."""

from ..config.channels import ChannelConfig, ChannelKind
from .base import BaseNotifier
from .file_delivery import FileNotifier
from .stdout_delivery import StdoutNotifier
from .telegram_delivery import TelegramNotifier


def create_notifier(channel: ChannelConfig) -> BaseNotifier:
    """Instantiate the notifier for a channel config."""
    name = channel.kind.value

    if channel.kind == ChannelKind.TELEGRAM:
        return TelegramNotifier(name, channel.settings)
    if channel.kind == ChannelKind.FILE:
        return FileNotifier(name, channel.settings)
    if channel.kind == ChannelKind.STDOUT:
        return StdoutNotifier(name, channel.settings)

    raise ValueError(f"Unsupported channel kind: {channel.kind}")
