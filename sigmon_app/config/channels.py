"""Configuration for notification channels."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from ..errors import ValidationError


class ChannelKind(Enum):
    """Supported notification channels."""
    TELEGRAM = "telegram"
    FILE = "file"
    STDOUT = "stdout"


@dataclass(frozen=True)
class TelegramChannelConfig:
    """Configuration for the Telegram Bot API channel."""
    bot_token: str
    chat_id: str
    api_base: str = "https://api.telegram.org"
    timeout_seconds: float = 10.0
    parse_mode: str = "HTML"


@dataclass(frozen=True)
class FileChannelConfig:
    """Configuration for JSONL file output."""
    output_path: str
    create_dirs: bool = True


@dataclass(frozen=True)
class StdoutChannelConfig:
    """Configuration for stdout output."""
    format: str = "json"  # json, pretty


ChannelSettings = Union[TelegramChannelConfig, FileChannelConfig, StdoutChannelConfig]


@dataclass(frozen=True)
class ChannelConfig:
    """A single notification channel."""
    kind: ChannelKind
    settings: Any  # TelegramChannelConfig | FileChannelConfig | StdoutChannelConfig
    enabled: bool = True

    def to_dict(self, redact: bool = True) -> dict[str, Any]:
        """Serializable view; the bot token is masked unless redact is False."""
        settings = dict(self.settings.__dict__)
        if redact and "bot_token" in settings:
            token = settings["bot_token"]
            settings["bot_token"] = f"{token[:4]}***" if token else ""
        return {"kind": self.kind.value, "enabled": self.enabled, **settings}


def get_default_channel_config() -> ChannelConfig:
    """Get default channel configuration (stdout)."""
    return ChannelConfig(
        kind=ChannelKind.STDOUT,
        settings=StdoutChannelConfig(format="json"),
    )


def parse_channel_config(data: Optional[dict[str, Any]]) -> ChannelConfig:
    """
    Build a ChannelConfig from a plain mapping.

    Accepts ``{"kind": "telegram", "bot_token": ..., "chat_id": ...}`` and the
    equivalents for ``file`` and ``stdout``. A mapping with ``bot_token`` and
    ``chat_id`` but no ``kind`` is treated as Telegram.

    Raises:
        ValidationError: on unknown kind or missing required fields
    """
    if not data:
        return get_default_channel_config()

    if not isinstance(data, dict):
        raise ValidationError("Channel config must be a mapping", field="channel", value=data)

    kind_value = data.get("kind")
    if kind_value is None and "bot_token" in data:
        kind_value = ChannelKind.TELEGRAM.value

    try:
        kind = ChannelKind(kind_value or ChannelKind.STDOUT.value)
    except ValueError:
        raise ValidationError(f"Unsupported channel kind: {kind_value}",
                              field="kind", value=kind_value) from None

    enabled = bool(data.get("enabled", True))

    if kind == ChannelKind.TELEGRAM:
        bot_token = data.get("bot_token")
        chat_id = data.get("chat_id")
        if not bot_token or not chat_id:
            raise ValidationError("bot_token and chat_id are required",
                                  field="bot_token" if not bot_token else "chat_id")
        settings: ChannelSettings = TelegramChannelConfig(
            bot_token=str(bot_token),
            chat_id=str(chat_id),
            api_base=data.get("api_base", "https://api.telegram.org"),
            timeout_seconds=float(data.get("timeout_seconds", 10.0)),
        )
    elif kind == ChannelKind.FILE:
        output_path = data.get("output_path")
        if not output_path:
            raise ValidationError("output_path is required", field="output_path")
        settings = FileChannelConfig(
            output_path=str(output_path),
            create_dirs=bool(data.get("create_dirs", True)),
        )
    else:
        fmt = data.get("format", "json")
        if fmt not in ("json", "pretty"):
            raise ValidationError(f"Unsupported stdout format: {fmt}", field="format", value=fmt)
        settings = StdoutChannelConfig(format=fmt)

    return ChannelConfig(kind=kind, settings=settings, enabled=enabled)
