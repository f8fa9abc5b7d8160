"""Telegram Bot API notification channel."""

import socket
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import orjson

from ..config.channels import TelegramChannelConfig
from ..notifications.models import NotificationRecord
from .base import (
    BaseNotifier,
    ChannelPermanentError,
    ChannelRetryableError,
    DeliveryResult,
    DeliveryStatus,
    format_record,
)


class TelegramNotifier(BaseNotifier):
    """Sends notifications through the Telegram Bot API."""

    def __init__(self, name: str, config: TelegramChannelConfig):
        super().__init__(name, config)
        self.config: TelegramChannelConfig = config
        self.api_url = f"{config.api_base.rstrip('/')}/bot{config.bot_token}"

    def send(self, record: NotificationRecord) -> DeliveryResult:
        """Send a formatted notification."""
        result = self.send_text(format_record(record, markup=True))
        self.logger.info(
            "Notification delivered",
            channel=self.name,
            notification_id=record.id,
            symbol=record.symbol
        )
        return result

    def send_text(self, text: str) -> DeliveryResult:
        """Call sendMessage with the configured chat."""
        payload = {
            "chat_id": self.config.chat_id,
            "text": text,
            "parse_mode": self.config.parse_mode,
        }
        response = self._call("sendMessage", payload)
        return DeliveryResult(
            status=DeliveryStatus.SUCCESS,
            message=f"message_id={response.get('result', {}).get('message_id')}"
        )

    def health_check(self) -> bool:
        """Check bot credentials with getMe."""
        try:
            response = self._call("getMe")
        except (ChannelRetryableError, ChannelPermanentError) as e:
            self.logger.warning("Health check failed", channel=self.name, error=str(e))
            return False

        self.logger.info(
            "Telegram bot reachable",
            channel=self.name,
            username=response.get("result", {}).get("username")
        )
        return True

    def get_updates(self, offset: Optional[int] = None) -> list[dict[str, Any]]:
        """Fetch pending bot updates (incoming chat commands)."""
        method = f"getUpdates?offset={offset}" if offset is not None else "getUpdates"
        return list(self._call(method).get("result", []))

    def _call(self, method: str, payload: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Invoke a Bot API method and return the decoded response."""
        url = f"{self.api_url}/{method}"

        if payload is not None:
            data = orjson.dumps(payload)
            req = Request(
                url,
                data=data,
                headers={
                    'Content-Type': 'application/json',
                    'Content-Length': str(len(data)),
                    'User-Agent': 'sigmon-app/0.1'
                },
                method="POST"
            )
        else:
            req = Request(url, method="GET")

        try:
            with urlopen(req, timeout=self.config.timeout_seconds) as response:
                body = orjson.loads(response.read())

        except HTTPError as e:
            error_msg = f"HTTP {e.code}: {e.reason}"
            self.logger.warning(
                "Telegram API HTTP error",
                channel=self.name,
                method=method.split("?")[0],
                error_code=e.code
            )
            if e.code >= 500 or e.code == 429:
                raise ChannelRetryableError(error_msg) from e
            raise ChannelPermanentError(error_msg) from e

        except (OSError, URLError, socket.timeout) as e:
            self.logger.warning(
                "Telegram API network error",
                channel=self.name,
                method=method.split("?")[0],
                error=str(e)
            )
            raise ChannelRetryableError(f"Network error: {str(e)}") from e

        except orjson.JSONDecodeError as e:
            raise ChannelRetryableError(f"Malformed Telegram response: {str(e)}") from e

        if not body.get("ok", False):
            raise ChannelPermanentError(
                f"Telegram API error: {body.get('description', 'unknown error')}"
            )

        return body
