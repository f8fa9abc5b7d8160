"""Standard output notification channel."""

import sys

import orjson

from ..config.channels import StdoutChannelConfig
from ..notifications.models import NotificationRecord
from .base import BaseNotifier, DeliveryResult, DeliveryStatus, format_record


class StdoutNotifier(BaseNotifier):
    """Prints notifications to stdout."""

    def __init__(self, name: str, config: StdoutChannelConfig):
        super().__init__(name, config)
        self.config: StdoutChannelConfig = config

    def send(self, record: NotificationRecord) -> DeliveryResult:
        if self.config.format == "pretty":
            output = format_record(record)
        else:
            output = orjson.dumps(record.to_dict()).decode()
        return self.send_text(output)

    def send_text(self, text: str) -> DeliveryResult:
        print(text, file=sys.stdout, flush=True)
        return DeliveryResult(
            status=DeliveryStatus.SUCCESS,
            message="Printed to stdout"
        )

    def health_check(self) -> bool:
        """Check if stdout is available."""
        try:
            return sys.stdout.writable()
        except (OSError, ValueError):
            return False
