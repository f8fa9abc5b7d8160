"""JSONL file notification channel."""

import fcntl
from pathlib import Path

import orjson

from ..config.channels import FileChannelConfig
from ..notifications.models import NotificationRecord
from .base import BaseNotifier, ChannelRetryableError, DeliveryResult, DeliveryStatus


class FileNotifier(BaseNotifier):
    """Appends one JSON object per notification to a file."""

    def __init__(self, name: str, config: FileChannelConfig):
        super().__init__(name, config)
        self.config: FileChannelConfig = config
        self.output_path = Path(config.output_path)

        if config.create_dirs:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def send(self, record: NotificationRecord) -> DeliveryResult:
        return self._append({"type": "notification", **record.to_dict()})

    def send_text(self, text: str) -> DeliveryResult:
        return self._append({"type": "text", "text": text})

    def _append(self, entry: dict) -> DeliveryResult:
        try:
            with open(self.output_path, 'ab') as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                f.write(orjson.dumps(entry, default=str))
                f.write(b'\n')
        except OSError as e:
            self.logger.warning(
                "Notification file write failed",
                channel=self.name,
                output_path=str(self.output_path),
                error=str(e)
            )
            raise ChannelRetryableError(f"File system error: {str(e)}") from e

        return DeliveryResult(
            status=DeliveryStatus.SUCCESS,
            message=f"Written to {self.output_path}"
        )

    def health_check(self) -> bool:
        """Check if the output directory is writable."""
        test_file = self.output_path.parent / ".health_check_test"
        try:
            test_file.write_text("test")
            test_file.unlink()
            return True
        except OSError as e:
            self.logger.warning("Health check failed", channel=self.name, error=str(e))
            return False
