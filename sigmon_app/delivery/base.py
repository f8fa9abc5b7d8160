"""Base classes for notification channels."""

import html
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog

from ..notifications.models import NotificationKind, NotificationRecord, UrgencyTier
from ..utils.time import format_ms


class DeliveryStatus(Enum):
    """Notification delivery status."""
    SUCCESS = "success"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"


@dataclass
class DeliveryResult:
    """Result of a delivery attempt."""
    status: DeliveryStatus
    message: Optional[str] = None
    attempt_count: int = 1
    delivery_time_ms: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS


class ChannelError(Exception):
    """Base exception for channel errors."""
    pass


class ChannelRetryableError(ChannelError):
    """Transient channel error."""
    pass


class ChannelPermanentError(ChannelError):
    """Channel error that should not be retried."""
    pass


URGENCY_MARKERS = {
    UrgencyTier.URGENT: "🚨",
    UrgencyTier.WARNING: "⚠️",
    UrgencyTier.INFO: "ℹ️",
}


def format_record(record: NotificationRecord, markup: bool = False) -> str:
    """
    Render a notification as a chat message.

    Args:
        record: Notification to render
        markup: Wrap headline fields in HTML bold tags and escape free text
    """
    def bold(text: str) -> str:
        return f"<b>{text}</b>" if markup else text

    reasoning = html.escape(record.reasoning) if markup else record.reasoning
    direction_marker = "🟢" if record.direction.value == "LONG" else "🔴"
    urgency_marker = URGENCY_MARKERS[record.urgency_tier]

    if record.kind == NotificationKind.SIGNAL:
        headline = f"{urgency_marker} {bold(record.urgency_tier.value + ' SIGNAL')}"
    else:
        headline = f"{urgency_marker} {bold(record.kind.value.replace('_', ' '))}"

    lines = [
        headline,
        "",
        f"{direction_marker} {bold(record.direction.value)} {record.symbol}",
    ]
    if record.kind == NotificationKind.SIGNAL:
        lines.append(f"📊 Score: {bold(f'{record.score:.1f}/100')}")
    lines.extend(["", f"💡 {reasoning}", "", f"🕐 {format_ms(record.timestamp_ms)}"])
    return "\n".join(lines)


class BaseNotifier(ABC):
    """Base class for notification channels."""

    def __init__(self, name: str, config: Any):
        self.name = name
        self.config = config
        self.logger = structlog.get_logger(f"sigmon.delivery.{name}")
        self._delivery_count = 0
        self._error_count = 0

    @abstractmethod
    def send(self, record: NotificationRecord) -> DeliveryResult:
        """
        Deliver one notification.

        Raises:
            ChannelRetryableError: transient failure
            ChannelPermanentError: failure that retrying cannot fix
        """

    @abstractmethod
    def send_text(self, text: str) -> DeliveryResult:
        """Deliver a free-form text message (command replies, tests)."""

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the channel is reachable."""

    def send_test_message(self) -> bool:
        """Send a fixed test message; True on success."""
        try:
            return self.send_text("✅ Signal notifications are configured").ok
        except ChannelError as e:
            self.logger.warning("Test message failed", channel=self.name, error=str(e))
            return False

    def deliver_with_retry(
        self,
        record: NotificationRecord,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ) -> DeliveryResult:
        """
        Deliver a notification with retry logic.

        Args:
            record: Notification to deliver
            max_retries: Maximum number of retry attempts after the first
            retry_delay: Delay between retries in seconds

        Returns:
            Final delivery result
        """
        attempt = 0
        last_error: Optional[Exception] = None

        while attempt <= max_retries:
            try:
                start_time = time.time()
                result = self.send(record)
                delivery_time = int((time.time() - start_time) * 1000)

                if result.ok:
                    result.delivery_time_ms = delivery_time
                    result.attempt_count = attempt + 1
                    self._delivery_count += 1
                    return result

                last_error = result.error or ChannelRetryableError(result.message or "delivery failed")

            except ChannelPermanentError as e:
                self._error_count += 1
                return DeliveryResult(
                    status=DeliveryStatus.FAILED,
                    message=f"Permanent error: {str(e)}",
                    attempt_count=attempt + 1,
                    error=e
                )

            except ChannelRetryableError as e:
                last_error = e

            attempt += 1

            if attempt <= max_retries:
                self.logger.warning(
                    "Delivery attempt failed, retrying",
                    channel=self.name,
                    notification_id=record.id,
                    attempt=attempt,
                    retry_delay=retry_delay,
                    error=str(last_error)
                )
                time.sleep(retry_delay)

        self._error_count += 1
        return DeliveryResult(
            status=DeliveryStatus.DEAD_LETTER,
            message=f"Max retries exceeded: {str(last_error)}",
            attempt_count=attempt,
            error=last_error
        )

    def get_stats(self) -> dict[str, Any]:
        """Get delivery statistics."""
        return {
            "name": self.name,
            "delivery_count": self._delivery_count,
            "error_count": self._error_count,
            "success_rate": (
                self._delivery_count / (self._delivery_count + self._error_count)
                if (self._delivery_count + self._error_count) > 0 else 0.0
            )
        }

    def reset_stats(self):
        """Reset delivery statistics."""
        self._delivery_count = 0
        self._error_count = 0
