"""
Notifier contract and concrete notification channels.
"""
from .base import (
    BaseNotifier,
    ChannelError,
    ChannelPermanentError,
    ChannelRetryableError,
    DeliveryResult,
    DeliveryStatus,
    format_record,
)
from .factory import create_notifier

__all__ = [
    "BaseNotifier",
    "ChannelError",
    "ChannelPermanentError",
    "ChannelRetryableError",
    "DeliveryResult",
    "DeliveryStatus",
    "create_notifier",
    "format_record",
]
