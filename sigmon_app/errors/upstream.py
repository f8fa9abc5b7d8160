"""
Upstream failure classifications.

Fetch, analysis and channel failures are isolated per symbol inside a tick,
logged, and retried on the next scheduled tick. They never stop the monitor.
"""

from typing import Optional, Dict, Any


class UpstreamUnavailableError(Exception):
    """An external collaborator failed or could not be reached."""

    def __init__(self, message: str, source: Optional[str] = None,
                 symbol: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.source = source
        self.symbol = symbol
        self.context = context or {}
        self.recoverable = True


class UpstreamTimeoutError(UpstreamUnavailableError):
    """An external call exceeded its time bound."""

    def __init__(self, message: str, timeout_seconds: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout_seconds = timeout_seconds


class ChannelDeliveryError(UpstreamUnavailableError):
    """Notification channel rejected or could not receive a message."""

    def __init__(self, message: str, channel: Optional[str] = None,
                 notification_id: Optional[str] = None, **kwargs):
        super().__init__(message, source="channel", **kwargs)
        self.channel = channel
        self.notification_id = notification_id


class PersistenceError(Exception):
    """Durable store read or write failed."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.operation = operation
        self.target = target
        self.context = context or {}
        self.recoverable = False
