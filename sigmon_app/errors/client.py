"""
Client error classifications for bad input to public operations.

These exceptions are surfaced to the caller as-is and are never retried.
"""

from typing import Optional, Dict, Any


class ClientError(Exception):
    """Base class for errors caused by the caller's input."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class ValidationError(ClientError):
    """A public operation received missing or malformed input."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


class NotFoundError(ClientError):
    """A looked-up identifier does not exist."""

    def __init__(self, message: str, kind: Optional[str] = None,
                 identifier: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.kind = kind
        self.identifier = identifier


class UnknownSignalError(NotFoundError):
    """Signal identifier is not tracked by the trailing stop tracker."""

    def __init__(self, signal_id: str, **kwargs):
        super().__init__(f"Signal not tracked: {signal_id}",
                         kind="signal", identifier=signal_id, **kwargs)


class NotificationNotFoundError(NotFoundError):
    """Notification identifier is absent from history."""

    def __init__(self, notification_id: str, **kwargs):
        super().__init__(f"Notification not found: {notification_id}",
                         kind="notification", identifier=notification_id, **kwargs)
