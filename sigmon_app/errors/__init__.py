"""
Error classification for the signal monitor.

Client errors are surfaced to the caller immediately and never retried.
State precondition errors signal an operation called in the wrong lifecycle
state. Upstream errors are isolated per symbol inside a monitor tick and are
implicitly retried on the next tick.
"""

from .client import (
    ClientError,
    ValidationError,
    NotFoundError,
    UnknownSignalError,
    NotificationNotFoundError,
)
from .state import (
    StatePreconditionError,
    AlreadyRunningError,
    NotInitializedError,
    AlreadyInitializedError,
    DuplicateSignalError,
)
from .upstream import (
    UpstreamUnavailableError,
    UpstreamTimeoutError,
    ChannelDeliveryError,
    PersistenceError,
)

__all__ = [
    # Client Errors
    "ClientError",
    "ValidationError",
    "NotFoundError",
    "UnknownSignalError",
    "NotificationNotFoundError",
    # State Preconditions
    "StatePreconditionError",
    "AlreadyRunningError",
    "NotInitializedError",
    "AlreadyInitializedError",
    "DuplicateSignalError",
    # Upstream Failures
    "UpstreamUnavailableError",
    "UpstreamTimeoutError",
    "ChannelDeliveryError",
    "PersistenceError",
]
