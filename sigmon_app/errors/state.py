"""
State precondition error classifications.

Raised when an operation is invoked in a lifecycle state that does not
permit it (double start, use before init, duplicate tracking).
"""

from typing import Optional, Dict, Any


class StatePreconditionError(Exception):
    """Base class for lifecycle precondition violations."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.current_state = current_state
        self.context = context or {}
        self.recoverable = False


class AlreadyRunningError(StatePreconditionError):
    """start() called while the monitor is already running."""

    def __init__(self, message: str = "Signal monitor is already running", **kwargs):
        super().__init__(message, current_state="RUNNING", **kwargs)


class NotInitializedError(StatePreconditionError):
    """Signal system used before init."""

    def __init__(self, message: str = "Signal system is not initialized", **kwargs):
        super().__init__(message, current_state="UNINITIALIZED", **kwargs)


class AlreadyInitializedError(StatePreconditionError):
    """init called a second time."""

    def __init__(self, message: str = "Signal system is already initialized", **kwargs):
        super().__init__(message, current_state="INITIALIZED", **kwargs)


class DuplicateSignalError(StatePreconditionError):
    """Trailing stop already exists for this signal identifier."""

    def __init__(self, signal_id: str, **kwargs):
        super().__init__(f"Signal already tracked: {signal_id}", **kwargs)
        self.signal_id = signal_id
