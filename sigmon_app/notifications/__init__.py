"""
Notification records and user preferences.

The dispatching manager lives in ``sigmon_app.notifications.manager``; it is
not re-exported here because the delivery channels import these models.
"""
from .models import (
    DeliveryState,
    NotificationKind,
    NotificationRecord,
    Preferences,
    UrgencyThresholds,
    UrgencyTier,
)

__all__ = [
    "DeliveryState",
    "NotificationKind",
    "NotificationRecord",
    "Preferences",
    "UrgencyThresholds",
    "UrgencyTier",
]
