"""
Durable storage for notification history and preferences.
"""
from .notification_store import NotificationStore

__all__ = ["NotificationStore"]
