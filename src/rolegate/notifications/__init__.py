"""User notifications package."""
from __future__ import annotations

from rolegate.notifications.notifier import NotificationType, Notifier, UserNotification

__all__ = ["NotificationType", "Notifier", "UserNotification"]
