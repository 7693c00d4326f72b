"""User notifications for role and permission changes.

Notifier keeps an in-memory inbox per user and, when a webhook is
configured, POSTs every notification as JSON (Slack/Teams compatible or a
generic ``{"text": ...}`` body).  Webhook delivery is fire-and-forget: POSTs
run on a single background worker, and a failed POST is logged and counted
in :attr:`Notifier.webhook_failures`, never raised.  Call :meth:`Notifier.close`
to wait for queued POSTs before shutting down.

Example
-------
>>> notifier = Notifier()
>>> notifier.notify_system_notice("user-1", "Maintenance", "Down at 02:00 UTC")
True
>>> notifier.unread_count("user-1")
1
"""
from __future__ import annotations

import json
import logging
import threading
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from string import Template

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    """Kind of notification sent to a user."""

    ROLE_CHANGED = "role_changed"
    PERMISSION_CHANGED = "permission_changed"
    SYSTEM_NOTICE = "system_notice"


@dataclass
class UserNotification:
    """A notification delivered to one user's inbox."""

    notification_id: int
    user_id: str
    type: NotificationType
    title: str
    message: str
    actor_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    read: bool = False
    read_at: datetime | None = None

    def mark_as_read(self) -> None:
        self.read = True
        self.read_at = datetime.now(tz=timezone.utc)


_SLACK_TEMPLATE = Template(
    """{
  "text": "$title",
  "blocks": [
    {"type": "header", "text": {"type": "plain_text", "text": "$title"}},
    {"type": "section", "text": {"type": "mrkdwn", "text": "$message"}},
    {"type": "context", "elements": [{"type": "mrkdwn", "text": "User: $user_id"}]}
  ]
}"""
)

_TEAMS_TEMPLATE = Template(
    """{
  "@type": "MessageCard",
  "@context": "http://schema.org/extensions",
  "summary": "$title",
  "sections": [{
    "activityTitle": "$title",
    "facts": [
      {"name": "User", "value": "$user_id"},
      {"name": "Type", "value": "$type"},
      {"name": "Message", "value": "$message"}
    ]
  }]
}"""
)

_GENERIC_TEMPLATE = Template('{"text": "$title\\n$message", "user_id": "$user_id", "type": "$type"}')


def _json_escape(text: str) -> str:
    return json.dumps(text)[1:-1]


class Notifier:
    """Delivers user notifications to an inbox and an optional webhook.

    Parameters
    ----------
    webhook_url:
        URL to POST each notification to.  ``None`` disables the webhook.
    webhook_format:
        ``"slack"``, ``"teams"`` or ``"generic"`` (default).
    timeout_seconds:
        HTTP request timeout in seconds (default: 5).
    """

    def __init__(
        self,
        webhook_url: str | None = None,
        webhook_format: str = "generic",
        timeout_seconds: float = 5.0,
    ) -> None:
        self._webhook_url = webhook_url
        self._format = webhook_format.lower()
        self._timeout = timeout_seconds
        self._inbox: dict[str, list[UserNotification]] = {}
        self._counter = 0
        self._lock = threading.Lock()
        self._failures = 0
        self._executor: ThreadPoolExecutor | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def notify_role_changed(
        self,
        user_id: str,
        actor_id: str,
        old_role: str,
        new_role: str,
        reason: str,
    ) -> bool:
        logger.info(
            "Role change notification: user=%s old=%s new=%s", user_id, old_role, new_role
        )
        return self._deliver(
            user_id,
            NotificationType.ROLE_CHANGED,
            "Your role has changed",
            f"An administrator changed your role from {old_role} to {new_role}. "
            f"Reason: {reason}",
            actor_id=actor_id,
        )

    def notify_permission_changed(
        self,
        user_id: str,
        actor_id: str,
        resource: str,
        action: str,
        allowed: bool,
    ) -> bool:
        status = "granted" if allowed else "revoked"
        logger.info(
            "Permission change notification: user=%s resource=%s action=%s allowed=%s",
            user_id,
            resource,
            action,
            allowed,
        )
        return self._deliver(
            user_id,
            NotificationType.PERMISSION_CHANGED,
            "Your permissions have changed",
            f"An administrator {status} the {action} permission on {resource}.",
            actor_id=actor_id,
        )

    def notify_system_notice(self, user_id: str, title: str, message: str) -> bool:
        logger.info("System notice: user=%s title=%s", user_id, title)
        return self._deliver(user_id, NotificationType.SYSTEM_NOTICE, title, message)

    def broadcast_system_notice(self, user_ids: list[str], title: str, message: str) -> int:
        """Send the same notice to every user; return how many were delivered."""
        logger.info("Broadcasting system notice to %d users: %s", len(user_ids), title)
        return sum(
            1
            for user_id in user_ids
            if self._deliver(user_id, NotificationType.SYSTEM_NOTICE, title, message)
        )

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    def get_user_notifications(self, user_id: str) -> list[UserNotification]:
        """Return the user's notifications, newest first."""
        with self._lock:
            return list(reversed(self._inbox.get(str(user_id), [])))

    def get_unread(self, user_id: str) -> list[UserNotification]:
        return [n for n in self.get_user_notifications(user_id) if not n.read]

    def unread_count(self, user_id: str) -> int:
        return len(self.get_unread(user_id))

    def mark_as_read(self, notification_id: int, user_id: str) -> bool:
        """Mark one of the user's notifications read; False if it is not theirs."""
        with self._lock:
            for notification in self._inbox.get(str(user_id), []):
                if notification.notification_id == notification_id:
                    notification.mark_as_read()
                    return True
        return False

    def mark_all_as_read(self, user_id: str) -> int:
        with self._lock:
            unread = [n for n in self._inbox.get(str(user_id), []) if not n.read]
            for notification in unread:
                notification.mark_as_read()
        logger.info("Marked %d notifications read for user=%s", len(unread), user_id)
        return len(unread)

    # ------------------------------------------------------------------
    # Webhook worker
    # ------------------------------------------------------------------

    @property
    def webhook_failures(self) -> int:
        """Number of webhook POSTs that failed so far."""
        with self._lock:
            return self._failures

    def close(self) -> None:
        """Wait for queued webhook POSTs and stop the worker.

        Notifications sent after closing still reach the inbox; their
        webhook POSTs are dropped.
        """
        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _deliver(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        actor_id: str | None = None,
    ) -> bool:
        with self._lock:
            self._counter += 1
            notification = UserNotification(
                notification_id=self._counter,
                user_id=str(user_id),
                type=notification_type,
                title=title,
                message=message,
                actor_id=None if actor_id is None else str(actor_id),
            )
            self._inbox.setdefault(notification.user_id, []).append(notification)

        if self._webhook_url:
            self._enqueue(self._render(notification))
        return True

    def _enqueue(self, payload: str) -> None:
        with self._lock:
            if self._closed:
                logger.warning("Notifier is closed; webhook POST dropped.")
                return
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="rolegate-webhook"
                )
            self._executor.submit(self._post, payload)

    def _render(self, notification: UserNotification) -> str:
        substitutions = {
            "user_id": _json_escape(notification.user_id),
            "type": notification.type.value,
            "title": _json_escape(notification.title),
            "message": _json_escape(notification.message),
        }
        match self._format:
            case "slack":
                return _SLACK_TEMPLATE.safe_substitute(substitutions)
            case "teams":
                return _TEAMS_TEMPLATE.safe_substitute(substitutions)
            case _:
                return _GENERIC_TEMPLATE.safe_substitute(substitutions)

    def _post(self, payload: str) -> bool:
        if not self._webhook_url:
            return False
        try:
            req = urllib.request.Request(
                self._webhook_url,
                data=payload.encode("utf-8"),
                headers={"Content-Type": "application/json"},
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=self._timeout):  # noqa: S310
                pass
            return True
        except Exception:
            logger.exception("Failed to deliver notification webhook.")
            with self._lock:
                self._failures += 1
            return False


__all__ = ["NotificationType", "Notifier", "UserNotification"]
