"""Tests for Notifier."""
from __future__ import annotations

import json
import time
from unittest.mock import MagicMock, patch

import pytest

from rolegate.notifications.notifier import NotificationType, Notifier


@pytest.fixture()
def notifier() -> Notifier:
    return Notifier()


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------


class TestInbox:
    def test_role_change_lands_in_inbox(self, notifier: Notifier) -> None:
        assert notifier.notify_role_changed("u1", "admin-1", "basic", "premium", "upgrade")
        inbox = notifier.get_user_notifications("u1")
        assert len(inbox) == 1
        assert inbox[0].type is NotificationType.ROLE_CHANGED
        assert "Reason: upgrade" in inbox[0].message

    def test_permission_change_wording(self, notifier: Notifier) -> None:
        notifier.notify_permission_changed("u1", "admin-1", "project", "create", True)
        notifier.notify_permission_changed("u1", "admin-1", "project", "delete", False)
        messages = [n.message for n in notifier.get_user_notifications("u1")]
        assert "revoked the delete permission on project" in messages[0]
        assert "granted the create permission on project" in messages[1]

    def test_newest_first(self, notifier: Notifier) -> None:
        notifier.notify_system_notice("u1", "first", "")
        notifier.notify_system_notice("u1", "second", "")
        assert [n.title for n in notifier.get_user_notifications("u1")] == ["second", "first"]

    def test_inboxes_are_per_user(self, notifier: Notifier) -> None:
        notifier.notify_system_notice("u1", "hello", "")
        assert notifier.get_user_notifications("u2") == []

    def test_mark_as_read(self, notifier: Notifier) -> None:
        notifier.notify_system_notice("u1", "a", "")
        notifier.notify_system_notice("u1", "b", "")
        target = notifier.get_user_notifications("u1")[0]

        assert notifier.mark_as_read(target.notification_id, "u1") is True
        assert notifier.unread_count("u1") == 1
        assert target.read_at is not None

    def test_mark_as_read_other_users_notification(self, notifier: Notifier) -> None:
        notifier.notify_system_notice("u1", "a", "")
        notification_id = notifier.get_user_notifications("u1")[0].notification_id
        assert notifier.mark_as_read(notification_id, "u2") is False
        assert notifier.unread_count("u1") == 1

    def test_mark_all_as_read(self, notifier: Notifier) -> None:
        for title in ("a", "b", "c"):
            notifier.notify_system_notice("u1", title, "")
        assert notifier.mark_all_as_read("u1") == 3
        assert notifier.get_unread("u1") == []
        assert notifier.mark_all_as_read("u1") == 0

    def test_broadcast(self, notifier: Notifier) -> None:
        assert notifier.broadcast_system_notice(["u1", "u2", "u3"], "Maintenance", "02:00") == 3
        assert notifier.unread_count("u2") == 1


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


class TestWebhook:
    @pytest.mark.parametrize("webhook_format", ["generic", "slack", "teams"])
    def test_payload_is_valid_json(self, webhook_format: str) -> None:
        notifier = Notifier(webhook_url="https://hooks.example.com/x", webhook_format=webhook_format)
        with patch("urllib.request.urlopen") as mock_urlopen:
            mock_urlopen.return_value.__enter__.return_value = MagicMock()
            delivered = notifier.notify_system_notice("u1", 'Say "hi"', "line one\nline two")
            notifier.close()

        assert delivered is True
        request = mock_urlopen.call_args[0][0]
        body = json.loads(request.data.decode("utf-8"))
        title = {
            "generic": lambda b: b["text"].split("\n")[0],
            "slack": lambda b: b["text"],
            "teams": lambda b: b["summary"],
        }[webhook_format](body)
        assert title == 'Say "hi"'
        assert request.get_method() == "POST"

    def test_generic_payload_fields(self) -> None:
        notifier = Notifier(webhook_url="https://hooks.example.com/x")
        with patch("urllib.request.urlopen") as mock_urlopen:
            notifier.notify_role_changed("u1", "admin-1", "basic", "premium", "upgrade")
            notifier.close()

        body = json.loads(mock_urlopen.call_args[0][0].data.decode("utf-8"))
        assert body["user_id"] == "u1"
        assert body["type"] == "role_changed"
        assert body["text"].startswith("Your role has changed\n")

    def test_post_failure_is_reported_not_raised(self) -> None:
        notifier = Notifier(webhook_url="https://hooks.example.com/x")
        with patch("urllib.request.urlopen", side_effect=OSError("connection refused")):
            delivered = notifier.notify_system_notice("u1", "title", "body")
            notifier.close()

        assert delivered is True
        assert notifier.webhook_failures == 1
        assert notifier.unread_count("u1") == 1

    def test_no_webhook_no_http(self, notifier: Notifier) -> None:
        with patch("urllib.request.urlopen") as mock_urlopen:
            notifier.notify_system_notice("u1", "title", "body")
            notifier.close()
        mock_urlopen.assert_not_called()

    def test_slow_webhook_does_not_block_sender(self) -> None:
        notifier = Notifier(webhook_url="https://hooks.example.com/x")

        def slow_urlopen(*args: object, **kwargs: object) -> None:
            time.sleep(0.3)
            raise OSError("timed out")

        with patch("urllib.request.urlopen", side_effect=slow_urlopen) as mock_urlopen:
            started = time.monotonic()
            for user_id in ("u1", "u2", "u3"):
                notifier.notify_permission_changed(user_id, "admin-1", "project", "create", True)
            elapsed = time.monotonic() - started
            notifier.close()

        assert elapsed < 0.3
        assert mock_urlopen.call_count == 3
        assert notifier.webhook_failures == 3

    def test_close_drops_later_webhooks(self) -> None:
        notifier = Notifier(webhook_url="https://hooks.example.com/x")
        notifier.close()
        with patch("urllib.request.urlopen") as mock_urlopen:
            assert notifier.notify_system_notice("u1", "late", "") is True
        mock_urlopen.assert_not_called()
        assert notifier.unread_count("u1") == 1
