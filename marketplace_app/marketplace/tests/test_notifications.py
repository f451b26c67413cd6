from __future__ import annotations

from unittest.mock import patch

from django.conf import settings
from django.test import TestCase, override_settings
from post_office.models import Email

from marketplace.models import UserNotification
from marketplace.notifications import (
    get_unread_notification_count,
    get_user_notifications,
    mark_notifications_as_read,
    notifications_url,
    notify,
)
from marketplace.tests.helpers import make_user


class NotifyTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = make_user("alice")
        self.bob = make_user("bob")

    def test_notify_records_a_row_and_queues_an_email(self) -> None:
        created = notify(
            self.alice,
            "Hello there",
            severity=UserNotification.Severity.WARNING,
            source=UserNotification.Source.PROJECT,
            target_id=7,
        )

        self.assertEqual(len(created), 1)
        notification = created[0]
        self.assertEqual(notification.user, self.alice)
        self.assertEqual(notification.severity, UserNotification.Severity.WARNING)
        self.assertEqual(notification.target_id, 7)
        self.assertFalse(notification.is_read)

        email = Email.objects.get()
        self.assertEqual(email.to, ["alice@example.com"])
        self.assertEqual(email.template.name, settings.NOTIFICATION_EMAIL_TEMPLATE_NAME)
        self.assertEqual(email.context["message"], "Hello there")

    def test_notify_deduplicates_recipients(self) -> None:
        created = notify(
            [self.alice, self.bob, self.alice],
            "Project update",
            source=UserNotification.Source.PROJECT,
        )

        self.assertEqual([n.user for n in created], [self.alice, self.bob])
        self.assertEqual(Email.objects.count(), 2)

    def test_users_without_email_get_no_email(self) -> None:
        silent = make_user("silent", email="")

        notify(silent, "Quiet", source=UserNotification.Source.TASK)

        self.assertTrue(UserNotification.objects.filter(user=silent).exists())
        self.assertFalse(Email.objects.exists())

    def test_email_failure_keeps_the_notification(self) -> None:
        with (
            patch("post_office.mail.send", side_effect=RuntimeError("smtp down")),
            self.assertLogs("marketplace.notifications", level="ERROR") as logs,
        ):
            created = notify(self.alice, "Still recorded", source=UserNotification.Source.ORGANIZATION)

        self.assertEqual(len(created), 1)
        self.assertTrue(UserNotification.objects.filter(pk=created[0].pk).exists())
        self.assertIn("failed to queue email", "\n".join(logs.output))

    def test_no_recipients_is_a_no_op(self) -> None:
        self.assertEqual(notify(None, "Nobody", source=UserNotification.Source.TASK), [])
        self.assertEqual(notify([], "Nobody", source=UserNotification.Source.TASK), [])
        self.assertFalse(UserNotification.objects.exists())


class NotificationInboxTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = make_user("alice")
        self.first, self.second, self.third = (
            notify(self.alice, f"Message {i}", source=UserNotification.Source.PROJECT)[0] for i in range(3)
        )

    def test_unread_count_and_mark_as_read(self) -> None:
        self.assertEqual(get_unread_notification_count(self.alice), 3)

        marked = mark_notifications_as_read(self.alice, [self.first])

        self.assertEqual(marked, 1)
        self.assertEqual(get_unread_notification_count(self.alice), 2)

        self.assertEqual(mark_notifications_as_read(self.alice), 2)
        self.assertEqual(get_unread_notification_count(self.alice), 0)

    def test_cannot_mark_notifications_of_another_user(self) -> None:
        bob = make_user("bob")

        self.assertEqual(mark_notifications_as_read(bob, [self.first]), 0)
        self.first.refresh_from_db()
        self.assertFalse(self.first.is_read)

    def test_notifications_are_listed_newest_first(self) -> None:
        self.assertEqual(list(get_user_notifications(self.alice)), [self.third, self.second, self.first])


@override_settings(PUBLIC_BASE_URL="https://volunteers.example.org/")
class NotificationsUrlTests(TestCase):
    def test_url_uses_public_base_url(self) -> None:
        self.assertEqual(notifications_url(), "https://volunteers.example.org/notifications/")

    def test_empty_base_url_gives_empty_link(self) -> None:
        self.assertEqual(notifications_url(base_url=""), "")
