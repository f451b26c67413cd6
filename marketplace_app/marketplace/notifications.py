from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import post_office.mail
from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet

from marketplace.models import User, UserNotification

logger = logging.getLogger(__name__)


def notifications_url(*, base_url: str | None = None) -> str:
    base = (base_url if base_url is not None else settings.PUBLIC_BASE_URL) or ""
    base = str(base).strip().rstrip("/")
    if not base:
        return ""
    return f"{base}/notifications/"


def send_notification_email(*, notification: UserNotification) -> bool:
    """Queue an email copy of `notification` via django-post-office.

    Returns True if an email was queued, False if the user has no address.
    """

    user = notification.user
    address = str(user.email or "").strip()
    if not address:
        return False

    post_office.mail.send(
        recipients=[address],
        sender=settings.DEFAULT_FROM_EMAIL,
        template=settings.NOTIFICATION_EMAIL_TEMPLATE_NAME,
        context={
            "full_name": user.get_full_name() or user.username,
            "message": notification.notification_description,
            "source": notification.get_source_display(),
            "severity": notification.get_severity_display(),
            "site_name": settings.SITE_NAME,
            "notifications_url": notifications_url(),
        },
        render_on_delivery=True,
    )
    return True


def _as_user_list(user_or_users: User | Iterable[User] | None) -> list[User]:
    if user_or_users is None:
        return []
    if isinstance(user_or_users, User):
        return [user_or_users]
    return list(user_or_users)


def notify(
    user_or_users: User | Iterable[User] | None,
    message: str,
    *,
    severity: int = UserNotification.Severity.INFO,
    source: str,
    target_id: int | None = None,
) -> list[UserNotification]:
    """Record a notification for each user and queue an email copy.

    Email problems never fail the calling operation; the notification row is
    kept either way.
    """

    created: list[UserNotification] = []
    seen: set[int] = set()
    for user in _as_user_list(user_or_users):
        if user.pk in seen:
            continue
        seen.add(user.pk)

        notification = UserNotification.objects.create(
            user=user,
            notification_description=message,
            severity=severity,
            source=source,
            target_id=target_id,
        )
        created.append(notification)

        try:
            with transaction.atomic():
                queued = send_notification_email(notification=notification)
        except Exception:
            logger.exception(
                "notify: failed to queue email user_id=%s notification_id=%s",
                user.pk,
                notification.pk,
            )
        else:
            logger.debug(
                "notify: user_id=%s source=%s target_id=%s email_queued=%s",
                user.pk,
                source,
                target_id,
                queued,
            )

    return created


def get_user_notifications(user: Any) -> QuerySet[UserNotification]:
    return UserNotification.objects.filter(user=user).order_by("-notification_date", "-id")


def get_unread_notification_count(user: Any) -> int:
    if not getattr(user, "is_authenticated", False):
        return 0
    return UserNotification.objects.filter(user=user, is_read=False).count()


def mark_notifications_as_read(user: Any, notifications: Iterable[UserNotification] | None = None) -> int:
    """Mark `notifications` (or every unread notification) of `user` as read."""

    queryset = UserNotification.objects.filter(user=user, is_read=False)
    if notifications is not None:
        queryset = queryset.filter(pk__in=[n.pk for n in notifications])
    return queryset.update(is_read=True)
