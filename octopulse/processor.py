"""Turning fetched GitHub notifications into desktop notifications."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from .avatar_cache import AvatarCache
from .desktop_notifier import DesktopNotifier
from .github_client import GithubClient
from .models import Notification

logger = logging.getLogger(__name__)

PULL_REQUEST = "PullRequest"


async def process_notification(
    client: GithubClient,
    notification: Notification,
    since: datetime | None,
    current_user_login: str,
    notifier: DesktopNotifier,
    avatar_cache: AvatarCache,
) -> None:
    """Show one notification, with pull request details where it is about one."""
    if notification.subject.type != PULL_REQUEST:
        notifier.notify_generic(notification)
        return

    pr = await client.pr_details(notification, since)
    await avatar_cache.ensure_avatar(pr.author.login, pr.author.avatar_url)
    for comment in pr.comments:
        if comment.user is not None:
            await avatar_cache.ensure_avatar(comment.user.login, comment.user.avatar_url)
    notifier.notify_pull_request(pr, notification, avatar_cache, current_user_login)


async def process_notifications(
    client: GithubClient,
    notifications: Iterable[Notification],
    since: datetime | None = None,
    current_user_login: str = "",
    notifier: DesktopNotifier | None = None,
    avatar_cache: AvatarCache | None = None,
) -> datetime | None:
    """Show every notification and return the latest update time among them.

    A notification that cannot be shown is logged and skipped.
    """
    notifier = notifier if notifier is not None else DesktopNotifier()
    avatar_cache = avatar_cache if avatar_cache is not None else AvatarCache()
    items = list(notifications)
    for notification in items:
        try:
            await process_notification(
                client, notification, since, current_user_login, notifier, avatar_cache
            )
        except Exception as exc:
            logger.error("Failed to process notification: %s", exc)
    return max((item.updated_at for item in items), default=None)