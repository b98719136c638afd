"""Periodic polling of GitHub notifications."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from .avatar_cache import AvatarCache
from .desktop_notifier import DesktopNotifier
from .github_client import GithubClient
from .models import Notification
from .processor import process_notifications
from .timestamps import TimestampStore

logger = logging.getLogger(__name__)

POLL_INTERVAL = 10.0


class NotificationPoller:
    """Fetches new participating notifications and shows them, again and again."""

    def __init__(
        self,
        client: GithubClient,
        store: TimestampStore | None = None,
        notifier: DesktopNotifier | None = None,
        avatar_cache: AvatarCache | None = None,
        interval: float = POLL_INTERVAL,
    ) -> None:
        self.client = client
        self.store = store if store is not None else TimestampStore()
        self.notifier = notifier if notifier is not None else DesktopNotifier()
        self.avatar_cache = avatar_cache if avatar_cache is not None else AvatarCache()
        self.interval = interval
        self.current_user_login = ""
        self._user_checked = False

    async def initialize_current_user(self) -> None:
        """Look up who the token belongs to; on failure the login stays empty."""
        self._user_checked = True
        try:
            user = await self.client.current_user()
        except Exception as exc:
            logger.error("Failed to fetch current user: %s", exc)
            return
        self.current_user_login = user.login

    async def poll_once(self) -> list[Notification] | None:
        """Fetch and show new notifications; None if fetching failed."""
        logger.debug("Fetching notifications...")
        last_seen = self.store.load()
        try:
            notifications = await self.client.participating_notifications(last_seen)
        except Exception as exc:
            logger.error("Failed to fetch notifications: %s", exc)
            return None

        max_seen = await process_notifications(
            self.client,
            notifications,
            last_seen,
            self.current_user_login,
            self.notifier,
            self.avatar_cache,
        )
        if max_seen is not None:
            stamp = max_seen + timedelta(seconds=1)
            logger.debug("Updating last seen timestamp to %s", stamp.isoformat())
            self.store.save(stamp)

        logger.debug("Fetched %d notifications", len(notifications))
        return notifications

    async def run(self) -> None:
        """Poll forever, pausing between rounds."""
        if not self._user_checked:
            await self.initialize_current_user()
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval)