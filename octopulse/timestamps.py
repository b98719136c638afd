"""Persistence of the time of the most recently seen notification."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

LAST_SEEN_FILE = "last_seen.txt"


class TimestampStore:
    """Keeps the last-seen timestamp in a small text file."""

    def __init__(self, path: str | Path = LAST_SEEN_FILE) -> None:
        self.path = Path(path)

    def load(self) -> datetime | None:
        """Return the stored timestamp in UTC, or None if absent or unreadable."""
        try:
            text = self.path.read_text(encoding="utf-8").strip()
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00").replace("z", "+00:00"))
        except (OSError, UnicodeDecodeError, ValueError):
            return None
        if parsed.tzinfo is None:
            return None
        return parsed.astimezone(timezone.utc)

    def save(self, timestamp: datetime) -> None:
        """Store the timestamp; failures are logged, not raised."""
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        try:
            self.path.write_text(timestamp.astimezone(timezone.utc).isoformat() + "\n", encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to store last seen timestamp in %s: %s", self.path, exc)