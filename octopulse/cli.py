"""Command line entry point: poll GitHub and show desktop notifications."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from .avatar_cache import AvatarCache
from .desktop_notifier import DesktopNotifier
from .github_client import GithubClient
from .poller import POLL_INTERVAL, NotificationPoller
from .timestamps import LAST_SEEN_FILE, TimestampStore


def configure_logging(log_dir: str | Path = "logs") -> list[logging.Handler]:
    """Send debug logging to stdout and to a daily rotated ``app.log``."""
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        TimedRotatingFileHandler(directory / "app.log", when="midnight", encoding="utf-8"),
    ]
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    root = logging.getLogger()
    for handler in handlers:
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    return handlers


async def _run(token: str) -> None:
    async with GithubClient(token) as client:
        poller = NotificationPoller(
            client, TimestampStore(LAST_SEEN_FILE), DesktopNotifier(), AvatarCache(), POLL_INTERVAL
        )
        await poller.initialize_current_user()
        await poller.run()


def main(argv: list[str] | None = None) -> int:
    """Run the notifier; the token is read from ``GITHUB_TOKEN``."""
    parser = argparse.ArgumentParser(prog="octopulse")
    parser.add_argument("--log-dir", default="logs", help="directory for app.log")
    args = parser.parse_args(argv)
    configure_logging(args.log_dir)

    token = os.environ.get("GITHUB_TOKEN")
    if not token:
        print("GITHUB_TOKEN environment variable not set", file=sys.stderr)
        return 1

    try:
        asyncio.run(_run(token))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())