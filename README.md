# octopulse

octopulse watches the GitHub notifications you are participating in and shows
them as desktop notifications.

For pull requests it fetches the pull request, its comments and its reviews
that were posted since the last check. It then shows one notification that
holds:

- the author's avatar, the repository, the title and the state (open, draft,
  closed, merged or unknown)
- each new comment or review from other people, with an emoji for what kind it
  is (💬 comment, ✅ approved, ❗ changes requested, 🚫 dismissed, ❓ unknown).
  Texts longer than 100 characters are cut short and end in `…`.

Your own comments are left out. Other notification types appear as a short
notice that gives the subject type and the reason.

## Installation

```
pip install .
```

Notifications go over the session D-Bus (`org.freedesktop.Notifications`,
found through `DBUS_SESSION_BUS_ADDRESS`), so you need a Linux desktop that
runs a notification daemon.

## Usage

Set a personal access token that can read notifications, then start the
poller:

```
export GITHUB_TOKEN=token
octopulse
```

Options:

- `--log-dir DIR` – directory for the log file (default `logs`).

octopulse checks GitHub every 10 seconds. It keeps the time of the newest
notification it has handled, plus one second, in `last_seen.txt` in the
current directory, so after a restart it picks up where it stopped. Log output
at debug level goes to standard output and to `app.log` in the log directory,
rotated at midnight.

Avatars are cached as PNG files, scaled to fit within 18×18 pixels, in the
system temporary directory, and are fetched again after one day. Pull request
state icons are taken from `media/` relative to the working directory.

If `GITHUB_TOKEN` is not set, octopulse exits with status 1. Stop it with
Ctrl+C.

## Using it as a library

The parts can be used on their own:

- `octopulse.github_client.GithubClient` is an async client for
  `participating_notifications()`, `pr_details()` and `current_user()`. It can
  be used as an async context manager, and accepts its own `httpx.AsyncClient`
  and API base URL.
- `octopulse.processor.process_notifications` turns a batch of notifications
  into desktop notifications and returns the newest update time. A
  notification that fails is logged and skipped.
- `octopulse.poller.NotificationPoller` runs the polling loop with `run()`.
  Call `poll_once()` for a single pass.
- `octopulse.timestamps.TimestampStore` reads and writes the last-seen time.
- `octopulse.avatar_cache.AvatarCache` downloads and caches avatars.
- `octopulse.desktop_notifier.DesktopNotifier` builds the notifications and
  hands them to a sender. By default this is `DBusNotificationSender`. Any
  object with a `send(notification)` method will also do.
- `octopulse.models` holds the data types and the helpers that build them
  from API objects.

## Limitations

- Only the first page of each API listing is read: notifications, pull
  request comments and reviews.
- Notifications are not marked as read on GitHub.
- Desktop notifications have no actions. Clicking one does not open the pull
  request.

## Development

```
pip install -e ".[test]"
pytest
```