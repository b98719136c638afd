"""Desktop notifications over the freedesktop D-Bus notification service."""

from __future__ import annotations

import dataclasses
import logging
import os
import socket
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator
from urllib.parse import unquote

from .avatar_cache import AvatarCache
from .models import Notification, PullRequestDetails

logger = logging.getLogger(__name__)

MAX_LENGTH = 100
APP_NAME = "octopulse"
DESKTOP_ENTRY = "org.mozilla.firefox"
URGENCY_NORMAL = 1


@dataclass(frozen=True)
class DesktopNotification:
    """A notification as handed to the desktop."""

    summary: str
    body: str
    icon: str = ""
    app_name: str = APP_NAME
    desktop_entry: str = DESKTOP_ENTRY
    urgency: int = URGENCY_NORMAL
    timeout: int = 0


def truncate(text: str) -> str:
    """Shorten text to at most 100 characters, marking a cut with an ellipsis."""
    return f"{text[:MAX_LENGTH]}…" if len(text) > MAX_LENGTH else text


def resolve_image_path(relative_path: str) -> str:
    """Make a path relative to the working directory absolute."""
    try:
        base = Path.cwd()
    except OSError:
        base = Path(".")
    return str(base / relative_path)


def _avatar_uri(avatar_cache: AvatarCache, login: str) -> str:
    try:
        return avatar_cache.local_uri(login)
    except ValueError:
        return ""


def pull_request_body(
    pr: PullRequestDetails,
    notification: Notification,
    avatar_cache: AvatarCache,
    current_user_login: str,
) -> str:
    """Markup body of a pull request notification, skipping the user's own comments."""
    parts = [
        f'<img src="{_avatar_uri(avatar_cache, pr.author.login)}"/> '
        f"[{notification.repository.name}] {notification.subject.title} "
        f"({pr.state.value})\n<b> </b>\n"
    ]
    for comment in pr.comments:
        login = comment.user.login if comment.user is not None else "unknown"
        if login == current_user_login:
            continue
        shown = comment.user.login if comment.user is not None else ""
        parts.append(
            f'<img src="{_avatar_uri(avatar_cache, login)}"/> <b>{shown}</b> '
            f"{comment.action.emoji()} {truncate(comment.body)}\n\n"
        )
    return "".join(parts)


def generic_notification(notification: Notification) -> DesktopNotification:
    """Notification for anything that is not a pull request."""
    return DesktopNotification(
        summary=f"[{notification.repository.name}] {notification.subject.title}",
        body=f"Type: {notification.subject.type}\nReason: {notification.reason}",
    )


# Minimal little-endian D-Bus wire encoding for the two calls needed.

def _align(buf: bytearray, boundary: int) -> None:
    buf.extend(bytes(-len(buf) % boundary))


def _put(buf: bytearray, sig: str, value: Any) -> None:
    if sig == "y":
        buf.append(value)
    elif sig == "g":
        buf.append(len(value))
        buf += value.encode("ascii") + b"\0"
    elif sig in ("u", "i"):
        _align(buf, 4)
        buf += struct.pack("<I" if sig == "u" else "<i", value)
    else:
        raw = value.encode("utf-8")
        _put(buf, "u", len(raw))
        buf += raw + b"\0"


def _put_entries(buf: bytearray, key_sig: str, entries: list[tuple[Any, str, Any]]) -> None:
    """Append an array of (key, variant) structs."""
    _put(buf, "u", 0)
    length_at = len(buf) - 4
    _align(buf, 8)
    start = len(buf)
    for key, sig, value in entries:
        _align(buf, 8)
        _put(buf, key_sig, key)
        _put(buf, "g", sig)
        _put(buf, sig, value)
    struct.pack_into("<I", buf, length_at, len(buf) - start)


def _method_call(serial: int, path: str, name: str, member: str,
                 signature: str = "", body: bytes = b"") -> bytes:
    fields = [(1, "o", path), (2, "s", name), (3, "s", member), (6, "s", name)]
    if signature:
        fields.append((8, "g", signature))
    buf = bytearray(b"l\x01\x00\x01") + struct.pack("<II", len(body), serial)
    _put_entries(buf, "y", fields)
    _align(buf, 8)
    return bytes(buf) + body


def _notify_body(n: DesktopNotification) -> bytes:
    buf = bytearray()
    _put(buf, "s", n.app_name)
    _put(buf, "u", 0)
    for text in (n.icon, n.summary, n.body):
        _put(buf, "s", text)
    _put(buf, "u", 0)  # no actions
    _put_entries(buf, "s", [("desktop-entry", "s", n.desktop_entry), ("urgency", "y", n.urgency)])
    _put(buf, "i", n.timeout)
    return bytes(buf)


def _get(data: bytes, pos: int, sig: str, endian: str) -> tuple[Any, int]:
    if sig == "g":
        length = data[pos]
        return data[pos + 1 : pos + 1 + length].decode("ascii"), pos + length + 2
    pos += -pos % 4
    (number,) = struct.unpack_from(endian + "I", data, pos)
    if sig == "u":
        return number, pos + 4
    if sig in ("s", "o"):
        return data[pos + 4 : pos + 4 + number].decode("utf-8"), pos + 5 + number
    raise ConnectionError(f"unsupported D-Bus header field type: {sig!r}")


def _read_exact(reader: Any, size: int) -> bytes:
    data = reader.read(size)
    if data is None or len(data) != size:
        raise ConnectionError("D-Bus connection closed unexpectedly")
    return data


def _read_message(reader: Any) -> tuple[int, dict[int, Any], bytes, str]:
    """Read one message; return its type, header fields, body and byte order."""
    fixed = _read_exact(reader, 16)
    endian = {ord("l"): "<", ord("B"): ">"}.get(fixed[0])
    if endian is None:
        raise ConnectionError("malformed D-Bus message")
    body_len, _, fields_len = struct.unpack(endian + "III", fixed[4:16])
    header_end = 16 + fields_len
    body_start = header_end + (-header_end % 8)
    data = fixed + _read_exact(reader, body_start - 16 + body_len)
    fields: dict[int, Any] = {}
    pos = 16
    while pos < header_end:
        pos += -pos % 8
        sig, pos = _get(data, pos + 1, "g", endian)
        fields[data[pos - len(sig) - 3]], pos = _get(data, pos, sig, endian)
    return fixed[1], fields, data[body_start:], endian


def _socket_targets(address: str) -> Iterator[str]:
    for entry in address.split(";"):
        transport, _, params = entry.partition(":")
        options = dict(p.partition("=")[::2] for p in params.split(",") if p)
        if transport == "unix" and "path" in options:
            yield unquote(options["path"])
        elif transport == "unix" and "abstract" in options:
            yield "\0" + unquote(options["abstract"])


class DBusNotificationSender:
    """Sends notifications to the session bus notification daemon."""

    def __init__(self, address: str | None = None) -> None:
        self.address = address

    def send(self, notification: DesktopNotification) -> int:
        """Show a notification and return the id the daemon gave it."""
        with self._connect() as sock, sock.makefile("rb") as reader:
            uid = getattr(os, "getuid", lambda: None)()
            if uid is None:
                raise ConnectionError("EXTERNAL authentication needs a user id")
            sock.sendall(b"\0AUTH EXTERNAL " + str(uid).encode().hex().encode() + b"\r\n")
            line = reader.readline()
            if not line.startswith(b"OK"):
                raise ConnectionError(f"D-Bus authentication failed: {line!r}")
            sock.sendall(
                b"BEGIN\r\n"
                + _method_call(1, "/org/freedesktop/DBus", "org.freedesktop.DBus", "Hello")
                + _method_call(2, "/org/freedesktop/Notifications", "org.freedesktop.Notifications",
                               "Notify", "susssasa{sv}i", _notify_body(notification))
            )
            while True:
                kind, fields, body, endian = _read_message(reader)
                if kind in (2, 3) and fields.get(5) == 2:
                    break
        if kind == 3:
            raise RuntimeError(fields.get(4, "unknown error"))
        if fields.get(8) == "u" and len(body) >= 4:
            return struct.unpack_from(endian + "I", body)[0]
        return 0

    def _connect(self) -> socket.socket:
        address = self.address or os.environ.get("DBUS_SESSION_BUS_ADDRESS")
        family = getattr(socket, "AF_UNIX", None)
        if not address or family is None:
            raise ConnectionError("no D-Bus session bus available")
        last_error: OSError | None = None
        for target in _socket_targets(address):
            sock = socket.socket(family, socket.SOCK_STREAM)
            sock.settimeout(5.0)
            try:
                sock.connect(target)
                return sock
            except OSError as exc:
                sock.close()
                last_error = exc
        raise ConnectionError(f"cannot connect to D-Bus at {address!r}: {last_error}")


class DesktopNotifier:
    """Turns GitHub notifications into desktop notifications."""

    def __init__(self, sender: Any = None) -> None:
        self.sender = sender if sender is not None else DBusNotificationSender()

    def notify_pull_request(
        self,
        pr: PullRequestDetails,
        notification: Notification,
        avatar_cache: AvatarCache,
        current_user_login: str,
    ) -> None:
        """Show a pull request with its recent comments."""
        body = pull_request_body(pr, notification, avatar_cache, current_user_login)
        icon = pr.state.icon_path()
        logger.debug("Using icon: %s for state:%s", icon, pr.state.value)
        self._show(DesktopNotification(summary="", body=body, icon=icon))

    def notify_generic(self, notification: Notification) -> None:
        """Show any other kind of notification."""
        self._show(generic_notification(notification))

    def _show(self, notification: DesktopNotification) -> None:
        logger.info("New github notification: %s - %s", notification.summary, notification.body)
        if notification.icon:
            notification = dataclasses.replace(notification, icon=resolve_image_path(notification.icon))
        try:
            self.sender.send(notification)
        except Exception as exc:
            logger.error("Failed to show desktop notification: %s", exc)
            raise