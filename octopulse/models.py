"""Data types shared across the notifier: users, pull requests and notifications."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping


@dataclass(frozen=True)
class GithubUser:
    """A GitHub account as far as notifications care about it."""

    login: str
    avatar_url: str = ""


class PullRequestState(enum.Enum):
    """Lifecycle state of a pull request; the value is its display name."""

    MERGED = "merged"
    DRAFT = "draft"
    CLOSED = "closed"
    OPEN = "open"
    UNKNOWN = "unknown"

    def icon_path(self) -> str:
        """Relative path of the icon shown for this state, or "" for none."""
        return _STATE_ICONS[self]


_STATE_ICONS = {
    PullRequestState.MERGED: "media/pull-request-merged.svg",
    PullRequestState.DRAFT: "media/pull-request-draft.svg",
    PullRequestState.CLOSED: "media/pull-request-closed.svg",
    PullRequestState.OPEN: "media/pull-request-open.svg",
    PullRequestState.UNKNOWN: "",
}


class CommentAction(enum.Enum):
    """What a comment or review on a pull request did."""

    COMMENT = "comment"
    REVIEW_APPROVED = "approved"
    REVIEW_CHANGES_REQUESTED = "changes requested"
    REVIEW_DISMISSED = "dismissed"
    UNKNOWN = "unknown action"

    def emoji(self) -> str:
        """Single emoji summarising the action."""
        return _ACTION_EMOJI[self]

    def __str__(self) -> str:
        return self.value


_ACTION_EMOJI = {
    CommentAction.COMMENT: "💬",
    CommentAction.REVIEW_APPROVED: "✅",
    CommentAction.REVIEW_CHANGES_REQUESTED: "❗",
    CommentAction.REVIEW_DISMISSED: "🚫",
    CommentAction.UNKNOWN: "❓",
}

_REVIEW_STATE_ACTIONS = {
    "APPROVED": CommentAction.REVIEW_APPROVED,
    "CHANGES_REQUESTED": CommentAction.REVIEW_CHANGES_REQUESTED,
    "DISMISSED": CommentAction.REVIEW_DISMISSED,
    "COMMENTED": CommentAction.COMMENT,
}


@dataclass
class PullRequestComment:
    """A comment or review left on a pull request."""

    created_at: datetime | None
    user: GithubUser | None
    action: CommentAction
    body: str


@dataclass
class PullRequestDetails:
    """The parts of a pull request shown in a notification."""

    author: GithubUser
    state: PullRequestState
    comments: list[PullRequestComment] = field(default_factory=list)


@dataclass(frozen=True)
class Repository:
    """Repository a notification belongs to."""

    name: str
    owner: str | None = None


@dataclass(frozen=True)
class Subject:
    """What a notification is about."""

    title: str
    type: str
    url: str | None = None


@dataclass(frozen=True)
class Notification:
    """A notification thread of the authenticated user."""

    repository: Repository
    subject: Subject
    reason: str
    updated_at: datetime
    id: str = ""


def _parse_datetime(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp without a time zone: {value!r}")
    return parsed.astimezone(timezone.utc)


def user_from_api(data: Mapping[str, Any]) -> GithubUser:
    """Build a user from an API user object."""
    return GithubUser(login=data["login"], avatar_url=data.get("avatar_url") or "")


def comment_action_from_review_state(state: str | None) -> CommentAction:
    """Map an API review state such as ``APPROVED`` to a comment action."""
    if state is None:
        return CommentAction.UNKNOWN
    return _REVIEW_STATE_ACTIONS.get(state.upper(), CommentAction.UNKNOWN)


def notification_from_api(data: Mapping[str, Any]) -> Notification:
    """Build a notification from an API notification thread object."""
    repo = data["repository"]
    owner = repo.get("owner")
    subject = data["subject"]
    return Notification(
        id=str(data.get("id", "")),
        repository=Repository(
            name=repo["name"],
            owner=owner.get("login") if owner else None,
        ),
        subject=Subject(
            title=subject["title"],
            type=subject["type"],
            url=subject.get("url"),
        ),
        reason=data["reason"],
        updated_at=_parse_datetime(data["updated_at"]),
    )