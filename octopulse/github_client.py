"""Asynchronous access to the parts of the GitHub REST API the notifier needs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping
from urllib.parse import urlsplit

import httpx

from .models import (
    CommentAction,
    GithubUser,
    Notification,
    PullRequestComment,
    PullRequestDetails,
    PullRequestState,
    _parse_datetime,
    comment_action_from_review_state,
    notification_from_api,
    user_from_api,
)

API_URL = "https://api.github.com"

_UNKNOWN_AUTHOR = GithubUser(login="unknown", avatar_url="")


def pr_number_from_url(url: str) -> int:
    """Extract the pull request number from an API URL such as ``.../pulls/42``."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.path.startswith("/"):
        raise ValueError(f"invalid URL path segments: {url!r}")
    segments = parts.path[1:].split("/")
    try:
        number = segments[segments.index("pulls") + 1]
    except (ValueError, IndexError):
        raise ValueError(f"could not find pull request number in URL: {url!r}") from None
    if not (number.isascii() and number.isdigit()):
        raise ValueError(f"pull request number was not a valid number: {number!r}")
    return int(number)


def pull_request_state(pull: Mapping[str, Any]) -> PullRequestState:
    """Classify an API pull request object."""
    if pull.get("merged"):
        return PullRequestState.MERGED
    if pull.get("draft"):
        return PullRequestState.DRAFT
    state = pull.get("state")
    if state == "closed":
        return PullRequestState.CLOSED
    if state == "open":
        return PullRequestState.OPEN
    return PullRequestState.UNKNOWN


def _format_since(since: datetime) -> str:
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return since.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _sort_key(comment: PullRequestComment) -> tuple[bool, datetime]:
    when = comment.created_at
    return (when is not None, when or datetime.min.replace(tzinfo=timezone.utc))


class GithubClient:
    """Authenticated client for notifications, pull requests and the current user."""

    def __init__(
        self,
        token: str,
        base_url: str = API_URL,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "octopulse",
        }
        self._owns_http = http is None
        self._http = http if http is not None else httpx.AsyncClient(timeout=30.0)

    async def __aenter__(self) -> GithubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this object created it."""
        if self._owns_http:
            await self._http.aclose()

    async def _get(self, path: str, params: Mapping[str, str] | None = None) -> Any:
        response = await self._http.get(
            f"{self.base_url}{path}", params=params, headers=self._headers
        )
        response.raise_for_status()
        return response.json()

    async def participating_notifications(
        self, since: datetime | None = None
    ) -> list[Notification]:
        """Notifications in which the user participates, optionally only newer ones."""
        params = {"participating": "true"}
        if since is not None:
            params["since"] = _format_since(since)
        data = await self._get("/notifications", params)
        return [notification_from_api(item) for item in data]

    async def pr_details(
        self, notification: Notification, since: datetime | None = None
    ) -> PullRequestDetails:
        """Author, state and recent comments of the pull request a notification is about."""
        owner = notification.repository.owner
        if owner is None:
            raise ValueError("repository owner is missing")
        if notification.subject.url is None:
            raise ValueError("notification has no subject URL")
        repo = notification.repository.name
        number = pr_number_from_url(notification.subject.url)
        base = f"/repos/{owner}/{repo}/pulls/{number}"

        pull = await self._get(base)
        user = pull.get("user")
        author = user_from_api(user) if user else _UNKNOWN_AUTHOR

        comments: list[PullRequestComment] = []
        for item in await self._get(f"{base}/comments"):
            created_at = _parse_datetime(item["created_at"])
            if since is not None and not created_at > since:
                continue
            commenter = item.get("user")
            comments.append(
                PullRequestComment(
                    created_at=created_at,
                    user=user_from_api(commenter) if commenter else None,
                    action=CommentAction.COMMENT,
                    body=item.get("body") or "",
                )
            )

        for item in await self._get(f"{base}/reviews"):
            raw_submitted = item.get("submitted_at")
            submitted_at = _parse_datetime(raw_submitted) if raw_submitted else None
            if since is not None and (submitted_at is None or not submitted_at > since):
                continue
            reviewer = item.get("user")
            comments.append(
                PullRequestComment(
                    created_at=submitted_at,
                    user=user_from_api(reviewer) if reviewer else None,
                    action=comment_action_from_review_state(item.get("state")),
                    body=item.get("body") or "",
                )
            )

        comments.sort(key=_sort_key)
        return PullRequestDetails(
            author=author, state=pull_request_state(pull), comments=comments
        )

    async def current_user(self) -> GithubUser:
        """The user the token belongs to."""
        return user_from_api(await self._get("/user"))