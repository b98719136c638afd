import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from octopulse.avatar_cache import AvatarCache
from octopulse.desktop_notifier import DesktopNotifier
from octopulse.github_client import GithubClient
from octopulse.poller import POLL_INTERVAL, NotificationPoller
from octopulse.timestamps import TimestampStore

API = "https://api.test"


def thread(title, updated):
    return {
        "id": title,
        "repository": {"name": "tools", "owner": {"login": "owner"}},
        "subject": {"title": title, "type": "Issue", "url": None},
        "reason": "mention",
        "updated_at": updated,
    }


class FakeApi:
    def __init__(self, notifications=None, user=None, fail_notifications=False):
        self.notifications = notifications or []
        self.user = user
        self.fail_notifications = fail_notifications
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if request.url.path == "/user" and self.user is not None:
            return httpx.Response(200, json=self.user)
        if request.url.path == "/notifications":
            if self.fail_notifications:
                return httpx.Response(500, json={"message": "boom"})
            return httpx.Response(200, json=self.notifications)
        return httpx.Response(404, json={"message": "Not Found"})

    def notification_requests(self):
        return [r for r in self.requests if r.url.path == "/notifications"]


class RecordingSender:
    def __init__(self):
        self.sent = []

    def send(self, notification):
        self.sent.append(notification)
        return 1


def make_poller(tmp_path, api, interval=POLL_INTERVAL):
    http = httpx.AsyncClient(transport=httpx.MockTransport(api))
    client = GithubClient("token", base_url=API, http=http)
    store = TimestampStore(tmp_path / "last_seen.txt")
    sender = RecordingSender()
    poller = NotificationPoller(
        client,
        store,
        DesktopNotifier(sender),
        AvatarCache(directory=tmp_path, http=http),
        interval,
    )
    return poller, store, sender


@pytest.mark.asyncio
async def test_initialize_current_user_sets_login(tmp_path):
    api = FakeApi(user={"login": "octo", "avatar_url": "https://avatars.test/u/octo"})
    poller, _, _ = make_poller(tmp_path, api)
    assert poller.current_user_login == ""
    await poller.initialize_current_user()
    assert poller.current_user_login == "octo"


@pytest.mark.asyncio
async def test_initialize_current_user_failure_keeps_empty_login(tmp_path):
    poller, _, _ = make_poller(tmp_path, FakeApi())
    await poller.initialize_current_user()
    assert poller.current_user_login == ""


@pytest.mark.asyncio
async def test_poll_once_stores_latest_update_plus_one_second(tmp_path):
    api = FakeApi(
        notifications=[
            thread("first", "2024-05-01T08:00:00Z"),
            thread("second", "2024-05-01T12:00:00Z"),
        ]
    )
    poller, store, sender = make_poller(tmp_path, api)
    fetched = await poller.poll_once()

    assert [n.subject.title for n in fetched] == ["first", "second"]
    latest = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert store.load() == latest + timedelta(seconds=1)
    assert [n.summary for n in sender.sent] == ["[tools] first", "[tools] second"]


@pytest.mark.asyncio
async def test_poll_once_without_notifications_keeps_store_empty(tmp_path):
    poller, store, sender = make_poller(tmp_path, FakeApi())
    assert await poller.poll_once() == []
    assert store.load() is None
    assert sender.sent == []


@pytest.mark.asyncio
async def test_poll_once_fetch_failure_returns_none(tmp_path):
    api = FakeApi(fail_notifications=True)
    poller, store, sender = make_poller(tmp_path, api)
    assert await poller.poll_once() is None
    assert store.load() is None
    assert sender.sent == []


@pytest.mark.asyncio
async def test_poll_once_asks_only_for_participating_since_last_seen(tmp_path):
    api = FakeApi()
    poller, store, _ = make_poller(tmp_path, api)
    store.save(datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc))
    await poller.poll_once()

    (request,) = api.notification_requests()
    assert request.url.params["participating"] == "true"
    assert request.url.params["since"] == "2024-05-01T10:00:00Z"


@pytest.mark.asyncio
async def test_first_poll_has_no_since(tmp_path):
    api = FakeApi()
    poller, _, _ = make_poller(tmp_path, api)
    await poller.poll_once()
    (request,) = api.notification_requests()
    assert "since" not in request.url.params


@pytest.mark.asyncio
async def test_run_initializes_user_and_keeps_polling(tmp_path):
    api = FakeApi(
        notifications=[thread("first", "2024-05-01T08:00:00Z")],
        user={"login": "octo", "avatar_url": ""},
    )
    poller, store, sender = make_poller(tmp_path, api, interval=0.01)
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(poller.run(), timeout=0.3)

    assert poller.current_user_login == "octo"
    assert len(api.notification_requests()) >= 2
    assert len(sender.sent) >= 2
    assert store.load() == datetime(2024, 5, 1, 8, 0, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_run_survives_fetch_failures(tmp_path):
    api = FakeApi(fail_notifications=True)
    poller, store, _ = make_poller(tmp_path, api, interval=0.01)
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(poller.run(), timeout=0.2)
    assert len(api.notification_requests()) >= 2
    assert store.load() is None