"""Shared fixtures: a temporary SQLite store and an in-memory notification platform."""

from datetime import datetime
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio

from greenhealth.db.migrations import run_migrations
from greenhealth.db.models import Reminder
from greenhealth.db.repository import Repository

OWNER_ID = 1001
UTC = ZoneInfo("UTC")


class FakePlatform:
    """Records notifications instead of sending them."""

    def __init__(self, permission: str = "granted", fail_with: Exception | None = None):
        self.default_permission = permission
        self.permissions: dict[int, str] = {}
        self.fail_with = fail_with
        self.shown: list = []
        self.requests: list[int] = []
        self.forgotten: list = []

    async def permission(self, owner_id: int) -> str:
        return self.permissions.get(owner_id, self.default_permission)

    async def request_permission(self, owner_id: int) -> str:
        self.requests.append(owner_id)
        return await self.permission(owner_id)

    async def show(self, owner_id, payload):
        if self.fail_with is not None:
            raise self.fail_with
        self.shown.append((owner_id, payload))
        return len(self.shown)

    def forget(self, owner_id, tag=None, message_id=None):
        self.forgotten.append((owner_id, tag, message_id))


class FakeBot:
    """Stands in for telegram.Bot: records sends and deletes."""

    def __init__(self, fail_with: Exception | None = None):
        self.fail_with = fail_with
        self.sent: list = []
        self.deleted: list = []

    async def send_message(self, chat_id, text, **kwargs):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(SimpleNamespace(chat_id=chat_id, text=text, **kwargs))
        return SimpleNamespace(message_id=len(self.sent))

    async def delete_message(self, chat_id, message_id):
        self.deleted.append((chat_id, message_id))
        return True


class FakeMessage:
    def __init__(self, message_id: int = 1):
        self.message_id = message_id
        self.edits: list = []
        self.deleted = False

    async def edit_text(self, text, **kwargs):
        self.edits.append(text)

    async def delete(self):
        self.deleted = True

    async def reply_text(self, text, **kwargs):
        self.edits.append(text)

    async def reply_html(self, text, **kwargs):
        self.edits.append(text)


class FakeQuery:
    """A callback query for one button press."""

    def __init__(self, data: str, message: FakeMessage | None = None):
        self.data = data
        self.message = message or FakeMessage()
        self.answers: list = []

    async def answer(self, text=None, **kwargs):
        self.answers.append(text)


def button_press(data: str, user_id: int = OWNER_ID):
    """Update carrying a callback query from the given user."""
    query = FakeQuery(data)
    return SimpleNamespace(
        callback_query=query,
        effective_user=SimpleNamespace(id=user_id),
        effective_message=query.message,
    )


def bot_context(repo, platform, dispatcher=None, bot=None):
    """Handler context with the objects post_init puts in bot_data."""
    return SimpleNamespace(
        bot=bot or FakeBot(),
        bot_data={"repo": repo, "platform": platform, "dispatcher": dispatcher},
        args=[],
    )


def make_reminder(**overrides) -> Reminder:
    """A reminder with sensible defaults for tests."""
    fields = dict(
        owner_id=OWNER_ID,
        title="Water the monstera",
        due_at=datetime(2024, 1, 1, 8, 0, tzinfo=UTC),
        category="water",
    )
    fields.update(overrides)
    return Reminder(**fields)


@pytest.fixture
def platform():
    return FakePlatform()


@pytest_asyncio.fixture
async def repo(tmp_path):
    db_path = tmp_path / "greenhealth-test.db"
    await run_migrations(db_path)
    repository = Repository(db_path)
    await repository.connect()
    yield repository
    await repository.close()


@pytest_asyncio.fixture
async def owner(repo):
    created = await repo.create_owner(OWNER_ID)
    await repo.set_notification_permission(OWNER_ID, "granted")
    return created
