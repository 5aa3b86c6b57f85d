"""Tests for the background poller and its triggers."""

import asyncio
from datetime import datetime, timedelta
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest
from conftest import OWNER_ID, FakePlatform, make_reminder

from greenhealth.bot.events import on_periodic_sync
from greenhealth.db.repository import Repository
from greenhealth.engine.dispatcher import Dispatcher
from greenhealth.engine.poller import (
    ForegroundTimer,
    check_due_reminders,
    check_todays_reminders,
    register_periodic_sync,
)
from greenhealth.errors import PlatformUnsupported

UTC = ZoneInfo("UTC")
NOW = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_due_reminder_is_notified_once(repo, owner, platform):
    """A second poll over the same state does not notify again."""
    reminder = await repo.create_reminder(make_reminder(due_at=NOW - timedelta(hours=1)))
    await repo.create_reminder(make_reminder(title="Later", due_at=NOW + timedelta(hours=1)))
    dispatcher = Dispatcher(platform)

    first = await check_due_reminders(repo, dispatcher, NOW)
    second = await check_due_reminders(repo, dispatcher, NOW)

    assert first.shown == 1
    assert second.shown == 0
    assert second.due == 0
    assert [payload.tag for _, payload in platform.shown] == [f"reminder-{reminder.id}"]
    assert (await repo.get_reminder(reminder.id)).notification_sent is True


@pytest.mark.asyncio
async def test_overlapping_triggers_do_not_double_notify(repo, owner, platform):
    """Foreground timer and periodic sync firing together."""
    await repo.create_reminder(make_reminder(due_at=NOW - timedelta(minutes=1)))
    dispatcher = Dispatcher(platform)

    reports = await asyncio.gather(
        check_due_reminders(repo, dispatcher, NOW),
        check_due_reminders(repo, dispatcher, NOW),
    )

    assert sum(r.shown for r in reports) == 1
    assert len(platform.shown) == 1


@pytest.mark.asyncio
async def test_completed_reminders_are_not_notified(repo, owner, platform):
    reminder = await repo.create_reminder(make_reminder(due_at=NOW - timedelta(hours=1)))
    await repo.set_completed(reminder.id, True)

    report = await check_due_reminders(repo, Dispatcher(platform), NOW)

    assert report.due == 0
    assert platform.shown == []


@pytest.mark.asyncio
async def test_permission_denied_leaves_reminder_due(repo, owner):
    """Without permission nothing is shown and the reminder stays due."""
    platform = FakePlatform(permission="denied")
    reminder = await repo.create_reminder(make_reminder(due_at=NOW - timedelta(hours=1)))

    report = await check_due_reminders(repo, Dispatcher(platform), NOW)

    assert report.permission_denied == 1
    assert platform.shown == []
    assert (await repo.get_reminder(reminder.id)).notification_sent is False

    # Granting later lets the next tick deliver it
    platform.permissions[OWNER_ID] = "granted"
    retry = await check_due_reminders(repo, Dispatcher(platform), NOW)
    assert retry.shown == 1


@pytest.mark.asyncio
async def test_owner_without_permission_is_not_claimed(repo, owner, monkeypatch):
    """No claim-and-release churn on every tick while notifications are off."""
    platform = FakePlatform(permission="default")
    await repo.create_reminder(make_reminder(due_at=NOW - timedelta(hours=1)))
    claims = []

    async def record_claim(reminder_id):
        claims.append(reminder_id)
        return True

    monkeypatch.setattr(repo, "claim_notification", record_claim)

    report = await check_due_reminders(repo, Dispatcher(platform), NOW)

    assert report.due == 1
    assert report.permission_denied == 1
    assert claims == []


@pytest.mark.asyncio
async def test_reopened_reminder_alerts_at_due_time(repo, owner, platform):
    """Completing then reopening a future reminder does not silence it."""
    reminder = await repo.create_reminder(make_reminder(due_at=NOW + timedelta(hours=2)))
    await repo.set_completed(reminder.id, True)
    await repo.set_completed(reminder.id, False, now=NOW)

    report = await check_due_reminders(repo, Dispatcher(platform), NOW + timedelta(hours=3))

    assert report.shown == 1


@pytest.mark.asyncio
async def test_display_failure_is_retried_next_tick(repo, owner):
    platform = FakePlatform(fail_with=RuntimeError("timeout"))
    reminder = await repo.create_reminder(make_reminder(due_at=NOW - timedelta(hours=1)))

    report = await check_due_reminders(repo, Dispatcher(platform), NOW)

    assert report.failed == 1
    assert (await repo.get_reminder(reminder.id)).notification_sent is False

    platform.fail_with = None
    assert (await check_due_reminders(repo, Dispatcher(platform), NOW)).shown == 1


@pytest.mark.asyncio
async def test_store_failure_is_logged_not_raised(tmp_path, platform):
    """A poll against an unreachable store reports the error and returns."""
    repo = Repository(tmp_path / "never-connected.db")

    report = await check_due_reminders(repo, Dispatcher(platform), NOW)

    assert report.store_errors == 1
    assert report.owners == 0


@pytest.mark.asyncio
async def test_todays_summary_keeps_later_reminders_armed(repo, owner, platform):
    """The summary covers all of today, but later reminders still alert on time."""
    missed = await repo.create_reminder(make_reminder(title="Mist", due_at=NOW - timedelta(hours=1)))
    water = await repo.create_reminder(make_reminder(title="Water", due_at=NOW + timedelta(hours=2)))
    prune = await repo.create_reminder(make_reminder(title="Prune", due_at=NOW + timedelta(hours=5)))
    await repo.create_reminder(make_reminder(title="Repot", due_at=NOW + timedelta(days=2)))

    count = await check_todays_reminders(repo, platform, OWNER_ID, NOW)

    assert count == 3
    assert len(platform.shown) == 1
    assert platform.shown[0][1].title == "3 reminders due today"
    assert (await repo.get_reminder(missed.id)).notification_sent is True
    assert (await repo.get_reminder(water.id)).notification_sent is False

    # Each later reminder still gets its own notification when it comes due
    at_water = await check_due_reminders(repo, Dispatcher(platform), NOW + timedelta(hours=2))
    at_prune = await check_due_reminders(repo, Dispatcher(platform), NOW + timedelta(hours=5))

    assert at_water.shown == 1
    assert at_prune.shown == 1
    assert [payload.tag for _, payload in platform.shown[1:]] == [
        f"reminder-{water.id}",
        f"reminder-{prune.id}",
    ]


@pytest.mark.asyncio
async def test_todays_summary_needs_permission(repo, platform):
    await repo.create_owner(OWNER_ID)
    await repo.create_reminder(make_reminder(due_at=NOW + timedelta(hours=2)))

    assert await check_todays_reminders(repo, platform, OWNER_ID, NOW) == 0
    assert platform.shown == []


@pytest.mark.asyncio
async def test_foreground_timer_ticks_until_stopped():
    calls = []

    async def tick():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first tick fails")

    timer = ForegroundTimer(tick, interval=0.01)
    timer.start()
    timer.start()  # no second task
    await asyncio.sleep(0.1)
    await timer.stop()

    assert len(calls) >= 2
    assert not timer.running

    count = len(calls)
    await asyncio.sleep(0.05)
    assert len(calls) == count


class FakeJobQueue:
    def __init__(self):
        self.registered = []

    def get_jobs_by_name(self, name):
        return []

    def run_repeating(self, callback, interval, first, name, data):
        job = SimpleNamespace(callback=callback, interval=interval, name=name, data=data)
        self.registered.append(job)
        return job


def test_periodic_sync_interval_is_clamped():
    """The platform minimum wins over a shorter requested interval."""
    application = SimpleNamespace(job_queue=FakeJobQueue())

    job = register_periodic_sync(
        application, on_periodic_sync, tag="check-reminders", interval=60, min_interval=3600
    )

    assert job.interval == 3600
    assert job.name == "check-reminders"
    assert job.data == "check-reminders"


def test_periodic_sync_unsupported_without_job_queue():
    application = SimpleNamespace(job_queue=None)

    with pytest.raises(PlatformUnsupported):
        register_periodic_sync(
            application, on_periodic_sync, tag="check-reminders", interval=3600, min_interval=3600
        )


@pytest.mark.asyncio
async def test_periodic_sync_event_runs_check(repo, owner, platform):
    await repo.create_reminder(make_reminder(due_at=datetime(2020, 1, 1, tzinfo=UTC)))
    context = SimpleNamespace(
        job=SimpleNamespace(data="check-reminders"),
        bot_data={"repo": repo, "dispatcher": Dispatcher(platform)},
    )

    await on_periodic_sync(context)

    assert len(platform.shown) == 1


@pytest.mark.asyncio
async def test_periodic_sync_event_ignores_other_tags(platform):
    context = SimpleNamespace(job=SimpleNamespace(data="something-else"), bot_data={})

    await on_periodic_sync(context)

    assert platform.shown == []
