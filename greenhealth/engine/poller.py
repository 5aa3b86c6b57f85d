"""Background poller - feeds stored reminders through evaluation and dispatch.

Two triggers drive it: a foreground timer while the bot is running, and a
periodic background job registered on the application's job queue. Both may
fire close together. The store's atomic claim on ``notification_sent`` keeps a
reminder from being notified twice.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable

from telegram.ext import Application, Job

from greenhealth.db.repository import Repository
from greenhealth.engine.dispatcher import DispatchStatus, Dispatcher, build_summary_payload
from greenhealth.engine.evaluator import due_today, evaluate
from greenhealth.engine.platform import NotificationPlatform
from greenhealth.errors import PlatformUnsupported, StoreUnavailable
from greenhealth.utils.constants import PERMISSION_GRANTED
from greenhealth.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class PollReport:
    """Counts from one poll, for logging and tests."""

    owners: int = 0
    due: int = 0
    shown: int = 0
    permission_denied: int = 0
    failed: int = 0
    already_claimed: int = 0
    store_errors: int = 0


async def check_owner(
    repo: Repository,
    dispatcher: Dispatcher,
    owner_id: int,
    now: datetime,
    report: PollReport | None = None,
) -> PollReport:
    """Dispatch notifications for one owner's due reminders.

    Raises:
        StoreUnavailable: the owner's reminders could not be loaded
    """
    if report is None:
        report = PollReport()

    reminders = await repo.get_reminders_by_owner(owner_id, completed=False)
    evaluation = evaluate(now, reminders)
    report.owners += 1

    if not evaluation.due:
        return report

    # Without permission nothing can be shown; leave everything due untouched
    permission = await dispatcher.platform.permission(owner_id)
    if permission != PERMISSION_GRANTED:
        report.due += len(evaluation.due)
        report.permission_denied += len(evaluation.due)
        return report

    for reminder in evaluation.due:
        report.due += 1
        try:
            if not await repo.claim_notification(reminder.id):  # type: ignore
                # Another trigger got here first, or it was completed meanwhile
                report.already_claimed += 1
                continue

            result = await dispatcher.dispatch(reminder)

            if result.shown:
                report.shown += 1
                continue

            if result.status == DispatchStatus.PERMISSION_DENIED:
                report.permission_denied += 1
            else:
                report.failed += 1

            # Not shown: leave it due so a later tick retries
            await repo.release_notification(reminder.id)  # type: ignore

        except StoreUnavailable as e:
            report.store_errors += 1
            logger.error(f"Could not update notification state for reminder {reminder.id}: {e}")
        except Exception as e:
            report.failed += 1
            logger.error(f"Error processing reminder {reminder.id}: {e}")

    return report


async def check_due_reminders(
    repo: Repository, dispatcher: Dispatcher, now: datetime | None = None
) -> PollReport:
    """Run one poll over every owner. Never raises.

    Store failures are logged; the next scheduled tick retries.
    """
    if now is None:
        now = utcnow()

    report = PollReport()

    try:
        owners = await repo.get_owners()
    except StoreUnavailable as e:
        report.store_errors += 1
        logger.warning(f"Reminder check skipped, store unavailable: {e}")
        return report

    for owner in owners:
        try:
            await check_owner(repo, dispatcher, owner.telegram_id, now, report)
        except StoreUnavailable as e:
            report.store_errors += 1
            logger.warning(f"Reminder check for owner {owner.telegram_id} skipped: {e}")
        except Exception as e:
            logger.error(f"Reminder check for owner {owner.telegram_id} failed: {e}")

    if report.due:
        logger.info(
            f"Reminder check: {report.due} due, {report.shown} shown, "
            f"{report.permission_denied} without permission, {report.failed} failed"
        )

    return report


async def check_todays_reminders(
    repo: Repository,
    platform: NotificationPlatform,
    owner_id: int,
    now: datetime | None = None,
) -> int:
    """Show one summary notification for everything due today.

    Called right after the owner enables notifications. Reminders in the
    summary that are already due are marked notified so they do not alert
    again one by one. Those due later today keep their own alert.

    Returns:
        Number of reminders covered by the summary (0 if none was shown)
    """
    if now is None:
        now = utcnow()

    try:
        owner = await repo.get_owner(owner_id)
        if owner is None or owner.notification_permission != PERMISSION_GRANTED:
            return 0

        reminders = await repo.get_reminders_by_owner(owner_id, completed=False)
        todays = due_today(reminders, owner.timezone, now)

        covered = []
        claimed = []
        for reminder in todays:
            if reminder.due_at > now:
                covered.append(reminder)
            elif await repo.claim_notification(reminder.id):  # type: ignore
                covered.append(reminder)
                claimed.append(reminder)

        if not covered:
            return 0

        try:
            await platform.show(owner_id, build_summary_payload(len(covered)))
        except Exception as e:
            logger.error(f"Could not show today's summary for owner {owner_id}: {e}")
            for reminder in claimed:
                await repo.release_notification(reminder.id)  # type: ignore
            return 0

    except StoreUnavailable as e:
        logger.warning(f"Today's reminder summary skipped for owner {owner_id}: {e}")
        return 0

    logger.info(f"Showed today's summary ({len(covered)} reminders) to owner {owner_id}")
    return len(covered)


class ForegroundTimer:
    """Repeating in-process timer: runs the callback now and every interval.

    ``stop`` is the explicit teardown; a timer that is never stopped keeps the
    task alive for the life of the event loop.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[Any]],
        interval: float,
        name: str = "foreground-check",
    ):
        self.callback = callback
        self.interval = interval
        self.name = name
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking. Calling start on a running timer does nothing."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.info(f"Foreground timer started (interval: {self.interval}s)")

    async def stop(self) -> None:
        """Cancel the timer and wait for it to finish."""
        if self._task is None:
            return

        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Foreground timer stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.callback()
            except Exception as e:
                logger.error(f"Foreground check failed: {e}")
            await asyncio.sleep(self.interval)


def register_periodic_sync(
    application: Application,
    callback: Callable[..., Awaitable[Any]],
    tag: str,
    interval: int,
    min_interval: int,
) -> Job:
    """Register the periodic background check under a tag.

    The interval is raised to the platform minimum. Registering the same tag
    again replaces the earlier job.

    Raises:
        PlatformUnsupported: the application was built without a job queue
    """
    job_queue = application.job_queue
    if job_queue is None:
        raise PlatformUnsupported(
            "Periodic sync needs the job queue (install python-telegram-bot[job-queue])"
        )

    effective = max(interval, min_interval)
    if effective != interval:
        logger.info(f"Periodic sync interval raised from {interval}s to {effective}s")

    for job in job_queue.get_jobs_by_name(tag):
        job.schedule_removal()

    job = job_queue.run_repeating(
        callback, interval=effective, first=effective, name=tag, data=tag
    )
    logger.info(f"Periodic sync '{tag}' registered (interval: {effective}s)")
    return job
