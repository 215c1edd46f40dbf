"""
Tests for the meeting reminder sweep.
"""

import asyncio
import json
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from liqa.errors import StorageError
from liqa.infrastructure.notifications.broadcaster import NotificationBroadcaster
from liqa.jobs.meeting_reminder_job import MeetingReminderJob, minutes_until, threshold_label
from tests.fakes import NOW, FakeSubscriber


async def _job_with_subscriber(storage):
    broadcaster = NotificationBroadcaster()
    subscriber = FakeSubscriber()
    await broadcaster.subscribe(subscriber)
    job = MeetingReminderJob(storage, broadcaster, interval_seconds=60, thresholds_minutes=[1440, 60])
    return job, subscriber


@pytest.mark.asyncio
async def test_one_hour_reminder(storage):
    storage.add_meeting(1, title="Budget", date=NOW + timedelta(minutes=60))
    job, subscriber = await _job_with_subscriber(storage)

    metrics = await job.run_once(now=NOW)

    assert metrics["reminders_sent"] == 1
    assert [json.loads(frame) for frame in subscriber.sent] == [
        {"type": "upcoming-meeting", "message": 'Meeting "Budget" starts in 1 hour'}
    ]


@pytest.mark.asyncio
async def test_twenty_four_hour_reminder(storage):
    storage.add_meeting(1, title="Budget", date=NOW + timedelta(minutes=1440))
    job, subscriber = await _job_with_subscriber(storage)

    await job.run_once(now=NOW)

    assert json.loads(subscriber.sent[0])["message"] == 'Meeting "Budget" starts in 24 hours'


@pytest.mark.asyncio
@pytest.mark.parametrize("offset", [timedelta(minutes=61), timedelta(minutes=1439), timedelta(minutes=59)])
async def test_near_misses_do_not_fire(storage, offset):
    storage.add_meeting(1, date=NOW + offset)
    job, subscriber = await _job_with_subscriber(storage)

    metrics = await job.run_once(now=NOW)

    assert metrics["reminders_sent"] == 0
    assert subscriber.sent == []


@pytest.mark.asyncio
async def test_minutes_are_floored(storage):
    storage.add_meeting(1, date=NOW + timedelta(minutes=60, seconds=59))
    job, subscriber = await _job_with_subscriber(storage)

    await job.run_once(now=NOW)

    assert len(subscriber.sent) == 1


@pytest.mark.asyncio
async def test_past_meetings_are_ignored(storage):
    storage.add_meeting(
        1,
        is_upcoming=False,
        video_url="https://videos.example.com/1",
        date=NOW + timedelta(minutes=60),
    )
    job, subscriber = await _job_with_subscriber(storage)

    metrics = await job.run_once(now=NOW)

    assert metrics["meetings_checked"] == 0
    assert subscriber.sent == []


@pytest.mark.asyncio
async def test_each_matching_meeting_broadcasts(storage):
    storage.add_meeting(1, title="A", date=NOW + timedelta(minutes=60))
    storage.add_meeting(2, title="B", date=NOW + timedelta(minutes=1440))
    storage.add_meeting(3, title="C", date=NOW + timedelta(minutes=300))
    job, subscriber = await _job_with_subscriber(storage)

    metrics = await job.run_once(now=NOW)

    assert metrics["reminders_sent"] == 2
    assert metrics["delivered"] == 2
    assert len(subscriber.sent) == 2


@pytest.mark.asyncio
async def test_storage_error_propagates_from_run_once(storage):
    storage.failing.add("get_meetings")
    job, _ = await _job_with_subscriber(storage)

    with pytest.raises(StorageError):
        await job.run_once(now=NOW)

    assert job.is_running is False


@pytest.mark.asyncio
async def test_start_logs_failed_tick_and_keeps_running(storage):
    job, _ = await _job_with_subscriber(storage)
    job.interval_seconds = 0
    calls = {"count": 0}

    async def flaky_run_once(now=None):
        calls["count"] += 1
        if calls["count"] == 1:
            raise StorageError("db down")
        if calls["count"] >= 3:
            raise asyncio.CancelledError()
        return {}

    with patch.object(job, "run_once", side_effect=flaky_run_once):
        with pytest.raises(asyncio.CancelledError):
            await job.start()

    assert calls["count"] == 3
    assert job.failed_ticks == 1


@pytest.mark.asyncio
async def test_start_sleeps_remaining_interval(storage):
    job, _ = await _job_with_subscriber(storage)
    job.interval_seconds = 60

    sleep = AsyncMock(side_effect=asyncio.CancelledError())
    with (
        patch.object(job, "run_once", AsyncMock(return_value={})),
        patch("liqa.jobs.meeting_reminder_job.asyncio.sleep", sleep),
    ):
        with pytest.raises(asyncio.CancelledError):
            await job.start()

    slept_for = sleep.await_args.args[0]
    assert 59 <= slept_for <= 60


def test_health_check_reports_overdue(storage):
    job = MeetingReminderJob(storage, NotificationBroadcaster(), interval_seconds=60)
    job.last_run_time = NOW

    assert job.health_check(now=NOW + timedelta(seconds=90))["healthy"] is True
    overdue = job.health_check(now=NOW + timedelta(seconds=180))
    assert overdue["healthy"] is False
    assert overdue["is_overdue"] is True


@pytest.mark.asyncio
async def test_health_check_fails_when_no_sweep_ever_succeeds(storage):
    storage.failing.add("get_meetings")
    job = MeetingReminderJob(storage, NotificationBroadcaster(), interval_seconds=60)

    with pytest.raises(StorageError):
        await job.run_once(now=NOW)

    assert job.last_run_time is None
    assert job.health_check(now=NOW + timedelta(seconds=90))["healthy"] is True
    stalled = job.health_check(now=NOW + timedelta(seconds=180))
    assert stalled["healthy"] is False
    assert stalled["is_overdue"] is True


@pytest.mark.asyncio
async def test_health_check_fails_after_consecutive_failed_sweeps(storage):
    storage.failing.add("get_meetings")
    job = MeetingReminderJob(storage, NotificationBroadcaster(), interval_seconds=60)

    for _ in range(3):
        with pytest.raises(StorageError):
            await job.run_once(now=NOW)

    health = job.health_check(now=NOW)
    assert health["healthy"] is False
    assert health["consecutive_failures"] == 3

    storage.failing.clear()
    await job.run_once(now=NOW)

    assert job.health_check(now=NOW)["healthy"] is True


def test_empty_threshold_list_is_kept(storage):
    job = MeetingReminderJob(storage, NotificationBroadcaster(), thresholds_minutes=[])

    assert job.thresholds == set()


def test_minutes_until_and_labels(storage):
    meeting = storage.add_meeting(1, date=NOW + timedelta(minutes=90, seconds=30))

    assert minutes_until(meeting, NOW) == 90
    assert minutes_until(meeting, NOW + timedelta(hours=3)) == -90
    assert threshold_label(60) == "1 hour"
    assert threshold_label(1440) == "24 hours"
    assert threshold_label(15) == "15 minutes"
