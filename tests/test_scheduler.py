from __future__ import annotations

import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from parkbot.scheduler import BookingScheduler, RunGuard, Schedule, parse_time, seconds_until

VANCOUVER = ZoneInfo("America/Vancouver")

# 2026-10-18 is a Sunday.
SUNDAY_9AM = datetime(2026, 10, 18, 9, 0, tzinfo=VANCOUVER)


def test_parse_time():
    assert parse_time("08:30") == (8, 30)
    assert parse_time(" 18:00 ") == (18, 0)


@pytest.mark.parametrize("value", ["8", "25:00", "08:60", "ab:cd", ""])
def test_parse_time_rejects_bad_values(value):
    with pytest.raises(ValueError):
        parse_time(value)


def test_daily_fires_later_today_or_tomorrow():
    assert Schedule.daily("18:00").next_fire(SUNDAY_9AM) == SUNDAY_9AM.replace(hour=18)
    assert Schedule.daily("08:00").next_fire(SUNDAY_9AM) == datetime(2026, 10, 19, 8, 0, tzinfo=VANCOUVER)


def test_daily_does_not_fire_at_the_current_minute_twice():
    assert Schedule.daily("09:00").next_fire(SUNDAY_9AM).day == 19


def test_weekly_uses_cron_weekdays():
    weekend = Schedule.weekly([6, 0], "08:00")

    assert weekend.weekdays == (0, 6)
    assert weekend.next_fire(SUNDAY_9AM) == datetime(2026, 10, 24, 8, 0, tzinfo=VANCOUVER)
    assert weekend.next_fire(SUNDAY_9AM.replace(hour=7)) == SUNDAY_9AM.replace(hour=8)


def test_interval_fires_after_the_interval():
    assert Schedule.interval(30).next_fire(SUNDAY_9AM) == SUNDAY_9AM.replace(minute=30)


@pytest.mark.parametrize(
    "now, fire_at, hours",
    [
        # Spring forward: 2026-03-08 02:00 PST becomes 03:00 PDT.
        (datetime(2026, 3, 7, 10, 0, tzinfo=VANCOUVER), datetime(2026, 3, 8, 8, 0, tzinfo=VANCOUVER), 21),
        # Fall back: 2026-11-01 02:00 PDT becomes 01:00 PST.
        (datetime(2026, 10, 31, 10, 0, tzinfo=VANCOUVER), datetime(2026, 11, 1, 8, 0, tzinfo=VANCOUVER), 23),
    ],
)
def test_daily_wait_across_dst_change(now, fire_at, hours):
    scheduled = Schedule.daily("08:00").next_fire(now)

    assert scheduled == fire_at
    assert scheduled.hour == 8
    assert seconds_until(scheduled, now) == hours * 3600


def test_interval_across_dst_change_is_real_minutes():
    before_jump = datetime(2026, 3, 8, 1, 45, tzinfo=VANCOUVER)

    fire_at = Schedule.interval(30).next_fire(before_jump)

    assert seconds_until(fire_at, before_jump) == 30 * 60
    assert (fire_at.hour, fire_at.minute) == (3, 15)


@pytest.mark.parametrize(
    "build",
    [
        lambda: Schedule.interval(0),
        lambda: Schedule.weekly([], "08:00"),
        lambda: Schedule.weekly([7], "08:00"),
        lambda: Schedule.daily("noon"),
    ],
)
def test_invalid_schedules(build):
    with pytest.raises(ValueError):
        build()


def test_describe():
    assert Schedule.daily("08:00").describe() == "daily at 08:00"
    assert Schedule.interval(15).describe() == "every 15 min"
    assert Schedule.weekly([0, 6], "09:30").describe() == "weekly on 0,6 at 09:30"


def test_run_guard():
    guard = RunGuard()

    assert guard.try_acquire()
    assert not guard.try_acquire()
    guard.release()
    assert not guard.active


async def test_overlapping_run_is_skipped_and_guard_untouched(caplog):
    calls = []

    async def job():
        calls.append("ran")

    guard = RunGuard()
    guard.try_acquire()
    scheduler = BookingScheduler(job, guard=guard)

    assert not await scheduler.run_job("morning_booking")
    assert calls == []
    assert guard.active
    assert "already running" in caplog.text


async def test_run_job_releases_guard_after_failure(caplog):
    async def job():
        raise RuntimeError("portal down")

    scheduler = BookingScheduler(job)

    assert await scheduler.run_job("morning_booking")
    assert not scheduler.guard.active
    assert "Scheduled job failed: morning_booking" in caplog.text


async def test_schedule_and_stop_jobs():
    async def job():
        return None

    scheduler = BookingScheduler(job, timezone="America/Vancouver")
    scheduler.start_default()
    scheduler.schedule_interval(45, "poll")
    await asyncio.sleep(0)

    assert scheduler.jobs() == ["morning_booking", "backup_booking", "evening_check", "poll"]
    status = scheduler.status("poll")
    assert status["exists"] and status["running"]
    assert status["schedule"] == "every 45 min"
    assert status["next"] is not None

    assert scheduler.stop_job("poll")
    assert not scheduler.stop_job("poll")
    scheduler.stop_all()
    await asyncio.sleep(0)

    assert scheduler.jobs() == []
    assert scheduler.status("morning_booking") == {"exists": False, "running": False, "next": None}


async def test_rescheduling_replaces_the_job():
    async def job():
        return None

    scheduler = BookingScheduler(job)
    scheduler.schedule_daily("08:00", "morning")
    scheduler.schedule_daily("09:00", "morning")

    assert scheduler.jobs() == ["morning"]
    assert scheduler.status("morning")["schedule"] == "daily at 09:00"
    scheduler.stop_all()
    await asyncio.sleep(0)
