from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple
from zoneinfo import ZoneInfo

from booking.log import get_logger

logger = get_logger(__name__)

Job = Callable[[], Awaitable[Any]]

DEFAULT_SCHEDULE = (
    ("morning_booking", "08:00"),
    ("backup_booking", "08:30"),
    ("evening_check", "18:00"),
)


def parse_time(value: str) -> Tuple[int, int]:
    """Parse ``HH:MM`` (24-hour clock)."""
    try:
        hour_raw, minute_raw = value.strip().split(":", 1)
        hour, minute = int(hour_raw), int(minute_raw)
    except ValueError:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM") from None
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return hour, minute


@dataclass(frozen=True, slots=True)
class Schedule:
    """
    When a job fires.

    Weekdays use the crontab convention, 0 = Sunday through 6 = Saturday.
    """

    kind: str
    hour: int = 0
    minute: int = 0
    every_minutes: int = 0
    weekdays: Tuple[int, ...] = ()

    @classmethod
    def daily(cls, time: str) -> "Schedule":
        hour, minute = parse_time(time)
        return cls("daily", hour=hour, minute=minute)

    @classmethod
    def interval(cls, minutes: int) -> "Schedule":
        if minutes <= 0:
            raise ValueError("Interval must be a positive number of minutes")
        return cls("interval", every_minutes=minutes)

    @classmethod
    def weekly(cls, days: Iterable[int], time: str) -> "Schedule":
        hour, minute = parse_time(time)
        weekdays = tuple(sorted(set(days)))
        if not weekdays or any(day < 0 or day > 6 for day in weekdays):
            raise ValueError("Weekly schedules need days between 0 (Sunday) and 6 (Saturday)")
        return cls("weekly", hour=hour, minute=minute, weekdays=weekdays)

    def next_fire(self, now: datetime) -> datetime:
        if self.kind == "interval":
            fire_at = now.astimezone(timezone.utc) + timedelta(minutes=self.every_minutes)
            return fire_at.astimezone(now.tzinfo)

        for offset in range(8):
            candidate = (now + timedelta(days=offset)).replace(
                hour=self.hour, minute=self.minute, second=0, microsecond=0
            )
            if candidate <= now:
                continue
            if self.kind == "weekly" and _cron_weekday(candidate) not in self.weekdays:
                continue
            return candidate
        raise ValueError(f"Schedule {self} never fires")

    def describe(self) -> str:
        if self.kind == "interval":
            return f"every {self.every_minutes} min"
        at = f"{self.hour:02d}:{self.minute:02d}"
        if self.kind == "weekly":
            return f"weekly on {','.join(map(str, self.weekdays))} at {at}"
        return f"daily at {at}"


def seconds_until(moment: datetime, now: datetime) -> float:
    """Real seconds between two aware datetimes, DST changes included."""
    return moment.timestamp() - now.timestamp()


def _cron_weekday(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


class RunGuard:
    """Process-wide "a booking run is active" flag. Overlapping triggers are skipped."""

    def __init__(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def try_acquire(self) -> bool:
        if self._active:
            return False
        self._active = True
        return True

    def release(self) -> None:
        self._active = False


class BookingScheduler:
    """Fire a booking job on daily, interval or weekly schedules in the portal's timezone."""

    def __init__(
        self,
        job: Job,
        *,
        timezone: str = "America/Vancouver",
        guard: Optional[RunGuard] = None,
    ) -> None:
        self._job = job
        self._tz = ZoneInfo(timezone)
        self._guard = guard or RunGuard()
        self._schedules: Dict[str, Schedule] = {}
        self._tasks: Dict[str, asyncio.Task[None]] = {}
        self._next_fire: Dict[str, datetime] = {}
        self._runs: Set[asyncio.Task[bool]] = set()

    @property
    def guard(self) -> RunGuard:
        return self._guard

    def schedule(self, name: str, schedule: Schedule) -> None:
        logger.step("Scheduling job: %s (%s)", name, schedule.describe())
        if name in self._tasks:
            self.stop_job(name)
        self._schedules[name] = schedule
        self._tasks[name] = asyncio.get_running_loop().create_task(
            self._loop(name, schedule), name=f"schedule-{name}"
        )
        logger.success("Job scheduled successfully: %s", name)

    def schedule_daily(self, time: str, name: str = "daily") -> None:
        self.schedule(name, Schedule.daily(time))

    def schedule_interval(self, minutes: int, name: str = "interval") -> None:
        self.schedule(name, Schedule.interval(minutes))

    def schedule_weekly(self, days: Iterable[int], time: str, name: str = "weekly") -> None:
        self.schedule(name, Schedule.weekly(days, time))

    def start_default(self) -> None:
        logger.step("Starting default scheduler")
        for name, time in DEFAULT_SCHEDULE:
            self.schedule_daily(time, name)

    async def run_job(self, name: str) -> bool:
        """Run the job now unless another run is active. Returns whether it ran."""
        if not self._guard.try_acquire():
            logger.warning("Bot is already running, skipping scheduled job: %s", name)
            return False
        try:
            logger.step("Running scheduled job: %s", name)
            await self._job()
            logger.success("Scheduled job completed: %s", name)
        except Exception:
            logger.exception("Scheduled job failed: %s", name)
        finally:
            self._guard.release()
        return True

    def stop_job(self, name: str) -> bool:
        task = self._tasks.pop(name, None)
        self._schedules.pop(name, None)
        self._next_fire.pop(name, None)
        if task is None:
            return False
        task.cancel()
        logger.success("Job stopped: %s", name)
        return True

    def stop_all(self) -> None:
        for name in list(self._tasks):
            self.stop_job(name)
        for run in list(self._runs):
            run.cancel()

    def jobs(self) -> List[str]:
        return list(self._tasks)

    def status(self, name: str) -> Dict[str, Any]:
        task = self._tasks.get(name)
        if task is None:
            return {"exists": False, "running": False, "next": None}
        return {
            "exists": True,
            "running": not task.done(),
            "schedule": self._schedules[name].describe(),
            "next": self._next_fire.get(name),
        }

    async def _loop(self, name: str, schedule: Schedule) -> None:
        while True:
            now = datetime.now(self._tz)
            fire_at = schedule.next_fire(now)
            self._next_fire[name] = fire_at
            logger.info("Next run of %s at %s", name, fire_at.isoformat(timespec="minutes"))
            await asyncio.sleep(max(seconds_until(fire_at, now), 0))
            # The guard, not this loop, decides whether an overlapping run executes.
            run = asyncio.create_task(self.run_job(name), name=f"run-{name}")
            self._runs.add(run)
            run.add_done_callback(self._runs.discard)
