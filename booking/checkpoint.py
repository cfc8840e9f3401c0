from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Condition = Callable[[], Awaitable[bool]]
Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

PROGRESS_LOG_EVERY_MS = 10_000


class CheckpointOutcome(Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class CheckpointPolicy:
    """How often to look at a pending human step and how long to wait for it."""

    poll_interval_ms: int = 2_000
    timeout_ms: int = 300_000

    def __post_init__(self) -> None:
        if self.poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        if self.timeout_ms < 0:
            raise ValueError("timeout_ms must not be negative")


DEFAULT_POLICY = CheckpointPolicy()


async def poll_until(
    condition: Condition,
    *,
    timeout_ms: int,
    interval_ms: int,
    label: Optional[str] = None,
    clock: Optional[Clock] = None,
    sleep: Sleep = asyncio.sleep,
) -> bool:
    """
    Evaluate ``condition`` every ``interval_ms`` until it holds or ``timeout_ms`` passes.

    Returns True as soon as the condition is observed true and False once the
    deadline is reached. The last sleep is shortened to the remaining time, so
    the whole wait never runs past ``timeout_ms`` by more than one evaluation.
    When ``label`` is given, progress is logged every ten seconds.
    """
    if clock is None:
        clock = asyncio.get_running_loop().time
    timeout = timeout_ms / 1000
    interval = interval_ms / 1000
    report_every = PROGRESS_LOG_EVERY_MS / 1000
    next_report = report_every

    started = clock()
    while True:
        if await condition():
            return True
        elapsed = clock() - started
        if elapsed >= timeout:
            return False
        if label and elapsed >= next_report:
            logger.info("⏳ Still waiting for %s... (%ds)", label, int(elapsed))
            next_report += report_every
        await sleep(min(interval, timeout - elapsed))


async def await_completion(
    still_pending: Condition,
    policy: CheckpointPolicy = DEFAULT_POLICY,
    *,
    label: str = "verification",
    clock: Optional[Clock] = None,
    sleep: Sleep = asyncio.sleep,
) -> CheckpointOutcome:
    """Wait for a human to finish a manual step. Timing out is an outcome, not an error."""

    async def cleared() -> bool:
        return not await still_pending()

    done = await poll_until(
        cleared,
        timeout_ms=policy.timeout_ms,
        interval_ms=policy.poll_interval_ms,
        label=label,
        clock=clock,
        sleep=sleep,
    )
    return CheckpointOutcome.COMPLETED if done else CheckpointOutcome.TIMED_OUT
