from __future__ import annotations

import logging


class StepLogger(logging.LoggerAdapter):
    """Logger with the step/success vocabulary used to narrate a booking run."""

    def step(self, msg: str, *args, **kwargs) -> None:
        self.info(f"🔄 {msg}", *args, **kwargs)

    def success(self, msg: str, *args, **kwargs) -> None:
        self.info(f"✅ {msg}", *args, **kwargs)

    def completed(self, step: str) -> None:
        self.info("✅ Completed: %s", step)


def get_logger(name: str) -> StepLogger:
    return StepLogger(logging.getLogger(name), {})
