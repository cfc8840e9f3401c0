from __future__ import annotations

"""
Browser automation for booking Buntzen Lake parking passes on the Yodel portal.

The engine is a staged workflow (``BookingWorkflow``) driving a Playwright page
through declarative locator targets, bounded interactions and a human
verification checkpoint.
"""

from .browser import HeadlessBrowser
from .checkpoint import CheckpointOutcome, CheckpointPolicy, await_completion, poll_until
from .errors import (
    BookingAutomationError,
    CheckoutError,
    CheckpointTimeout,
    ElementNotFound,
    InteractionError,
    LoginError,
    NavigationError,
    SoldOut,
    VehicleResolutionError,
)
from .locator import ElementLocator, LocatorStrategy, StrategyKind
from .models import PassRequest, PassType, VehicleProfile
from .session import BookingSession, BookingStage
from .workflow import BookingOptions, BookingResult, BookingWorkflow, run_booking

__all__ = [
    "HeadlessBrowser",
    "BookingWorkflow",
    "BookingOptions",
    "BookingResult",
    "BookingSession",
    "BookingStage",
    "PassRequest",
    "PassType",
    "VehicleProfile",
    "ElementLocator",
    "LocatorStrategy",
    "StrategyKind",
    "CheckpointOutcome",
    "CheckpointPolicy",
    "await_completion",
    "poll_until",
    "run_booking",
    "BookingAutomationError",
    "NavigationError",
    "ElementNotFound",
    "InteractionError",
    "SoldOut",
    "LoginError",
    "CheckpointTimeout",
    "VehicleResolutionError",
    "CheckoutError",
]
