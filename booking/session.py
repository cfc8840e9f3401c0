from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum


class BookingStage(IntEnum):
    """
    Stages of one booking run, in workflow order.

    The two branch stages share a rank band: a signed-in run jumps from
    SIGNED_IN_BRANCH straight to CART_ADDED, a guest run goes through
    GUEST_BRANCH. Either way the ordinal never decreases.
    """

    INIT = 0
    PORTAL_LOADED = 1
    POPUP_HANDLED = 2
    PASS_SELECTED = 3
    SIGNED_IN_BRANCH = 4
    GUEST_BRANCH = 5
    CART_ADDED = 6
    LOGIN_COMPLETED = 7
    POST_LOGIN_VEHICLE_RESOLVED = 8
    CHECKOUT_COMPLETED = 9
    FAILED = 10

    @property
    def terminal(self) -> bool:
        return self in (BookingStage.CHECKOUT_COMPLETED, BookingStage.FAILED)

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").capitalize()


@dataclass(frozen=True, slots=True)
class BookingSession:
    """Run-scoped booking progress. Transitions return a new value."""

    stage: BookingStage = BookingStage.INIT
    is_logged_in: bool = False
    vehicle_registered: bool = False

    def advance(self, stage: BookingStage, *, retry: bool = False) -> "BookingSession":
        if self.stage.terminal:
            raise ValueError(f"Session already finished at {self.stage.name}")
        if stage < self.stage and not retry:
            raise ValueError(
                f"Cannot move backwards from {self.stage.name} to {stage.name} without a retry"
            )
        return replace(self, stage=stage)

    def mark_logged_in(self) -> "BookingSession":
        return replace(self, is_logged_in=True)

    def mark_vehicle_registered(self) -> "BookingSession":
        if self.vehicle_registered:
            raise ValueError("Vehicle is already registered in this run")
        return replace(self, vehicle_registered=True)

    def fail(self) -> "BookingSession":
        return replace(self, stage=BookingStage.FAILED)
