from __future__ import annotations

from typing import Optional


class BookingAutomationError(RuntimeError):
    """Raised when the automated booking sequence cannot be completed."""


class NavigationError(BookingAutomationError):
    """The portal could not be opened."""


class ElementNotFound(BookingAutomationError):
    """Every locator strategy for a semantic target came back empty."""

    def __init__(self, target: str, message: Optional[str] = None) -> None:
        self.target = target
        super().__init__(message or f"Element not found: {target}")


class InteractionError(BookingAutomationError):
    """An element was found but could not be acted upon."""

    def __init__(self, target: str, cause: Optional[BaseException] = None) -> None:
        self.target = target
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Interaction with {target} failed{detail}")


class SoldOut(BookingAutomationError):
    """The selected pass is sold out for the selected date."""


class LoginError(BookingAutomationError):
    """The login form or one of its fields could not be used."""


class CheckpointTimeout(BookingAutomationError):
    """
    The human checkpoint did not clear in time.

    Informational only: it is logged and recorded on the result, never raised
    out of a run.
    """


class VehicleResolutionError(BookingAutomationError):
    """No vehicle could be registered or selected."""


class CheckoutError(BookingAutomationError):
    """The final checkout click failed."""
