from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

_MONTH_DAY = re.compile(r"^\d{2}/(\d{2})$")
_BARE_DAY = re.compile(r"^\d{1,2}$")


class PassType(Enum):
    ALL_DAY = "all_day"
    HALF_DAY = "half_day"

    @classmethod
    def parse(cls, value: str | "PassType") -> "PassType":
        if isinstance(value, PassType):
            return value
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown pass type: {value!r} (expected all_day or half_day)")

    @property
    def labels(self) -> Tuple[str, ...]:
        """Card captions the portal uses for this pass type."""
        if self is PassType.ALL_DAY:
            return ("All Day Pass", "All-day Pass")
        return ("Half Day Pass", "Half-day Pass")


@dataclass(frozen=True, slots=True)
class PassRequest:
    """What to book: the pass type and an optional day of the month."""

    pass_type: PassType = PassType.ALL_DAY
    preferred_date: Optional[str] = None

    @property
    def preferred_day(self) -> Optional[str]:
        return parse_preferred_day(self.preferred_date)


@dataclass(frozen=True, slots=True)
class VehicleProfile:
    license_plate: str
    province: str = "BC"
    color: str = "BLACK"
    make: str = "Tesla"
    model: str = "Y"

    def search_term(self, *, detailed: bool = False) -> str:
        if not detailed:
            return self.model
        parts = (self.make, self.model, self.license_plate)
        return " ".join(part for part in parts if part)


def parse_preferred_day(preferred_date: Optional[str]) -> Optional[str]:
    """
    Turn the configured preferred date into the text of a date button.

    ``"08/17"`` gives ``"17"`` and a bare ``"17"`` is used as is. Anything else
    is treated as "no preference".
    """
    if not preferred_date:
        return None
    value = preferred_date.strip()
    match = _MONTH_DAY.match(value)
    if match:
        return match.group(1)
    if _BARE_DAY.match(value):
        return value
    return None
