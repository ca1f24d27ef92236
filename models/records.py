"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SlotState(str, Enum):
    """Display classification of a polled slot."""

    vacant = "vacant"
    occupied = "occupied"
    danger = "danger"
    disconnected = "disconnected"


@dataclass(slots=True)
class Slot:
    """Authoritative server-side record of one parking space."""

    slot_id: int
    occupied: bool = False
    reserved_by: Optional[str] = None
    reserved_until: Optional[datetime] = None


@dataclass(slots=True)
class Reservation:
    """A time-bounded claim binding a user to a slot."""

    id: str
    slot_id: int
    user_id: str
    start_time: datetime
    end_time: datetime


@dataclass(slots=True, frozen=True)
class SlotReading:
    """A single slot entry from the sensor device's status payload.

    ``distance`` is in centimeters and ``None`` when the device sent no
    numeric value. Negative values mean the sensor link is unstable.
    """

    slot_id: int
    occupied: bool
    distance: Optional[float] = None
