from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from models.records import Reservation, Slot
from services.timers import Scheduler, TimerHandle, start_timer
from settings import get_settings

logger = logging.getLogger(__name__)


class UnknownSlotError(KeyError):
    """Raised when an operation names a slot outside the configured table."""

    def __init__(self, slot_id: int) -> None:
        super().__init__(f"Slot {slot_id!r} not found.")
        self.slot_id = slot_id


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReservationStore:
    """Authoritative slot table plus the set of active reservations.

    The slot table is seeded once with ids ``1..slot_count`` and never grows
    or shrinks. Reservations are removed only by their expiry timer (or a
    direct ``expire_reservation`` call). Readers always get copies.
    """

    def __init__(
        self,
        slot_count: int = 6,
        scheduler: Scheduler = start_timer,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if slot_count < 1:
            raise ValueError("Slot count must be at least 1.")
        self._slots: Dict[int, Slot] = {
            slot_id: Slot(slot_id=slot_id) for slot_id in range(1, slot_count + 1)
        }
        self._reservations: Dict[str, Reservation] = {}
        self._timers: Dict[str, TimerHandle] = {}
        self._scheduler = scheduler
        self._clock = clock
        self._lock = Lock()

    @property
    def slot_count(self) -> int:
        return len(self._slots)

    def get_slots(self) -> List[Slot]:
        with self._lock:
            return [replace(slot) for slot in self._slots.values()]

    def get_slot_by_id(self, slot_id: int) -> Optional[Slot]:
        with self._lock:
            slot = self._slots.get(slot_id)
            return replace(slot) if slot is not None else None

    def update_slot_occupancy(self, slot_id: int, occupied: bool) -> Optional[Slot]:
        """Set the occupied flag; returns ``None`` when the slot is unknown."""
        with self._lock:
            slot = self._slots.get(slot_id)
            if slot is None:
                return None
            slot.occupied = occupied
            return replace(slot)

    def update_multiple_slots(self, updates: Iterable[Tuple[int, bool]]) -> List[Slot]:
        """Apply ``(slot_id, occupied)`` pairs, silently skipping unknown ids."""
        updated: List[Slot] = []
        with self._lock:
            for slot_id, occupied in updates:
                slot = self._slots.get(slot_id)
                if slot is None:
                    logger.debug("Skipping update for unknown slot", extra={"slot_id": slot_id})
                    continue
                slot.occupied = occupied
                updated.append(replace(slot))
        return updated

    def create_reservation(
        self, slot_id: int, user_id: str, duration_minutes: float
    ) -> Reservation:
        if duration_minutes <= 0:
            raise ValueError("Reservation duration must be positive.")

        with self._lock:
            slot = self._slots.get(slot_id)
            if slot is None:
                raise UnknownSlotError(slot_id)
            start_time = self._clock()
            try:
                end_time = start_time + timedelta(minutes=duration_minutes)
            except OverflowError as exc:
                raise ValueError("Reservation duration is too long.") from exc
            reservation = Reservation(
                id=uuid4().hex,
                slot_id=slot_id,
                user_id=user_id,
                start_time=start_time,
                end_time=end_time,
            )
            self._reservations[reservation.id] = reservation
            slot.reserved_by = reservation.user_id
            slot.reserved_until = reservation.end_time

        # Scheduled outside the lock: a timer may fire before we register it.
        timer = self._scheduler(
            duration_minutes * 60,
            lambda reservation_id=reservation.id: self.expire_reservation(reservation_id),
        )
        with self._lock:
            if reservation.id in self._reservations:
                self._timers[reservation.id] = timer

        logger.info(
            "Reservation created",
            extra={
                "reservation_id": reservation.id,
                "slot_id": slot_id,
                "user_id": user_id,
                "duration_minutes": duration_minutes,
            },
        )
        return replace(reservation)

    def expire_reservation(self, reservation_id: str) -> bool:
        """Drop a reservation and release its slot. Returns ``False`` if already gone."""
        with self._lock:
            reservation = self._reservations.pop(reservation_id, None)
            timer = self._timers.pop(reservation_id, None)
            if reservation is None:
                return False
            slot = self._slots.get(reservation.slot_id)
            if slot is not None:
                # Re-stamps from any overlapping reservation instead of always
                # clearing, so the slot never names an expired reservation.
                self._restamp_slot(slot)

        if timer is not None:
            timer.cancel()
        logger.info(
            "Reservation expired",
            extra={"reservation_id": reservation_id, "slot_id": reservation.slot_id},
        )
        return True

    def get_reservations(self) -> List[Reservation]:
        with self._lock:
            return [replace(reservation) for reservation in self._reservations.values()]

    def get_reservations_for_slot(self, slot_id: int) -> List[Reservation]:
        return [r for r in self.get_reservations() if r.slot_id == slot_id]

    def get_reservations_for_user(self, user_id: str) -> List[Reservation]:
        return [r for r in self.get_reservations() if r.user_id == user_id]

    def shutdown(self) -> None:
        """Cancel pending expiry timers when the process is torn down."""
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def _restamp_slot(self, slot: Slot) -> None:
        # Overlapping reservations are allowed; the slot keeps pointing at
        # the remaining one that ends last.
        remaining = [r for r in self._reservations.values() if r.slot_id == slot.slot_id]
        if not remaining:
            slot.reserved_by = None
            slot.reserved_until = None
            return
        latest = max(remaining, key=lambda r: r.end_time)
        slot.reserved_by = latest.user_id
        slot.reserved_until = latest.end_time


@lru_cache
def build_default_store(slot_count: Optional[int] = None) -> ReservationStore:
    """Process-wide store sized from settings."""
    settings = get_settings()
    count = settings.slot_count if slot_count is None else slot_count
    return ReservationStore(slot_count=count)
