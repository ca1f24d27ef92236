"""Unit tests for the in-memory reservation store."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, List

import pytest

from datastore.reservation_store import ReservationStore, UnknownSlotError
from services.timers import start_timer

_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer


def _store(scheduler: FakeScheduler | None = None, slot_count: int = 6) -> ReservationStore:
    return ReservationStore(
        slot_count=slot_count,
        scheduler=scheduler or FakeScheduler(),
        clock=lambda: _NOW,
    )


def test_slot_table_is_seeded_with_fixed_ids() -> None:
    store = _store()

    slots = store.get_slots()

    assert [slot.slot_id for slot in slots] == [1, 2, 3, 4, 5, 6]
    assert all(not slot.occupied and slot.reserved_by is None for slot in slots)


def test_slot_count_is_stable_across_updates() -> None:
    store = _store()

    store.update_multiple_slots([(1, True), (7, True), (0, True), (6, True)])
    store.update_slot_occupancy(42, True)

    slots = store.get_slots()
    assert len(slots) == 6
    assert [slot.slot_id for slot in slots] == [1, 2, 3, 4, 5, 6]


def test_update_slot_occupancy_returns_updated_copy() -> None:
    store = _store()

    updated = store.update_slot_occupancy(3, True)

    assert updated is not None
    assert updated.occupied is True
    updated.occupied = False
    assert store.get_slot_by_id(3).occupied is True  # type: ignore[union-attr]


def test_update_unknown_slot_returns_none() -> None:
    store = _store()

    assert store.update_slot_occupancy(99, True) is None
    assert store.get_slot_by_id(99) is None


def test_update_multiple_slots_skips_unknown_ids() -> None:
    store = _store()

    updated = store.update_multiple_slots([(1, True), (99, True), (2, False)])

    assert [(slot.slot_id, slot.occupied) for slot in updated] == [(1, True), (2, False)]
    assert store.get_slot_by_id(1).occupied is True  # type: ignore[union-attr]


def test_occupancy_update_leaves_reservation_untouched() -> None:
    store = _store()
    store.create_reservation(2, "u1", 5)

    slot = store.update_slot_occupancy(2, True)

    assert slot is not None
    assert slot.reserved_by == "u1"


def test_create_reservation_stamps_slot_and_schedules_expiry() -> None:
    scheduler = FakeScheduler()
    store = _store(scheduler)

    reservation = store.create_reservation(slot_id=2, user_id="u1", duration_minutes=1)

    assert reservation.slot_id == 2
    assert reservation.user_id == "u1"
    assert reservation.start_time == _NOW
    assert reservation.end_time == _NOW + timedelta(minutes=1)

    slot = store.get_slot_by_id(2)
    assert slot is not None
    assert slot.reserved_by == "u1"
    assert slot.reserved_until == reservation.end_time
    assert [timer.delay for timer in scheduler.timers] == [60]


def test_expiry_timer_releases_slot() -> None:
    scheduler = FakeScheduler()
    store = _store(scheduler)
    reservation = store.create_reservation(slot_id=2, user_id="u1", duration_minutes=1)
    store.update_slot_occupancy(2, True)

    scheduler.timers[0].callback()

    slot = store.get_slot_by_id(2)
    assert slot is not None
    assert slot.reserved_by is None
    assert slot.reserved_until is None
    assert slot.occupied is True
    assert reservation.id not in [r.id for r in store.get_reservations()]


def test_expire_reservation_is_idempotent() -> None:
    store = _store()
    reservation = store.create_reservation(1, "u1", 10)

    assert store.expire_reservation(reservation.id) is True
    assert store.expire_reservation(reservation.id) is False
    assert store.expire_reservation("never-existed") is False
    assert store.get_reservations() == []


def test_direct_expiry_cancels_pending_timer() -> None:
    scheduler = FakeScheduler()
    store = _store(scheduler)
    reservation = store.create_reservation(1, "u1", 10)

    store.expire_reservation(reservation.id)

    assert scheduler.timers[0].cancelled is True
    # A late firing is still harmless.
    scheduler.timers[0].callback()
    assert store.get_reservations() == []


def test_create_reservation_for_unknown_slot_raises() -> None:
    store = _store()

    with pytest.raises(UnknownSlotError) as excinfo:
        store.create_reservation(99, "u1", 5)

    assert excinfo.value.slot_id == 99
    assert store.get_reservations() == []


@pytest.mark.parametrize("duration", [0, -5])
def test_create_reservation_rejects_non_positive_duration(duration: float) -> None:
    store = _store()

    with pytest.raises(ValueError):
        store.create_reservation(1, "u1", duration)


def test_create_reservation_rejects_duration_past_calendar_range() -> None:
    scheduler = FakeScheduler()
    store = _store(scheduler)

    with pytest.raises(ValueError, match="too long"):
        store.create_reservation(1, "u1", 1e10)

    assert store.get_reservations() == []
    assert store.get_slot_by_id(1).reserved_by is None  # type: ignore[union-attr]
    assert scheduler.timers == []


def test_overlapping_reservations_keep_slot_pointing_at_remaining_one() -> None:
    scheduler = FakeScheduler()
    store = _store(scheduler)
    long_one = store.create_reservation(4, "u1", 30)
    short_one = store.create_reservation(4, "u2", 5)

    assert store.get_slot_by_id(4).reserved_by == "u2"  # type: ignore[union-attr]

    store.expire_reservation(short_one.id)

    slot = store.get_slot_by_id(4)
    assert slot is not None
    assert slot.reserved_by == "u1"
    assert slot.reserved_until == long_one.end_time

    store.expire_reservation(long_one.id)
    assert store.get_slot_by_id(4).reserved_by is None  # type: ignore[union-attr]


def test_reservation_filters() -> None:
    store = _store()
    first = store.create_reservation(1, "alice", 5)
    second = store.create_reservation(2, "bob", 5)
    third = store.create_reservation(2, "alice", 5)

    assert {r.id for r in store.get_reservations()} == {first.id, second.id, third.id}
    assert {r.id for r in store.get_reservations_for_slot(2)} == {second.id, third.id}
    assert {r.id for r in store.get_reservations_for_user("alice")} == {first.id, third.id}
    assert store.get_reservations_for_user("carol") == []


def test_reservation_ids_are_unique() -> None:
    store = _store()

    ids = {store.create_reservation(1, "u1", 5).id for _ in range(50)}

    assert len(ids) == 50


def test_shutdown_cancels_pending_timers() -> None:
    scheduler = FakeScheduler()
    store = _store(scheduler)
    store.create_reservation(1, "u1", 5)
    store.create_reservation(2, "u2", 5)

    store.shutdown()

    assert all(timer.cancelled for timer in scheduler.timers)


def test_real_timer_expires_reservation() -> None:
    store = ReservationStore(slot_count=2)
    expired = threading.Event()
    original = store.expire_reservation

    def tracking_expire(reservation_id: str) -> bool:
        result = original(reservation_id)
        expired.set()
        return result

    store.expire_reservation = tracking_expire  # type: ignore[method-assign]
    try:
        store.create_reservation(1, "u1", duration_minutes=0.001)
        assert expired.wait(timeout=5)
        assert store.get_slot_by_id(1).reserved_by is None  # type: ignore[union-attr]
        assert store.get_reservations() == []
    finally:
        store.shutdown()


def test_start_timer_clamps_delay_to_platform_maximum() -> None:
    timer = start_timer(1e12, lambda: None)
    try:
        assert timer.interval == threading.TIMEOUT_MAX
    finally:
        timer.cancel()
