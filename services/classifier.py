"""Debounced disconnect detection for polled slot readings."""

from __future__ import annotations

import time
from typing import Dict, Optional, Tuple

from models.records import SlotReading, SlotState

DEFAULT_DANGER_ZONE: Tuple[float, float] = (1.0, 5.0)


class SlotClassifier:
    """Classify readings as vacant, occupied, danger or disconnected.

    A negative distance has to persist for longer than ``grace_period``
    seconds before the slot is reported as disconnected. Until then the
    reading falls back to its occupied flag. Any non-negative or missing
    distance resets the pending onset for that slot.

    ``danger_zone`` is an inclusive ``(low, high)`` range in centimeters;
    pass ``None`` to disable the danger classification.
    """

    def __init__(
        self,
        grace_period: float = 1.0,
        danger_zone: Optional[Tuple[float, float]] = DEFAULT_DANGER_ZONE,
    ) -> None:
        self.grace_period = grace_period
        self.danger_zone = danger_zone
        self._onsets: Dict[int, float] = {}

    def classify(self, reading: SlotReading, now: Optional[float] = None) -> SlotState:
        now = time.monotonic() if now is None else now
        distance = reading.distance

        if distance is not None and distance < 0:
            onset = self._onsets.setdefault(reading.slot_id, now)
            if now - onset > self.grace_period:
                return SlotState.disconnected
        else:
            self._onsets.pop(reading.slot_id, None)
            if distance is not None and self._in_danger_zone(distance):
                return SlotState.danger

        return SlotState.occupied if reading.occupied else SlotState.vacant

    def pending_onset(self, slot_id: int) -> Optional[float]:
        return self._onsets.get(slot_id)

    def reset(self, slot_id: Optional[int] = None) -> None:
        if slot_id is None:
            self._onsets.clear()
        else:
            self._onsets.pop(slot_id, None)

    def _in_danger_zone(self, distance: float) -> bool:
        if self.danger_zone is None:
            return False
        low, high = self.danger_zone
        return low <= distance <= high
