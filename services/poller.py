"""Periodic retrieval of slot readings from the sensor device."""

from __future__ import annotations

import logging
import re
from threading import Lock
from typing import Any, List, Optional

import httpx

from models.records import SlotReading
from services.timers import Scheduler, TimerHandle, start_timer

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 2.0
MISSING_ADDRESS_ERROR = "No server address provided"
NULL_PAYLOAD_ERROR = "Response body is null"

_IPV4_PATTERN = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
_PROTOCOL_PREFIXES = ("http://", "https://")


def normalize_address(address: str) -> str:
    """Strip a protocol prefix and any path from a user-supplied address."""
    candidate = address.strip()
    for prefix in _PROTOCOL_PREFIXES:
        if candidate.startswith(prefix):
            candidate = candidate[len(prefix):]
            break
    return candidate.split("/", 1)[0]


def resolve_scheme(address: str) -> str:
    """Plain HTTP for a bare dotted-quad, HTTPS for anything else."""
    return "http" if _IPV4_PATTERN.match(address) else "https"


def _parse_distance(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _to_reading(entry: dict[str, Any]) -> SlotReading:
    return SlotReading(
        slot_id=entry.get("id"),
        occupied=bool(entry.get("occupied")),
        distance=_parse_distance(entry.get("distance_cm")),
    )


class PollingEngine:
    """Fetch the device status on a fixed period and keep the latest snapshot.

    Failures never clear the snapshot; they only replace ``last_error``.
    A tick that fires while an earlier fetch is still running is skipped,
    so at most one scheduled fetch is in flight at a time.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        interval: float = DEFAULT_INTERVAL,
        timeout: float = 5.0,
        scheduler: Scheduler = start_timer,
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None
        self.interval = interval
        self._scheduler = scheduler
        self._lock = Lock()
        self._address = ""
        self._slots: List[SlotReading] = []
        self._last_error: Optional[str] = None
        self._timer: Optional[TimerHandle] = None
        self._generation = 0
        self._in_flight = 0

    def __enter__(self) -> "PollingEngine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def slots(self) -> List[SlotReading]:
        with self._lock:
            return list(self._slots)

    @property
    def last_error(self) -> Optional[str]:
        with self._lock:
            return self._last_error

    @property
    def address(self) -> str:
        with self._lock:
            return self._address

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._timer is not None

    @property
    def is_connected(self) -> bool:
        with self._lock:
            return bool(self._address) and self._last_error is None

    def start(self, address: str) -> None:
        """Point the engine at ``address``, fetch once, then poll every interval."""
        target = normalize_address(address)
        with self._lock:
            self._address = target
            self._generation += 1
            generation = self._generation
            previous, self._timer = self._timer, None
        if previous is not None:
            previous.cancel()

        logger.info("Polling started", extra={"address": target})
        self.fetch_status()

        with self._lock:
            if generation == self._generation:
                self._timer = self._scheduler(self.interval, lambda: self._tick(generation))

    def stop(self) -> None:
        """Cancel future ticks. A fetch already in flight runs to completion."""
        with self._lock:
            self._generation += 1
            timer, self._timer = self._timer, None
        if timer is None:
            return
        timer.cancel()
        logger.info("Polling stopped", extra={"address": self.address})

    def close(self) -> None:
        self.stop()
        if self._owns_client:
            self._client.close()

    def fetch_status(self) -> None:
        """Issue one request to the current target and update the snapshot."""
        with self._lock:
            address = self._address
            self._in_flight += 1
        try:
            self._fetch(address)
        finally:
            with self._lock:
                self._in_flight -= 1

    def _tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = self._scheduler(self.interval, lambda: self._tick(generation))
            busy = self._in_flight > 0
        if busy:
            logger.debug("Previous fetch still running, skipping tick")
            return
        self.fetch_status()

    def _fetch(self, address: str) -> None:
        if not address:
            self._record_error(address, MISSING_ADDRESS_ERROR)
            return

        url = f"{resolve_scheme(address)}://{address}/"
        try:
            response = self._client.get(url)
            if not response.is_success:
                self._record_error(address, f"HTTP {response.status_code}")
                return
            payload = response.json()
        except httpx.HTTPError as exc:
            self._record_error(address, str(exc) or exc.__class__.__name__)
            return
        except ValueError as exc:
            self._record_error(address, f"Invalid JSON in response: {exc}")
            return

        if payload is None:
            self._record_error(address, NULL_PAYLOAD_ERROR)
            return

        entries = payload.get("slots") if isinstance(payload, dict) else None
        with self._lock:
            if isinstance(entries, list):
                self._slots = [_to_reading(entry) for entry in entries if isinstance(entry, dict)]
            self._last_error = None

        if not isinstance(entries, list):
            logger.warning("Status payload has no slots array", extra={"address": address})

    def _record_error(self, address: str, message: str) -> None:
        with self._lock:
            self._last_error = message
        logger.warning("Polling error", extra={"address": address, "error": message})
