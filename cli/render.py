from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

import typer

from models.records import SlotReading, SlotState

_STATE_COLORS = {
    SlotState.vacant: typer.colors.GREEN,
    SlotState.occupied: typer.colors.YELLOW,
    SlotState.danger: typer.colors.RED,
    SlotState.disconnected: typer.colors.BRIGHT_BLACK,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_slots(slots: Sequence[Dict[str, Any]]) -> None:
    echo_heading("Slots")
    if not slots:
        typer.echo("No slots reported.")
        return
    for slot in slots:
        line = f"  - slot {slot.get('slot_id')}: {'occupied' if slot.get('occupied') else 'vacant'}"
        if slot.get("reserved_by"):
            line += f" (reserved by {slot['reserved_by']} until {slot.get('reserved_until')})"
        typer.echo(line)


def render_reservation(payload: Dict[str, Any]) -> None:
    echo_heading("Reservation")
    echo_key_values(
        [
            ("id", payload.get("id")),
            ("slot_id", payload.get("slot_id")),
            ("user_id", payload.get("user_id")),
            ("start_time", payload.get("start_time")),
            ("end_time", payload.get("end_time")),
        ]
    )


def render_reservations(reservations: Sequence[Dict[str, Any]]) -> None:
    echo_heading("Reservations")
    if not reservations:
        typer.echo("No active reservations.")
        return
    for reservation in reservations:
        typer.echo(
            f"  - {reservation.get('id')}: slot {reservation.get('slot_id')} "
            f"for {reservation.get('user_id')} until {reservation.get('end_time')}"
        )


def _format_distance(reading: SlotReading, state: SlotState) -> str:
    if state is SlotState.disconnected or reading.distance is None:
        return "N/A"
    return f"{reading.distance:.1f} cm"


def render_snapshot(
    address: str,
    readings: Sequence[SlotReading],
    states: Sequence[SlotState],
    error: Optional[str],
) -> None:
    status = "connected" if address and error is None else "not connected"
    echo_heading(f"Polling {address or '<unset>'} ({status})")
    if error:
        typer.secho(f"Polling error: {error}", fg=typer.colors.RED, err=True)
    if not readings:
        typer.echo("No slot readings yet.")
        return
    for reading, state in zip(readings, states):
        label = "not connected" if state is SlotState.disconnected else state.value
        typer.secho(
            f"  - slot {reading.slot_id}: {label} | distance {_format_distance(reading, state)}",
            fg=_STATE_COLORS[state],
        )
