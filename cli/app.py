from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_reservation,
    render_reservations,
    render_slots,
    render_snapshot,
)
from logging_config import configure_logging
from services.classifier import DEFAULT_DANGER_ZONE, SlotClassifier
from services.poller import PollingEngine
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for watching the slot sensor and managing reservations.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Reservation API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Sensor device IP address or hostname."),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Seconds between polls (defaults to CLI_POLL_INTERVAL, then POLL_INTERVAL_MS).",
    ),
    count: Optional[int] = typer.Option(
        None,
        "--count",
        "-n",
        min=1,
        help="Stop after rendering this many snapshots.",
    ),
) -> None:
    """Poll the sensor device and print the classified slot states."""
    settings = get_settings()
    period = interval or _get_state(ctx).config.poll_interval or settings.poll_interval_ms / 1000
    classifier = SlotClassifier(
        grace_period=settings.disconnect_grace_ms / 1000,
        danger_zone=DEFAULT_DANGER_ZONE if settings.danger_zone_enabled else None,
    )

    rendered = 0
    with PollingEngine(interval=period, timeout=settings.poll_timeout) as engine:
        engine.start(address)
        try:
            while True:
                readings = engine.slots
                states = [classifier.classify(reading) for reading in readings]
                render_snapshot(engine.address, readings, states, engine.last_error)
                rendered += 1
                if count is not None and rendered >= count:
                    break
                time.sleep(period)
                typer.echo()
        except KeyboardInterrupt:
            typer.echo("Stopped polling.")


@app.command("slots")
def slots_command(ctx: typer.Context) -> None:
    """List slots as recorded by the reservation server."""
    state = _get_state(ctx)
    render_slots(state.client.list_slots())


@app.command("occupancy")
def occupancy_command(
    ctx: typer.Context,
    slot_id: int = typer.Argument(..., help="Slot to update."),
    occupied: Optional[bool] = typer.Option(
        None,
        "--occupied/--vacant",
        help="New occupancy state.",
    ),
) -> None:
    """Record an occupancy reading for one slot."""
    if occupied is None:
        raise typer.BadParameter("Pass --occupied or --vacant.")
    state = _get_state(ctx)
    slot = state.client.set_occupancy(slot_id, occupied)
    render_slots([slot])


@app.command("reserve")
def reserve_command(
    ctx: typer.Context,
    slot_id: int = typer.Argument(..., help="Slot to reserve."),
    user: str = typer.Option(..., "--user", "-u", help="Identifier of the reserving user."),
    duration: float = typer.Option(
        30.0,
        "--duration",
        "-d",
        help="Reservation length in minutes.",
    ),
) -> None:
    """Reserve a slot for a fixed number of minutes."""
    state = _get_state(ctx)
    payload = state.client.create_reservation(slot_id, user, duration)
    typer.secho(f"Slot {slot_id} reserved for {user}.", fg=typer.colors.GREEN)
    render_reservation(payload)


@app.command("reservations")
def reservations_command(
    ctx: typer.Context,
    slot_id: Optional[int] = typer.Option(None, "--slot", help="Only this slot."),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Only this user."),
) -> None:
    """List active reservations."""
    state = _get_state(ctx)
    render_reservations(state.client.list_reservations(slot_id=slot_id, user_id=user))
