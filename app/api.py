"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    BatchOccupancyUpdate,
    OccupancyUpdate,
    ReservationRequest,
    ReservationResponse,
    SlotResponse,
)
from datastore.reservation_store import ReservationStore, UnknownSlotError, build_default_store

router = APIRouter()


def get_store() -> ReservationStore:
    return build_default_store()


def _slot_not_found(slot_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Slot {slot_id} not found.",
    )


@router.get(
    "/slots",
    response_model=List[SlotResponse],
    summary="List every slot with its occupancy and reservation state.",
)
async def list_slots(store: ReservationStore = Depends(get_store)) -> List[SlotResponse]:
    return [SlotResponse.model_validate(slot) for slot in store.get_slots()]


@router.get(
    "/slots/{slot_id}",
    response_model=SlotResponse,
    summary="Fetch a single slot.",
)
async def get_slot(
    slot_id: int,
    store: ReservationStore = Depends(get_store),
) -> SlotResponse:
    slot = store.get_slot_by_id(slot_id)
    if slot is None:
        raise _slot_not_found(slot_id)
    return SlotResponse.model_validate(slot)


@router.put(
    "/slots/{slot_id}/occupancy",
    response_model=SlotResponse,
    summary="Set the occupied flag of one slot.",
)
async def update_slot_occupancy(
    slot_id: int,
    body: OccupancyUpdate,
    store: ReservationStore = Depends(get_store),
) -> SlotResponse:
    slot = store.update_slot_occupancy(slot_id, body.occupied)
    if slot is None:
        raise _slot_not_found(slot_id)
    return SlotResponse.model_validate(slot)


@router.post(
    "/slots/occupancy",
    response_model=List[SlotResponse],
    summary="Apply a batch of occupancy readings; unknown slots are skipped.",
)
async def update_multiple_slots(
    body: BatchOccupancyUpdate,
    store: ReservationStore = Depends(get_store),
) -> List[SlotResponse]:
    updated = store.update_multiple_slots(
        (update.slot_id, update.occupied) for update in body.updates
    )
    return [SlotResponse.model_validate(slot) for slot in updated]


@router.post(
    "/reservations",
    status_code=status.HTTP_201_CREATED,
    response_model=ReservationResponse,
    summary="Reserve a slot for a fixed number of minutes.",
)
async def create_reservation(
    body: ReservationRequest,
    store: ReservationStore = Depends(get_store),
) -> ReservationResponse:
    try:
        reservation = store.create_reservation(
            body.slot_id, body.user_id, body.duration_minutes
        )
    except UnknownSlotError as exc:
        raise _slot_not_found(exc.slot_id) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return ReservationResponse.model_validate(reservation)


@router.get(
    "/reservations",
    response_model=List[ReservationResponse],
    summary="List active reservations, optionally filtered by slot or user.",
)
async def list_reservations(
    slot_id: Optional[int] = Query(default=None),
    user_id: Optional[str] = Query(default=None),
    store: ReservationStore = Depends(get_store),
) -> List[ReservationResponse]:
    if slot_id is not None:
        reservations = store.get_reservations_for_slot(slot_id)
        if user_id is not None:
            reservations = [r for r in reservations if r.user_id == user_id]
    elif user_id is not None:
        reservations = store.get_reservations_for_user(user_id)
    else:
        reservations = store.get_reservations()
    return [ReservationResponse.model_validate(r) for r in reservations]


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
