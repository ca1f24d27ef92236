"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SlotResponse(BaseModel):
    """Current occupancy and reservation state of one slot."""

    model_config = ConfigDict(from_attributes=True)

    slot_id: int = Field(..., ge=1)
    occupied: bool
    reserved_by: Optional[str] = None
    reserved_until: Optional[datetime] = None


class OccupancyUpdate(BaseModel):
    occupied: bool


class SlotOccupancy(BaseModel):
    slot_id: int
    occupied: bool


class BatchOccupancyUpdate(BaseModel):
    """Occupancy readings pushed by the device side; unknown ids are ignored."""

    updates: List[SlotOccupancy] = Field(default_factory=list)


class ReservationRequest(BaseModel):
    slot_id: int
    user_id: str = Field(..., min_length=1)
    duration_minutes: float = Field(..., gt=0, description="Reservation length in minutes.")


class ReservationResponse(BaseModel):
    """An active reservation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    slot_id: int
    user_id: str
    start_time: datetime
    end_time: datetime
