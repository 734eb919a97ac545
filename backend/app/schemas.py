from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field

from cinema_seating.navigation import Stage


class HallConfigure(BaseModel):
    # Either a preset name or explicit rows/seats_per_row.
    preset: Optional[str] = None
    rows: Optional[int] = Field(default=None, gt=0)
    seats_per_row: Union[int, list[int], None] = None
    ticket_count: Optional[int] = Field(default=None, gt=0)
    canvas_width: Optional[float] = Field(default=None, gt=0)
    canvas_height: Optional[float] = Field(default=None, gt=0)


class TicketCount(BaseModel):
    count: int = Field(gt=0)


class FilmChoice(BaseModel):
    film_id: str


class Pointer(BaseModel):
    x: float
    y: float


class CanvasSize(BaseModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class NavigateRequest(BaseModel):
    stage: Stage


class SeatPositionOut(BaseModel):
    row: int
    col: int
    id: str
    x: float
    y: float
    angle_deg: float
    status: str


class LayoutOut(BaseModel):
    canvas_width: float
    canvas_height: float
    seat_radius: float
    seats: list[SeatPositionOut]


class SnapshotOut(BaseModel):
    name: str
    rows: int
    seats_total: int
    seats_sold: int
