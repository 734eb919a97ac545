from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional, Sequence, Union

from .errors import CapacityExceeded, EmptySelection, InvalidState, SeatNotFound

logger = logging.getLogger(__name__)

SeatKey = tuple[int, int]
RowSpec = Union[int, Sequence[int], Callable[[int], int]]

DEFAULT_SEAT_PRICE = 45.0


class SeatStatus(str, Enum):
    available = "available"
    selected = "selected"
    sold = "sold"


def seat_id(row: int, col: int) -> str:
    return f"{row}-{col}"


def parse_seat_id(text: str) -> SeatKey:
    row_s, sep, col_s = str(text).strip().partition("-")
    if not sep:
        raise ValueError(f"invalid seat id: {text!r}")
    return int(row_s), int(col_s)


def resolve_row_lengths(row_count: int, cols_per_row: RowSpec) -> list[int]:
    """
    Expand ``cols_per_row`` into one seat count per row.

    ``cols_per_row`` may be a constant, a sequence (one entry per row, front
    row first) or a callable taking the 1-based row number. A malformed
    configuration (no rows, a row without seats, a short sequence) yields an
    empty list rather than an error.
    """
    if row_count <= 0:
        return []
    if callable(cols_per_row):
        lengths = [int(cols_per_row(r)) for r in range(1, row_count + 1)]
    elif isinstance(cols_per_row, int):
        lengths = [cols_per_row] * row_count
    else:
        lengths = [int(n) for n in list(cols_per_row)[:row_count]]
        if len(lengths) < row_count:
            return []
    if any(n <= 0 for n in lengths):
        return []
    return lengths


@dataclass
class Seat:
    row: int
    col: int
    price: float = DEFAULT_SEAT_PRICE
    status: SeatStatus = SeatStatus.available

    @property
    def key(self) -> SeatKey:
        return (self.row, self.col)

    @property
    def id(self) -> str:
        return seat_id(self.row, self.col)


class SeatGrid:
    """
    The full set of seats of one auditorium, keyed by ``(row, col)``.

    Rows and columns are 1-based. A grid is never resized in place: a new
    hall configuration means a new grid.
    """

    def __init__(self, row_count: int, cols_per_row: RowSpec, *, price: float = DEFAULT_SEAT_PRICE):
        self.row_lengths = resolve_row_lengths(row_count, cols_per_row)
        self.row_count = len(self.row_lengths)
        self.price = float(price)
        self._seats: dict[SeatKey, Seat] = {}
        for r, n in enumerate(self.row_lengths, start=1):
            for c in range(1, n + 1):
                self._seats[(r, c)] = Seat(r, c, self.price)

    def __len__(self) -> int:
        return len(self._seats)

    def __contains__(self, key: object) -> bool:
        return key in self._seats

    def __iter__(self) -> Iterator[Seat]:
        return iter(self._seats.values())

    @property
    def total_seats(self) -> int:
        return sum(self.row_lengths)

    def get(self, row: int, col: int) -> Seat:
        seat = self._seats.get((row, col))
        if seat is None:
            raise SeatNotFound(row, col)
        return seat

    def row_length(self, row: int) -> int:
        if not (1 <= row <= self.row_count):
            return 0
        return self.row_lengths[row - 1]

    def row_seats(self, row: int) -> list[Seat]:
        return [self._seats[(row, c)] for c in range(1, self.row_length(row) + 1)]

    def statuses(self) -> dict[SeatKey, SeatStatus]:
        return {k: s.status for k, s in self._seats.items()}

    def count(self, status: SeatStatus) -> int:
        return sum(1 for s in self._seats.values() if s.status is status)

    def same_shape(self, other: "SeatGrid") -> bool:
        return self.row_lengths == other.row_lengths

    def mark_sold(self, keys: Iterable[SeatKey]) -> None:
        """Seed seats as already sold (restored state, pre-sold sessions)."""
        seats = [self.get(r, c) for (r, c) in keys]
        for seat in seats:
            seat.status = SeatStatus.sold


@dataclass(frozen=True)
class OrderSummary:
    order_id: str
    seat_ids: tuple[str, ...]
    total_price: float
    created_at: datetime

    @property
    def ticket_count(self) -> int:
        return len(self.seat_ids)

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "seat_ids": list(self.seat_ids),
            "total_price": self.total_price,
            "created_at": self.created_at.isoformat(),
        }


def new_order_id(now: Optional[float] = None) -> str:
    ts = time.time() if now is None else now
    return f"ORD{int(ts * 1000)}"


@dataclass
class SeatSelection:
    """
    Seats currently selected by the kiosk user, in selection order.

    Holds at most ``ticket_count`` seats. Every operation either applies in
    full or raises without touching the grid.
    """

    grid: SeatGrid
    ticket_count: int
    _keys: list[SeatKey] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    @property
    def keys(self) -> list[SeatKey]:
        return list(self._keys)

    @property
    def seats(self) -> list[Seat]:
        return [self.grid.get(r, c) for (r, c) in self._keys]

    @property
    def seat_ids(self) -> list[str]:
        return [seat_id(r, c) for (r, c) in self._keys]

    @property
    def is_full(self) -> bool:
        return len(self._keys) >= self.ticket_count

    @property
    def total_price(self) -> float:
        return sum(s.price for s in self.seats)

    def select_seat(self, key: SeatKey) -> Seat:
        seat = self.grid.get(*key)
        if seat.status is SeatStatus.sold:
            raise InvalidState(f"seat {seat.id} is already sold")
        if seat.status is SeatStatus.selected:
            raise InvalidState(f"seat {seat.id} is already selected")
        if self.is_full:
            raise CapacityExceeded(f"already selected {len(self._keys)} of {self.ticket_count} tickets")
        seat.status = SeatStatus.selected
        self._keys.append(seat.key)
        logger.debug("selected seat %s", seat.id)
        return seat

    def deselect_seat(self, key: SeatKey) -> Optional[Seat]:
        seat = self.grid.get(*key)
        if seat.status is not SeatStatus.selected:
            return None
        seat.status = SeatStatus.available
        if seat.key in self._keys:
            self._keys.remove(seat.key)
        logger.debug("deselected seat %s", seat.id)
        return seat

    def toggle_seat(self, key: SeatKey) -> Seat:
        seat = self.grid.get(*key)
        if seat.status is SeatStatus.selected:
            self.deselect_seat(key)
        else:
            self.select_seat(key)
        return seat

    def replace(self, keys: Sequence[SeatKey]) -> None:
        """Swap the whole selection for ``keys`` (all-or-nothing)."""
        if len(set(keys)) != len(keys):
            raise InvalidState("a seat is listed more than once")
        if len(keys) > self.ticket_count:
            raise CapacityExceeded(f"cannot select {len(keys)} seats for {self.ticket_count} tickets")
        seats = [self.grid.get(r, c) for (r, c) in keys]
        for seat in seats:
            if seat.status is SeatStatus.sold:
                raise InvalidState(f"seat {seat.id} is already sold")
        self.clear()
        for seat in seats:
            seat.status = SeatStatus.selected
            self._keys.append(seat.key)

    def clear(self) -> None:
        for seat in self.seats:
            seat.status = SeatStatus.available
        self._keys.clear()

    def commit_order(self, order_id: Optional[str] = None, created_at: Optional[datetime] = None) -> OrderSummary:
        if not self._keys:
            raise EmptySelection("no seats selected")
        seats = self.seats
        summary = OrderSummary(
            order_id=order_id or new_order_id(),
            seat_ids=tuple(s.id for s in seats),
            total_price=sum(s.price for s in seats),
            created_at=created_at or datetime.now(),
        )
        for seat in seats:
            seat.status = SeatStatus.sold
        self._keys.clear()
        logger.info("committed order %s: %s", summary.order_id, ", ".join(summary.seat_ids))
        return summary
