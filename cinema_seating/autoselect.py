from __future__ import annotations

import logging
from typing import Optional

from .seats import SeatGrid, SeatKey, SeatStatus

logger = logging.getLogger(__name__)


def rows_from_center(row_count: int) -> list[int]:
    """Row numbers ordered by distance from the middle of the hall, front row first on ties."""
    # Doubled to stay in integers: centre is (row_count + 1) / 2.
    return sorted(range(1, row_count + 1), key=lambda r: (abs(2 * r - (row_count + 1)), r))


def free_runs(grid: SeatGrid, row: int, *, include_selected: bool = False) -> list[tuple[int, int]]:
    """Maximal runs of free seats in ``row`` as inclusive ``(first_col, last_col)`` pairs."""
    free = {SeatStatus.available, SeatStatus.selected} if include_selected else {SeatStatus.available}
    runs: list[tuple[int, int]] = []
    start: Optional[int] = None
    seats = grid.row_seats(row)
    for seat in seats:
        if seat.status in free:
            if start is None:
                start = seat.col
        elif start is not None:
            runs.append((start, seat.col - 1))
            start = None
    if start is not None:
        runs.append((start, len(seats)))
    return runs


def best_block_in_row(grid: SeatGrid, row: int, ticket_count: int, *, include_selected: bool = False) -> Optional[int]:
    """Start column of the ``ticket_count`` block closest to the row midpoint, if any."""
    n = grid.row_length(row)
    best: Optional[tuple[int, int]] = None
    for first, last in free_runs(grid, row, include_selected=include_selected):
        for start in range(first, last - ticket_count + 2):
            # |block midpoint - row midpoint|, doubled.
            off = abs(2 * start + ticket_count - 1 - (n + 1))
            if best is None or (off, start) < best:
                best = (off, start)
    return None if best is None else best[1]


def auto_select(grid: SeatGrid, ticket_count: int, *, include_selected: bool = False) -> Optional[list[SeatKey]]:
    """
    Pick ``ticket_count`` adjacent free seats in one row, as central as possible.

    Rows are tried from the middle of the hall outwards and the first row with
    a fitting block wins. Returns ``None`` when nothing fits.
    """
    if ticket_count <= 0:
        return None
    for row in rows_from_center(grid.row_count):
        if grid.row_length(row) < ticket_count:
            continue
        start = best_block_in_row(grid, row, ticket_count, include_selected=include_selected)
        if start is not None:
            keys = [(row, c) for c in range(start, start + ticket_count)]
            logger.debug("auto-select picked row %d cols %d-%d", row, start, start + ticket_count - 1)
            return keys
    logger.info("auto-select found no block of %d seats", ticket_count)
    return None
