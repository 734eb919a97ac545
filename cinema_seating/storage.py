from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping, Optional

from .errors import PersistenceError
from .seats import DEFAULT_SEAT_PRICE, SeatGrid, SeatKey, SeatStatus, parse_seat_id

logger = logging.getLogger(__name__)


def dump_statuses(grid: SeatGrid) -> dict[str, str]:
    """Flat ``{"<row>-<col>": "<status>"}`` record of every seat in the grid."""
    return {seat.id: seat.status.value for seat in grid}


def _parse_record(record: Mapping[str, str]) -> dict[SeatKey, SeatStatus]:
    out: dict[SeatKey, SeatStatus] = {}
    for sid, value in record.items():
        try:
            key = parse_seat_id(sid)
            status = SeatStatus(value)
        except ValueError as e:
            raise PersistenceError(f"invalid seat status entry {sid!r}: {value!r}") from e
        out[key] = status
    return out


def restore_statuses(grid: SeatGrid, record: Mapping[str, str]) -> int:
    """
    Apply a saved status record to ``grid`` and return the number of sold seats.

    Only ``sold`` survives a restore; a saved ``selected`` belonged to a
    session that no longer exists and comes back as ``available``. Entries
    for seats the grid does not have are skipped. The grid is untouched when
    the record is malformed.
    """
    parsed = _parse_record(record)
    sold: list[SeatKey] = []
    skipped = 0
    for key, status in parsed.items():
        if key not in grid:
            skipped += 1
            continue
        if status is SeatStatus.sold:
            sold.append(key)
    for seat in grid:
        seat.status = SeatStatus.available
    grid.mark_sold(sold)
    if skipped:
        logger.warning("skipped %d saved seats outside the %d-row hall", skipped, grid.row_count)
    return len(sold)


def grid_from_record(record: Mapping[str, str], *, price: float = DEFAULT_SEAT_PRICE) -> SeatGrid:
    """Rebuild a hall from the seat ids of a saved record, then restore its statuses."""
    parsed = _parse_record(record)
    if not parsed:
        raise PersistenceError("saved record has no seats")
    lengths: dict[int, int] = {}
    for r, c in parsed:
        lengths[r] = max(lengths.get(r, 0), c)
    row_count = max(lengths)
    grid = SeatGrid(row_count, [lengths.get(r, 0) for r in range(1, row_count + 1)], price=price)
    if not len(grid):
        raise PersistenceError("saved record does not describe a complete hall")
    restore_statuses(grid, record)
    return grid


def load_statuses(path: str | Path) -> dict[str, str]:
    p = Path(path)
    if not p.exists():
        raise PersistenceError(f"status file not found: {p}")

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except Exception as e:  # noqa: BLE001
        raise PersistenceError(f"failed to read status JSON: {e}") from e
    if not isinstance(data, dict):
        raise PersistenceError("status file must hold a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def save_statuses(grid: SeatGrid, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(dump_statuses(grid), indent=2, sort_keys=True) + "\n", encoding="utf-8")


def load_grid(path: str | Path, *, price: float = DEFAULT_SEAT_PRICE) -> SeatGrid:
    return grid_from_record(load_statuses(path), price=price)


def maybe_init_grid(
    path: str | Path,
    *,
    rows: Optional[int] = None,
    cols: Optional[int] = None,
    price: float = DEFAULT_SEAT_PRICE,
    overwrite: bool = False,
) -> SeatGrid:
    p = Path(path)
    if p.exists() and not overwrite:
        return load_grid(p, price=price)

    if rows is None or cols is None:
        raise PersistenceError("rows and cols are required to initialize a new hall")

    grid = SeatGrid(rows, cols, price=price)
    if not len(grid):
        raise PersistenceError("rows and cols must be positive integers")
    save_statuses(grid, p)
    logger.info("initialized %d-seat hall at %s", len(grid), p)
    return grid

