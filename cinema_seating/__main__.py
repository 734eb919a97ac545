from __future__ import annotations

import argparse
import csv
import logging
from pathlib import Path

from .autoselect import auto_select
from .config import HALL_PRESETS, KioskSettings
from .errors import BookingError, NoSeatsAvailable
from .geometry import compute_layout
from .render import render_ascii, render_svg
from .seats import SeatSelection, parse_seat_id
from .storage import load_grid, maybe_init_grid, save_statuses

DEFAULT_FILE = "hall_status.json"


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--file",
        default=DEFAULT_FILE,
        help=f"Path to seat status JSON file (default: {DEFAULT_FILE})",
    )


def _positive_int(text: str) -> int:
    n = int(text)
    if n <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return n


def _positive_float(text: str) -> float:
    n = float(text)
    if n <= 0:
        raise argparse.ArgumentTypeError("must be positive")
    return n


def cmd_init(args: argparse.Namespace) -> int:
    rows, cols = args.rows, args.cols
    if args.preset:
        rows, cols = HALL_PRESETS[args.preset]
    grid = maybe_init_grid(args.file, rows=rows, cols=cols, price=args.settings.seat_price, overwrite=args.overwrite)
    print(f"Hall at {args.file}: {grid.row_count} rows, {len(grid)} seats")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    grid = load_grid(args.file, price=args.settings.seat_price)
    print(render_ascii(grid, cell_width=args.width))
    return 0


def cmd_book(args: argparse.Namespace) -> int:
    grid = load_grid(args.file, price=args.settings.seat_price)
    keys = [parse_seat_id(s) for s in args.seat]
    selection = SeatSelection(grid, ticket_count=len(keys))
    for key in keys:
        selection.select_seat(key)
    order = selection.commit_order()
    save_statuses(grid, args.file)
    print(f"Order {order.order_id}: {', '.join(order.seat_ids)} total {order.total_price:.2f}")
    return 0


def cmd_auto(args: argparse.Namespace) -> int:
    grid = load_grid(args.file, price=args.settings.seat_price)
    keys = auto_select(grid, args.tickets)
    if keys is None:
        raise NoSeatsAvailable(f"no {args.tickets} adjacent seats available")
    if not args.book:
        print("Best seats: " + ", ".join(f"{r}-{c}" for r, c in keys))
        return 0
    selection = SeatSelection(grid, ticket_count=args.tickets)
    selection.replace(keys)
    order = selection.commit_order()
    save_statuses(grid, args.file)
    print(f"Order {order.order_id}: {', '.join(order.seat_ids)} total {order.total_price:.2f}")
    return 0


def cmd_svg(args: argparse.Namespace) -> int:
    grid = load_grid(args.file, price=args.settings.seat_price)
    layout = compute_layout(grid.row_count, grid.row_lengths, args.canvas_width, args.canvas_height, args.curvature)
    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_svg(layout, grid.statuses()), encoding="utf-8")
    print(f"Wrote seat map to {out}")
    return 0


def cmd_export_csv(args: argparse.Namespace) -> int:
    grid = load_grid(args.file, price=args.settings.seat_price)
    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["row", "col", "status"])
        for seat in grid:
            w.writerow([seat.row, seat.col, seat.status.value])
    print(f"Exported seat statuses to {out}")
    return 0


def build_parser(settings: KioskSettings) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cinema_seating", description="Cinema hall seat map and booking (CLI).")
    p.add_argument("--log-level", default=settings.log_level, help="Logging level (default from settings)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="Create a new hall status file")
    _add_common_args(p_init)
    p_init.add_argument("--rows", type=_positive_int, default=settings.hall_rows)
    p_init.add_argument("--cols", type=_positive_int, default=settings.seats_per_row)
    p_init.add_argument("--preset", choices=sorted(HALL_PRESETS), help="Use a preset hall size")
    p_init.add_argument("--overwrite", action="store_true", help="Overwrite existing status file")
    p_init.set_defaults(func=cmd_init)

    p_show = sub.add_parser("show", help="Print the seat chart")
    _add_common_args(p_show)
    p_show.add_argument("--width", type=int, default=3, help="Cell width for display")
    p_show.set_defaults(func=cmd_show)

    p_book = sub.add_parser("book", help="Sell the given seats as one order")
    _add_common_args(p_book)
    p_book.add_argument("--seat", action="append", required=True, help="Seat id ROW-COL; repeat for more seats")
    p_book.set_defaults(func=cmd_book)

    p_auto = sub.add_parser("auto", help="Find the most central block of adjacent free seats")
    _add_common_args(p_auto)
    p_auto.add_argument("--tickets", type=_positive_int, default=settings.ticket_count)
    p_auto.add_argument("--book", action="store_true", help="Sell the seats found")
    p_auto.set_defaults(func=cmd_auto)

    p_svg = sub.add_parser("svg", help="Render the arced seat map as SVG")
    _add_common_args(p_svg)
    p_svg.add_argument("--output", required=True)
    p_svg.add_argument("--canvas-width", type=_positive_float, default=settings.canvas_width)
    p_svg.add_argument("--canvas-height", type=_positive_float, default=settings.canvas_height)
    p_svg.add_argument("--curvature", type=float, default=settings.curvature, help="Arc span in radians; 0 for straight rows")
    p_svg.set_defaults(func=cmd_svg)

    p_export = sub.add_parser("export-csv", help="Export seat statuses to a CSV file")
    _add_common_args(p_export)
    p_export.add_argument("--output", required=True)
    p_export.set_defaults(func=cmd_export_csv)

    return p


def main(argv: list[str] | None = None) -> int:
    settings = KioskSettings()
    p = build_parser(settings)
    args = p.parse_args(argv)
    args.settings = settings
    logging.basicConfig(
        level=str(args.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        return int(args.func(args))
    except (BookingError, ValueError) as e:
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
