from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Iterable, Mapping, Optional

from .autoselect import auto_select
from .config import KioskSettings
from .errors import BookingError, CapacityExceeded, InvalidState, NoSeatsAvailable
from .geometry import Layout, compute_layout, hit_test
from .navigation import NavigationStateMachine, Stage, stage_index, step_indicators
from .notify import LoggingNotifier, Notifier
from .render import render_svg
from .seats import RowSpec, Seat, SeatGrid, SeatKey, SeatSelection, SeatStatus, seat_id
from .storage import dump_statuses, restore_statuses

logger = logging.getLogger(__name__)

# Films on the kiosk programme.
DEFAULT_FILMS: tuple[str, ...] = ("cat", "girl", "love")


def _opt_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


class FilmSelector:
    """Minimal stand-in for the film catalog: remembers which film was chosen."""

    def __init__(self, films: Iterable[str] = DEFAULT_FILMS):
        self.films = list(films)
        self.selected: Optional[str] = None

    def choose(self, film_id: str) -> None:
        if film_id not in self.films:
            raise InvalidState(f"unknown film: {film_id!r}")
        self.selected = film_id

    def clear(self) -> None:
        self.selected = None

    def get_selected_film(self) -> Optional[str]:
        return self.selected


class Kiosk:
    """
    One kiosk session: the hall, the user's selection, the workflow and the
    rendered seat map.

    UI glue calls :meth:`handle_input` with discrete events; every event is
    handled to completion before the next one except payment confirmation,
    which runs as a task on the current event loop.
    """

    def __init__(
        self,
        settings: Optional[KioskSettings] = None,
        *,
        notifier: Optional[Notifier] = None,
        film_selector: Optional[FilmSelector] = None,
    ):
        self.settings = settings or KioskSettings()
        self.notifier = notifier or LoggingNotifier()
        self.films = film_selector or FilmSelector()

        self.row_count = self.settings.hall_rows
        self.seats_per_row: RowSpec = self.settings.seats_per_row
        self.canvas_width = self.settings.canvas_width
        self.canvas_height = self.settings.canvas_height
        self.curvature = self.settings.curvature

        self.grid = SeatGrid(self.row_count, self.seats_per_row, price=self.settings.seat_price)
        self.selection = SeatSelection(self.grid, self.settings.ticket_count)
        self.navigation = NavigationStateMachine(
            self.selection,
            self.films,
            self.notifier,
            payment_delay=self.settings.payment_delay,
            on_enter={
                Stage.seat: self._on_seat_entered,
                Stage.payment: self._on_payment_entered,
                Stage.confirm: self._on_confirm_entered,
            },
        )
        self.layout: Layout = self._compute_layout()
        self.hovered: Optional[SeatKey] = None
        self.svg = ""
        self._payment_task: Optional[asyncio.Task] = None
        self.render()

    # -- geometry / drawing -------------------------------------------------

    def _compute_layout(self) -> Layout:
        return compute_layout(self.row_count, self.seats_per_row, self.canvas_width, self.canvas_height, self.curvature)

    def render(self) -> str:
        self.svg = render_svg(self.layout, self.grid.statuses(), hovered=self.hovered)
        return self.svg

    def resize(self, width: float, height: float) -> Layout:
        """Recompute positions for a new canvas size; seat statuses are untouched."""
        self.canvas_width = float(width)
        self.canvas_height = float(height)
        self.hovered = None
        self.layout = self._compute_layout()
        self.render()
        return self.layout

    # -- configuration ------------------------------------------------------

    def _ensure_idle(self) -> None:
        if self.navigation.is_payment_pending():
            raise InvalidState("Payment is being processed, please wait")

    def _ensure_before_payment(self) -> None:
        if stage_index(self.navigation.current_stage) > stage_index(Stage.seat):
            raise InvalidState("The hall and ticket count can only be changed before payment")

    def configure(
        self,
        rows: int,
        seats_per_row: RowSpec,
        *,
        ticket_count: Optional[int] = None,
        canvas_width: Optional[float] = None,
        canvas_height: Optional[float] = None,
    ) -> SeatGrid:
        """
        Apply a hall configuration.

        A different capacity replaces the grid and drops the selection; the
        same capacity keeps every seat's status. Non-positive counts give an
        empty hall.
        Refused once the workflow has moved past seat selection.
        """
        self._ensure_idle()
        self._ensure_before_payment()
        if ticket_count is not None and ticket_count <= 0:
            raise CapacityExceeded("ticket count must be at least 1")
        grid = SeatGrid(rows, seats_per_row, price=self.settings.seat_price)
        if not grid.same_shape(self.grid):
            self.selection.clear()
            self.grid = grid
            self.selection = SeatSelection(grid, self.selection.ticket_count)
            self.navigation.selection = self.selection
            self.hovered = None
            logger.info("hall reconfigured: %d rows, %d seats", grid.row_count, len(grid))
        self.row_count = rows
        self.seats_per_row = seats_per_row
        if canvas_width is not None:
            self.canvas_width = float(canvas_width)
        if canvas_height is not None:
            self.canvas_height = float(canvas_height)
        if ticket_count is not None:
            self.set_ticket_count(ticket_count)
        self.layout = self._compute_layout()
        self.render()
        return self.grid

    def set_ticket_count(self, count: int) -> None:
        self._ensure_idle()
        self._ensure_before_payment()
        if count <= 0:
            raise CapacityExceeded("ticket count must be at least 1")
        if count < len(self.selection):
            self.selection.clear()
            self.render()
        self.selection.ticket_count = count

    def choose_film(self, film_id: str) -> None:
        self.films.choose(film_id)
        logger.info("film chosen: %s", film_id)

    # -- seat selection -----------------------------------------------------

    def _ensure_seat_stage(self) -> None:
        if self.navigation.current_stage is not Stage.seat:
            raise InvalidState("Seats can only be chosen on the seat selection screen")

    def click(self, x: float, y: float) -> Optional[Seat]:
        """Toggle the seat under the pointer; a click on empty space does nothing."""
        self._ensure_seat_stage()
        key = hit_test(self.layout, x, y, hovered=self.hovered)
        if key is None:
            return None
        return self.toggle_seat(*key)

    def hover(self, x: Optional[float] = None, y: Optional[float] = None) -> Optional[SeatKey]:
        """Track the seat under the pointer; no coordinates means the pointer left the map."""
        key = None if x is None or y is None else hit_test(self.layout, x, y, hovered=self.hovered)
        if key != self.hovered:
            self.hovered = key
            self.render()
        return key

    def toggle_seat(self, row: int, col: int) -> Seat:
        self._ensure_seat_stage()
        seat = self.grid.get(row, col)
        if seat.status is SeatStatus.sold:
            raise InvalidState(f"Seat {seat.row}-{seat.col} is already sold")
        self.selection.toggle_seat(seat.key)
        self.render()
        return seat

    def auto_select(self) -> list[Seat]:
        self._ensure_seat_stage()
        keys = auto_select(self.grid, self.selection.ticket_count, include_selected=True)
        if keys is None:
            raise NoSeatsAvailable(f"No {self.selection.ticket_count} adjacent seats available, please choose manually")
        self.selection.replace(keys)
        self.render()
        self.notifier.message(f"Selected {', '.join(self.selection.seat_ids)}", "success")
        return self.selection.seats

    # -- workflow -----------------------------------------------------------

    def navigate(self, stage: Stage | str) -> bool:
        moved = self.navigation.go_to(stage)
        if moved:
            self.render()
        return moved

    def confirm_payment(self) -> Optional[asyncio.Task]:
        """Start the simulated payment on the running loop; a second click while pending is ignored."""
        if self._payment_task is not None and not self._payment_task.done():
            logger.info("payment already pending; confirmation ignored")
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise InvalidState("Payment can only start inside a running event loop") from e
        self._payment_task = loop.create_task(self._pay())
        return self._payment_task

    async def _pay(self):
        order = await self.navigation.confirm_payment()
        self.render()
        return order

    def reset(self) -> bool:
        done = self.navigation.reset()
        if done:
            self.render()
        return done

    def _on_seat_entered(self, stage: Stage) -> None:
        self.render()
        logger.info("seat map ready: %d free of %d", self.grid.count(SeatStatus.available), len(self.grid))

    def _on_payment_entered(self, stage: Stage) -> None:
        logger.info(
            "payment for %s: %d x %.2f = %.2f",
            ", ".join(self.selection.seat_ids),
            len(self.selection),
            self.grid.price,
            self.selection.total_price,
        )

    def _on_confirm_entered(self, stage: Stage) -> None:
        order = self.navigation.last_order
        if order is not None:
            logger.info("order %s confirmed at %s", order.order_id, order.created_at.isoformat())

    # -- persistence --------------------------------------------------------

    def snapshot(self) -> dict[str, str]:
        return dump_statuses(self.grid)

    def restore(self, record: Mapping[str, str]) -> int:
        self._ensure_idle()
        self.selection.clear()
        sold = restore_statuses(self.grid, record)
        self.render()
        return sold

    # -- queries ------------------------------------------------------------

    def state(self) -> dict:
        nav = self.navigation
        order = nav.last_order
        return {
            "stage": nav.current_stage.value,
            "history": [s.value for s in nav.state.history],
            "completed": [s.value for s in nav.state.completed_stages],
            "steps": [
                {"stage": i.stage.value, "active": i.active, "completed": i.completed}
                for i in step_indicators(nav.current_stage)
            ],
            "film": self.films.get_selected_film(),
            "rows": self.grid.row_count,
            "seats_total": len(self.grid),
            "seats_sold": self.grid.count(SeatStatus.sold),
            "ticket_count": self.selection.ticket_count,
            "selected": self.selection.seat_ids,
            "hovered": None if self.hovered is None else seat_id(*self.hovered),
            "total_price": self.selection.total_price,
            "payment_pending": nav.is_payment_pending(),
            "last_order": order.to_dict() if order else None,
        }

    # -- dispatch -----------------------------------------------------------

    def handle_input(self, event_kind: str, payload: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Single entry point for UI events.

        Booking failures become a user message and a ``None`` result; the
        session state is left as it was.
        """
        handlers: dict[str, Callable[[Mapping[str, Any]], Any]] = {
            "configure": lambda p: self.configure(
                int(p["rows"]),
                p.get("seats_per_row", self.seats_per_row),
                ticket_count=p.get("ticket_count"),
                canvas_width=p.get("canvas_width"),
                canvas_height=p.get("canvas_height"),
            ),
            "set_tickets": lambda p: self.set_ticket_count(int(p["count"])),
            "choose_film": lambda p: self.choose_film(str(p["film_id"])),
            "pointer": lambda p: self.click(float(p["x"]), float(p["y"])),
            "hover": lambda p: self.hover(_opt_float(p.get("x")), _opt_float(p.get("y"))),
            "toggle_seat": lambda p: self.toggle_seat(int(p["row"]), int(p["col"])),
            "auto_select": lambda p: self.auto_select(),
            "navigate": lambda p: self.navigate(p["stage"]),
            "confirm_payment": lambda p: self.confirm_payment(),
            "reset": lambda p: self.reset(),
            "resize": lambda p: self.resize(float(p["width"]), float(p["height"])),
        }
        handler = handlers.get(event_kind)
        if handler is None:
            raise ValueError(f"unknown event kind: {event_kind!r}")
        try:
            return handler(payload or {})
        except BookingError as e:
            logger.info("%s rejected: %s", event_kind, e)
            self.notifier.message(str(e), e.level)
            return None
