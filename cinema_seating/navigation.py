from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator, Optional, Protocol

from .errors import BookingError, NavigationBlocked
from .notify import Notifier
from .seats import OrderSummary, SeatSelection, new_order_id

logger = logging.getLogger(__name__)

PAYMENT_DELAY_SECONDS = 2.0


class Stage(str, Enum):
    config = "config"
    movie = "movie"
    seat = "seat"
    payment = "payment"
    confirm = "confirm"


STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)


def stage_index(stage: Stage | str) -> int:
    return STAGE_ORDER.index(Stage(stage))


class FilmSource(Protocol):
    def get_selected_film(self) -> Optional[str]: ...


@dataclass(frozen=True)
class StepIndicator:
    stage: Stage
    active: bool
    completed: bool

    def __str__(self) -> str:
        mark = "*" if self.active else ("+" if self.completed else "-")
        return f"{mark}{self.stage.value}"


def step_indicators(current: Stage | str) -> list[StepIndicator]:
    ci = stage_index(current)
    return [StepIndicator(stage=s, active=i == ci, completed=i < ci) for i, s in enumerate(STAGE_ORDER)]


@dataclass
class WorkflowState:
    current_stage: Stage = Stage.config
    # Diagnostics only; navigation never pops it.
    history: list[Stage] = field(default_factory=lambda: [Stage.config])

    @property
    def completed_stages(self) -> list[Stage]:
        return list(STAGE_ORDER[: stage_index(self.current_stage)])


class NavigationStateMachine:
    """
    Guards movement through the booking stages and emits the UI side effects.

    Backward moves are always allowed, forward moves go one stage at a time
    and pass the stage guards. Nothing moves while a payment is in flight.
    """

    def __init__(
        self,
        selection: SeatSelection,
        film_source: FilmSource,
        notifier: Optional[Notifier] = None,
        *,
        payment_delay: float = PAYMENT_DELAY_SECONDS,
        on_enter: Optional[dict[Stage, Callable[[Stage], None]]] = None,
    ):
        self.selection = selection
        self.film_source = film_source
        self.notifier = notifier or Notifier()
        self.payment_delay = payment_delay
        self.on_enter: dict[Stage, Callable[[Stage], None]] = dict(on_enter or {})
        self.state = WorkflowState()
        self.last_order: Optional[OrderSummary] = None
        self._payment_pending = False

    @property
    def current_stage(self) -> Stage:
        return self.state.current_stage

    def is_payment_pending(self) -> bool:
        return self._payment_pending

    def check_transition(self, target: Stage | str) -> Stage:
        try:
            stage = Stage(target)
        except ValueError as e:
            raise NavigationBlocked(f"unknown stage: {target!r}") from e
        if self._payment_pending:
            raise NavigationBlocked("Payment is being processed, please wait", target=stage.value)

        ti = stage_index(stage)
        ci = stage_index(self.current_stage)
        if ti <= ci:
            return stage
        if ti != ci + 1:
            raise NavigationBlocked("Please complete the steps in order", target=stage.value)
        if stage is Stage.seat and not self.film_source.get_selected_film():
            raise NavigationBlocked("Please choose a film first", target=stage.value)
        if stage is Stage.payment and len(self.selection) == 0:
            raise NavigationBlocked("Please select at least one seat", target=stage.value)
        return stage

    def can_advance_to(self, target: Stage | str) -> bool:
        try:
            self.check_transition(target)
        except NavigationBlocked:
            return False
        return True

    def go_to(self, target: Stage | str) -> bool:
        try:
            stage = self.check_transition(target)
        except NavigationBlocked as e:
            logger.info("navigation from %s to %s blocked: %s", self.current_stage.value, target, e)
            self.notifier.message(str(e), "warning")
            return False
        self._enter(stage)
        return True

    def _enter(self, stage: Stage) -> None:
        previous = self.current_stage
        seat_i = stage_index(Stage.seat)
        if stage_index(stage) < seat_i <= stage_index(previous):
            # Leaving the seat stage backwards abandons the selection.
            self.selection.clear()

        self.state.current_stage = stage
        self.state.history.append(stage)
        logger.info(
            "stage %s -> %s (history: %s)",
            previous.value,
            stage.value,
            " -> ".join(s.value for s in self.state.history),
        )
        self.notifier.steps_updated(step_indicators(stage))
        self.notifier.stage_changed(stage.value)
        callback = self.on_enter.get(stage)
        if callback is not None:
            callback(stage)

    def reset(self) -> bool:
        if self._payment_pending:
            self.notifier.message("Payment is being processed, please wait", "warning")
            return False
        self.selection.clear()
        self.state = WorkflowState()
        self.last_order = None
        self.notifier.steps_updated(step_indicators(Stage.config))
        self.notifier.stage_changed(Stage.config.value)
        callback = self.on_enter.get(Stage.config)
        if callback is not None:
            callback(Stage.config)
        self.notifier.message("Reset, ready for a new order", "info")
        return True

    @contextmanager
    def _loading(self, text: str) -> Iterator[None]:
        self.notifier.show_loading(text)
        try:
            yield
        finally:
            self.notifier.hide_loading()

    async def confirm_payment(self) -> Optional[OrderSummary]:
        """
        Simulated payment round-trip.

        Repeated calls while a payment is pending are ignored and return
        ``None``. On success the selection is sold and the workflow moves to
        the confirm stage.
        """
        if self._payment_pending:
            logger.info("payment already in flight; ignoring confirmation")
            return None
        if self.current_stage is not Stage.payment:
            self.notifier.message("Nothing to pay for yet", "warning")
            return None

        self._payment_pending = True
        try:
            with self._loading("Processing payment..."):
                created_at = datetime.now()
                order_id = new_order_id(created_at.timestamp())
                await asyncio.sleep(self.payment_delay)
                order = self.selection.commit_order(order_id, created_at)
        except BookingError as e:
            logger.warning("payment failed: %s", e)
            self.notifier.message(str(e), e.level)
            return None
        finally:
            self._payment_pending = False

        self.last_order = order
        self._enter(Stage.confirm)
        self.notifier.message("Payment successful!", "success")
        return order
