from __future__ import annotations

import logging
from typing import Sequence

logger = logging.getLogger(__name__)

MESSAGE_LEVELS = ("success", "error", "warning", "info")
MESSAGE_SECONDS = 3.0


class Notifier:
    """
    Sink for user-facing side effects of the booking workflow.

    The kiosk UI layer subclasses this to draw toasts, the loading overlay,
    the step bar and themed backgrounds. The base class does nothing.
    """

    def message(self, text: str, level: str = "info", *, seconds: float = MESSAGE_SECONDS) -> None:
        pass

    def show_loading(self, text: str) -> None:
        pass

    def hide_loading(self) -> None:
        pass

    def steps_updated(self, indicators: Sequence) -> None:
        pass

    def stage_changed(self, stage: str) -> None:
        pass


class LoggingNotifier(Notifier):
    _LEVELS = {
        "success": logging.INFO,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }

    def message(self, text: str, level: str = "info", *, seconds: float = MESSAGE_SECONDS) -> None:
        logger.log(self._LEVELS.get(level, logging.INFO), "[%s] %s", level, text)

    def show_loading(self, text: str) -> None:
        logger.info("loading: %s", text)

    def hide_loading(self) -> None:
        logger.debug("loading done")

    def steps_updated(self, indicators: Sequence) -> None:
        logger.debug("steps: %s", " ".join(str(i) for i in indicators))

    def stage_changed(self, stage: str) -> None:
        logger.info("stage changed to %s", stage)
