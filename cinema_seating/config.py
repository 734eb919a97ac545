from __future__ import annotations

import math
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HallConfig(BaseModel):
    """Externally supplied hall parameters; all counts must be positive."""

    rows: int = Field(gt=0)
    seats_per_row: Union[int, list[int]] = 20
    ticket_count: int = Field(gt=0, default=2)
    canvas_width: float = Field(gt=0, default=1200.0)
    canvas_height: float = Field(gt=0, default=800.0)

    @field_validator("seats_per_row")
    @classmethod
    def _positive_seats(cls, v: Union[int, list[int]]) -> Union[int, list[int]]:
        counts = v if isinstance(v, list) else [v]
        if not counts or any(n <= 0 for n in counts):
            raise ValueError("seats per row must be positive")
        return v

    @model_validator(mode="after")
    def _one_count_per_row(self) -> "HallConfig":
        if isinstance(self.seats_per_row, list) and len(self.seats_per_row) != self.rows:
            raise ValueError(f"expected {self.rows} per-row seat counts, got {len(self.seats_per_row)}")
        return self


# Hall sizes offered on the kiosk's configuration screen.
HALL_PRESETS: dict[str, tuple[int, int]] = {
    "small": (8, 12),
    "medium": (10, 20),
    "large": (12, 25),
}


class KioskSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CINEMA_KIOSK_", env_file=".env", extra="ignore")

    hall_rows: int = 10
    seats_per_row: int = 20
    ticket_count: int = 2
    canvas_width: float = 1200.0
    canvas_height: float = 800.0
    curvature: float = math.pi / 3
    seat_price: float = 45.0
    payment_delay: float = 2.0
    log_level: str = "INFO"

    data_dir: Path = Path("data")
    db_url: Optional[str] = None

    def hall_config(self) -> HallConfig:
        return HallConfig(
            rows=self.hall_rows,
            seats_per_row=self.seats_per_row,
            ticket_count=self.ticket_count,
            canvas_width=self.canvas_width,
            canvas_height=self.canvas_height,
        )


def hall_preset(name: str, **overrides) -> HallConfig:
    try:
        rows, cols = HALL_PRESETS[name]
    except KeyError as e:
        raise ValueError(f"unknown hall preset {name!r}; choose from {sorted(HALL_PRESETS)}") from e
    return HallConfig(rows=rows, seats_per_row=cols, **overrides)
