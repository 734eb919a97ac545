from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HallSnapshot(SQLModel, table=True):
    """A saved seat status map, restorable into a kiosk with the same hall."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)

    rows: int
    seats_total: int
    seats_sold: int = 0

    # JSON object: {"<row>-<col>": "<status>", ...}
    statuses_json: str

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def statuses(self) -> dict[str, str]:
        return json.loads(self.statuses_json)
