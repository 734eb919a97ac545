from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import ValidationError
from sqlmodel import Session, delete, select

from cinema_seating.config import HallConfig, KioskSettings, hall_preset
from cinema_seating.errors import BookingError, NavigationBlocked, PersistenceError, SeatNotFound
from cinema_seating.kiosk import Kiosk
from cinema_seating.navigation import Stage
from cinema_seating.seats import SeatStatus, seat_id
from cinema_seating.storage import grid_from_record

from .db import get_session, init_db
from .models import HallSnapshot
from .schemas import (
    CanvasSize,
    FilmChoice,
    HallConfigure,
    LayoutOut,
    NavigateRequest,
    Pointer,
    SeatPositionOut,
    SnapshotOut,
    TicketCount,
)

settings = KioskSettings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Cinema Kiosk API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Single local client: one kiosk session per process.
kiosk = Kiosk(settings)


@app.on_event("startup")
def _startup() -> None:
    init_db()


def _session() -> Session:
    return get_session()


def _http_error(e: BookingError) -> HTTPException:
    if isinstance(e, SeatNotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, PersistenceError):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=409, detail=str(e))


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.get("/kiosk/state")
async def get_state() -> dict:
    return kiosk.state()


@app.post("/kiosk/configure")
async def configure(payload: HallConfigure) -> dict:
    overrides = {
        "ticket_count": payload.ticket_count or kiosk.selection.ticket_count,
        "canvas_width": payload.canvas_width or kiosk.canvas_width,
        "canvas_height": payload.canvas_height or kiosk.canvas_height,
    }
    try:
        if payload.preset:
            hall = hall_preset(payload.preset, **overrides)
        else:
            if payload.rows is None or payload.seats_per_row is None:
                raise HTTPException(status_code=400, detail="preset or rows and seats_per_row are required")
            hall = HallConfig(rows=payload.rows, seats_per_row=payload.seats_per_row, **overrides)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    try:
        kiosk.configure(
            hall.rows,
            hall.seats_per_row,
            ticket_count=hall.ticket_count,
            canvas_width=hall.canvas_width,
            canvas_height=hall.canvas_height,
        )
    except BookingError as e:
        raise _http_error(e) from e
    return kiosk.state()


@app.post("/kiosk/tickets")
async def set_tickets(payload: TicketCount) -> dict:
    try:
        kiosk.set_ticket_count(payload.count)
    except BookingError as e:
        raise _http_error(e) from e
    return kiosk.state()


@app.post("/kiosk/film")
async def choose_film(payload: FilmChoice) -> dict:
    try:
        kiosk.choose_film(payload.film_id)
    except BookingError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return kiosk.state()


@app.post("/kiosk/navigate")
async def navigate(payload: NavigateRequest) -> dict:
    try:
        kiosk.navigation.check_transition(payload.stage)
    except NavigationBlocked as e:
        raise _http_error(e) from e
    kiosk.navigate(payload.stage)
    return kiosk.state()


@app.get("/kiosk/layout", response_model=LayoutOut)
async def get_layout() -> LayoutOut:
    layout = kiosk.layout
    statuses = kiosk.grid.statuses()
    seats = [
        SeatPositionOut(
            row=r,
            col=c,
            id=seat_id(r, c),
            x=pos.x,
            y=pos.y,
            angle_deg=pos.angle_deg,
            status=statuses.get((r, c), SeatStatus.available).value,
        )
        for (r, c), pos in sorted(layout.items())
    ]
    return LayoutOut(
        canvas_width=layout.canvas_width,
        canvas_height=layout.canvas_height,
        seat_radius=layout.seat_radius,
        seats=seats,
    )


@app.get("/kiosk/seatmap.svg")
async def seatmap_svg() -> Response:
    return Response(content=kiosk.svg, media_type="image/svg+xml")


@app.post("/kiosk/resize")
async def resize(payload: CanvasSize) -> dict:
    layout = kiosk.resize(payload.width, payload.height)
    return {"canvas_width": layout.canvas_width, "canvas_height": layout.canvas_height, "seat_radius": layout.seat_radius}


@app.post("/kiosk/seats/{row}/{col}/toggle")
async def toggle_seat(row: int, col: int) -> dict:
    try:
        seat = kiosk.toggle_seat(row, col)
    except BookingError as e:
        raise _http_error(e) from e
    return {"seat": seat.id, "status": seat.status.value, "selected": kiosk.selection.seat_ids}


@app.post("/kiosk/pointer")
async def pointer(payload: Pointer) -> dict:
    try:
        seat = kiosk.click(payload.x, payload.y)
    except BookingError as e:
        raise _http_error(e) from e
    return {
        "seat": seat.id if seat else None,
        "status": seat.status.value if seat else None,
        "selected": kiosk.selection.seat_ids,
    }


@app.post("/kiosk/hover")
async def hover(payload: Pointer) -> dict:
    key = kiosk.hover(payload.x, payload.y)
    return {"seat": seat_id(*key) if key else None}


@app.post("/kiosk/auto-select")
async def auto_select() -> dict:
    try:
        seats = kiosk.auto_select()
    except BookingError as e:
        raise _http_error(e) from e
    return {"selected": [s.id for s in seats], "total_price": kiosk.selection.total_price}


@app.post("/kiosk/payment")
async def confirm_payment(wait: bool = False) -> dict:
    nav = kiosk.navigation
    if not nav.is_payment_pending() and nav.current_stage is not Stage.payment:
        raise HTTPException(status_code=409, detail="nothing to pay for yet")
    task = kiosk.confirm_payment()
    if task is None:
        return {"accepted": False, "pending": True}
    if not wait:
        return {"accepted": True, "pending": True}
    order = await task
    if order is None:
        raise HTTPException(status_code=409, detail="payment failed")
    return {"accepted": True, "pending": False, "order": order.to_dict()}


@app.post("/kiosk/reset")
async def reset() -> dict:
    if not kiosk.reset():
        raise HTTPException(status_code=409, detail="payment is being processed")
    return kiosk.state()


@app.get("/snapshots")
def list_snapshots(session: Session = Depends(_session)) -> list[dict]:
    snaps = session.exec(select(HallSnapshot).order_by(HallSnapshot.updated_at.desc())).all()
    return [SnapshotOut.model_validate(s, from_attributes=True).model_dump() for s in snaps]


def _find_snapshot(session: Session, name: str) -> Optional[HallSnapshot]:
    return session.exec(select(HallSnapshot).where(HallSnapshot.name == name)).first()


def _store_snapshot(session: Session, name: str, rows: int, seats_total: int, seats_sold: int, record: dict) -> tuple[HallSnapshot, bool]:
    existing = _find_snapshot(session, name)
    snap = existing or HallSnapshot(name=name, rows=0, seats_total=0, statuses_json="{}")
    snap.rows = rows
    snap.seats_total = seats_total
    snap.seats_sold = seats_sold
    snap.statuses_json = json.dumps(record, sort_keys=True)
    snap.updated_at = datetime.now(timezone.utc)
    session.add(snap)
    session.commit()
    session.refresh(snap)
    return snap, existing is None


@app.put("/snapshots/{name}")
async def save_snapshot(name: str, session: Session = Depends(_session)) -> dict:
    # Read the kiosk on the loop thread; only the database work leaves it.
    record = kiosk.snapshot()
    snap, created = await asyncio.to_thread(
        _store_snapshot,
        session,
        name,
        kiosk.grid.row_count,
        len(kiosk.grid),
        kiosk.grid.count(SeatStatus.sold),
        record,
    )
    logger.info("saved snapshot %s (%d sold)", name, snap.seats_sold)
    return {"id": snap.id, "name": snap.name, "created": created}


@app.post("/snapshots/{name}/restore")
async def restore_snapshot(name: str, session: Session = Depends(_session)) -> dict:
    snap = await asyncio.to_thread(_find_snapshot, session, name)
    if not snap:
        raise HTTPException(status_code=404, detail="snapshot not found")
    record = snap.statuses()
    try:
        saved_lengths = grid_from_record(record).row_lengths
    except PersistenceError as e:
        raise _http_error(e) from e
    if saved_lengths != kiosk.grid.row_lengths:
        raise HTTPException(status_code=409, detail="snapshot was taken for a different hall")
    try:
        sold = kiosk.restore(record)
    except BookingError as e:
        raise _http_error(e) from e
    return {"restored": True, "seats_sold": sold}


@app.delete("/snapshots/{name}")
def delete_snapshot(name: str, session: Session = Depends(_session)) -> dict:
    session.exec(delete(HallSnapshot).where(HallSnapshot.name == name))
    session.commit()
    return {"deleted": True}
