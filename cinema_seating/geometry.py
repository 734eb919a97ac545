from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Collection, Iterator, Optional, Sequence

from shapely import STRtree
from shapely.geometry import MultiPoint, Point, Polygon, box

from .seats import RowSpec, SeatKey, resolve_row_lengths

# Fractions of the canvas.
SCREEN_BAND = 0.1
MARGIN = 0.04

# Fractions of the seat pitch.
SEAT_RADIUS_RATIO = 0.4
LABEL_GUTTER = 1.5

# Hit radius of the hovered seat, relative to the seat radius.
HOVER_HIT_RATIO = 1.2

# Share of all seats in the best viewing block.
CENTER_ZONE_SHARE = 0.2

# Angular span of the widest row; matches the pi/60-per-seat fan of a 20 seat row.
DEFAULT_CURVATURE = math.pi / 3


@dataclass(frozen=True)
class SeatPosition:
    x: float
    y: float
    angle_deg: float = 0.0


@dataclass(frozen=True)
class Layout:
    canvas_width: float
    canvas_height: float
    seat_radius: float = 0.0
    pitch: float = 0.0
    positions: dict[SeatKey, SeatPosition] = field(default_factory=dict)
    # Common centre of the row arcs and the angular step between seats; unset for straight rows.
    arc_center: Optional[tuple[float, float]] = None
    arc_step: float = 0.0

    def __len__(self) -> int:
        return len(self.positions)

    def __iter__(self) -> Iterator[SeatKey]:
        return iter(self.positions)

    def __contains__(self, key: object) -> bool:
        return key in self.positions

    def __getitem__(self, key: SeatKey) -> SeatPosition:
        return self.positions[key]

    def items(self):
        return self.positions.items()

    @property
    def screen_y(self) -> float:
        return self.canvas_height * SCREEN_BAND / 2.0

    def rows(self) -> list[int]:
        return sorted({r for (r, _c) in self.positions})

    def row_keys(self, row: int) -> list[SeatKey]:
        return sorted(k for k in self.positions if k[0] == row)

    def row_lengths(self) -> list[int]:
        return [len(self.row_keys(r)) for r in self.rows()]

    def label_position(self, row: int) -> Optional[tuple[float, float]]:
        """Where the row label goes: one pitch before the first seat, along the row's tangent."""
        keys = self.row_keys(row)
        if not keys:
            return None
        first = self[keys[0]]
        phi = math.radians(first.angle_deg)
        return (first.x - self.pitch * math.cos(phi), first.y + self.pitch * math.sin(phi))

    def bounds(self) -> Optional[tuple[float, float, float, float]]:
        """Bounding box of all seat circles as ``(minx, miny, maxx, maxy)``."""
        if not self.positions:
            return None
        minx, miny, maxx, maxy = MultiPoint([(p.x, p.y) for p in self.positions.values()]).bounds
        r = self.seat_radius
        return (minx - r, miny - r, maxx + r, maxy + r)


def _rad_to_deg(r: float) -> float:
    return r * 180.0 / math.pi


def _arc_step(row_lengths: list[int], curvature: float) -> float:
    span = min(curvature, math.pi)
    if span <= 0:
        return 0.0
    return span / max(max(row_lengths) - 1, 1)


def _unit_positions(row_lengths: list[int], step: float) -> dict[SeatKey, tuple[float, float, float]]:
    # Positions for a seat pitch of 1, relative to the arc centre.
    out: dict[SeatKey, tuple[float, float, float]] = {}
    if step <= 0:
        for r, n in enumerate(row_lengths, start=1):
            for c in range(1, n + 1):
                out[(r, c)] = (c - (n + 1) / 2.0, float(r - 1), 0.0)
        return out

    # Front row chord between neighbours is exactly one pitch.
    front_radius = 1.0 / (2.0 * math.sin(step / 2.0))
    for r, n in enumerate(row_lengths, start=1):
        radius = front_radius + (r - 1)
        for c in range(1, n + 1):
            phi = (c - (n + 1) / 2.0) * step
            out[(r, c)] = (radius * math.sin(phi), radius * math.cos(phi), phi)
    return out


def compute_layout(
    row_count: int,
    cols_per_row: RowSpec,
    canvas_width: float,
    canvas_height: float,
    curvature: float = DEFAULT_CURVATURE,
) -> Layout:
    """
    Place every seat of the hall on the canvas.

    Rows are concentric arcs around a centre above the screen, the front row
    on the smallest radius. Seats in a row share one angular step and are
    symmetric about ``x = canvas_width / 2``. ``curvature`` is the angular
    span in radians of the widest row; zero or less gives straight rows.

    The unit shape is scaled to the largest pitch that fits below the screen
    band with a label gutter on both sides, so nothing depends on absolute
    pixel sizes. Malformed input gives an empty layout.
    """
    w = float(canvas_width)
    h = float(canvas_height)
    lengths = resolve_row_lengths(row_count, cols_per_row)
    if not lengths or w <= 0 or h <= 0:
        return Layout(canvas_width=w, canvas_height=h)

    step = _arc_step(lengths, float(curvature))
    unit = _unit_positions(lengths, step)
    half_width = max(abs(ux) for (ux, _uy, _a) in unit.values())
    min_y = min(uy for (_ux, uy, _a) in unit.values())
    max_y = max(uy for (_ux, uy, _a) in unit.values())

    width_u = 2.0 * (half_width + SEAT_RADIUS_RATIO + LABEL_GUTTER)
    height_u = (max_y - min_y) + 2.0 * SEAT_RADIUS_RATIO
    avail_w = w * (1.0 - 2.0 * MARGIN)
    avail_h = h * (1.0 - SCREEN_BAND - MARGIN)
    pitch = min(avail_w / width_u, avail_h / height_u)

    top = h * SCREEN_BAND
    cx = w / 2.0
    positions = {
        key: SeatPosition(
            x=cx + ux * pitch,
            y=top + (uy - min_y + SEAT_RADIUS_RATIO) * pitch,
            angle_deg=_rad_to_deg(phi),
        )
        for key, (ux, uy, phi) in unit.items()
    }
    return Layout(
        canvas_width=w,
        canvas_height=h,
        seat_radius=SEAT_RADIUS_RATIO * pitch,
        pitch=pitch,
        positions=positions,
        arc_center=(cx, top + (SEAT_RADIUS_RATIO - min_y) * pitch) if step > 0 else None,
        arc_step=step,
    )


def hit_test(layout: Layout, x: float, y: float, hovered: Optional[SeatKey] = None) -> Optional[SeatKey]:
    """
    Return the seat under the pointer, or ``None`` when the pointer misses every seat.

    The ``hovered`` seat is hit within ``HOVER_HIT_RATIO`` times the seat radius.
    """
    pointer = Point(x, y)
    best: Optional[tuple[float, SeatKey]] = None
    for key, pos in layout.items():
        d = pointer.distance(Point(pos.x, pos.y))
        limit = layout.seat_radius * (HOVER_HIT_RATIO if key == hovered else 1.0)
        if d > limit:
            continue
        if best is None or (d, key) < best:
            best = (d, key)
    return None if best is None else best[1]


def overlapping_pairs(layout: Layout) -> list[tuple[SeatKey, SeatKey]]:
    keys = list(layout.positions)
    if len(keys) < 2:
        return []
    centers = [Point(layout[k].x, layout[k].y) for k in keys]
    circles = [c.buffer(layout.seat_radius) for c in centers]
    tree = STRtree(circles)
    left, right = tree.query(circles, predicate="intersects")
    out: list[tuple[SeatKey, SeatKey]] = []
    limit = 2.0 * layout.seat_radius
    for i, j in zip(left.tolist(), right.tolist()):
        if i >= j:
            continue
        if centers[i].distance(centers[j]) < limit - 1e-9:
            out.append((keys[i], keys[j]))
    return out


def center_zone(row_lengths: Sequence[int]) -> set[SeatKey]:
    """
    Seats of the best viewing block: about a fifth of the hall, shaped like
    the hall and centred on it.

    Columns are counted against the widest row, so a shorter row contributes
    the seats that sit in the middle of the hall rather than its own first
    columns. Halls too small for a one-seat block get an empty zone.
    """
    total = sum(row_lengths)
    target = int(total * CENTER_ZONE_SHARE)
    if target < 1:
        return set()
    widest = max(row_lengths)
    n_cols = min(widest, math.ceil(widest * math.sqrt(target / total)))
    n_rows = min(len(row_lengths), math.ceil(target / n_cols))
    first_row = (len(row_lengths) - n_rows) // 2 + 1

    # Doubled column positions, aligned on the widest row.
    lo = 2 * ((widest - n_cols) // 2 + 1)
    hi = lo + 2 * (n_cols - 1)
    zone: set[SeatKey] = set()
    for r in range(first_row, first_row + n_rows):
        n = row_lengths[r - 1]
        for c in range(1, n + 1):
            if lo <= 2 * c + (widest - n) <= hi:
                zone.add((r, c))
    return zone


def center_zone_outline(layout: Layout, zone: Collection[SeatKey]) -> Optional[Polygon]:
    """
    Outline around ``zone``: a rectangle for straight rows, an annular sector
    for arcs. Edges run half a pitch (or half an angular step) outside the
    outermost zone seats.
    """
    keys = [k for k in zone if k in layout]
    if not keys:
        return None
    pad = layout.pitch / 2.0
    if layout.arc_center is None:
        xs = [layout[k].x for k in keys]
        ys = [layout[k].y for k in keys]
        return box(min(xs) - pad, min(ys) - pad, max(xs) + pad, max(ys) + pad)

    cx, cy = layout.arc_center
    radii = [math.hypot(layout[k].x - cx, layout[k].y - cy) for k in keys]
    angles = [math.radians(layout[k].angle_deg) for k in keys]
    inner = min(radii) - pad
    outer = max(radii) + pad
    a0 = min(angles) - layout.arc_step / 2.0
    a1 = max(angles) + layout.arc_step / 2.0
    n = max(8, math.ceil(_rad_to_deg(a1 - a0)))
    ts = [a0 + (a1 - a0) * i / n for i in range(n + 1)]
    ring = [(cx + inner * math.sin(t), cy + inner * math.cos(t)) for t in ts]
    ring += [(cx + outer * math.sin(t), cy + outer * math.cos(t)) for t in reversed(ts)]
    return Polygon(ring)
