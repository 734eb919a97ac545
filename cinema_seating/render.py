from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence
from xml.sax.saxutils import escape

from .geometry import HOVER_HIT_RATIO, MARGIN, SCREEN_BAND, Layout, center_zone, center_zone_outline
from .seats import SeatGrid, SeatKey, SeatStatus

# Fixed status colours; not configurable per call.
STATUS_COLORS: dict[SeatStatus, str] = {
    SeatStatus.available: "green",
    SeatStatus.selected: "yellow",
    SeatStatus.sold: "red",
}

ASCII_MARKS: dict[SeatStatus, str] = {
    SeatStatus.available: ".",
    SeatStatus.selected: "*",
    SeatStatus.sold: "X",
}

SCREEN_CAPTION = "SCREEN"

AISLE_COLOR = "grey"
AISLE_DASH = (8.0, 4.0)
ZONE_COLOR = "orange"
ZONE_DASH = (10.0, 5.0)
HOVER_COLOR = "deepskyblue"


class Surface(Protocol):
    def clear(self, width: float, height: float) -> None: ...

    def fill_circle(self, x: float, y: float, radius: float, color: str) -> None: ...

    def draw_text(self, x: float, y: float, text: str) -> None: ...

    def stroke_path(
        self,
        points: Sequence[tuple[float, float]],
        color: str,
        *,
        dash: Optional[tuple[float, float]] = None,
        closed: bool = False,
    ) -> None: ...


class SvgSurface:
    """
    Drawing surface that accumulates SVG elements.

    Output is plain text with fixed float formatting, so two renders of the
    same input are byte-identical.
    """

    def __init__(self, font_size: float = 10.0):
        self.width = 0.0
        self.height = 0.0
        self.font_size = font_size
        self._elements: list[str] = []

    def clear(self, width: float, height: float) -> None:
        self.width = float(width)
        self.height = float(height)
        self._elements = []

    def fill_circle(self, x: float, y: float, radius: float, color: str) -> None:
        self._elements.append(f'<circle cx="{x:.2f}" cy="{y:.2f}" r="{radius:.2f}" fill="{escape(color)}"/>')

    def draw_text(self, x: float, y: float, text: str) -> None:
        self._elements.append(
            f'<text x="{x:.2f}" y="{y:.2f}" font-size="{self.font_size:.1f}" '
            f'text-anchor="middle" dominant-baseline="middle">{escape(str(text))}</text>'
        )

    def stroke_path(
        self,
        points: Sequence[tuple[float, float]],
        color: str,
        *,
        dash: Optional[tuple[float, float]] = None,
        closed: bool = False,
    ) -> None:
        tag = "polygon" if closed else "polyline"
        coords = " ".join(f"{x:.2f},{y:.2f}" for x, y in points)
        dash_attr = f' stroke-dasharray="{dash[0]:g},{dash[1]:g}"' if dash else ""
        self._elements.append(f'<{tag} points="{coords}" fill="none" stroke="{escape(color)}"{dash_attr}/>')

    def to_svg(self) -> str:
        head = (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{self.width:.0f}" height="{self.height:.0f}" '
            f'viewBox="0 0 {self.width:.2f} {self.height:.2f}">'
        )
        return "\n".join([head, *self._elements, "</svg>"]) + "\n"


def render_seat_map(
    surface: Surface,
    layout: Layout,
    statuses: Mapping[SeatKey, SeatStatus | str],
    labels: Optional[Mapping[int, str]] = None,
    *,
    hovered: Optional[SeatKey] = None,
) -> None:
    """
    Paint ``layout`` on ``surface``: screen caption, dashed centre aisle, row
    labels, one filled circle per seat coloured by status and its column
    number, and the dashed outline of the best viewing block on top.

    The ``hovered`` seat gets a ring at its enlarged hit radius. The surface
    is cleared first, so re-rendering never accumulates.
    """
    surface.clear(layout.canvas_width, layout.canvas_height)
    if not layout.positions:
        return

    w = layout.canvas_width
    h = layout.canvas_height
    surface.draw_text(w / 2.0, layout.screen_y, SCREEN_CAPTION)
    surface.stroke_path([(w / 2.0, h * SCREEN_BAND), (w / 2.0, h * (1.0 - MARGIN))], AISLE_COLOR, dash=AISLE_DASH)

    for row in layout.rows():
        label = labels.get(row, str(row)) if labels else str(row)
        lx, ly = layout.label_position(row)
        surface.draw_text(lx, ly, label)

        for key in layout.row_keys(row):
            pos = layout[key]
            if key == hovered:
                surface.fill_circle(pos.x, pos.y, layout.seat_radius * HOVER_HIT_RATIO, HOVER_COLOR)
            status = SeatStatus(statuses.get(key, SeatStatus.available))
            surface.fill_circle(pos.x, pos.y, layout.seat_radius, STATUS_COLORS[status])
            surface.draw_text(pos.x, pos.y, str(key[1]))

    outline = center_zone_outline(layout, center_zone(layout.row_lengths()))
    if outline is not None:
        surface.stroke_path(list(outline.exterior.coords)[:-1], ZONE_COLOR, dash=ZONE_DASH, closed=True)


def render_svg(
    layout: Layout,
    statuses: Mapping[SeatKey, SeatStatus | str],
    labels: Optional[Mapping[int, str]] = None,
    *,
    hovered: Optional[SeatKey] = None,
) -> str:
    font_size = max(6.0, round(layout.seat_radius * 0.9, 1)) if layout.positions else 10.0
    surface = SvgSurface(font_size=font_size)
    render_seat_map(surface, layout, statuses, labels, hovered=hovered)
    return surface.to_svg()


def _cell(text: Optional[str], width: int) -> str:
    if not text:
        return ".".center(width)
    t = str(text)
    if len(t) > width:
        t = t[: max(0, width - 1)] + "…"
    return t.center(width)


def render_ascii(grid: SeatGrid, *, cell_width: int = 3) -> str:
    cell_width = max(2, int(cell_width))
    if not grid.row_count:
        return "(empty hall)"

    widest = max(grid.row_lengths)
    label_width = len(f"R{grid.row_count}") + 2
    header = " " * label_width + "".join(str(c).center(cell_width) for c in range(1, widest + 1))
    lines = [SCREEN_CAPTION.center(len(header)), header]
    for r in range(1, grid.row_count + 1):
        cells = "".join(_cell(ASCII_MARKS[s.status], cell_width) for s in grid.row_seats(r))
        lines.append(f"R{r}".ljust(label_width) + cells.center(widest * cell_width).rstrip())
    return "\n".join(lines)
