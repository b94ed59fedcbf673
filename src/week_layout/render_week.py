from __future__ import annotations

import datetime as dt
from importlib import metadata
from pathlib import Path
from typing import Iterable

import matplotlib

matplotlib.use("Agg")  # ensure headless, deterministic output
import matplotlib.path as mpath
import matplotlib.pyplot as plt
from matplotlib.patches import FancyBboxPatch, PathPatch, Rectangle

from .connectors import build_all_connectors
from .labels import display_name, format_date_range
from .layout_models import Anchor, Connector, Item, PlacedItem, RowAssignment, WeekWindow
from .render_rows import to_week_rows

# Layout knobs, in virtual pixels.
COLUMN_WIDTH = 160.0
ROW_HEIGHT = 60.0
CELL_PAD = 5.0  # gap between a bar and its row/column borders
LEFT_GUTTER = 40.0  # room for brackets left of Monday
CAP_RADIUS = 10.0
PX_PER_INCH = 100.0
FONT_SCALE = 1.0
TITLE_FONT = 14 * FONT_SCALE
LABEL_FONT = 8 * FONT_SCALE
DATE_FONT = 6.5 * FONT_SCALE
FOOTER_FONT = 7 * FONT_SCALE
HEADER_FONT = 9 * FONT_SCALE

BAR_COLORS = {
    "activity": ("#d1fae5", "#6ee7b7"),
    "parent": ("#ddd6fe", "#a78bfa"),
    "task": ("#bae6fd", "#38bdf8"),
}
OVERDUE_COLORS = ("#fecaca", "#f87171")
STROKE = "#00a513"
STROKE_W = 2.0
TODAY_COLOR = "#eff6ff"


def render_week(
    items: list[Item],
    assignment: RowAssignment,
    window: WeekWindow,
    out_path: str,
    title: str,
    today: dt.date | None = None,
) -> list[Connector]:
    """
    Render one week of the calendar as a static SVG at `out_path`.

    - Bars are split at the allocated end into on-time and overdue parts.
    - Bars crossing the window edge get square caps on that side.
    - Group brackets are built from the anchors measured here and returned.
    """

    if not items:
        raise ValueError("items must not be empty")

    rows = to_week_rows(items, assignment, window)
    n_rows = max(1, len(rows))
    area_width = COLUMN_WIDTH * len(window.days)
    area_height = ROW_HEIGHT * n_rows

    fig_width = (area_width + LEFT_GUTTER) / PX_PER_INCH
    fig_height = (area_height + 2 * ROW_HEIGHT) / PX_PER_INCH
    fig = plt.figure(figsize=(fig_width, fig_height))
    ax = fig.add_axes([0.02, 0.06, 0.96, 0.82])

    ax.set_xlim(-LEFT_GUTTER, area_width)
    ax.set_ylim(area_height, 0)
    ax.axis("off")

    today = today or dt.date.today()
    _draw_day_columns(ax, window, area_height, today)

    fig.suptitle(title, x=0.5, fontsize=TITLE_FONT, y=0.985)
    footer = f"Week layout v{_tool_version()}  {window.days[0]:%d %b %Y} - {window.days[-1]:%d %b %Y}"
    fig.text(0.99, 0.01, footer, ha="right", va="bottom", fontsize=FOOTER_FONT, alpha=0.8)

    anchors: dict[str, Anchor] = {}
    for row in rows:
        for placed in row.items:
            anchors[placed.item.id] = _draw_bar(ax, placed)

    connectors = build_all_connectors(
        items,
        assignment,
        anchors,
        window,
        row_height=ROW_HEIGHT,
        area_width=area_width,
    )
    for connector in connectors:
        _draw_connector(ax, connector)

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, format="svg", bbox_inches="tight")
    plt.close(fig)
    return connectors


def measure_anchor(placed: PlacedItem) -> Anchor:
    """Anchor of a placed item in renderer coordinates (left edge, row middle, width)."""

    geometry = placed.geometry
    cell_x = geometry.column_start * COLUMN_WIDTH + CELL_PAD
    cell_width = geometry.column_span * COLUMN_WIDTH - 2 * CELL_PAD
    return Anchor(
        x=cell_x + geometry.left_fraction * cell_width,
        y=placed.row * ROW_HEIGHT + ROW_HEIGHT / 2,
        width=geometry.width_fraction * cell_width,
    )


def _draw_day_columns(ax: plt.Axes, window: WeekWindow, area_height: float, today: dt.date) -> None:
    for col, day in enumerate(window.days):
        x0 = col * COLUMN_WIDTH
        if day == today:
            ax.add_patch(Rectangle((x0, 0), COLUMN_WIDTH, area_height, facecolor=TODAY_COLOR, edgecolor="none", zorder=0))
        ax.plot([x0, x0], [0, area_height], color="#e5e7eb", linewidth=0.8, zorder=0)
        ax.text(
            x0 + COLUMN_WIDTH / 2,
            -ROW_HEIGHT * 0.25,
            f"{day:%a} {day.day}",
            ha="center",
            va="bottom",
            fontsize=HEADER_FONT,
            fontweight="bold" if day == today else "normal",
        )


def _draw_bar(ax: plt.Axes, placed: PlacedItem) -> Anchor:
    anchor = measure_anchor(placed)
    geometry = placed.geometry
    item = placed.item
    height = ROW_HEIGHT - 2 * CELL_PAD
    y0 = anchor.y - height / 2

    if item.is_activity:
        face, edge = BAR_COLORS["activity"]
    elif placed.is_parent:
        face, edge = BAR_COLORS["parent"]
    else:
        face, edge = BAR_COLORS["task"]

    total = geometry.width_fraction or 1.0
    normal_width = anchor.width * geometry.normal_fraction / total
    overdue_width = anchor.width - normal_width

    if geometry.normal_fraction > 0:
        round_cap = not geometry.starts_before_window and not (geometry.overdue_fraction > 0 or geometry.continues_past_window)
        ax.add_patch(_bar_patch(anchor.x, y0, normal_width, height, face, edge, round_cap))
    if geometry.overdue_fraction > 0:
        round_cap = not geometry.continues_past_window and not (geometry.normal_fraction > 0 or geometry.starts_before_window)
        ax.add_patch(_bar_patch(anchor.x + normal_width, y0, overdue_width, height, *OVERDUE_COLORS, round_cap))

    text_x = anchor.x + CELL_PAD * 2
    ax.text(text_x, anchor.y - 4, display_name(item), ha="left", va="center", fontsize=LABEL_FONT, zorder=4, clip_on=True)
    ax.text(
        text_x,
        anchor.y + 10,
        format_date_range(item.start, item.end),
        ha="left",
        va="center",
        fontsize=DATE_FONT,
        color="#4b5563",
        zorder=4,
        clip_on=True,
    )
    return anchor


def _bar_patch(x: float, y: float, width: float, height: float, face: str, edge: str, round_cap: bool):
    if round_cap and width > 2 * CAP_RADIUS:
        return FancyBboxPatch(
            (x, y),
            width,
            height,
            boxstyle=f"round,pad=0,rounding_size={CAP_RADIUS}",
            facecolor=face,
            edgecolor=edge,
            linewidth=0.8,
            zorder=2,
        )
    return Rectangle((x, y), width, height, facecolor=face, edgecolor=edge, linewidth=0.8, zorder=2)


def _draw_connector(ax: plt.Axes, connector: Connector) -> None:
    ax.add_patch(PathPatch(_connector_path(connector), facecolor="none", edgecolor=STROKE, linewidth=STROKE_W, zorder=3))
    for arm in connector.arms:
        ax.plot(
            [arm.x1, arm.x2],
            [arm.y1, arm.y2],
            color=STROKE,
            linewidth=STROKE_W,
            linestyle=(0, (4, 4)) if arm.dashed else "-",
            alpha=0.7 if arm.dashed else 1.0,
            zorder=3,
        )


def _connector_path(connector: Connector) -> mpath.Path:
    vertices: list[tuple[float, float]] = []
    codes: list[int] = []
    for command in connector.path:
        points = _pairs(command.coords)
        if command.op == "M":
            codes.append(mpath.Path.MOVETO)
        elif command.op == "L":
            codes.append(mpath.Path.LINETO)
        else:
            codes.extend([mpath.Path.CURVE3] * 2)
        vertices.extend(points)
    return mpath.Path(vertices, codes)


def _pairs(coords: Iterable[float]) -> list[tuple[float, float]]:
    values = list(coords)
    return [(values[i], values[i + 1]) for i in range(0, len(values), 2)]


def _tool_version() -> str:
    try:
        return metadata.version("week_layout")
    except Exception:
        return "0.0.0"
