"""
1:1 scale PDF print of an unrolled template.

The page is sized to the template plus fixed margins, so printing at 100%
gives a sheet that can be cut out and wrapped around the pipe. The figure
is exactly the page size in inches and the axes span the whole figure with
millimetre limits, so one model millimetre is one printed millimetre.
Page Y grows downward (the y axis is inverted); model Y grows upward from
the bottom edge of the sheet.
"""

import io
import logging
from dataclasses import dataclass
from datetime import datetime

import numpy as np
from matplotlib.collections import LineCollection
from matplotlib.figure import Figure
from matplotlib.font_manager import FontProperties
from matplotlib.textpath import TextPath

from notch.contour import compute_unrolled_contour, contour_bounds, EXPORT_STEPS
from notch.params import check_kind, format_number

logger = logging.getLogger(__name__)


MM_PER_INCH = 25.4
MM_PER_PT = MM_PER_INCH / 72.0

MARGIN_LEFT = 20.0
MARGIN_RIGHT = 20.0
MARGIN_TOP = 30.0
MARGIN_BOTTOM = 20.0

LINE_WIDTH_MM = 0.3
DIMENSION_OFFSET = 5.0
LINE_SPACING = 1.25

META_FONT_MAX = 8.0
META_FONT_MIN = 3.0
META_FONT_STEP = 0.5
# Room kept free above the sheet bottom for the degree ruler and its labels
RULER_CLEARANCE = 8.0
META_GAP = 2.0

TITLES = {
    "pipe": "Branch Template (D2)",
    "hole": "Hole Template (D1)",
}


@dataclass(frozen=True)
class PageLayout:
    """Page geometry for one template, all values in mm."""
    page_width: float
    page_height: float
    content_width: float
    content_height: float
    min_x: float
    orientation: str
    margin_left: float = MARGIN_LEFT
    margin_bottom: float = MARGIN_BOTTOM

    def to_page(self, x, y):
        """Model (x up-right) to page (x right, y down) coordinates."""
        page_x = self.margin_left - self.min_x + np.asarray(x, dtype=float)
        page_y = (self.page_height - self.margin_bottom) - np.asarray(y, dtype=float)
        return page_x, page_y


def compute_page_layout(contour):
    """
    Page size for a normalized contour.

    Width is the contour's x extent; height runs from the sheet bottom
    (model y = 0) to the highest contour point.
    """
    bounds = contour_bounds(contour)
    content_width = bounds.width
    content_height = bounds.max_y

    page_w = content_width + MARGIN_LEFT + MARGIN_RIGHT
    page_h = content_height + MARGIN_TOP + MARGIN_BOTTOM
    return PageLayout(
        page_width=page_w,
        page_height=page_h,
        content_width=content_width,
        content_height=content_height,
        min_x=bounds.min_x,
        orientation="landscape" if page_w > page_h else "portrait",
    )


def _text_size_mm(lines, fontsize):
    """(width, height) of a text block in mm at fontsize points."""
    prop = FontProperties(size=fontsize)
    width_pt = max(TextPath((0, 0), line, prop=prop).get_extents().width
                   for line in lines)
    height_mm = len(lines) * fontsize * MM_PER_PT * LINE_SPACING
    return width_pt * MM_PER_PT, height_mm


def _metadata_lines(params, kind, layout, created):
    return [
        TITLES[kind],
        f"W x H: {layout.content_width:.1f} x {layout.content_height:.1f} mm",
        f"D1 = {format_number(params.d1)} mm, D2 = {format_number(params.d2)} mm, "
        f"T = {format_number(params.thickness)} mm",
        f"Angle = {format_number(params.angle)}°, Offset = {format_number(params.offset)} mm",
        f"Welding gap = {format_number(params.welding_gap)} mm, "
        f"Seam rotation = {format_number(params.start_angle)}°",
        f"Intersection by {'OD' if params.calc_by_id else 'ID'}",
        f"Padding: {format_number(params.padding_for(kind))} mm from bottom",
        f"Date: {created:%Y-%m-%d %H:%M}",
        "SCALE 1:1 (do not scale when printing)",
    ]


def fit_pipe_metadata(contour, lines):
    """
    Place the metadata block on the pipe sheet, under the contour.

    The block is anchored at the highest contour point (largest solid
    area), kept inside the sheet horizontally, and its font shrinks until
    the block fits between the ruler and the contour above it.

    Returns:
        (left_x, top_y, fontsize) in model coordinates.
    """
    contour = np.asarray(contour, dtype=float)
    bounds = contour_bounds(contour)
    anchor_x, anchor_y = contour[np.argmax(contour[:, 1])]

    fontsize = META_FONT_MAX
    while True:
        width, height = _text_size_mm(lines, fontsize)
        left = min(max(anchor_x - width / 2, bounds.min_x + META_GAP),
                   bounds.max_x - META_GAP - width)
        left = max(left, bounds.min_x)

        span = (contour[:, 0] >= left) & (contour[:, 0] <= left + width)
        ceiling = contour[span, 1].min() if np.any(span) else anchor_y
        top = ceiling - META_GAP
        if top - RULER_CLEARANCE >= height or fontsize <= META_FONT_MIN:
            break
        fontsize -= META_FONT_STEP

    if top - RULER_CLEARANCE < height:
        logger.warning("Metadata block overlaps the ruler: no room under the contour "
                       "even at %.1f pt", fontsize)
    return left, top, fontsize


def ruler_ticks(min_x, max_x):
    """
    Ticks of the degree ruler: one every half degree over 0..360.

    Returns:
        list of (degree, x, tick_height) in model mm. Heights are 4 mm every
        10 deg (labeled), 2.5 mm every 5 deg, 1.5 mm on whole degrees and
        1 mm on half degrees.
    """
    ticks = []
    width = max_x - min_x
    for k in range(721):
        deg = k / 2
        if k % 2:
            tick_h = 1.0
        elif deg % 10 == 0:
            tick_h = 4.0
        elif deg % 5 == 0:
            tick_h = 2.5
        else:
            tick_h = 1.5
        ticks.append((deg, min_x + (deg / 360) * width, tick_h))
    return ticks


def _draw_ruler(ax, layout, min_x, max_x):
    """Degree ruler on the sheet's bottom edge, labeled every 10 degrees."""
    segments = []
    for deg, x, tick_h in ruler_ticks(min_x, max_x):
        px, py0 = layout.to_page(x, 0.0)
        _, py1 = layout.to_page(x, tick_h)
        segments.append([(px, py0), (px, py1)])

        if deg % 10 == 0:
            lx, ly = layout.to_page(x, tick_h + 0.5)
            ax.text(lx, ly, str(int(deg)), fontsize=5, ha='center', va='bottom')

    ax.add_collection(LineCollection(segments, colors='black',
                                     linewidths=0.15 / MM_PER_PT))


def _draw_dimensions(ax, layout, bounds, lw):
    color = (0, 0, 1)

    dim_x = bounds.max_x + DIMENSION_OFFSET
    bx, by = layout.to_page(dim_x, 0.0)
    tx, ty = layout.to_page(dim_x, bounds.max_y)
    ax.plot([bx, tx], [by, ty], color=color, lw=lw)
    ax.plot([bx - 1, bx + 1], [by, by], color=color, lw=lw)
    ax.plot([tx - 1, tx + 1], [ty, ty], color=color, lw=lw)
    hx, hy = layout.to_page(dim_x + 2, layout.content_height / 2)
    ax.text(hx, hy, f"H = {layout.content_height:.1f} mm", fontsize=8, color=color,
            rotation=90, ha='left', va='center')

    dim_y = bounds.max_y + DIMENSION_OFFSET
    sx, sy = layout.to_page(bounds.min_x, dim_y)
    ex, ey = layout.to_page(bounds.max_x, dim_y)
    ax.plot([sx, ex], [sy, ey], color=color, lw=lw)
    ax.plot([sx, sx], [sy - 1, sy + 1], color=color, lw=lw)
    ax.plot([ex, ex], [ey - 1, ey + 1], color=color, lw=lw)
    wx, wy = layout.to_page((bounds.min_x + bounds.max_x) / 2, dim_y + 2)
    ax.text(wx, wy, f"W = {layout.content_width:.1f} mm", fontsize=8, color=color,
            ha='center', va='bottom')


def build_figure(contour, params, kind, created):
    """
    Draw a normalized, non-empty contour on a 1:1 page.

    Returns:
        (Figure, PageLayout). The axes span the whole figure in page mm
        with y pointing down.
    """
    check_kind(kind)
    contour = np.asarray(contour, dtype=float).reshape(-1, 2)
    layout = compute_page_layout(contour)
    bounds = contour_bounds(contour)
    lw = LINE_WIDTH_MM / MM_PER_PT

    fig = Figure(figsize=(layout.page_width / MM_PER_INCH,
                          layout.page_height / MM_PER_INCH))
    ax = fig.add_axes([0, 0, 1, 1])
    ax.set_xlim(0, layout.page_width)
    ax.set_ylim(layout.page_height, 0)
    ax.axis('off')

    px, py = layout.to_page(contour[:, 0], contour[:, 1])
    ax.plot(px, py, color='black', lw=lw)

    lines = _metadata_lines(params, kind, layout, created)

    if kind == "pipe":
        bl = layout.to_page(bounds.min_x, 0.0)
        br = layout.to_page(bounds.max_x, 0.0)
        tl = layout.to_page(bounds.min_x, contour[0, 1])
        tr = layout.to_page(bounds.max_x, contour[-1, 1])
        ax.plot([bl[0], br[0]], [bl[1], br[1]], color='black', lw=lw)
        ax.plot([bl[0], tl[0]], [bl[1], tl[1]], color='black', lw=lw)
        ax.plot([br[0], tr[0]], [br[1], tr[1]], color='black', lw=lw)

        _draw_ruler(ax, layout, bounds.min_x, bounds.max_x)

        left, top, fontsize = fit_pipe_metadata(contour, lines)
        mx, my = layout.to_page(left, top)
        ax.text(mx, my, "\n".join(lines), fontsize=fontsize, ha='left', va='top',
                linespacing=LINE_SPACING)
    else:
        ax.plot([px[-1], px[0]], [py[-1], py[0]], color='black', lw=lw)

        center_x, center_y = bounds.center
        vb = layout.to_page(center_x, bounds.min_y)
        vt = layout.to_page(center_x, bounds.max_y)
        hl = layout.to_page(bounds.min_x, center_y)
        hr = layout.to_page(bounds.max_x, center_y)
        ax.plot([vb[0], vt[0]], [vb[1], vt[1]], color='red', lw=lw)
        ax.plot([hl[0], hr[0]], [hl[1], hr[1]], color='red', lw=lw)

        cx, cy = layout.to_page(*contour.mean(axis=0))
        ax.text(cx, cy, "\n".join(lines), fontsize=6, ha='center', va='center',
                linespacing=LINE_SPACING,
                bbox=dict(facecolor='white', edgecolor='none', alpha=0.8))

    _draw_dimensions(ax, layout, bounds, lw)
    return fig, layout


def render_pdf(contour, params, kind, created=None):
    """
    Draw a normalized contour on a 1:1 page and return the PDF bytes.
    Empty contours give b"" (no geometry to print).
    """
    check_kind(kind)
    contour = np.asarray(contour, dtype=float).reshape(-1, 2)
    if len(contour) == 0:
        return b""
    if created is None:
        created = datetime.now()

    fig, layout = build_figure(contour, params, kind, created)

    buf = io.BytesIO()
    fig.savefig(buf, format='pdf', metadata={
        'Title': f"{TITLES[kind]} D{format_number(params.d2)} on D{format_number(params.d1)}",
        'Subject': f"Pipe notch template, 1:1 scale, {layout.orientation}",
        'Creator': 'pipe-notch',
        'CreationDate': created,
    })
    logger.debug("PDF %s: %.1f x %.1f mm (%s)", kind, layout.page_width,
                 layout.page_height, layout.orientation)
    return buf.getvalue()


def write_pdf(params, kind, created=None, steps=EXPORT_STEPS):
    """Compute the template contour for params and render it as a 1:1 PDF."""
    contour = compute_unrolled_contour(params, kind, steps)
    if len(contour) == 0:
        logger.warning("PDF export skipped: no %s geometry", kind)
    return render_pdf(contour, params, kind, created)
