"""Minimal DXF (R12 ENTITIES-only) writer for unrolled templates, plus a reader."""

import logging
import math

import ezdxf
import numpy as np

from notch.contour import compute_unrolled_contour, contour_bounds, EXPORT_STEPS
from notch.params import check_kind

logger = logging.getLogger(__name__)


DXF_MIME = "application/dxf"
CLOSE_TOLERANCE = 0.001
COLOR_RED = 1


def _fmt(value):
    # + 0.0 turns -0.0 into 0.0
    return f"{float(value) + 0.0:.4f}"


class DxfWriter:
    """
    Accumulates DXF entities; to_string() appends the footer without
    consuming the writer, so it can be called more than once.
    """

    def __init__(self):
        self.parts = ["0\nSECTION\n2\nENTITIES\n"]

    def _vertex(self, x, y):
        self.parts.append(f"0\nVERTEX\n8\n0\n10\n{_fmt(x)}\n20\n{_fmt(y)}\n30\n0.0\n")

    def add_polyline(self, points, closed=False):
        """
        Add a POLYLINE with one VERTEX per point. When closed and the ends
        are apart, the first point is repeated so viewers ignoring flag 70
        still draw a closed loop.
        """
        points = np.asarray(points, dtype=float).reshape(-1, 2)
        if len(points) == 0:
            return

        self.parts.append(f"0\nPOLYLINE\n8\n0\n66\n1\n70\n{1 if closed else 0}\n")
        for x, y in points:
            self._vertex(x, y)

        if closed:
            first, last = points[0], points[-1]
            if math.hypot(first[0] - last[0], first[1] - last[1]) > CLOSE_TOLERANCE:
                self._vertex(first[0], first[1])

        self.parts.append("0\nSEQEND\n")

    def add_line(self, p1, p2, color=0):
        """Add a LINE on layer CenterLines. color 0 keeps the layer color."""
        self.parts.append("0\nLINE\n8\nCenterLines\n")
        if color > 0:
            self.parts.append(f"62\n{int(color)}\n")
        self.parts.append(f"10\n{_fmt(p1[0])}\n20\n{_fmt(p1[1])}\n30\n0.0\n")
        self.parts.append(f"11\n{_fmt(p2[0])}\n21\n{_fmt(p2[1])}\n31\n0.0\n")

    def add_rectangle(self, min_x, min_y, max_x, max_y):
        """Closed rectangular frame."""
        self.add_polyline([
            (min_x, min_y),
            (max_x, min_y),
            (max_x, max_y),
            (min_x, max_y),
            (min_x, min_y),
        ], closed=True)

    def to_string(self):
        return "".join(self.parts + ["0\nENDSEC\n0\nEOF\n"])


def create_dxf_string(points, closed):
    """Single-polyline drawing."""
    writer = DxfWriter()
    writer.add_polyline(points, closed)
    return writer.to_string()


def write_dxf(contour, kind):
    """
    Serialize a normalized contour as a DXF template.

    pipe: one closed outline, the contour dropped to y = 0 at both ends so
          the sheet's bottom edge is part of the cut.
    hole: the closed contour plus two red centerlines through the middle
          of its bounding box.

    Returns:
        DXF text, or "" when the contour is empty (nothing to export).
    """
    check_kind(kind)
    contour = np.asarray(contour, dtype=float).reshape(-1, 2)
    if len(contour) == 0:
        return ""

    if kind == "pipe":
        x0 = contour[0, 0]
        xn = contour[-1, 0]
        outline = np.vstack([[x0, 0.0], contour, [xn, 0.0], [x0, 0.0]])
        return create_dxf_string(outline, closed=True)

    bounds = contour_bounds(contour)
    center_x, center_y = bounds.center

    writer = DxfWriter()
    writer.add_polyline(contour, closed=True)
    writer.add_line((center_x, bounds.min_y), (center_x, bounds.max_y), COLOR_RED)
    writer.add_line((bounds.min_x, center_y), (bounds.max_x, center_y), COLOR_RED)
    return writer.to_string()


def export_dxf(params, kind, steps=EXPORT_STEPS):
    """Compute the template contour for params and serialize it."""
    contour = compute_unrolled_contour(params, kind, steps)
    if len(contour) == 0:
        logger.warning("DXF export skipped: no %s geometry", kind)
    return write_dxf(contour, kind)


def load_dxf_contour(file_path):
    """
    Load the first POLYLINE or LWPOLYLINE found in a DXF file.
    Returns: np.ndarray of shape (N, 2) with X, Y coordinates.
    """
    doc = ezdxf.readfile(file_path)
    msp = doc.modelspace()

    lwpolys = msp.query('LWPOLYLINE')
    if len(lwpolys) > 0:
        with lwpolys[0].points("xy") as pts:
            return np.array([[p[0], p[1]] for p in pts], dtype=float)

    polys = msp.query('POLYLINE')
    if len(polys) > 0:
        return np.array([[p[0], p[1]] for p in polys[0].points()], dtype=float)

    raise ValueError(f"No POLYLINE/LWPOLYLINE found in {file_path}")
