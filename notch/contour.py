"""Developed (unrolled) 2D contours for the branch template and the main pipe hole."""

import logging
from dataclasses import dataclass

import numpy as np

from notch.depth_solver import branch_depth_for, hole_points, unroll_main_pipe
from notch.math_utils import deg_to_rad
from notch.params import check_kind

logger = logging.getLogger(__name__)


EXPORT_STEPS = 360


@dataclass(frozen=True)
class ContourBounds:
    """Axis-aligned bounding box of a contour."""
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def width(self):
        return self.max_x - self.min_x

    @property
    def height(self):
        return self.max_y - self.min_y

    @property
    def center(self):
        return ((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)


def contour_bounds(points):
    """Bounding box of an Nx2 point array (N >= 1)."""
    points = np.asarray(points, dtype=float)
    if len(points) == 0:
        raise ValueError("Cannot compute bounds of an empty contour")
    return ContourBounds(
        min_x=float(points[:, 0].min()), max_x=float(points[:, 0].max()),
        min_y=float(points[:, 1].min()), max_y=float(points[:, 1].max()),
    )


def normalize_contour(points, padding):
    """
    Shift a contour vertically so that its lowest point sits at y = padding.

    Returns a new Nx2 array; the input is left untouched. An empty contour
    (total geometric failure) comes back empty.
    """
    points = np.array(points, dtype=float).reshape(-1, 2)
    if len(points) == 0:
        return points
    min_y = points[:, 1].min()
    points[:, 1] = points[:, 1] - min_y + (padding or 0.0)
    return points


def _sample_ratios(steps):
    steps = int(steps)
    if steps < 1:
        raise ValueError(f"steps must be >= 1, got {steps}")
    return np.arange(steps + 1) / steps


def unroll_pipe(params, steps=EXPORT_STEPS):
    """
    Raw developed contour of the branch end (before normalization).

    x runs along the branch circumference (outer radius), y is the cut
    depth. The seam rotation start_angle shifts the phase of the sampled
    angle, not x. Positions where the pipes do not meet are dropped.
    """
    ratios = _sample_ratios(steps)
    x = ratios * (2 * np.pi * params.r2_outer)
    depth, valid = branch_depth_for(params, ratios * 2 * np.pi,
                                    deg_to_rad(params.start_angle))

    skipped = int((~valid).sum())
    if skipped:
        logger.debug("Pipe contour: skipped %d of %d samples", skipped, len(valid))
    return np.column_stack([x[valid], depth[valid]])


def unroll_hole(params, steps=EXPORT_STEPS):
    """
    Raw developed contour of the hole in the main pipe (before normalization).

    The branch bore (inner radius, independent of calc_by_id) is intersected
    with the main pipe surface and unrolled along the main pipe circumference.
    """
    alpha = _sample_ratios(steps) * 2 * np.pi
    x3d, y3d, z3d, valid = hole_points(params.r1, params.r2_inner,
                                       deg_to_rad(params.angle), params.offset,
                                       alpha)

    skipped = int((~valid).sum())
    if skipped:
        logger.debug("Hole contour: skipped %d of %d samples", skipped, len(valid))
    x = unroll_main_pipe(params.r1, x3d[valid], z3d[valid])
    return np.column_stack([x, y3d[valid]])


def compute_unrolled_contour(params, kind, steps=EXPORT_STEPS):
    """
    Normalized export contour for a template kind ('pipe' or 'hole').

    Returns:
        Nx2 array with min(y) == padding, or an empty (0, 2) array when no
        sample produced geometry (callers must not export it).
    """
    check_kind(kind)
    if not params.has_valid_diameters():
        logger.warning("No %s contour: invalid diameters", kind)
        return np.zeros((0, 2))

    if kind == "pipe":
        raw = unroll_pipe(params, steps)
    else:
        raw = unroll_hole(params, steps)

    if len(raw) == 0:
        logger.warning("No %s contour: pipes do not intersect", kind)
    return normalize_contour(raw, params.padding_for(kind))


def ordinate_table(params, kind, step_deg=10, steps=EXPORT_STEPS):
    """
    Tabulate a template contour at regular angular stations.

    For the pipe, the station is the position on the branch circumference;
    for the hole, the branch angle of the sample. Only exact stations that
    produced geometry are listed.

    Returns:
        list of (degree, x, y) tuples.
    """
    check_kind(kind)
    if step_deg <= 0:
        raise ValueError(f"step_deg must be positive, got {step_deg}")
    if not params.has_valid_diameters():
        return []

    ratios = _sample_ratios(steps)
    degrees = ratios * 360.0
    if kind == "pipe":
        raw = unroll_pipe(params, steps)
        # x is ratio * circumference, so the station follows from x
        station = raw[:, 0] / (2 * np.pi * params.r2_outer) * 360.0
    else:
        alpha = ratios * 2 * np.pi
        *_, valid = hole_points(params.r1, params.r2_inner,
                                deg_to_rad(params.angle), params.offset, alpha)
        raw = unroll_hole(params, steps)
        station = degrees[valid]

    contour = normalize_contour(raw, params.padding_for(kind))
    rows = []
    for deg, (x, y) in zip(station, contour):
        rounded = round(float(deg), 6)
        if abs(rounded / step_deg - round(rounded / step_deg)) < 1e-6:
            rows.append((rounded, float(x), float(y)))
    return rows
