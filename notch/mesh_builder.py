"""Preview mesh of the notched branch pipe, plus trimesh/plotly conversion."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
import plotly.graph_objects as go
import trimesh

from notch.depth_solver import TANGENCY_TOLERANCE, branch_depth_for, intersection_term
from notch.math_utils import deg_to_rad

logger = logging.getLogger(__name__)


INVALID_DIAMETERS_MSG = "Invalid Diameters."
NO_INTERSECTION_MSG = "Geometry Error: Pipes do not intersect."


class GeometryErrorKind(Enum):
    INVALID_DIAMETER = "invalid_diameter"
    NO_INTERSECTION = "no_intersection"


def _frozen(array):
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class GeometryResult:
    """
    Two-ring vertex grid of the branch pipe. Arrays are read-only.
    Results compare by identity; compare the arrays for equal geometry.
    """
    vertices: np.ndarray
    indices: np.ndarray
    uvs: np.ndarray
    is_valid: bool
    error: Optional[str] = None
    error_kind: Optional[GeometryErrorKind] = None
    contour2d: Optional[np.ndarray] = None

    @classmethod
    def failure(cls, kind, message):
        return cls(
            vertices=_frozen(np.zeros((0, 3))),
            indices=_frozen(np.zeros(0, dtype=np.uint32)),
            uvs=_frozen(np.zeros((0, 2))),
            is_valid=False,
            error=message,
            error_kind=kind,
        )

    @property
    def segments(self):
        return len(self.vertices) // 2 - 1 if self.is_valid else 0


def compute_mesh(params, segments=128):
    """
    Build the preview grid of the notched branch pipe.

    Row 0 is the cut face, row 1 a flat far end. The intersection term is
    checked at every one of the segments+1 angular samples first: a single
    miss (term < -0.1) invalidates the whole mesh, since a grid with holes
    cannot be triangulated.

    Parameters:
        params: PipeParameters
        segments: number of angular segments around the branch

    Returns:
        GeometryResult with 2*(segments+1) vertices and 6*segments indices,
        or an invalid result carrying the error message.
    """
    if not params.has_valid_diameters():
        logger.warning("Invalid diameters: d1=%r d2=%r", params.d1, params.d2)
        return GeometryResult.failure(GeometryErrorKind.INVALID_DIAMETER,
                                      INVALID_DIAMETERS_MSG)

    segments = int(segments)
    if segments < 1:
        raise ValueError(f"segments must be >= 1, got {segments}")

    r2_mesh = params.r2_outer
    angle_rad = deg_to_rad(params.angle)
    sin_t = np.sin(angle_rad)
    cos_t = np.cos(angle_rad)

    cols = np.arange(segments + 1)
    alpha = (cols / segments) * 2 * np.pi

    # Validity pre-pass over the full revolution
    term = intersection_term(params.r1, params.r2_calc, params.offset, alpha)
    if np.any(term < -TANGENCY_TOLERANCE):
        logger.warning("Pipes do not intersect (min term %.4f)", float(term.min()))
        return GeometryResult.failure(GeometryErrorKind.NO_INTERSECTION,
                                      NO_INTERSECTION_MSG)

    depth, _ = branch_depth_for(params, alpha)

    pipe2_length = params.d1 * 1.5 + 100
    far_end = np.full(segments + 1, params.d1 + pipe2_length)
    lengths = np.vstack([depth, far_end])

    # Branch frame: w along the branch axis, v fixed sideways, u = v x w
    w = np.array([sin_t, cos_t, 0.0])
    v = np.array([0.0, 0.0, 1.0])
    u = np.array([-cos_t, sin_t, 0.0])

    local_x = r2_mesh * np.cos(alpha)
    local_y = r2_mesh * np.sin(alpha) + params.offset

    grid = (local_x[None, :, None] * u
            + local_y[None, :, None] * v
            + lengths[:, :, None] * w)
    vertices = grid.reshape(-1, 3)

    rows = np.repeat([0.0, 1.0], segments + 1)
    uvs = np.column_stack([np.tile(cols / segments, 2), rows])

    a = np.arange(segments)
    b = a + 1
    c = a + segments + 1
    d = a + segments + 2
    indices = np.column_stack([a, b, d, a, d, c]).ravel().astype(np.uint32)

    contour2d = np.column_stack([(cols / segments) * (2 * np.pi * params.r2_outer), depth])

    logger.debug("Mesh built: %d vertices, %d triangles", len(vertices), len(indices) // 3)
    return GeometryResult(
        vertices=_frozen(vertices),
        indices=_frozen(indices),
        uvs=_frozen(uvs),
        is_valid=True,
        contour2d=_frozen(contour2d),
    )


def seam_points(result):
    """Cut-face ring of a valid mesh (the ideal cutting line in 3D)."""
    if not result.is_valid:
        return np.zeros((0, 3))
    return np.array(result.vertices[:result.segments + 1])


def to_trimesh(result):
    """Convert a valid GeometryResult to a trimesh.Trimesh (vertex order kept)."""
    if not result.is_valid:
        raise ValueError(f"Cannot build a mesh from an invalid result: {result.error}")
    faces = np.asarray(result.indices, dtype=np.int64).reshape(-1, 3)
    return trimesh.Trimesh(vertices=np.array(result.vertices), faces=faces,
                           process=False)


def main_pipe_mesh(params, sections=64):
    """Main pipe preview cylinder: radius d1/2, length 3*d1, axis along Y."""
    mesh = trimesh.creation.cylinder(radius=params.r1, height=params.d1 * 3,
                                     sections=sections)
    mesh.apply_transform(
        trimesh.transformations.rotation_matrix(-np.pi / 2, [1, 0, 0]))
    return mesh


def mesh_to_plotly(mesh, name, color, opacity):
    """Convert a trimesh mesh to a plotly Mesh3d trace."""
    vertices = mesh.vertices
    faces = mesh.faces
    return go.Mesh3d(
        x=vertices[:, 0],
        y=vertices[:, 1],
        z=vertices[:, 2],
        i=faces[:, 0],
        j=faces[:, 1],
        k=faces[:, 2],
        name=name,
        color=color,
        opacity=opacity,
        showlegend=True,
    )
