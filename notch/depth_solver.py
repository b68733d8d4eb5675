"""
Pipe-pipe intersection solver.

The main pipe (radius R1) has its axis along world Y; the branch meets it at
the skew angle theta with its own axis displaced sideways by `offset`. For a
position alpha around the branch circumference the branch surface line hits
the main pipe only if

    term = R1^2 - (R2 * sin(alpha + phase) + offset)^2

is non-negative. All functions accept scalars or numpy arrays of angles and
return arrays together with a boolean validity mask, so callers decide
whether an invalid position fails the whole sweep or is just dropped.
"""

import numpy as np

from notch.math_utils import deg_to_rad, safe_small, clamp_to_zero


# Terms in [-TANGENCY_TOLERANCE, 0) are floating error at tangency, clamped to 0
TANGENCY_TOLERANCE = 0.1
SEAM_EPSILON = 1e-9


def intersection_term(r1, r2_effective, offset, eff_angle):
    """R1^2 - (R2_effective * sin(eff_angle) + offset)^2."""
    eff_angle = np.asarray(eff_angle, dtype=float)
    return r1 ** 2 - (r2_effective * np.sin(eff_angle) + offset) ** 2


def clamp_term(term):
    """
    Apply the tangency tolerance band to intersection terms.

    Returns:
        (clamped, valid): clamped has every negative term replaced by 0,
        valid is False where term < -TANGENCY_TOLERANCE (true miss).
    """
    term = np.asarray(term, dtype=float)
    valid = term >= -TANGENCY_TOLERANCE
    clamped = np.where(term < 0, 0.0, term)
    return clamped, valid


def branch_depth(r1, r2_effective, r2_draw, angle_rad, offset, welding_gap,
                 eff_angle):
    """
    Axial distance from the branch end to the main pipe surface.

        depth = sqrt(term) / sin(theta) + R2_draw * cos(a) / tan(theta) - gap

    sin/tan go through safe_small so theta -> 0 never divides by zero.
    Depths at invalid positions are computed from a clamped term and must
    be discarded by the caller using the returned mask.

    Returns:
        (depth, valid) arrays shaped like eff_angle.
    """
    eff_angle = np.asarray(eff_angle, dtype=float)
    term, valid = clamp_term(intersection_term(r1, r2_effective, offset, eff_angle))

    sin_t = safe_small(np.sin(angle_rad))
    tan_t = safe_small(np.tan(angle_rad))

    depth = (1.0 / sin_t) * np.sqrt(term) + (r2_draw * np.cos(eff_angle) / tan_t) - welding_gap
    return depth, valid


def branch_depth_for(params, alpha, phase_offset=0.0):
    """branch_depth() driven by PipeParameters (intersection radius per calc_by_id)."""
    angle_rad = deg_to_rad(params.angle)
    eff_angle = np.asarray(alpha, dtype=float) + phase_offset
    return branch_depth(params.r1, params.r2_calc, params.r2_outer, angle_rad,
                        params.offset, params.welding_gap, eff_angle)


def hole_points(r1, r2_hole, angle_rad, offset, alpha):
    """
    Points where the branch bore (radius r2_hole) meets the main pipe surface.

    Unlike the branch depth there is no tolerance band: any negative term
    is a miss.

    Returns:
        (x3d, y3d, z3d, valid) arrays; y3d runs along the main pipe axis.
    """
    alpha = np.asarray(alpha, dtype=float)
    sin_t = np.sin(angle_rad)
    cos_t = np.cos(angle_rad)

    r2_sin = r2_hole * np.sin(alpha)
    r2_cos = r2_hole * np.cos(alpha)

    c1 = r2_cos * cos_t
    c2 = r2_sin + offset

    term = r1 * r1 - c2 * c2
    valid = term >= 0
    t = (np.sqrt(np.where(valid, term, 0.0)) + c1) / safe_small(sin_t)

    x3d = t * sin_t - r2_cos * cos_t
    z3d = r2_sin + offset
    y3d = t * cos_t + r2_cos * sin_t
    return x3d, y3d, z3d, valid


def unroll_main_pipe(r1, x3d, z3d):
    """
    Arc length on the main pipe for surface points (x3d, z3d).

    phi = atan2(z, x) in [0, 2*pi), shifted by pi so the hole sits in the
    middle of the sheet and the seam is opposite to it.
    """
    x3d = clamp_to_zero(np.asarray(x3d, dtype=float), SEAM_EPSILON)
    z3d = clamp_to_zero(np.asarray(z3d, dtype=float), SEAM_EPSILON)

    phi = np.arctan2(z3d, x3d)
    phi = np.where(phi < 0, phi + 2 * np.pi, phi)

    phi_shift = phi - np.pi
    phi_shift = np.where(phi_shift < 0, phi_shift + 2 * np.pi, phi_shift)
    return r1 * phi_shift
