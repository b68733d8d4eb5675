"""Small numeric helpers shared by the intersection solver and the unrollers."""

import numpy as np


def deg_to_rad(degrees):
    """Convert degrees to radians (scalar or array)."""
    if np.ndim(degrees):
        return np.asarray(degrees, dtype=float) * np.pi / 180.0
    return float(degrees) * np.pi / 180.0


def safe_small(value, epsilon=1e-6):
    """
    Return value with a minimum magnitude of epsilon, preserving sign.
    Zero maps to +epsilon. Used before dividing by sin/tan of the skew angle.
    """
    if np.ndim(value):
        value = np.asarray(value, dtype=float)
        small = np.abs(value) < epsilon
        return np.where(small, np.where(value >= 0, epsilon, -epsilon), value)
    if abs(value) < epsilon:
        return epsilon if value >= 0 else -epsilon
    return float(value)


def clamp_to_zero(value, epsilon=1e-6):
    """Snap values within epsilon of zero to exactly 0.0 (floating noise)."""
    if np.ndim(value):
        value = np.asarray(value, dtype=float)
        return np.where(np.abs(value) < epsilon, 0.0, value)
    return 0.0 if abs(value) < epsilon else float(value)
