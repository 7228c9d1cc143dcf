"""Small 2D/3D vector algebra helpers.

The integrator works on length-3 float arrays even for planar layouts
(z = 0). Every helper accepts 2D input and treats the missing z as 0;
``vec3`` promotes explicitly where an array is needed. Scalar helpers avoid
numpy dispatch overhead for the per-step hot path.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

Vec3 = NDArray[np.float64]


def vec3(v: Sequence[float]) -> Vec3:
    """Promote a 2- or 3-component sequence to a float array of length 3."""
    if len(v) == 2:
        return np.array([float(v[0]), float(v[1]), 0.0])
    return np.array([float(v[0]), float(v[1]), float(v[2])])


def _z(a: Sequence[float]) -> float:
    """Z component, 0 for planar (length-2) input."""
    return a[2] if len(a) > 2 else 0.0


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    return a[0] * b[0] + a[1] * b[1] + _z(a) * _z(b)


def cross(a: Sequence[float], b: Sequence[float]) -> Vec3:
    az, bz = _z(a), _z(b)
    return np.array([
        a[1] * bz - az * b[1],
        az * b[0] - a[0] * bz,
        a[0] * b[1] - a[1] * b[0],
    ])


def norm2(a: Sequence[float]) -> float:
    """Squared Euclidean norm."""
    z = _z(a)
    return a[0] * a[0] + a[1] * a[1] + z * z


def norm(a: Sequence[float]) -> float:
    return math.sqrt(norm2(a))


def scale(a: Sequence[float], s: float) -> Vec3:
    return np.array([a[0] * s, a[1] * s, _z(a) * s])


def unit(a: Sequence[float]) -> Vec3:
    """Unit vector along ``a``; the zero vector maps to itself."""
    n = norm(a)
    if n == 0.0:
        return np.zeros(3)
    return scale(a, 1.0 / n)


def angle_between(a: Sequence[float], b: Sequence[float]) -> float:
    """Angle between two vectors [radian, 0..π] via atan2(|a×b|, a·b)."""
    return math.atan2(norm(cross(a, b)), dot(a, b))


def rotate_z(a: Sequence[float], angle: float) -> Vec3:
    """Rotate ``a`` about the z axis by ``angle`` [radian]."""
    ca, sa = math.cos(angle), math.sin(angle)
    return np.array([ca * a[0] - sa * a[1], sa * a[0] + ca * a[1], _z(a)])
