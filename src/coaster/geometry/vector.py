"""
Vector helpers - Thin numpy wrappers for 3D vector algebra.

Vectors are plain ``numpy`` arrays of shape (3,). World convention:
- Y is up, the horizontal plane is X/Z
- A pose's local Z axis is its forward direction, local X is right
"""

from typing import Sequence
import numpy as np


# Shortest vector normalize_safe will still scale to unit length
NORMALIZE_THRESHOLD = 1e-12

UNIT_X = np.array([1.0, 0.0, 0.0])
UNIT_Y = np.array([0.0, 1.0, 0.0])
UNIT_Z = np.array([0.0, 0.0, 1.0])



def vec3(x: float | Sequence[float], y: float | None = None, z: float | None = None) -> np.ndarray:
    """Build a float64 vector from components or from any 3-sequence.

    Args:
        x: X component, or a sequence of three components
        y: Y component (omit when ``x`` is a sequence)
        z: Z component (omit when ``x`` is a sequence)

    Returns:
        New array of shape (3,)
    """
    if y is None and z is None:
        arr = np.array(x, dtype=np.float64)
        if arr.shape != (3,):
            raise ValueError(f"Expected 3 components, got shape {arr.shape}")
        return arr
    return np.array([x, y, z], dtype=np.float64)


def length_squared(v: np.ndarray) -> float:
    return float(np.dot(v, v))


def length(v: np.ndarray) -> float:
    return float(np.sqrt(np.dot(v, v)))


def normalize(v: np.ndarray) -> np.ndarray:
    """Scale to unit length. Zero input produces NaN components."""
    return v / np.sqrt(np.dot(v, v))


def normalize_safe(v: np.ndarray) -> np.ndarray:
    """Scale to unit length, or return a zero vector for zero-length input."""
    mag = np.sqrt(np.dot(v, v))
    if mag < NORMALIZE_THRESHOLD:
        return np.zeros(3)
    return v / mag


def approx_equal(a: np.ndarray, b: np.ndarray, epsilon: float) -> bool:
    """Check whether every component of ``a`` and ``b`` differs by at most ``epsilon``."""
    return bool(np.all(np.abs(np.asarray(a) - np.asarray(b)) <= epsilon))


def horizontal_distance_squared(a: np.ndarray, b: np.ndarray) -> float:
    """Squared distance between two points projected onto the X/Z plane."""
    dx = a[0] - b[0]
    dz = a[2] - b[2]
    return float(dx * dx + dz * dz)
