"""
Proximity - Line segment versus circle distance queries.

Used by the curve layer to find where a vertical support column (or any line
segment) passes close to one of a biarc's circles.
"""

from typing import Tuple
import numpy as np
from scipy.optimize import minimize_scalar


# Uniform samples taken along the segment before refinement
LINE_SAMPLES = 16


def distance_to_circle(
    points: np.ndarray,
    center: np.ndarray,
    normal: np.ndarray,
    radius: float,
) -> np.ndarray:
    """Distance from each point to the circle.

    Args:
        points: Array of shape (N, 3) or (3,)
        center: Circle center
        normal: Unit normal of the circle plane
        radius: Circle radius

    Returns:
        Distances with the leading shape of ``points``
    """
    rel = np.asarray(points, dtype=np.float64) - center
    height = rel @ normal
    in_plane = rel - np.multiply.outer(height, normal)
    rho = np.linalg.norm(in_plane, axis=-1)
    return np.sqrt(height * height + (rho - radius) ** 2)


def approx_within_line_range(
    center: np.ndarray,
    axis1: np.ndarray,
    axis3: np.ndarray,
    radius: float,
    start: np.ndarray,
    end: np.ndarray,
    max_dist: float,
) -> Tuple[bool, float]:
    """Check whether a line segment passes within ``max_dist`` of a circle.

    Args:
        center: Circle center
        axis1: In-plane axis of the circle (unused beyond validating the plane)
        axis3: Unit normal of the circle plane
        radius: Circle radius
        start: Segment start point
        end: Segment end point
        max_dist: Acceptance distance

    Returns:
        Tuple of (within_range, line_fraction). The fraction locates the
        segment point nearest the circle and is NaN on a miss.
    """
    normal = np.asarray(axis3, dtype=np.float64)
    if np.dot(normal, normal) < 1e-12:
        # No plane: fall back to the plane spanned by axis1 and the segment
        normal = np.cross(axis1, np.asarray(end) - np.asarray(start))
        mag = np.linalg.norm(normal)
        if mag < 1e-12:
            return (False, float("nan"))
        normal = normal / mag

    start = np.asarray(start, dtype=np.float64)
    direction = np.asarray(end, dtype=np.float64) - start

    if np.dot(direction, direction) < 1e-12:
        dist = float(distance_to_circle(start, center, normal, radius))
        if dist > max_dist:
            return (False, float("nan"))
        return (True, 0.0)

    fractions = np.linspace(0.0, 1.0, LINE_SAMPLES + 1)
    samples = start + np.multiply.outer(fractions, direction)
    dists = distance_to_circle(samples, center, normal, radius)

    best = int(np.argmin(dists))
    lo = fractions[max(best - 1, 0)]
    hi = fractions[min(best + 1, LINE_SAMPLES)]

    result = minimize_scalar(
        lambda u: float(distance_to_circle(start + u * direction, center, normal, radius)),
        bounds=(lo, hi),
        method="bounded",
        options={"xatol": 1e-6},
    )

    best_u = float(fractions[best])
    best_dist = float(dists[best])
    if result.success and result.fun < best_dist:
        best_u = float(result.x)
        best_dist = float(result.fun)

    if best_dist > max_dist:
        return (False, float("nan"))
    return (True, best_u)
