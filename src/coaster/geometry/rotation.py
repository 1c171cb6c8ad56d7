"""
Rotation helpers - Orientation primitives on top of scipy's Rotation.

Provides:
- Axis-angle construction in degrees
- Look rotation from a forward and an up direction
- Spherical interpolation
- Local axis extraction (right, up, forward)
"""

from scipy.spatial.transform import Rotation, Slerp
import numpy as np

from coaster.geometry.vector import NORMALIZE_THRESHOLD, UNIT_X, UNIT_Y, UNIT_Z


def axis_angle(axis: np.ndarray, degrees: float) -> Rotation:
    """Rotation of ``degrees`` about ``axis`` (right-hand rule).

    Args:
        axis: Rotation axis, need not be unit length
        degrees: Rotation angle in degrees

    Returns:
        Rotation; identity when the axis has no length
    """
    axis = np.asarray(axis, dtype=np.float64)
    mag = np.linalg.norm(axis)
    if mag < NORMALIZE_THRESHOLD:
        return Rotation.identity()
    return Rotation.from_rotvec(axis / mag * degrees, degrees=True)


def look_rotation(forward: np.ndarray, up: np.ndarray) -> Rotation:
    """Rotation whose local Z faces ``forward`` and local Y leans towards ``up``.

    The up vector is re-orthogonalized against ``forward``. When the two are
    parallel a world axis is substituted so a valid frame is always built.

    Args:
        forward: Desired forward direction
        up: Reference up direction

    Returns:
        Rotation mapping (X, Y, Z) to (right, up, forward)
    """
    forward = np.asarray(forward, dtype=np.float64)
    fwd_mag = np.linalg.norm(forward)
    if fwd_mag < NORMALIZE_THRESHOLD:
        return Rotation.identity()
    z = forward / fwd_mag

    x = np.cross(np.asarray(up, dtype=np.float64), z)
    if np.linalg.norm(x) < 1e-6:
        # Up is parallel to forward; pick whichever world axis is least aligned
        fallback = UNIT_Y if abs(z[1]) < 0.9 else UNIT_X
        x = np.cross(fallback, z)
    x = x / np.linalg.norm(x)
    y = np.cross(z, x)

    return Rotation.from_matrix(np.column_stack((x, y, z)))


def sweep(axis: np.ndarray, degrees: float) -> Slerp:
    """Spherical interpolator from identity to ``axis_angle(axis, degrees)``.

    A halfway key keeps each interpolated span below 180 degrees, so sweeps
    of up to a full turn follow the requested direction instead of the
    shortest path.

    Args:
        axis: Rotation axis
        degrees: Total sweep in degrees

    Returns:
        Slerp evaluated with ``interpolate`` at fractions in [0, 1]
    """
    keys = Rotation.concatenate([
        Rotation.identity(),
        axis_angle(axis, degrees * 0.5),
        axis_angle(axis, degrees),
    ])
    return Slerp([0.0, 0.5, 1.0], keys)


def interpolate(interpolator: Slerp, fraction: float) -> Rotation:
    """Evaluate a sweep at ``fraction``, clamped to the keyed range."""
    return interpolator([float(np.clip(fraction, 0.0, 1.0))])[0]


def right_of(rotation: Rotation) -> np.ndarray:
    return rotation.apply(UNIT_X)


def up_of(rotation: Rotation) -> np.ndarray:
    return rotation.apply(UNIT_Y)


def forward_of(rotation: Rotation) -> np.ndarray:
    return rotation.apply(UNIT_Z)
