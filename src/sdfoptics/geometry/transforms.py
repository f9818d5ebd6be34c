"""
Rigid transforms for shapes and placed elements.

Every placeable thing in sdfoptics carries a position and an orthonormal
orientation matrix. The transpose of the orientation is cached next to it
because the world-to-local mapping sits on the sphere tracer's hot path.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

ArrayLike3 = Union[Sequence[float], NDArray]

_ORTHONORMAL_TOL = 1e-9


def as_vector3(value: ArrayLike3, name: str = "vector") -> NDArray:
    """Convert input to a float64 array of shape (3,)."""
    vec = np.asarray(value, dtype=np.float64)
    if vec.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {vec.shape}")
    return vec


def normalize3d(vector: ArrayLike3) -> NDArray:
    """
    Normalize a 3D vector to unit length.

    Raises:
        ValueError: If the vector has zero magnitude
    """
    vec = as_vector3(vector)
    magnitude = np.linalg.norm(vec)
    if magnitude < 1e-15:
        raise ValueError("Cannot normalize zero vector")
    return vec / magnitude


def rotation_matrix(axis: ArrayLike3, angle: float) -> NDArray:
    """
    Rodrigues rotation matrix for a rotation of ``angle`` radians about ``axis``.

    Args:
        axis: Rotation axis, normalized internally
        angle: Rotation angle in radians (right-hand rule)

    Returns:
        3x3 rotation matrix
    """
    k = normalize3d(axis)
    K = np.array(
        [
            [0.0, -k[2], k[1]],
            [k[2], 0.0, -k[0]],
            [-k[1], k[0], 0.0],
        ]
    )
    return np.eye(3) + np.sin(angle) * K + (1.0 - np.cos(angle)) * (K @ K)


def align_matrix(source: ArrayLike3, target: ArrayLike3) -> NDArray:
    """Rotation matrix turning unit vector ``source`` onto ``target``."""
    a = normalize3d(source)
    b = normalize3d(target)
    axis = np.cross(a, b)
    sin_angle = np.linalg.norm(axis)
    cos_angle = float(np.clip(np.dot(a, b), -1.0, 1.0))
    if sin_angle < 1e-12:
        if cos_angle > 0:
            return np.eye(3)
        # anti-parallel: rotate by pi about any axis perpendicular to a
        return rotation_matrix(perpendicular(a), np.pi)
    return rotation_matrix(axis, np.arctan2(sin_angle, cos_angle))


def perpendicular(vector: ArrayLike3) -> NDArray:
    """Return a deterministic unit vector perpendicular to ``vector``."""
    v = normalize3d(vector)
    # pick the reference axis least aligned with v
    reference = np.zeros(3)
    reference[int(np.argmin(np.abs(v)))] = 1.0
    return normalize3d(np.cross(v, reference))


def is_orthonormal(matrix: NDArray, tol: float = _ORTHONORMAL_TOL) -> bool:
    """Check that a 3x3 matrix is a proper rotation."""
    m = np.asarray(matrix, dtype=np.float64)
    if m.shape != (3, 3):
        return False
    return bool(
        np.allclose(m @ m.T, np.eye(3), atol=tol) and abs(np.linalg.det(m) - 1.0) < tol
    )


class RigidTransform:
    """
    Mutable rigid placement: position plus orientation (and its transpose).

    The columns of ``orientation`` are the local x, y and z axes expressed in
    the parent frame. Rotations are applied about the object's own position.
    """

    def __init__(self) -> None:
        self._pos = np.zeros(3)
        self._dir = np.eye(3)
        self._dir_t = np.eye(3)

    @property
    def position(self) -> NDArray:
        """Position in the parent frame (copy)."""
        return self._pos.copy()

    @property
    def orientation(self) -> NDArray:
        """Orientation matrix (copy)."""
        return self._dir.copy()

    @property
    def transposed_orientation(self) -> NDArray:
        """Cached transpose of the orientation matrix (copy)."""
        return self._dir_t.copy()

    def set_orientation(self, matrix: NDArray) -> None:
        """Replace the orientation matrix, refreshing the cached transpose."""
        m = np.asarray(matrix, dtype=np.float64)
        if not is_orthonormal(m):
            raise ValueError("Orientation must be an orthonormal rotation matrix")
        self._dir = m.copy()
        self._dir_t = m.T.copy()

    def translate3d(self, offset: ArrayLike3) -> None:
        """Move by ``offset``."""
        self._pos = self._pos + as_vector3(offset, "offset")

    def translate_to3d(self, target: ArrayLike3) -> None:
        """Move to the absolute position ``target``."""
        self._pos = as_vector3(target, "target").copy()

    def rotate3d(self, axis: ArrayLike3, angle: float) -> None:
        """Rotate about ``axis`` through the own position by ``angle`` radians."""
        self.set_orientation(rotation_matrix(axis, angle) @ self._dir)

    def xrotate3d(self, angle: float) -> None:
        self.rotate3d((1.0, 0.0, 0.0), angle)

    def yrotate3d(self, angle: float) -> None:
        self.rotate3d((0.0, 1.0, 0.0), angle)

    def zrotate3d(self, angle: float) -> None:
        self.rotate3d((0.0, 0.0, 1.0), angle)

    def align3d(self, target: ArrayLike3) -> None:
        """Rotate so that the local y (optical) axis points along ``target``."""
        current = self._dir[:, 1]
        self.set_orientation(align_matrix(current, target) @ self._dir)

    def rotate_about(self, matrix: NDArray, center: ArrayLike3) -> None:
        """Apply the rotation ``matrix`` about an external pivot ``center``."""
        c = as_vector3(center, "center")
        m = np.asarray(matrix, dtype=np.float64)
        self._pos = c + m @ (self._pos - c)
        self.set_orientation(m @ self._dir)

    def reset_transform(self) -> None:
        """Return to the identity placement."""
        self._pos = np.zeros(3)
        self._dir = np.eye(3)
        self._dir_t = np.eye(3)

    def _world_to_local(self, point: NDArray) -> NDArray:
        """Map points from the parent frame into the local frame."""
        p = np.asarray(point, dtype=np.float64) - self._pos
        if p.ndim == 1:
            return self._dir_t @ p
        # row-vector form of dir_t @ p for (N, 3) inputs
        return p @ self._dir

    def _local_to_world(self, point: NDArray) -> NDArray:
        """Map points from the local frame into the parent frame."""
        p = np.asarray(point, dtype=np.float64)
        if p.ndim == 1:
            return self._dir @ p + self._pos
        return p @ self._dir_t + self._pos
