"""
Seed ray generators.

Sources produce plain lists of rays that can be handed to ``solve_all``.
Ring patterns follow the usual pupil sampling: an optional chief ray plus
``num_rings`` concentric rings with ``rays_per_ring`` rays each.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from ..geometry.transforms import ArrayLike3, as_vector3, normalize3d, perpendicular
from .rays import Ray


def transverse_basis(direction: ArrayLike3) -> Tuple[NDArray, NDArray]:
    """Two unit vectors completing ``direction`` to a right-handed frame."""
    d = normalize3d(direction)
    e1 = perpendicular(d)
    e2 = np.cross(d, e1)
    return e1, e2


def _ring_offsets(num_rings: int, rays_per_ring: int, include_center: bool) -> List[Tuple[float, float]]:
    """(relative radius, azimuth) pairs of the ring pattern."""
    if num_rings < 0 or rays_per_ring < 1:
        raise ValueError("num_rings must be >= 0 and rays_per_ring >= 1")
    samples = [(0.0, 0.0)] if include_center else []
    for ring in range(1, num_rings + 1):
        for k in range(rays_per_ring):
            samples.append((ring / num_rings, 2 * np.pi * k / rays_per_ring))
    return samples


def collimated_source(
    center: ArrayLike3,
    direction: ArrayLike3,
    diameter: float,
    wavelength: float,
    num_rings: int = 3,
    rays_per_ring: int = 6,
    include_center: bool = True,
    refractive_index: float = 1.0,
) -> List[Ray]:
    """
    Parallel rays filling a disc of ``diameter`` centred on ``center``.

    Every ray carries intensity 1; weight them afterwards if needed.
    """
    c = as_vector3(center, "center")
    d = normalize3d(direction)
    e1, e2 = transverse_basis(d)
    rays = []
    for rel, phi in _ring_offsets(num_rings, rays_per_ring, include_center):
        r = rel * diameter / 2
        origin = c + r * (np.cos(phi) * e1 + np.sin(phi) * e2)
        rays.append(Ray(origin, d, wavelength, refractive_index=refractive_index))
    return rays


def point_source(
    position: ArrayLike3,
    direction: ArrayLike3,
    half_angle: float,
    wavelength: float,
    num_rings: int = 3,
    rays_per_ring: int = 6,
    include_center: bool = True,
    refractive_index: float = 1.0,
) -> List[Ray]:
    """
    Diverging rays from a single point on cones around ``direction``.

    Args:
        position: Emission point
        direction: Cone axis
        half_angle: Opening half angle of the outermost ring in radians
        wavelength: Vacuum wavelength in meters
        num_rings: Number of cones
        rays_per_ring: Rays per cone
        include_center: Emit a ray along the axis
        refractive_index: Index of the medium at the source
    """
    if not 0 <= half_angle < np.pi / 2:
        raise ValueError(f"half_angle must be in [0, pi/2), got {half_angle}")
    p = as_vector3(position, "position")
    d = normalize3d(direction)
    e1, e2 = transverse_basis(d)
    rays = []
    for rel, phi in _ring_offsets(num_rings, rays_per_ring, include_center):
        theta = rel * half_angle
        tilt = np.cos(phi) * e1 + np.sin(phi) * e2
        rays.append(
            Ray(p, np.cos(theta) * d + np.sin(theta) * tilt, wavelength, refractive_index=refractive_index)
        )
    return rays


def polarized_ray(
    position: ArrayLike3,
    direction: ArrayLike3,
    wavelength: float,
    jones: Sequence[complex] = (1.0, 0.0),
    amplitude: float = 1.0,
    refractive_index: float = 1.0,
) -> Ray:
    """
    Polarized ray from a Jones vector.

    The Jones components refer to the transverse basis of ``direction``
    returned by ``transverse_basis``; the vector is normalized so that the
    ray intensity equals ``amplitude**2``.
    """
    j = np.asarray(jones, dtype=np.complex128)
    if j.shape != (2,):
        raise ValueError(f"Jones vector must have two components, got {j.shape}")
    norm = np.linalg.norm(j)
    if norm == 0:
        raise ValueError("Jones vector must be non-zero")
    j = j / norm
    e1, e2 = transverse_basis(direction)
    field = amplitude * (j[0] * e1 + j[1] * e2)
    return Ray(position, direction, wavelength, refractive_index=refractive_index, polarization=field)
