"""
ABCD matrix formulary for the complex beam parameter.

The complex beam parameter in a medium of index n follows
``1/q = 1/R - i * wavelength / (pi * n * w^2)`` with the vacuum wavelength,
so a beam at its waist has ``q = i * z_R`` with ``z_R = pi * n * w0^2 / wavelength``.
Matrices act as ``q' = (A q + B) / (C q + D)``.

Sign conventions: an interface radius is positive when its center of
curvature lies after the surface, a mirror radius is positive for a focusing
(concave) mirror.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from numpy.typing import NDArray


def free_space(distance: float) -> NDArray:
    """Propagation over ``distance`` in a homogeneous medium."""
    return np.array([[1.0, distance], [0.0, 1.0]])


def interface(n1: float, n2: float, radius: float = np.inf) -> NDArray:
    """
    Refraction at a curved interface from index ``n1`` into ``n2``.

    Args:
        n1: Index before the interface
        n2: Index after the interface
        radius: Radius of curvature, ``inf`` for a flat surface
    """
    power = 0.0 if np.isinf(radius) else (n1 - n2) / (radius * n2)
    return np.array([[1.0, 0.0], [power, n1 / n2]])


def curved_mirror(radius: float = np.inf) -> NDArray:
    """Reflection at a mirror of radius ``radius`` (positive when focusing)."""
    power = 0.0 if np.isinf(radius) else -2.0 / radius
    return np.array([[1.0, 0.0], [power, 1.0]])


def thin_lens(focal_length: float) -> NDArray:
    """Thin lens of focal length ``focal_length``."""
    return np.array([[1.0, 0.0], [-1.0 / focal_length, 1.0]])


def transform_q(q: complex, matrix: NDArray) -> complex:
    """Apply an ABCD matrix to the complex beam parameter."""
    (a, b), (c, d) = matrix
    return complex((a * q + b) / (c * q + d))


def rayleigh_range(waist: float, wavelength: float, n: float = 1.0) -> float:
    """Rayleigh range z_R = pi n w0^2 / wavelength."""
    return float(np.pi * n * waist**2 / wavelength)


def q_from_waist(waist: float, wavelength: float, n: float = 1.0, z: float = 0.0) -> complex:
    """Complex beam parameter at distance ``z`` after a waist of radius ``waist``."""
    return complex(z, rayleigh_range(waist, wavelength, n))


def beam_radius(q: complex, wavelength: float, n: float = 1.0) -> float:
    """1/e^2 intensity radius w for the beam parameter ``q``."""
    imag = (1 / q).imag
    if imag >= 0:
        raise ValueError(f"Beam parameter {q} does not describe a confined beam")
    return float(np.sqrt(-wavelength / (np.pi * n * imag)))


def wavefront_radius(q: complex) -> float:
    """Wavefront radius of curvature R; ``inf`` for a flat wavefront."""
    real = (1 / q).real
    if real == 0:
        return np.inf
    return float(1 / real)


def waist_from_q(q: complex, wavelength: float, n: float = 1.0) -> Tuple[float, float]:
    """
    Waist of the beam described by ``q``.

    Returns:
        (w0, distance) where ``distance`` is measured from the current plane to
        the waist along the propagation direction (negative if behind)
    """
    if q.imag <= 0:
        raise ValueError(f"Beam parameter {q} does not describe a confined beam")
    w0 = float(np.sqrt(q.imag * wavelength / (np.pi * n)))
    return w0, float(-q.real)
