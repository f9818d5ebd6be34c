"""
Even-asphere sag equation and exact 2D distance to profile regions.
"""

from __future__ import annotations

from typing import Callable, Sequence, Union

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import minimize_scalar

from ..exceptions import DegenerateGeometryError

# samples used to seed the closest-point search on a profile curve
_PROFILE_SAMPLES = 257


def aspheric_sag(
    u: Union[float, NDArray],
    curvature: float,
    conic_constant: float = 0.0,
    coefficients: Sequence[float] = (),
) -> Union[float, NDArray]:
    """
    Even-asphere sag.

    z(u) = c u^2 / (1 + sqrt(1 - (1 + k) c^2 u^2)) + A4 u^4 + A6 u^6 + ...

    Args:
        u: Transverse coordinate(s)
        curvature: Vertex curvature c = 1/R
        conic_constant: Conic constant k
        coefficients: Even polynomial coefficients (A4, A6, ...)

    Returns:
        Sag at ``u``
    """
    u = np.asarray(u, dtype=np.float64)
    r2 = u**2
    root = np.sqrt(np.maximum(1.0 - (1.0 + conic_constant) * curvature**2 * r2, 0.0))
    z = curvature * r2 / (1.0 + root)
    for i, a in enumerate(coefficients):
        z = z + a * r2 ** (i + 2)
    if z.ndim == 0:
        return float(z)
    return z


def check_aspheric(curvature: float, conic_constant: float, diameter: float) -> None:
    """
    Check that the conic part of the sag is defined over the full aperture.

    Raises:
        DegenerateGeometryError: If the square root turns negative before the rim
    """
    a = diameter / 2
    if 1.0 - (1.0 + conic_constant) * curvature**2 * a**2 < 0:
        raise DegenerateGeometryError(
            f"Conic surface (c={curvature}, k={conic_constant}) is undefined at the "
            f"rim of a {diameter} aperture"
        )


def _curve_distance(u: float, v: float, lower: Callable, samples: NDArray, values: NDArray) -> float:
    """Distance from (u, v) to the curve segment v = lower(x) sampled on ``samples``."""
    d2 = (samples - u) ** 2 + (values - v) ** 2
    j = int(np.argmin(d2))
    lo = samples[max(j - 1, 0)]
    hi = samples[min(j + 1, len(samples) - 1)]
    result = minimize_scalar(
        lambda x: (x - u) ** 2 + (lower(x) - v) ** 2,
        bounds=(lo, hi),
        method="bounded",
        options={"xatol": 1e-13},
    )
    best = min(float(result.fun), float(d2[j]))
    return float(np.sqrt(max(best, 0.0)))


def profile_region_distance(
    u: NDArray,
    v: NDArray,
    lower: Callable,
    half_aperture: float,
    top: float,
) -> NDArray:
    """
    Signed distance to the region ``|u| <= a, lower(u) <= v <= top``.

    The boundary consists of the curve, the flat top and, where
    ``lower(a) < top``, the two vertical rim segments.

    Args:
        u: Transverse coordinates
        v: Axial coordinates
        lower: Lower boundary curve (even function of u)
        half_aperture: Half aperture a
        top: Axial position of the flat top

    Returns:
        Signed distances with the broadcast shape of ``u`` and ``v``
    """
    u, v = np.broadcast_arrays(np.asarray(u, dtype=np.float64), np.asarray(v, dtype=np.float64))
    shape = u.shape
    uf = u.ravel()
    vf = v.ravel()
    a = half_aperture

    samples = np.linspace(-a, a, _PROFILE_SAMPLES)
    values = np.asarray(lower(samples), dtype=np.float64)
    rim = float(lower(a))

    curve = np.array([_curve_distance(ui, vi, lower, samples, values) for ui, vi in zip(uf, vf)])
    abs_u = np.abs(uf)
    top_segment = np.hypot(np.maximum(abs_u - a, 0.0), vf - top)
    distance = np.minimum(curve, top_segment)
    if rim < top:
        side = np.hypot(abs_u - a, np.maximum(np.maximum(rim - vf, vf - top), 0.0))
        distance = np.minimum(distance, side)

    inside = (abs_u < a) & (vf < top)
    inside &= vf > np.asarray(lower(np.clip(uf, -a, a)), dtype=np.float64)
    signed = np.where(inside, -distance, distance)
    return signed.reshape(shape)
