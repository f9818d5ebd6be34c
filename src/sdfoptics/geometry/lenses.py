"""
Closed-volume lens shapes assembled from spherical primitives.

All shapes share the canonical frame: optical axis along +y and the front
vertex at the origin. Curved parts are placed flush with the cylindrical
sections between them.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..exceptions import InvalidDimensionError
from .composite import CombineRule, CompositeSDF, combine
from .primitives import (
    ConcaveSphericalSurfaceSDF,
    ConvexSphericalSurfaceSDF,
    PlanoSurfaceSDF,
    RingSDF,
    check_positive,
    sagitta,
)


def check_mechanical_diameter(diameter: float, mechanical_diameter: float) -> None:
    """
    Raises:
        InvalidDimensionError: If the mechanical diameter is not larger than the optical one
    """
    if mechanical_diameter <= diameter:
        raise InvalidDimensionError(
            f"Mechanical diameter {mechanical_diameter} must be larger than lens diameter {diameter}"
        )


def _cylinder_length(center_thickness: float, *sags: float) -> float:
    length = center_thickness - sum(sags)
    if length <= 0:
        raise InvalidDimensionError(
            f"Center thickness {center_thickness} leaves no cylindrical section "
            f"for surface sags {sags}"
        )
    return length


def _with_ring(
    shape: CompositeSDF,
    diameter: float,
    mechanical_diameter: float,
    y_min: float,
    y_max: float,
    thickness: float,
) -> CompositeSDF:
    """Add an outer mounting ring spanning y_min..y_max."""
    check_mechanical_diameter(diameter, mechanical_diameter)
    ring = RingSDF(diameter / 2, (mechanical_diameter - diameter) / 2, y_max - y_min)
    ring.translate3d((0.0, (y_min + y_max) / 2, 0.0))
    return combine(
        CombineRule.UNION,
        *shape.children,
        ring,
        thickness=thickness,
        diameter=mechanical_diameter,
    )


def plano_convex_lens_sdf(radius: float, center_thickness: float, diameter: float) -> CompositeSDF:
    """
    Plano-convex lens: convex front, flat back.

    Args:
        radius: Radius of the convex front (> 0)
        center_thickness: Thickness on the optical axis
        diameter: Lens diameter
    """
    check_positive("center_thickness", center_thickness)
    s = sagitta(radius, diameter)
    front = ConvexSphericalSurfaceSDF(radius, diameter)
    back = PlanoSurfaceSDF(_cylinder_length(center_thickness, s), diameter)
    back.translate3d((0.0, s, 0.0))
    return combine(CombineRule.UNION, front, back, thickness=center_thickness, diameter=diameter)


def plano_concave_lens_sdf(
    radius: float,
    center_thickness: float,
    diameter: float,
    mechanical_diameter: Optional[float] = None,
) -> CompositeSDF:
    """
    Plano-concave lens: flat front, concave back.

    Args:
        radius: Radius of the concave back (> 0)
        center_thickness: Thickness on the optical axis
        diameter: Lens diameter
        mechanical_diameter: Adds an outer ring if given, must exceed ``diameter``
    """
    front = PlanoSurfaceSDF(center_thickness, diameter)
    back = ConcaveSphericalSurfaceSDF(radius, diameter)
    back.zrotate3d(np.pi)
    back.translate3d((0.0, center_thickness, 0.0))
    shape = combine(CombineRule.UNION, front, back, thickness=center_thickness, diameter=diameter)
    if mechanical_diameter is None:
        return shape
    return _with_ring(
        shape, diameter, mechanical_diameter, 0.0, center_thickness + back.sag, center_thickness
    )


def biconvex_lens_sdf(
    front_radius: float, back_radius: float, center_thickness: float, diameter: float
) -> CompositeSDF:
    """Bi-convex lens with both radii given as positive numbers."""
    check_positive("center_thickness", center_thickness)
    s1 = sagitta(front_radius, diameter)
    s2 = sagitta(back_radius, diameter)
    front = ConvexSphericalSurfaceSDF(front_radius, diameter)
    mid = PlanoSurfaceSDF(_cylinder_length(center_thickness, s1, s2), diameter)
    back = ConvexSphericalSurfaceSDF(back_radius, diameter)
    mid.translate3d((0.0, s1, 0.0))
    back.zrotate3d(np.pi)
    back.translate3d((0.0, center_thickness, 0.0))
    return combine(CombineRule.UNION, front, mid, back, thickness=center_thickness, diameter=diameter)


def biconcave_lens_sdf(
    front_radius: float,
    back_radius: float,
    center_thickness: float,
    diameter: float,
    mechanical_diameter: Optional[float] = None,
) -> CompositeSDF:
    """Bi-concave lens with both radii given as positive numbers."""
    front = ConcaveSphericalSurfaceSDF(front_radius, diameter)
    mid = PlanoSurfaceSDF(center_thickness, diameter)
    back = ConcaveSphericalSurfaceSDF(back_radius, diameter)
    back.zrotate3d(np.pi)
    back.translate3d((0.0, center_thickness, 0.0))
    shape = combine(CombineRule.UNION, front, mid, back, thickness=center_thickness, diameter=diameter)
    if mechanical_diameter is None:
        return shape
    return _with_ring(
        shape,
        diameter,
        mechanical_diameter,
        -front.sag,
        center_thickness + back.sag,
        center_thickness,
    )


def thin_lens_sdf(front_radius: float, back_radius: float, diameter: float) -> CompositeSDF:
    """Bi-convex lens whose two caps meet flush with no cylindrical section."""
    front = ConvexSphericalSurfaceSDF(front_radius, diameter)
    back = ConvexSphericalSurfaceSDF(back_radius, diameter)
    thickness = front.sag + back.sag
    back.zrotate3d(np.pi)
    back.translate3d((0.0, thickness, 0.0))
    return combine(CombineRule.UNION, front, back, thickness=thickness, diameter=diameter)


def meniscus_lens_sdf(
    front_radius: float, back_radius: float, center_thickness: float, diameter: float
) -> CompositeSDF:
    """
    Meniscus lens: convex front, concave back, both centres of curvature on +y.

    Args:
        front_radius: Radius of the convex front (> 0)
        back_radius: Radius of the concave back (> 0)
        center_thickness: Thickness on the optical axis
        diameter: Lens diameter
    """
    s1 = sagitta(front_radius, diameter)
    front = ConvexSphericalSurfaceSDF(front_radius, diameter)
    mid = PlanoSurfaceSDF(_cylinder_length(center_thickness, s1), diameter)
    back = ConcaveSphericalSurfaceSDF(back_radius, diameter)
    mid.translate3d((0.0, s1, 0.0))
    back.zrotate3d(np.pi)
    back.translate3d((0.0, center_thickness, 0.0))
    return combine(CombineRule.UNION, front, mid, back, thickness=center_thickness, diameter=diameter)
