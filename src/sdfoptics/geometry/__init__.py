"""
Geometry module for SDF-based optical shapes.

This module provides signed distance function primitives, their boolean
composition and ready-made closed-volume lens shapes.
"""

from .aspheric import aspheric_sag, check_aspheric
from .composite import CombineRule, CompositeSDF, combine
from .lenses import (
    biconcave_lens_sdf,
    biconvex_lens_sdf,
    check_mechanical_diameter,
    meniscus_lens_sdf,
    plano_concave_lens_sdf,
    plano_convex_lens_sdf,
    thin_lens_sdf,
)
from .primitives import (
    SDF,
    AcylindricalSurfaceSDF,
    AsphericSurfaceSDF,
    BoxSDF,
    ConcaveSphericalSurfaceSDF,
    ConvexSphericalSurfaceSDF,
    PlanoSurfaceSDF,
    RightAnglePrismSDF,
    RingSDF,
    SphereSDF,
    check_sag,
    distance,
    sagitta,
)
from .transforms import RigidTransform, align_matrix, normalize3d, perpendicular, rotation_matrix

__all__ = [
    # Transforms
    "RigidTransform",
    "rotation_matrix",
    "align_matrix",
    "normalize3d",
    "perpendicular",
    # Primitives
    "SDF",
    "distance",
    "SphereSDF",
    "PlanoSurfaceSDF",
    "ConvexSphericalSurfaceSDF",
    "ConcaveSphericalSurfaceSDF",
    "RingSDF",
    "BoxSDF",
    "RightAnglePrismSDF",
    "AsphericSurfaceSDF",
    "AcylindricalSurfaceSDF",
    "sagitta",
    "check_sag",
    "aspheric_sag",
    "check_aspheric",
    # Composition
    "CombineRule",
    "CompositeSDF",
    "combine",
    # Lens shapes
    "plano_convex_lens_sdf",
    "plano_concave_lens_sdf",
    "biconvex_lens_sdf",
    "biconcave_lens_sdf",
    "thin_lens_sdf",
    "meniscus_lens_sdf",
    "check_mechanical_diameter",
]
