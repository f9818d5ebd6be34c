"""
Tracing module: rays, beam trees, interaction rules and the solver.

This module provides the sphere tracer used to intersect rays with frozen
scenes and the beam-tree propagation built on top of it.
"""

from .beam import Beam, BeamNode, BeamTree, Termination, is_paraxial
from .interactions import (
    INTERACTION_RULES,
    Continuation,
    check_interactions,
    fresnel_coefficients,
    fresnel_reflectance,
    interact,
    reflect,
    refract,
)
from .rays import Hint, Intersection, Ray, RayKind
from .solver import SolverConfig, as_frozen, solve, solve_all
from .sources import collimated_source, point_source, polarized_ray, transverse_basis
from .sphere_tracer import TracerConfig, first_hit, mean_curvature, surface_normal

__all__ = [
    # Rays
    "Ray",
    "RayKind",
    "Hint",
    "Intersection",
    # Beam tree
    "BeamTree",
    "BeamNode",
    "Beam",
    "Termination",
    "is_paraxial",
    # Intersection
    "TracerConfig",
    "first_hit",
    "surface_normal",
    "mean_curvature",
    # Interactions
    "INTERACTION_RULES",
    "Continuation",
    "interact",
    "check_interactions",
    "reflect",
    "refract",
    "fresnel_coefficients",
    "fresnel_reflectance",
    # Solver
    "SolverConfig",
    "solve",
    "solve_all",
    "as_frozen",
    # Sources
    "collimated_source",
    "point_source",
    "polarized_ray",
    "transverse_basis",
]
