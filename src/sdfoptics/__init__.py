"""
sdfoptics - Ray and Gaussian beamlet tracing through SDF-defined optics.

This package provides tools for:
- Building lens, mirror and prism shapes from signed distance functions
- Placing optical elements and grouping them into systems
- Sphere tracing rays into beam trees with reflection, refraction and splitting
- Deriving Gaussian beam parameters along traced chief rays

Example Usage:
    >>> from sdfoptics.optics import System, plano_convex_lens
    >>> from sdfoptics.tracing import Ray, solve
    >>> lens = plano_convex_lens(50e-3, 5e-3, 25e-3, dispersion=1.5)
    >>> tree = solve(System([lens]), Ray([0, -0.05, 0], [0, 1, 0], 550e-9))
    >>> tree.root.length

    >>> from sdfoptics.gaussian import GaussianBeamlet
    >>> beamlet = GaussianBeamlet([0, -0.05, 0], [0, 1, 0], 1064e-9, waist=1e-3)
    >>> beamlet.solve(System([lens]))
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__version__ = "0.1.0"

# Lazy imports keep `import sdfoptics` cheap
_LAZY_IMPORTS = {
    # Exceptions
    "SDFOpticsError": "sdfoptics.exceptions",
    "DegenerateGeometryError": "sdfoptics.exceptions",
    "InvalidDimensionError": "sdfoptics.exceptions",
    "InvalidInputError": "sdfoptics.exceptions",
    "UnsupportedInteraction": "sdfoptics.exceptions",
    "ConvergenceFailure": "sdfoptics.exceptions",

    # Geometry module
    "CombineRule": "sdfoptics.geometry",
    "combine": "sdfoptics.geometry",
    "distance": "sdfoptics.geometry",
    "SphereSDF": "sdfoptics.geometry",
    "PlanoSurfaceSDF": "sdfoptics.geometry",
    "ConvexSphericalSurfaceSDF": "sdfoptics.geometry",
    "ConcaveSphericalSurfaceSDF": "sdfoptics.geometry",
    "AsphericSurfaceSDF": "sdfoptics.geometry",
    "AcylindricalSurfaceSDF": "sdfoptics.geometry",

    # Optics module
    "Behavior": "sdfoptics.optics",
    "OpticalElement": "sdfoptics.optics",
    "Lens": "sdfoptics.optics",
    "Mirror": "sdfoptics.optics",
    "BeamSplitter": "sdfoptics.optics",
    "ObjectGroup": "sdfoptics.optics",
    "System": "sdfoptics.optics",
    "RefractiveIndexTable": "sdfoptics.optics",
    "plano_convex_lens": "sdfoptics.optics",
    "concave_spherical_mirror": "sdfoptics.optics",
    "round_plano_mirror": "sdfoptics.optics",
    "thin_beamsplitter": "sdfoptics.optics",
    "cube_beamsplitter": "sdfoptics.optics",
    "right_angle_prism": "sdfoptics.optics",
    "beam_dump": "sdfoptics.optics",

    # Tracing module
    "Ray": "sdfoptics.tracing",
    "BeamTree": "sdfoptics.tracing",
    "Beam": "sdfoptics.tracing",
    "Termination": "sdfoptics.tracing",
    "SolverConfig": "sdfoptics.tracing",
    "TracerConfig": "sdfoptics.tracing",
    "solve": "sdfoptics.tracing",
    "solve_all": "sdfoptics.tracing",
    "first_hit": "sdfoptics.tracing",
    "is_paraxial": "sdfoptics.tracing",

    # Gaussian module
    "GaussianBeamlet": "sdfoptics.gaussian",
    "GaussianParameters": "sdfoptics.gaussian",
}

# Submodules
_SUBMODULES = frozenset([
    "geometry",
    "optics",
    "tracing",
    "gaussian",
    "exceptions",
])


def __getattr__(name: str) -> Any:
    """Lazy import handler for package attributes."""
    if name in _LAZY_IMPORTS:
        module = importlib.import_module(_LAZY_IMPORTS[name])
        return getattr(module, name)

    if name in _SUBMODULES:
        return importlib.import_module(f"sdfoptics.{name}")

    raise AttributeError(f"module 'sdfoptics' has no attribute '{name}'")


def __dir__() -> list[str]:
    """Return available attributes for autocomplete."""
    return list(_LAZY_IMPORTS.keys()) + list(_SUBMODULES) + ["__version__"]


if TYPE_CHECKING:
    from sdfoptics.exceptions import (
        ConvergenceFailure,
        DegenerateGeometryError,
        InvalidDimensionError,
        InvalidInputError,
        SDFOpticsError,
        UnsupportedInteraction,
    )
    from sdfoptics.gaussian import GaussianBeamlet, GaussianParameters
    from sdfoptics.geometry import (
        AcylindricalSurfaceSDF,
        AsphericSurfaceSDF,
        CombineRule,
        ConcaveSphericalSurfaceSDF,
        ConvexSphericalSurfaceSDF,
        PlanoSurfaceSDF,
        SphereSDF,
        combine,
        distance,
    )
    from sdfoptics.optics import (
        BeamSplitter,
        Behavior,
        Lens,
        Mirror,
        ObjectGroup,
        OpticalElement,
        RefractiveIndexTable,
        System,
        beam_dump,
        concave_spherical_mirror,
        cube_beamsplitter,
        plano_convex_lens,
        right_angle_prism,
        round_plano_mirror,
        thin_beamsplitter,
    )
    from sdfoptics.tracing import (
        Beam,
        BeamTree,
        Ray,
        SolverConfig,
        Termination,
        TracerConfig,
        first_hit,
        is_paraxial,
        solve,
        solve_all,
    )


__all__ = [
    # Version info
    "__version__",
    # Exceptions
    "SDFOpticsError",
    "DegenerateGeometryError",
    "InvalidDimensionError",
    "InvalidInputError",
    "UnsupportedInteraction",
    "ConvergenceFailure",
    # Geometry
    "CombineRule",
    "combine",
    "distance",
    "SphereSDF",
    "PlanoSurfaceSDF",
    "ConvexSphericalSurfaceSDF",
    "ConcaveSphericalSurfaceSDF",
    "AsphericSurfaceSDF",
    "AcylindricalSurfaceSDF",
    # Optics
    "Behavior",
    "OpticalElement",
    "Lens",
    "Mirror",
    "BeamSplitter",
    "ObjectGroup",
    "System",
    "RefractiveIndexTable",
    "plano_convex_lens",
    "concave_spherical_mirror",
    "round_plano_mirror",
    "thin_beamsplitter",
    "cube_beamsplitter",
    "right_angle_prism",
    "beam_dump",
    # Tracing
    "Ray",
    "BeamTree",
    "Beam",
    "Termination",
    "SolverConfig",
    "TracerConfig",
    "solve",
    "solve_all",
    "first_hit",
    "is_paraxial",
    # Gaussian
    "GaussianBeamlet",
    "GaussianParameters",
]
