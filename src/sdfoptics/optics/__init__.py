"""
Optics module: materials, placed elements and scene assembly.

This module turns SDF shapes into optical elements with a behavior and a
world placement, and collects them into systems that can be frozen for
tracing.
"""

from .elements import (
    Absorber,
    Behavior,
    BeamSplitter,
    Dummy,
    Lens,
    Mirror,
    OpticalElement,
    beam_dump,
    concave_spherical_mirror,
    plano_convex_lens,
    right_angle_prism,
    round_plano_mirror,
    thin_beamsplitter,
)
from .assemblies import cube_beamsplitter
from .materials import ConstantIndex, RefractiveIndexTable, as_dispersion
from .system import FrozenElement, FrozenSystem, ObjectGroup, System

__all__ = [
    # Materials
    "ConstantIndex",
    "RefractiveIndexTable",
    "as_dispersion",
    # Elements
    "Behavior",
    "OpticalElement",
    "Lens",
    "Mirror",
    "BeamSplitter",
    "Absorber",
    "Dummy",
    "plano_convex_lens",
    "round_plano_mirror",
    "concave_spherical_mirror",
    "thin_beamsplitter",
    "cube_beamsplitter",
    "right_angle_prism",
    "beam_dump",
    # Scene
    "ObjectGroup",
    "System",
    "FrozenSystem",
    "FrozenElement",
]
