"""
Gaussian beam module: ABCD formulary and ray-based Gaussian beamlets.
"""

from .abcd import (
    beam_radius,
    curved_mirror,
    free_space,
    interface,
    q_from_waist,
    rayleigh_range,
    thin_lens,
    transform_q,
    waist_from_q,
    wavefront_radius,
)
from .beamlet import GaussianBeamlet, GaussianParameters

__all__ = [
    # Beamlet
    "GaussianBeamlet",
    "GaussianParameters",
    # ABCD matrices
    "free_space",
    "interface",
    "curved_mirror",
    "thin_lens",
    "transform_q",
    # Beam parameter conversions
    "q_from_waist",
    "beam_radius",
    "wavefront_radius",
    "waist_from_q",
    "rayleigh_range",
]
