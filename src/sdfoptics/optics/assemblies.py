"""
Multi-element optical components.

Assemblies are returned as ``ObjectGroup``s so that they can be placed and
rotated like a single element while the solver sees each part separately.
"""

from __future__ import annotations

from typing import Union

import numpy as np

from ..exceptions import InvalidDimensionError
from ..geometry import BoxSDF, CombineRule, RightAnglePrismSDF, combine
from ..geometry.primitives import check_positive
from .elements import BeamSplitter, Lens
from .materials import Dispersion
from .system import ObjectGroup


def cube_beamsplitter(
    size: float,
    dispersion: Union[float, Dispersion],
    reflectivity: float = 0.5,
    coating_thickness: float = 1e-5,
) -> ObjectGroup:
    """
    Cube beamsplitter centred on the origin.

    Two right-angle prism halves of the same glass form the cube body; their
    hypotenuse faces meet on the diagonal plane x + y = 0, which carries a
    thin splitting coating. A ray entering along +y through the y = -size/2
    face is split into a transmitted beam along +y and a reflected beam
    along -x.

    Args:
        size: Edge length of the cube
        dispersion: Refractive index of the prism glass
        reflectivity: Power reflectance of the coating
        coating_thickness: Thickness of the coating layer

    Returns:
        Group of the glass body and the coating, pivoting about the cube center

    Raises:
        InvalidDimensionError: If the coating is not thinner than the cube
    """
    check_positive("size", size)
    check_positive("coating_thickness", coating_thickness)
    if coating_thickness >= size:
        raise InvalidDimensionError(
            f"Coating thickness {coating_thickness} must be smaller than the cube size {size}"
        )
    half = size / 2

    lower = RightAnglePrismSDF(size, size)
    lower.translate3d((-half, -half, 0.0))
    upper = RightAnglePrismSDF(size, size)
    upper.zrotate3d(np.pi)
    upper.translate3d((half, half, 0.0))
    body = Lens(
        combine(CombineRule.UNION, lower, upper, thickness=size, diameter=size),
        dispersion,
        name="CubeBody",
    )

    # local y of the layer along the diagonal normal (1, 1, 0) / sqrt(2)
    layer = BoxSDF(((size - coating_thickness) * np.sqrt(2), coating_thickness, size))
    layer.zrotate3d(-np.pi / 4)
    coating = BeamSplitter(layer, reflectivity, name="CubeCoating")

    return ObjectGroup([body, coating])
