"""
Placed optical elements.

An element attaches a world placement and an optical behavior tag to an SDF
shape. Elements are mutable while the scene is being assembled; the solver
only ever sees the frozen snapshot produced by ``System.freeze``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from ..exceptions import InvalidDimensionError
from ..geometry import (
    SDF,
    BoxSDF,
    CombineRule,
    ConcaveSphericalSurfaceSDF,
    PlanoSurfaceSDF,
    RightAnglePrismSDF,
    combine,
    plano_convex_lens_sdf,
)
from ..geometry.primitives import check_positive
from ..geometry.transforms import RigidTransform
from .materials import Dispersion, as_dispersion


class Behavior(Enum):
    """Optical behavior of an element."""

    REFRACTIVE = "refractive"
    REFLECTIVE = "reflective"
    ABSORPTIVE = "absorptive"
    SPLITTING = "splitting"
    NON_INTERACTABLE = "non_interactable"


class OpticalElement(RigidTransform):
    """
    An SDF shape placed in the world with an optical behavior.

    The element's placement is applied on top of the shape's own transform.
    Rotations turn the element about its own position.

    Attributes:
        shape: Geometry of the element
        behavior: Interaction rule selector
        dispersion: Wavelength to refractive index mapping (refractive elements)
        reflectivity: Power reflectance of splitting elements; ``None`` selects
            the Fresnel reflectance of ``dispersion``
        partially_reflective: Refractive elements also emit a Fresnel reflection
        name: Label used in logs and reprs
    """

    def __init__(
        self,
        shape: SDF,
        behavior: Behavior,
        *,
        dispersion: Optional[Union[float, Dispersion]] = None,
        reflectivity: Optional[float] = None,
        partially_reflective: bool = False,
        name: Optional[str] = None,
    ):
        if not isinstance(shape, SDF):
            raise TypeError(f"shape must be an SDF, got {type(shape).__name__}")
        if not isinstance(behavior, Behavior):
            raise TypeError(f"behavior must be a Behavior, got {type(behavior).__name__}")
        if behavior is Behavior.REFRACTIVE and dispersion is None:
            raise ValueError("Refractive elements need a dispersion")
        if reflectivity is not None:
            reflectivity = float(reflectivity)
            if not 0.0 <= reflectivity <= 1.0:
                raise ValueError(f"reflectivity must be in [0, 1], got {reflectivity}")
        if behavior is Behavior.SPLITTING and reflectivity is None and dispersion is None:
            raise ValueError("Splitting elements need a reflectivity or a dispersion")

        super().__init__()
        self.shape = shape
        self.behavior = behavior
        self.dispersion = as_dispersion(dispersion) if dispersion is not None else None
        self.reflectivity = reflectivity
        self.partially_reflective = bool(partially_reflective)
        self.name = name or type(self).__name__

    # Geometry queries

    def sdf(self, point: NDArray) -> Union[float, NDArray]:
        """Signed distance in world coordinates."""
        return self.shape.sdf(self._world_to_local(point))

    @property
    def thickness(self) -> float:
        return self.shape.thickness

    @property
    def diameter(self) -> float:
        return self.shape.diameter

    def bounding_sphere(self) -> Tuple[NDArray, float]:
        """World-space bounding sphere (center, radius)."""
        center, radius = self.shape.bounding_sphere()
        return self._local_to_world(center), radius

    def refractive_index(self, wavelength: float) -> float:
        """Refractive index at ``wavelength``."""
        if self.dispersion is None:
            raise ValueError(f"{self.name} has no dispersion")
        return float(self.dispersion(wavelength))

    def sample_sdf(self, grid: NDArray) -> NDArray:
        """Evaluate the world SDF on an (..., 3) grid of points, keeping its shape."""
        points = np.asarray(grid, dtype=np.float64)
        values = self.sdf(points.reshape(-1, 3))
        return np.asarray(values).reshape(points.shape[:-1])

    def surface_points(self, resolution: int = 32) -> NDArray:
        """
        Sample points close to the element surface on a regular grid.

        Intended for external visualization and mesh extraction; the core never
        renders anything itself.

        Args:
            resolution: Grid samples per axis of the bounding box

        Returns:
            (M, 3) world points whose |sdf| is below half a grid cell diagonal
        """
        center, radius = self.bounding_sphere()
        axis = np.linspace(-radius, radius, resolution)
        grid = np.stack(np.meshgrid(axis, axis, axis, indexing="ij"), axis=-1).reshape(-1, 3)
        points = grid + center
        distances = self.sdf(points)
        cell = 2 * radius / max(resolution - 1, 1)
        return points[np.abs(distances) < np.sqrt(3) * cell / 2]

    def __repr__(self) -> str:
        pos = np.array2string(self.position, precision=4)
        return f"{self.name}({self.behavior.value}, pos={pos})"


class Lens(OpticalElement):
    """Refractive element."""

    def __init__(
        self,
        shape: SDF,
        dispersion: Union[float, Dispersion],
        *,
        partially_reflective: bool = False,
        name: Optional[str] = None,
    ):
        super().__init__(
            shape,
            Behavior.REFRACTIVE,
            dispersion=dispersion,
            partially_reflective=partially_reflective,
            name=name,
        )


class Mirror(OpticalElement):
    """Specularly reflecting element."""

    def __init__(self, shape: SDF, *, name: Optional[str] = None):
        super().__init__(shape, Behavior.REFLECTIVE, name=name)


class BeamSplitter(OpticalElement):
    """
    Partially reflecting element producing a reflected and a transmitted beam.

    The transmitted beam passes straight through the splitter body.
    """

    def __init__(
        self,
        shape: SDF,
        reflectivity: Optional[float] = 0.5,
        *,
        dispersion: Optional[Union[float, Dispersion]] = None,
        name: Optional[str] = None,
    ):
        super().__init__(
            shape,
            Behavior.SPLITTING,
            reflectivity=reflectivity,
            dispersion=dispersion,
            name=name,
        )


class Absorber(OpticalElement):
    """Element that terminates every ray hitting it."""

    def __init__(self, shape: SDF, *, name: Optional[str] = None):
        super().__init__(shape, Behavior.ABSORPTIVE, name=name)


class Dummy(OpticalElement):
    """Decorative, non-interactable element (mounts, posts); blocks rays."""

    def __init__(self, shape: SDF, *, name: Optional[str] = None):
        super().__init__(shape, Behavior.NON_INTERACTABLE, name=name)


def plano_convex_lens(
    radius: float,
    center_thickness: float,
    diameter: float,
    dispersion: Union[float, Dispersion],
    **kwargs,
) -> Lens:
    """Plano-convex lens with its convex front vertex at the element position."""
    return Lens(plano_convex_lens_sdf(radius, center_thickness, diameter), dispersion, **kwargs)


def round_plano_mirror(diameter: float, thickness: float, **kwargs) -> Mirror:
    """Round flat mirror; the reflective face lies at the element position, facing -y."""
    return Mirror(PlanoSurfaceSDF(thickness, diameter), **kwargs)


def concave_spherical_mirror(radius: float, diameter: float, thickness: float, **kwargs) -> Mirror:
    """
    Concave spherical mirror facing -y with its vertex at the element position.

    ``thickness`` is the on-axis substrate thickness behind the vertex.
    """
    check_positive("thickness", thickness)
    face = ConcaveSphericalSurfaceSDF(radius, diameter)
    back = PlanoSurfaceSDF(thickness, diameter)
    shape = combine(CombineRule.UNION, face, back, thickness=thickness, diameter=diameter)
    return Mirror(shape, **kwargs)


def thin_beamsplitter(
    diameter: float,
    thickness: float = 1e-4,
    reflectivity: Optional[float] = 0.5,
    **kwargs,
) -> BeamSplitter:
    """Thin plate beamsplitter, centred on the element position with normal along y."""
    if thickness >= diameter:
        raise InvalidDimensionError(
            f"Plate thickness {thickness} must be smaller than its diameter {diameter}"
        )
    plate = PlanoSurfaceSDF(thickness, diameter)
    plate.translate3d((0.0, -thickness / 2, 0.0))
    return BeamSplitter(plate, reflectivity, **kwargs)


def right_angle_prism(
    leg: float, height: float, dispersion: Union[float, Dispersion], **kwargs
) -> Lens:
    """Refractive right-angle prism, legs along +x and +y from the element position."""
    return Lens(RightAnglePrismSDF(leg, height), dispersion, **kwargs)


def beam_dump(size: float, **kwargs) -> Absorber:
    """Cubic absorber centred on the element position."""
    return Absorber(BoxSDF((size, size, size)), **kwargs)
