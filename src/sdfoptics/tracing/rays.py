"""
Rays and intersection records.

A ray is a tagged variant over its payload: scalar rays carry an intensity,
polarized rays carry a complex electric field vector whose squared norm is
the intensity. Interaction rules dispatch on ``Ray.kind``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from ..exceptions import InvalidInputError
from ..geometry.transforms import as_vector3
from ..optics.system import FrozenElement


class RayKind(Enum):
    """Payload tag of a ray."""

    SCALAR = "scalar"
    POLARIZED = "polarized"


@dataclass(frozen=True)
class Hint:
    """
    Seed for the next intersection search after a hit.

    Attributes:
        element_index: Element the previous ray ended on
        pass_through: Ignore that element for the whole next ray instead of
            only the self-intersection offset (transmission through thin
            beamsplitters)
        shared: Further elements whose surface coincides with the hit
            (cemented interfaces); ignored over the same travel
    """

    element_index: int
    pass_through: bool = False
    shared: Tuple[int, ...] = ()

    @property
    def skipped(self) -> FrozenSet[int]:
        return frozenset((self.element_index, *self.shared))


@dataclass(eq=False)
class Intersection:
    """
    Nearest-hit record of a single ray.

    Attributes:
        t: Distance from the ray origin to the hit
        element: Struck element
        normal: Outward unit surface normal at the hit
        hint: Default hint for searches starting at this hit
    """

    t: float
    element: FrozenElement
    normal: NDArray
    hint: Optional[Hint] = None

    def __post_init__(self):
        if self.hint is None:
            self.hint = Hint(self.element.index)

    @property
    def element_index(self) -> int:
        return self.element.index


@dataclass(eq=False)
class Ray:
    """
    Single straight propagation segment.

    Attributes:
        position: Origin of the ray
        direction: Unit propagation direction
        wavelength: Vacuum wavelength in meters
        refractive_index: Index of the medium the ray travels in
        intensity: Scalar intensity; derived from ``polarization`` when given
        polarization: Complex electric field vector (polarized rays only)
        intersection: Nearest hit, ``None`` until traced or when escaping
    """

    position: NDArray
    direction: NDArray
    wavelength: float
    refractive_index: float = 1.0
    intensity: float = 1.0
    polarization: Optional[NDArray] = None
    intersection: Optional[Intersection] = field(default=None, repr=False)

    def __post_init__(self):
        self.position = as_vector3(self.position, "position").copy()
        direction = as_vector3(self.direction, "direction")
        norm = np.linalg.norm(direction)
        if not np.isfinite(norm) or norm < 1e-15:
            raise InvalidInputError("Ray direction must be a non-zero vector")
        self.direction = direction / norm
        if not self.wavelength > 0:
            raise InvalidInputError(f"Wavelength must be positive, got {self.wavelength}")
        if self.polarization is not None:
            e = np.asarray(self.polarization, dtype=np.complex128)
            if e.shape != (3,):
                raise InvalidInputError(f"Polarization must have shape (3,), got {e.shape}")
            self.polarization = e
            self.intensity = float(np.vdot(e, e).real)

    @property
    def kind(self) -> RayKind:
        return RayKind.SCALAR if self.polarization is None else RayKind.POLARIZED

    @property
    def length(self) -> float:
        """Distance to the intersection, ``inf`` for escaping rays."""
        if self.intersection is None:
            return np.inf
        return self.intersection.t

    @property
    def optical_path_length(self) -> float:
        return self.refractive_index * self.length

    @property
    def endpoint(self) -> Optional[NDArray]:
        """Hit point, or ``None`` for escaping rays."""
        if self.intersection is None:
            return None
        return self.at(self.intersection.t)

    def at(self, t: float) -> NDArray:
        """Point at distance ``t`` along the ray."""
        return self.position + t * self.direction

    def incidence_angle(self) -> float:
        """Angle between the ray direction and the surface normal at its hit."""
        if self.intersection is None:
            raise ValueError("Ray has no intersection")
        cos = np.clip(np.dot(self.direction, self.intersection.normal), -1.0, 1.0)
        return float(np.arccos(cos))

    def __repr__(self) -> str:
        pos = np.array2string(self.position, precision=4)
        dir_ = np.array2string(self.direction, precision=4)
        return f"Ray({self.kind.value}, pos={pos}, dir={dir_}, len={self.length:.4g})"
