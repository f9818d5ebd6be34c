"""
Primitive signed distance functions.

All primitives follow the same conventions:

- Negative values are inside the solid, positive values outside.
- Each primitive is a 1-Lipschitz lower bound of the Euclidean distance,
  so it can be sphere traced without rescaling.
- Lens-type primitives share a canonical frame: the rotational symmetry axis
  is the local y axis, the optical surface faces negative y and its lowest
  on-axis point sits at the local origin.

``sdf`` accepts a single point of shape (3,) and returns a float, or an
(N, 3) array and returns an (N,) array.

References:
    Inigo Quilez SDF Functions: https://iquilezles.org/articles/distfunctions/
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from ..exceptions import DegenerateGeometryError, InvalidDimensionError
from .aspheric import check_aspheric, profile_region_distance, aspheric_sag
from .transforms import RigidTransform

Bounds = Tuple[NDArray, NDArray]


def check_positive(name: str, value: float) -> float:
    """Validate that a dimension is a finite positive number."""
    value = float(value)
    if not np.isfinite(value) or value <= 0:
        raise InvalidDimensionError(f"{name} must be positive, got {value}")
    return value


def check_sag(radius: float, diameter: float) -> None:
    """
    Check that a spherical surface of ``radius`` can span ``diameter``.

    Raises:
        DegenerateGeometryError: If the sagitta would exceed half the diameter
    """
    if abs(radius) < diameter / 2:
        raise DegenerateGeometryError(
            f"Radius {radius} is too small for diameter {diameter}: "
            "sagitta would exceed half the diameter"
        )


def sagitta(radius: float, diameter: float) -> float:
    """Sagitta of a spherical surface with ``radius`` over ``diameter``."""
    check_sag(radius, diameter)
    r = abs(radius)
    return float(r - np.sqrt(r**2 - (diameter / 2) ** 2))


def _box2d(qx: NDArray, qy: NDArray, half_x: float, half_y: float) -> NDArray:
    """Exact 2D distance to a centred rectangle."""
    dx = np.abs(qx) - half_x
    dy = np.abs(qy) - half_y
    outside = np.hypot(np.maximum(dx, 0.0), np.maximum(dy, 0.0))
    inside = np.minimum(np.maximum(dx, dy), 0.0)
    return outside + inside


def _radial(p: NDArray) -> NDArray:
    """Distance from the local y axis."""
    return np.hypot(p[..., 0], p[..., 2])


class SDF(RigidTransform, ABC):
    """
    Abstract base class for signed distance functions.

    Subclasses implement ``_local_sdf`` (distance in the shape's own frame)
    and ``_local_bounds`` (axis-aligned box in the same frame). The placement
    inherited from ``RigidTransform`` maps parent-frame points into that frame.
    """

    def sdf(self, point: NDArray) -> Union[float, NDArray]:
        """
        Evaluate the signed distance at one or many points.

        Args:
            point: (3,) point or (N, 3) array in the parent frame

        Returns:
            Float for a single point, (N,) array otherwise
        """
        p = self._world_to_local(point)
        value = self._local_sdf(p)
        if p.ndim == 1:
            return float(value)
        return np.asarray(value, dtype=np.float64)

    def __call__(self, point: NDArray) -> Union[float, NDArray]:
        return self.sdf(point)

    @abstractmethod
    def _local_sdf(self, p: NDArray) -> NDArray:
        """Signed distance for points already in the local frame."""
        pass

    @abstractmethod
    def _local_bounds(self) -> Bounds:
        """Axis-aligned (min, max) corners in the local frame."""
        pass

    @property
    @abstractmethod
    def thickness(self) -> float:
        """Material thickness along the local y axis."""
        pass

    @property
    @abstractmethod
    def diameter(self) -> float:
        """Outer diameter across the local y axis."""
        pass

    def bounds(self) -> Bounds:
        """Axis-aligned bounding box in the parent frame."""
        lo, hi = self._local_bounds()
        corners = np.array(
            [[x, y, z] for x in (lo[0], hi[0]) for y in (lo[1], hi[1]) for z in (lo[2], hi[2])]
        )
        placed = self._local_to_world(corners)
        return placed.min(axis=0), placed.max(axis=0)

    def bounding_sphere(self) -> Tuple[NDArray, float]:
        """Sphere (center, radius) enclosing the shape in the parent frame."""
        lo, hi = self.bounds()
        center = (lo + hi) / 2
        return center, float(np.linalg.norm(hi - lo) / 2)

    def contains(self, point: NDArray) -> Union[bool, NDArray]:
        """Check if points are inside (or on) the shape."""
        value = self.sdf(point)
        if np.ndim(value) == 0:
            return bool(value <= 0)
        return value <= 0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(thickness={self.thickness:.4g}, diameter={self.diameter:.4g})"


def distance(shape: SDF, point: NDArray) -> Union[float, NDArray]:
    """Signed distance from ``point`` to ``shape`` (negative inside)."""
    return shape.sdf(point)


class SphereSDF(SDF):
    """Sphere of ``radius`` centred at its position."""

    def __init__(self, radius: float):
        super().__init__()
        self.radius = check_positive("radius", radius)

    def _local_sdf(self, p: NDArray) -> NDArray:
        return np.linalg.norm(p, axis=-1) - self.radius

    def _local_bounds(self) -> Bounds:
        r = self.radius
        return np.full(3, -r), np.full(3, r)

    @property
    def thickness(self) -> float:
        return 2 * self.radius

    @property
    def diameter(self) -> float:
        return 2 * self.radius


class PlanoSurfaceSDF(SDF):
    """
    Two flat optical surfaces, i.e. a cylinder along the y axis.

    The first face lies at y=0, the second at y=thickness.
    """

    def __init__(self, thickness: float, diameter: float):
        super().__init__()
        self._thickness = check_positive("thickness", thickness)
        self._diameter = check_positive("diameter", diameter)

    def _local_sdf(self, p: NDArray) -> NDArray:
        return _box2d(
            _radial(p),
            p[..., 1] - self._thickness / 2,
            self._diameter / 2,
            self._thickness / 2,
        )

    def _local_bounds(self) -> Bounds:
        r = self._diameter / 2
        return np.array([-r, 0.0, -r]), np.array([r, self._thickness, r])

    @property
    def thickness(self) -> float:
        return self._thickness

    @property
    def diameter(self) -> float:
        return self._diameter


class ConvexSphericalSurfaceSDF(SDF):
    """
    Convex spherical lens surface: a cut sphere.

    The vertex sits at the origin and the cap extends towards positive y up
    to its flat back at y=sag.

    Attributes:
        radius: Radius of curvature
        sag: Sagitta of the cap
        height: Cut-off height of the cap measured from the sphere centre
    """

    def __init__(self, radius: float, diameter: float):
        super().__init__()
        self.radius = check_positive("radius", radius)
        self._diameter = check_positive("diameter", diameter)
        self.sag = sagitta(self.radius, self._diameter)
        self.height = self.radius - self.sag

    def _local_sdf(self, p: NDArray) -> NDArray:
        r = self.radius
        h = self.height
        w = self._diameter / 2
        qx = _radial(p)
        # flip y so the cap's flat side is the upper part of the cut sphere
        qy = r - p[..., 1]
        s = np.maximum(
            (h - r) * qx**2 + w**2 * (h + r - 2 * qy),
            h * qx - w * qy,
        )
        sphere = np.hypot(qx, qy) - r
        flat = h - qy
        rim = np.hypot(qx - w, qy - h)
        return np.where(s < 0, sphere, np.where(qx < w, flat, rim))

    def _local_bounds(self) -> Bounds:
        w = self._diameter / 2
        return np.array([-w, 0.0, -w]), np.array([w, self.sag, w])

    @property
    def thickness(self) -> float:
        return self.sag

    @property
    def diameter(self) -> float:
        return self._diameter


class ConcaveSphericalSurfaceSDF(SDF):
    """
    Concave spherical lens surface.

    A cylinder spanning y in [-sag, 0] with a sphere of ``radius`` removed,
    the sphere touching the origin. Attached to a flat section at y >= 0 it
    forms the concave face of a lens, hollow towards negative y.
    """

    def __init__(self, radius: float, diameter: float):
        super().__init__()
        self.radius = check_positive("radius", radius)
        self._diameter = check_positive("diameter", diameter)
        self.sag = sagitta(self.radius, self._diameter)

    def _local_sdf(self, p: NDArray) -> NDArray:
        cylinder = _box2d(_radial(p), p[..., 1] + self.sag / 2, self._diameter / 2, self.sag / 2)
        shifted = p + np.array([0.0, self.radius, 0.0])
        sphere = np.linalg.norm(shifted, axis=-1) - self.radius
        return np.maximum(cylinder, -sphere)

    def _local_bounds(self) -> Bounds:
        w = self._diameter / 2
        return np.array([-w, -self.sag, -w]), np.array([w, 0.0, w])

    @property
    def thickness(self) -> float:
        # zero material on the axis
        return 0.0

    @property
    def diameter(self) -> float:
        return self._diameter


class RingSDF(SDF):
    """
    Annulus around the y axis, centred at y=0.

    Used as the mechanical mounting ring of concave lenses.
    """

    def __init__(self, inner_radius: float, width: float, height: float):
        super().__init__()
        self.inner_radius = check_positive("inner_radius", inner_radius)
        self.width = check_positive("width", width)
        self.height = check_positive("height", height)

    def _local_sdf(self, p: NDArray) -> NDArray:
        return _box2d(
            _radial(p) - (self.inner_radius + self.width / 2),
            p[..., 1],
            self.width / 2,
            self.height / 2,
        )

    def _local_bounds(self) -> Bounds:
        r = self.inner_radius + self.width
        h = self.height / 2
        return np.array([-r, -h, -r]), np.array([r, h, r])

    @property
    def thickness(self) -> float:
        return self.height

    @property
    def diameter(self) -> float:
        return 2 * (self.inner_radius + self.width)


class BoxSDF(SDF):
    """Cuboid with edge lengths ``size`` centred at its position."""

    def __init__(self, size: Sequence[float]):
        super().__init__()
        sx, sy, sz = (check_positive("size", s) for s in size)
        self.half = np.array([sx, sy, sz]) / 2

    def _local_sdf(self, p: NDArray) -> NDArray:
        q = np.abs(p) - self.half
        outside = np.linalg.norm(np.maximum(q, 0.0), axis=-1)
        inside = np.minimum(np.max(q, axis=-1), 0.0)
        return outside + inside

    def _local_bounds(self) -> Bounds:
        return -self.half.copy(), self.half.copy()

    @property
    def thickness(self) -> float:
        return float(2 * self.half[1])

    @property
    def diameter(self) -> float:
        return float(2 * max(self.half[0], self.half[2]))


class RightAnglePrismSDF(SDF):
    """
    Right-angle prism.

    The triangular cross-section has its right angle at the origin and its
    legs of length ``leg`` along +x and +y; it is extruded along z over
    ``height`` centred at z=0. The hypotenuse face has normal (1, 1, 0)/sqrt(2).
    """

    def __init__(self, leg: float, height: float):
        super().__init__()
        self.leg = check_positive("leg", leg)
        self.height = check_positive("height", height)
        self._vertices = np.array([[0.0, 0.0], [self.leg, 0.0], [0.0, self.leg]])

    def _triangle(self, x: NDArray, y: NDArray) -> NDArray:
        pts = np.stack([x, y], axis=-1)
        best = np.full(np.shape(x), np.inf)
        inside = np.ones(np.shape(x), dtype=bool)
        n = len(self._vertices)
        for i in range(n):
            a = self._vertices[i]
            b = self._vertices[(i + 1) % n]
            edge = b - a
            rel = pts - a
            t = np.asarray(np.clip((rel @ edge) / (edge @ edge), 0.0, 1.0))
            closest = rel - t[..., None] * edge
            best = np.minimum(best, np.linalg.norm(closest, axis=-1))
            # counter-clockwise vertices: interior is left of every edge
            inside &= (edge[0] * rel[..., 1] - edge[1] * rel[..., 0]) > 0
        return np.where(inside, -best, best)

    def _local_sdf(self, p: NDArray) -> NDArray:
        d2 = self._triangle(p[..., 0], p[..., 1])
        dz = np.abs(p[..., 2]) - self.height / 2
        outside = np.hypot(np.maximum(d2, 0.0), np.maximum(dz, 0.0))
        return outside + np.minimum(np.maximum(d2, dz), 0.0)

    def _local_bounds(self) -> Bounds:
        h = self.height / 2
        return np.array([0.0, 0.0, -h]), np.array([self.leg, self.leg, h])

    @property
    def thickness(self) -> float:
        return self.leg

    @property
    def diameter(self) -> float:
        return self.leg


class _ProfileSDF(SDF):
    """
    Shared machinery for surfaces described by a sag profile v = f(u).

    A convex profile encloses f(u) <= v <= f(a); a concave profile encloses
    -f(u) <= v <= 0, where a is the half aperture. The 2D distance is exact,
    subclasses decide how the profile is swept into 3D.
    """

    def __init__(
        self,
        radius: float,
        diameter: float,
        conic_constant: float = 0.0,
        coefficients: Sequence[float] = (),
        concave: bool = False,
    ):
        super().__init__()
        self.radius = check_positive("radius", radius)
        self._diameter = check_positive("diameter", diameter)
        self.conic_constant = float(conic_constant)
        self.coefficients = tuple(float(c) for c in coefficients)
        self.concave = bool(concave)
        check_aspheric(1 / self.radius, self.conic_constant, self._diameter)
        self.sag = float(abs(self.profile(self._diameter / 2)))
        if self.sag > self._diameter / 2:
            raise DegenerateGeometryError(
                f"Aspheric sagitta {self.sag} exceeds half the diameter {self._diameter / 2}"
            )

    def profile(self, u: Union[float, NDArray]) -> Union[float, NDArray]:
        """Sag of the optical surface at transverse coordinate ``u``."""
        return aspheric_sag(u, 1 / self.radius, self.conic_constant, self.coefficients)

    def _profile_distance(self, u: NDArray, v: NDArray) -> NDArray:
        a = self._diameter / 2
        if self.concave:
            return profile_region_distance(u, v, lambda x: -self.profile(x), a, 0.0)
        return profile_region_distance(u, v, self.profile, a, self.sag)

    def _axial_range(self) -> Tuple[float, float]:
        return (-self.sag, 0.0) if self.concave else (0.0, self.sag)

    @property
    def thickness(self) -> float:
        return 0.0 if self.concave else self.sag

    @property
    def diameter(self) -> float:
        return self._diameter


class AsphericSurfaceSDF(_ProfileSDF):
    """
    Rotationally symmetric even-asphere surface.

    The sag is ``c r^2 / (1 + sqrt(1 - (1 + k) c^2 r^2)) + A4 r^4 + A6 r^6 + ...``
    with ``coefficients = (A4, A6, ...)``.
    """

    def _local_sdf(self, p: NDArray) -> NDArray:
        return self._profile_distance(_radial(p), p[..., 1])

    def _local_bounds(self) -> Bounds:
        a = self._diameter / 2
        lo, hi = self._axial_range()
        return np.array([-a, lo, -a]), np.array([a, hi, a])


class AcylindricalSurfaceSDF(_ProfileSDF):
    """
    Cylindrical or acylindrical surface.

    The profile lies in the y-z plane and is extruded along x over ``height``
    (centred at x=0). With ``conic_constant=0`` and no coefficients this is a
    plain cylindrical lens surface.
    """

    def __init__(
        self,
        radius: float,
        diameter: float,
        height: float,
        conic_constant: float = 0.0,
        coefficients: Sequence[float] = (),
        concave: bool = False,
    ):
        super().__init__(radius, diameter, conic_constant, coefficients, concave)
        self.height = check_positive("height", height)

    def _local_sdf(self, p: NDArray) -> NDArray:
        d2 = self._profile_distance(p[..., 2], p[..., 1])
        dx = np.abs(p[..., 0]) - self.height / 2
        outside = np.hypot(np.maximum(d2, 0.0), np.maximum(dx, 0.0))
        return outside + np.minimum(np.maximum(d2, dx), 0.0)

    def _local_bounds(self) -> Bounds:
        a = self._diameter / 2
        h = self.height / 2
        lo, hi = self._axial_range()
        return np.array([-h, lo, -a]), np.array([h, hi, a])
