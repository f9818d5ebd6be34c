"""
Scene assembly and frozen snapshots.

A ``System`` collects elements and nested ``ObjectGroup``s while the scene is
built. Tracing never reads the mutable objects: ``System.freeze`` copies every
shape and world transform into a ``FrozenSystem`` that stays valid even if the
scene is moved afterwards, and can be shared by concurrent solves.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from ..geometry import SDF
from ..geometry.transforms import ArrayLike3, RigidTransform, as_vector3
from .elements import Behavior, OpticalElement
from .materials import Dispersion

logger = logging.getLogger(__name__)

SceneObject = Union[OpticalElement, "ObjectGroup"]


class ObjectGroup(RigidTransform):
    """
    Rigid group of elements and nested groups.

    The group has its own position (the pivot for rotations) and orientation.
    Every transform applied to the group is applied to all members as well, so
    the relative arrangement of the members never changes.

    Args:
        members: Elements or groups, in traversal order
        position: Initial pivot of the group
    """

    def __init__(
        self,
        members: Iterable[SceneObject] = (),
        position: Optional[ArrayLike3] = None,
    ):
        super().__init__()
        self.members: List[SceneObject] = []
        for member in members:
            self.add(member)
        if position is not None:
            self._pos = as_vector3(position, "position").copy()

    def add(self, member: SceneObject) -> None:
        if not isinstance(member, (OpticalElement, ObjectGroup)):
            raise TypeError(f"Cannot group object of type {type(member).__name__}")
        self.members.append(member)

    def translate3d(self, offset: ArrayLike3) -> None:
        offset = as_vector3(offset, "offset")
        super().translate3d(offset)
        for member in self.members:
            member.translate3d(offset)

    def translate_to3d(self, target: ArrayLike3) -> None:
        self.translate3d(as_vector3(target, "target") - self._pos)

    def set_orientation(self, matrix: NDArray) -> None:
        # Members follow the relative rotation from the current orientation
        m = np.asarray(matrix, dtype=np.float64)
        delta = m @ self._dir_t
        super().set_orientation(m)
        for member in self.members:
            member.rotate_about(delta, self._pos)

    def rotate_about(self, matrix: NDArray, center: ArrayLike3) -> None:
        c = as_vector3(center, "center")
        m = np.asarray(matrix, dtype=np.float64)
        self._pos = c + m @ (self._pos - c)
        RigidTransform.set_orientation(self, m @ self._dir)
        for member in self.members:
            member.rotate_about(m, c)

    def reset_transform(self) -> None:
        """Undo all group transforms, keeping the members' relative placement."""
        self.set_orientation(np.eye(3))
        self.translate_to3d(np.zeros(3))

    @property
    def elements(self) -> List[OpticalElement]:
        """All elements of the group and its subgroups, depth first."""
        return list(_flatten(self.members))

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self) -> Iterator[SceneObject]:
        return iter(self.members)

    def __repr__(self) -> str:
        return f"ObjectGroup({len(self.members)} members)"


def _flatten(objects: Iterable[SceneObject]) -> Iterator[OpticalElement]:
    for obj in objects:
        if isinstance(obj, ObjectGroup):
            yield from _flatten(obj.members)
        else:
            yield obj


class System:
    """
    Mutable optical scene.

    Elements are traced in traversal order: the order in which they were
    added, with groups expanded depth first. The order breaks ties between
    simultaneous hits.
    """

    def __init__(self, objects: Iterable[SceneObject] = ()):
        self.objects: List[SceneObject] = []
        for obj in objects:
            self.add(obj)

    def add(self, obj: SceneObject) -> None:
        """Append an element or group to the scene."""
        if not isinstance(obj, (OpticalElement, ObjectGroup)):
            raise TypeError(f"Cannot add object of type {type(obj).__name__} to a system")
        self.objects.append(obj)

    @property
    def elements(self) -> List[OpticalElement]:
        """All elements in traversal order."""
        return list(_flatten(self.objects))

    def freeze(self) -> FrozenSystem:
        """Take a read-only snapshot of the current scene."""
        elements = self.elements
        frozen = FrozenSystem(
            tuple(FrozenElement.from_element(element, i) for i, element in enumerate(elements))
        )
        logger.debug(f"Froze system with {len(frozen)} elements")
        return frozen

    def __len__(self) -> int:
        return len(self.elements)

    def __repr__(self) -> str:
        return f"System({len(self)} elements)"


def _readonly(array: NDArray) -> NDArray:
    out = np.array(array, dtype=np.float64, copy=True)
    out.setflags(write=False)
    return out


@dataclass(frozen=True, eq=False)
class FrozenElement:
    """
    Immutable snapshot of a placed element.

    Attributes:
        index: Position in the system's traversal order
        name: Label of the source element
        behavior: Interaction rule selector
        shape: Private deep copy of the element geometry
        position: World position (read-only array)
        orientation: World orientation (read-only array)
        transposed_orientation: Transpose of ``orientation`` (read-only array)
        bounding_center: World center of the bounding sphere
        bounding_radius: Radius of the bounding sphere
    """

    index: int
    name: str
    behavior: Behavior
    shape: SDF
    position: NDArray
    orientation: NDArray
    transposed_orientation: NDArray
    bounding_center: NDArray
    bounding_radius: float
    dispersion: Optional[Dispersion] = None
    reflectivity: Optional[float] = None
    partially_reflective: bool = False

    @classmethod
    def from_element(cls, element: OpticalElement, index: int) -> "FrozenElement":
        center, radius = element.bounding_sphere()
        return cls(
            index=index,
            name=element.name,
            behavior=element.behavior,
            shape=copy.deepcopy(element.shape),
            position=_readonly(element.position),
            orientation=_readonly(element.orientation),
            transposed_orientation=_readonly(element.transposed_orientation),
            bounding_center=_readonly(center),
            bounding_radius=float(radius),
            dispersion=element.dispersion,
            reflectivity=element.reflectivity,
            partially_reflective=element.partially_reflective,
        )

    def sdf(self, point: NDArray) -> Union[float, NDArray]:
        """Signed distance in world coordinates."""
        p = np.asarray(point, dtype=np.float64) - self.position
        if p.ndim == 1:
            return self.shape.sdf(self.transposed_orientation @ p)
        return self.shape.sdf(p @ self.orientation)

    def refractive_index(self, wavelength: float) -> float:
        if self.dispersion is None:
            raise ValueError(f"{self.name} has no dispersion")
        return float(self.dispersion(wavelength))

    def __repr__(self) -> str:
        return f"FrozenElement({self.index}, {self.name!r}, {self.behavior.value})"


class FrozenSystem:
    """Read-only, thread-shareable scene consumed by the tracer."""

    def __init__(self, elements: Tuple[FrozenElement, ...]):
        self._elements = tuple(elements)

    @property
    def elements(self) -> Tuple[FrozenElement, ...]:
        return self._elements

    def bounding_spheres(self) -> Tuple[NDArray, NDArray]:
        """Stacked bounding sphere centers (N, 3) and radii (N,)."""
        if not self._elements:
            return np.zeros((0, 3)), np.zeros(0)
        centers = np.stack([e.bounding_center for e in self._elements])
        radii = np.array([e.bounding_radius for e in self._elements])
        return centers, radii

    def find(self, name: str) -> FrozenElement:
        """First element with the given name."""
        for element in self._elements:
            if element.name == name:
                return element
        raise KeyError(name)

    def touching(self, point: NDArray, tolerance: float, exclude: int) -> Tuple[int, ...]:
        """Elements other than ``exclude`` whose surface passes within ``tolerance`` of ``point``."""
        return tuple(
            e.index
            for e in self._elements
            if e.index != exclude and abs(float(e.sdf(point))) < tolerance
        )

    def medium_index(
        self,
        point: NDArray,
        wavelength: float,
        default: float,
        indices: Iterable[int],
    ) -> float:
        """
        Refractive index at ``point``.

        Args:
            point: World point
            wavelength: Vacuum wavelength
            default: Index when no refractive element of ``indices`` contains the point
            indices: Elements to consider, in priority order

        Returns:
            Index of the first refractive element containing ``point``, else ``default``
        """
        for i in indices:
            element = self._elements[i]
            if element.behavior is Behavior.REFRACTIVE and float(element.sdf(point)) < 0:
                return element.refractive_index(wavelength)
        return default

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[FrozenElement]:
        return iter(self._elements)

    def __getitem__(self, index: int) -> FrozenElement:
        return self._elements[index]

    def __repr__(self) -> str:
        return f"FrozenSystem({len(self)} elements)"
