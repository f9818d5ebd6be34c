"""
Beam trees.

A trace result is an arena of beam nodes. Every node holds a chain of rays
connected by intersections; splits at the last ray of a node spawn child
nodes. Parents are referenced by index only, so the tree has no reference
cycles and each node is written by exactly one solve call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from ..optics.elements import Behavior
from .rays import Ray


class Termination(Enum):
    """Reason a beam stopped growing."""

    ESCAPED = "escaped"
    ABSORBED = "absorbed"
    SPLIT = "split"
    MAX_BOUNCES = "max_bounces"
    INTENSITY_FLOOR = "intensity_floor"
    CONVERGENCE_FAILURE = "convergence_failure"


@dataclass
class BeamNode:
    """Storage of one beam inside a ``BeamTree``."""

    rays: List[Ray] = field(default_factory=list)
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)
    termination: Optional[Termination] = None


class BeamTree:
    """
    Arena owning all beams of one trace.

    Args:
        root_ray: Seed ray of the root beam
    """

    def __init__(self, root_ray: Ray):
        self.nodes: List[BeamNode] = [BeamNode(rays=[root_ray])]

    @property
    def root(self) -> Beam:
        return Beam(self, 0)

    @property
    def root_ray(self) -> Ray:
        return self.nodes[0].rays[0]

    def add_child(self, parent: int, ray: Ray) -> int:
        """Spawn a child beam of ``parent`` starting with ``ray``; returns its handle."""
        self.nodes.append(BeamNode(rays=[ray], parent=parent))
        index = len(self.nodes) - 1
        self.nodes[parent].children.append(index)
        return index

    def beam(self, index: int) -> Beam:
        return Beam(self, index)

    def beams(self) -> List[Beam]:
        """All beams in pre-order (parents before their children)."""
        out = []
        stack = [0]
        while stack:
            index = stack.pop()
            out.append(Beam(self, index))
            stack.extend(reversed(self.nodes[index].children))
        return out

    def leaves(self) -> List[Beam]:
        return [beam for beam in self.beams() if not beam.children]

    @property
    def ray_count(self) -> int:
        return sum(len(node.rays) for node in self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Beam]:
        return iter(self.beams())

    def __repr__(self) -> str:
        return f"BeamTree({len(self.nodes)} beams, {self.ray_count} rays)"


class Beam:
    """
    Read-only view of one beam of a ``BeamTree``.

    Attributes:
        tree: Owning tree
        index: Handle of the beam inside the tree
    """

    def __init__(self, tree: BeamTree, index: int):
        self.tree = tree
        self.index = index

    @property
    def node(self) -> BeamNode:
        return self.tree.nodes[self.index]

    @property
    def rays(self) -> Tuple[Ray, ...]:
        return tuple(self.node.rays)

    @property
    def parent(self) -> Optional[Beam]:
        parent = self.node.parent
        return None if parent is None else Beam(self.tree, parent)

    @property
    def children(self) -> List[Beam]:
        return [Beam(self.tree, i) for i in self.node.children]

    @property
    def termination(self) -> Optional[Termination]:
        return self.node.termination

    def path(self) -> List[Beam]:
        """Beams from the root down to this one."""
        chain = [self]
        while chain[-1].parent is not None:
            chain.append(chain[-1].parent)
        return chain[::-1]

    @property
    def depth(self) -> int:
        return len(self.path()) - 1

    def _has_intersection(self) -> bool:
        return any(ray.intersection is not None for beam in self.path() for ray in beam.rays)

    def _accumulate(self, optical: bool) -> float:
        if not self._has_intersection():
            return np.inf
        total = 0.0 if self.parent is None else self.parent._accumulate(optical)
        for ray in self.node.rays:
            if ray.intersection is None:
                break
            total += ray.optical_path_length if optical else ray.length
        return total

    @property
    def length(self) -> float:
        """
        Cumulative geometric length from the root source.

        Sums the parent's length and the finite rays of this beam up to the
        first escaping ray. Infinite if no ray on the way has a hit.
        """
        return self._accumulate(optical=False)

    @property
    def optical_path_length(self) -> float:
        """Cumulative optical path length, analogous to ``length``."""
        return self._accumulate(optical=True)

    def locate(self, t: float) -> Tuple[Beam, int, float]:
        """
        Find the ray containing cumulative distance ``t`` from the root source.

        Distances shorter than the parent's length are resolved on the parent
        beams first. Beyond the last finite ray the position is extrapolated
        along the escaping ray (or along the final ray if every ray is finite).

        Returns:
            (beam, index, local) where ``index`` is the 0-based ray index in
            ``beam`` and ``local`` the distance from that ray's origin
        """
        parent = self.parent
        start = 0.0
        if parent is not None:
            start = parent.length
            if t < start:
                return parent.locate(t)

        cumulative = start
        rays = self.node.rays
        for i, ray in enumerate(rays):
            if ray.intersection is None or t <= cumulative + ray.length:
                return self, i, t - cumulative
            cumulative += ray.length
        last = rays[-1]
        return self, len(rays) - 1, t - (cumulative - last.length)

    def point_on_beam(self, t: float) -> Tuple[NDArray, int]:
        """
        Point at cumulative distance ``t`` from the root source.

        Args:
            t: Distance along the beam, measured from the root source

        Returns:
            (point, index) where ``index`` is the 0-based index of the ray
            containing the point within the beam that contains it
        """
        beam, index, local = self.locate(t)
        return beam.node.rays[index].at(local), index

    def endpoints(self) -> List[Tuple[NDArray, Optional[NDArray]]]:
        """(start, end) of every ray; ``end`` is ``None`` for escaping rays."""
        return [(ray.position.copy(), ray.endpoint) for ray in self.node.rays]

    def describe(self) -> str:
        """Multi-line summary of the beam for logs and debugging."""
        lines = [
            f"Beam {self.index} (parent={self.node.parent}, depth={self.depth}, "
            f"termination={self.termination.value if self.termination else None})"
        ]
        for i, ray in enumerate(self.node.rays):
            hit = ray.intersection
            target = "escaped" if hit is None else f"-> {hit.element.name} at t={hit.t:.6g}"
            lines.append(f"  [{i}] {ray!r} {target}")
        return "\n".join(lines)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Beam):
            return NotImplemented
        return self.tree is other.tree and self.index == other.index

    def __hash__(self) -> int:
        return hash((id(self.tree), self.index))

    def __repr__(self) -> str:
        return f"Beam({self.index}, {len(self.node.rays)} rays, length={self.length:.6g})"


def is_paraxial(beam: Beam, threshold: float = np.pi / 4) -> bool:
    """
    Check the incidence angle at every refractive hit of ``beam``.

    Angles beyond 90 degrees (hits from inside an element) are folded back
    into the first quadrant before comparing.

    Args:
        beam: Beam whose rays are checked
        threshold: Largest accepted angle to the surface normal in radians

    Returns:
        False if any refractive incidence angle exceeds ``threshold``
    """
    for ray in beam.rays:
        if ray.intersection is None:
            break
        if ray.intersection.element.behavior is not Behavior.REFRACTIVE:
            continue
        angle = ray.incidence_angle()
        if angle > np.pi / 2:
            angle = np.pi - angle
        if angle > threshold:
            return False
    return True
