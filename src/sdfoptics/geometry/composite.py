"""
Boolean composition of signed distance functions.

Shapes are combined with an explicit rule rather than operator overloading:

- ``CombineRule.UNION``: pointwise minimum of all children
- ``CombineRule.SUBTRACT``: ``max(base, -cutout_1, -cutout_2, ...)``

Both rules keep the 1-Lipschitz lower-bound property of their children, so a
composite can be sphere traced like any primitive. Children are positioned
in the composite's local frame before combining; composition is a
construction-time step.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .primitives import SDF, Bounds


class CombineRule(Enum):
    """Boolean rule used by a composite SDF."""

    UNION = "union"
    SUBTRACT = "subtract"


class CompositeSDF(SDF):
    """
    Ordered combination of child SDFs.

    Attributes:
        rule: Combination rule
        children: Child shapes, placed in this composite's local frame
    """

    def __init__(
        self,
        rule: CombineRule,
        children: Sequence[SDF],
        thickness: Optional[float] = None,
        diameter: Optional[float] = None,
    ):
        super().__init__()
        if not isinstance(rule, CombineRule):
            raise TypeError(f"rule must be a CombineRule, got {type(rule).__name__}")
        children = tuple(children)
        if not children:
            raise ValueError("A composite needs at least one child")
        if rule is CombineRule.SUBTRACT and len(children) < 2:
            raise ValueError("Subtraction needs a base and at least one cutout")
        for child in children:
            if not isinstance(child, SDF):
                raise TypeError(f"Children must be SDFs, got {type(child).__name__}")
        self.rule = rule
        self.children: Tuple[SDF, ...] = children
        self._thickness = thickness
        self._diameter = diameter

    def _local_sdf(self, p: NDArray) -> NDArray:
        distances = [child.sdf(p) for child in self.children]
        if self.rule is CombineRule.UNION:
            return np.minimum.reduce(distances)
        base, *cutouts = distances
        return np.maximum.reduce([base] + [-np.asarray(c) for c in cutouts])

    def _local_bounds(self) -> Bounds:
        if self.rule is CombineRule.SUBTRACT:
            return self.children[0].bounds()
        boxes = [child.bounds() for child in self.children]
        lo = np.min([b[0] for b in boxes], axis=0)
        hi = np.max([b[1] for b in boxes], axis=0)
        return lo, hi

    @property
    def thickness(self) -> float:
        """Thickness along y; the builder's value if given, else the bounding box extent."""
        if self._thickness is not None:
            return float(self._thickness)
        lo, hi = self._local_bounds()
        return float(hi[1] - lo[1])

    @property
    def diameter(self) -> float:
        if self._diameter is not None:
            return float(self._diameter)
        lo, hi = self._local_bounds()
        return float(max(hi[0] - lo[0], hi[2] - lo[2]))

    def __len__(self) -> int:
        return len(self.children)

    def __repr__(self) -> str:
        names = ", ".join(type(c).__name__ for c in self.children)
        return f"CompositeSDF({self.rule.value}: {names})"


def combine(rule: CombineRule, *children: SDF, **dimensions: float) -> CompositeSDF:
    """
    Combine shapes with ``rule``.

    Args:
        rule: Union or subtraction
        *children: Shapes in combination order (base first for subtraction)
        **dimensions: Optional ``thickness`` / ``diameter`` overrides

    Returns:
        The composite shape
    """
    return CompositeSDF(rule, children, **dimensions)
