"""
Ray/SDF intersection by sphere tracing.

The tracer marches along a ray by the smallest unsigned distance reported by
the candidate elements. A reading below ``epsilon`` is only accepted as a hit
once the element's SDF is seen to change sign a short distance ahead; the root
is then refined with Brent's method. Readings that touch zero without a sign
change (grazing contact, flush seams inside composite shapes) are stepped
over.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import brentq

from ..exceptions import ConvergenceFailure
from ..optics.system import FrozenElement, FrozenSystem
from .rays import Hint, Intersection, Ray

logger = logging.getLogger(__name__)


@dataclass
class TracerConfig:
    """Sphere tracer settings."""

    # Hit threshold on |sdf| in meters
    epsilon: float = 1e-9
    # Travel during which the element of the previous hit is ignored
    self_intersection_offset: float = 1e-7
    max_iterations: int = 10000
    # Sign-change checks reach epsilon * 2**lookahead_doublings ahead
    lookahead_doublings: int = 12
    # Finite-difference step for normals and curvature
    normal_step: float = 1e-8
    # Raise ConvergenceFailure instead of reporting a miss
    strict: bool = False
    # None: distance to the far side of the farthest candidate
    max_travel_distance: Optional[float] = None

    def __post_init__(self):
        for name in ("epsilon", "self_intersection_offset", "normal_step"):
            if not getattr(self, name) > 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")
        if self.lookahead_doublings < 1:
            raise ValueError(f"lookahead_doublings must be at least 1, got {self.lookahead_doublings}")
        if self.max_travel_distance is not None and not self.max_travel_distance > 0:
            raise ValueError(
                f"max_travel_distance must be positive, got {self.max_travel_distance}"
            )

    @property
    def lookahead_length(self) -> float:
        return self.epsilon * 2**self.lookahead_doublings


def candidate_elements(
    system: FrozenSystem, origin: NDArray, direction: NDArray
) -> Tuple[List[int], float]:
    """
    Elements whose bounding sphere the forward ray meets.

    Returns:
        (indices in traversal order, distance past the farthest candidate)
    """
    centers, radii = system.bounding_spheres()
    if len(radii) == 0:
        return [], 0.0
    rel = centers - origin
    along = rel @ direction
    perp = np.linalg.norm(rel - along[:, None] * direction, axis=1)
    dist = np.linalg.norm(rel, axis=1)
    inside = dist <= radii
    ahead = (along > 0) & (perp <= radii)
    mask = inside | ahead
    indices = [int(i) for i in np.flatnonzero(mask)]
    if not indices:
        return [], 0.0
    reach = float(np.max(dist[mask] + radii[mask]))
    return indices, reach


def surface_normal(element: FrozenElement, point: NDArray, step: float = 1e-8) -> NDArray:
    """
    Outward unit normal from the central-difference SDF gradient.

    Raises:
        ValueError: If the gradient vanishes at ``point``
    """
    offsets = np.eye(3) * step
    samples = np.concatenate([point + offsets, point - offsets])
    values = np.asarray(element.sdf(samples))
    gradient = (values[:3] - values[3:]) / (2 * step)
    norm = np.linalg.norm(gradient)
    if norm < 1e-12:
        raise ValueError(f"SDF gradient of {element.name} vanishes at {point}")
    return gradient / norm


def mean_curvature(
    element: FrozenElement,
    point: NDArray,
    step: float = 1e-5,
    normal: Optional[NDArray] = None,
) -> float:
    """
    Mean curvature of the surface through ``point``.

    For a signed distance field the Laplacian equals twice the mean curvature
    of its level set; it is estimated with a 7-point stencil. The stencil is
    centred a few steps outside the surface, where unions of primitives are
    exact even across flush seams, and the offset level set's curvature is
    mapped back onto the surface (exact for spherical surfaces).

    Args:
        element: Element whose surface contains ``point``
        point: Surface point
        step: Stencil spacing
        normal: Outward unit normal at ``point`` (estimated if None)

    Returns:
        Mean curvature in 1/m; positive when the surface bends away from its
        outward normal (convex solid)
    """
    if normal is None:
        normal = surface_normal(element, point)
    offset = 4 * step
    center = point + offset * normal
    offsets = np.eye(3) * step
    samples = np.concatenate([center + offsets, center - offsets, center[None, :]])
    values = np.asarray(element.sdf(samples))
    laplacian = (np.sum(values[:6]) - 6 * values[6]) / step**2
    shifted = laplacian / 2
    return float(shifted / (1 - offset * shifted))


def _priority(indices: Sequence[int], hint: Optional[Hint]) -> List[int]:
    if hint is None or hint.element_index not in indices:
        return list(indices)
    return [hint.element_index] + [i for i in indices if i != hint.element_index]


def _refine(
    element: FrozenElement,
    origin: NDArray,
    direction: NDArray,
    t: float,
    value: float,
    config: TracerConfig,
) -> Optional[float]:
    """Root of the element SDF just ahead of ``t``, or None without a sign change."""

    def along(x: float) -> float:
        return float(element.sdf(origin + x * direction))

    # sign on the side the march came from
    behind = t - config.epsilon
    reference = along(behind)
    if reference == 0.0:
        reference = value
        behind = t
    if reference == 0.0:
        return None
    length = config.epsilon
    for _ in range(config.lookahead_doublings):
        length *= 2
        ahead = along(t + length)
        if ahead * reference <= 0:
            root = brentq(along, behind, t + length, xtol=1e-15)
            return max(root, 0.0)
    return None


def first_hit(
    ray: Ray,
    system: FrozenSystem,
    hint: Optional[Hint] = None,
    config: Optional[TracerConfig] = None,
) -> Optional[Intersection]:
    """
    Find the nearest intersection of ``ray`` with the elements of ``system``.

    Args:
        ray: Ray to trace; only its position and direction are read
        system: Frozen scene
        hint: Element of the previous hit; it and the hint's shared
            elements are excluded for the first ``self_intersection_offset``
            of travel (or the whole ray with ``pass_through``), and it is
            preferred on ties
        config: Tracer settings

    Returns:
        The intersection, or None if the ray escapes or marching does not
        converge within ``max_iterations``

    Raises:
        ConvergenceFailure: In strict mode when the iteration budget runs out
    """
    config = config or TracerConfig()
    origin = ray.position
    direction = ray.direction
    candidates, reach = candidate_elements(system, origin, direction)
    if not candidates:
        return None
    max_travel = config.max_travel_distance or reach

    skipped = hint.skipped if hint is not None else frozenset()
    skip_until = 0.0
    if hint is not None:
        skip_until = np.inf if hint.pass_through else config.self_intersection_offset
    elements = system.elements

    t = 0.0
    for _ in range(config.max_iterations):
        if t > max_travel:
            return None
        point = origin + t * direction
        skipping = bool(skipped) and t < skip_until
        active = [i for i in candidates if not (skipping and i in skipped)]
        if not active:
            if not np.isfinite(skip_until):
                return None
            t = skip_until
            continue
        values = {i: float(elements[i].sdf(point)) for i in active}
        step = min(abs(v) for v in values.values())

        if step < config.epsilon:
            near = [i for i in _priority(active, hint) if abs(values[i]) < config.epsilon]
            best: Optional[Tuple[float, int]] = None
            for i in near:
                root = _refine(elements[i], origin, direction, t, values[i], config)
                if root is None:
                    continue
                if best is None or root < best[0] - config.epsilon:
                    best = (root, i)
            if best is not None:
                t_hit, index = best
                element = elements[index]
                normal = surface_normal(element, origin + t_hit * direction, config.normal_step)
                return Intersection(t=t_hit, element=element, normal=normal)
            # grazing contact or internal seam
            step = config.lookahead_length

        if skipping and t + step >= skip_until:
            t = skip_until
        else:
            t += step

    message = (
        f"Sphere tracing did not converge after {config.max_iterations} iterations "
        f"(travelled {t:.6g} m from {origin})"
    )
    if config.strict:
        raise ConvergenceFailure(message, iterations=config.max_iterations, travelled=t)
    logger.debug(message)
    return None
