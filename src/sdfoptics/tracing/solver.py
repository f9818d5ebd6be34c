"""
Beam-tree propagation.

The solver repeatedly intersects the active ray of a beam with the frozen
scene, applies the interaction rule of the struck element and either extends
the same beam (single continuation) or spawns child beams (splits). Tracing
stops per branch on escape, absorption, the bounce budget, the intensity
floor or a sphere-tracing convergence failure.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Tuple, Union

from tqdm import tqdm

from ..exceptions import ConvergenceFailure, InvalidInputError
from ..optics.elements import Behavior
from ..optics.system import FrozenSystem, System
from .beam import BeamTree, Termination
from .interactions import Continuation, check_interactions, interact
from .rays import Hint, Intersection, Ray
from .sphere_tracer import TracerConfig, first_hit

logger = logging.getLogger(__name__)


@dataclass
class SolverConfig:
    """Budgets and medium settings of a solve call."""

    # Interactions allowed along any root-to-leaf path
    max_bounces: int = 100
    # Per-ray march limit; None derives it from the scene extent
    max_travel_distance: Optional[float] = None
    # Rays below this intensity are not traced further
    intensity_floor: float = 1e-6
    # Index of the medium surrounding all elements
    ambient_index: float = 1.0
    tracer: TracerConfig = field(default_factory=TracerConfig)

    def __post_init__(self):
        if self.max_bounces < 0:
            raise ValueError(f"max_bounces must be non-negative, got {self.max_bounces}")
        if self.intensity_floor < 0:
            raise ValueError(f"intensity_floor must be non-negative, got {self.intensity_floor}")
        if not self.ambient_index > 0:
            raise ValueError(f"ambient_index must be positive, got {self.ambient_index}")
        if self.max_travel_distance is not None:
            if not self.max_travel_distance > 0:
                raise ValueError(
                    f"max_travel_distance must be positive, got {self.max_travel_distance}"
                )
            self.tracer = replace(self.tracer, max_travel_distance=self.max_travel_distance)


SystemLike = Union[System, FrozenSystem]


def as_frozen(system: SystemLike) -> FrozenSystem:
    """Snapshot a mutable system; frozen systems are returned unchanged."""
    if isinstance(system, FrozenSystem):
        return system
    if isinstance(system, System):
        return system.freeze()
    raise TypeError(f"Expected a System or FrozenSystem, got {type(system).__name__}")


def _seed_ray(seed: Union[Ray, BeamTree]) -> Ray:
    if isinstance(seed, BeamTree):
        seed = seed.root_ray
    if not isinstance(seed, Ray):
        raise InvalidInputError(f"Seed must be a Ray or BeamTree, got {type(seed).__name__}")
    # fresh copy; the tree owns its rays
    return replace(seed, intersection=None)


def _far_side(
    system: FrozenSystem,
    ray: Ray,
    hit: Intersection,
    config: SolverConfig,
    tracer: TracerConfig,
) -> Tuple[float, Tuple[int, ...]]:
    """
    Medium beyond a refractive hit and the elements sharing its surface.

    Surfaces closer than the tracer lookahead length count as cemented: a ray
    leaving one glass element there enters the touching one directly.
    """
    if hit.element.behavior is not Behavior.REFRACTIVE:
        return config.ambient_index, ()
    point = ray.at(hit.t)
    touching = system.touching(point, tracer.lookahead_length, hit.element_index)
    outside = system.medium_index(
        point + tracer.lookahead_length * ray.direction,
        ray.wavelength,
        config.ambient_index,
        touching,
    )
    return outside, touching


def _share_hint(continuation: Continuation, touching: Tuple[int, ...]) -> Continuation:
    return replace(continuation, hint=replace(continuation.hint, shared=touching))


def solve(
    system: SystemLike,
    seed: Union[Ray, BeamTree],
    config: Optional[SolverConfig] = None,
) -> BeamTree:
    """
    Trace a seed ray through ``system`` and build its beam tree.

    Args:
        system: Scene to trace; a mutable ``System`` is frozen first
        seed: Seed ray, or a previous result whose root ray is re-traced
        config: Solver settings

    Returns:
        The populated beam tree; branches that ended early carry their
        termination reason

    Raises:
        InvalidInputError: For an unusable seed or a scene without elements
        UnsupportedInteraction: If an element behavior has no rule
        ConvergenceFailure: Only when ``config.tracer.strict`` is set
    """
    config = config or SolverConfig()
    frozen = as_frozen(system)
    if len(frozen) == 0:
        raise InvalidInputError("Cannot solve a system without elements")
    check_interactions(frozen)

    tree = BeamTree(_seed_ray(seed))
    tracer = replace(config.tracer, strict=True)
    frontier: List[Tuple[int, Optional[Hint], int]] = [(0, None, 0)]

    while frontier:
        index, hint, bounces = frontier.pop()
        node = tree.nodes[index]
        while True:
            ray = node.rays[-1]
            if ray.intensity < config.intensity_floor:
                node.termination = Termination.INTENSITY_FLOOR
                break
            try:
                hit = first_hit(ray, frozen, hint, tracer)
            except ConvergenceFailure as exc:
                if config.tracer.strict:
                    raise
                logger.debug(f"Beam {index} stopped: {exc}")
                node.termination = Termination.CONVERGENCE_FAILURE
                break
            if hit is None:
                node.termination = Termination.ESCAPED
                break
            ray.intersection = hit
            if bounces >= config.max_bounces:
                logger.debug(f"Beam {index} reached the bounce limit of {config.max_bounces}")
                node.termination = Termination.MAX_BOUNCES
                break

            outside, touching = _far_side(frozen, ray, hit, config, tracer)
            continuations = interact(ray, hit, outside)
            if touching:
                continuations = [_share_hint(c, touching) for c in continuations]
            bounces += 1
            if not continuations:
                node.termination = Termination.ABSORBED
                break
            if len(continuations) == 1:
                node.rays.append(continuations[0].ray)
                hint = continuations[0].hint
                continue

            node.termination = Termination.SPLIT
            children = [(tree.add_child(index, c.ray), c.hint) for c in continuations]
            # first child is traced first
            for child, child_hint in reversed(children):
                frontier.append((child, child_hint, bounces))
            break

    logger.debug(f"Solved {tree}")
    return tree


def solve_all(
    system: SystemLike,
    seeds: Iterable[Union[Ray, BeamTree]],
    config: Optional[SolverConfig] = None,
    max_workers: Optional[int] = None,
    progress: bool = False,
) -> List[BeamTree]:
    """
    Trace independent seeds concurrently against one frozen snapshot.

    Args:
        system: Scene to trace, frozen once for all seeds
        seeds: Seed rays or beam trees
        config: Solver settings shared by all seeds
        max_workers: Thread pool size (executor default if None)
        progress: Show a tqdm progress bar

    Returns:
        Beam trees in seed order
    """
    frozen = as_frozen(system)
    seeds = list(seeds)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = pool.map(lambda seed: solve(frozen, seed, config), seeds)
        if progress:
            results = tqdm(results, total=len(seeds), desc="Tracing")
        trees = list(results)
    logger.info(
        f"Traced {len(trees)} seeds: {sum(len(t) for t in trees)} beams, "
        f"{sum(t.ray_count for t in trees)} rays"
    )
    return trees
