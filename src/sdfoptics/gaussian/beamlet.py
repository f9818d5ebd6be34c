"""
Gaussian beamlet on top of the ray tracer.

A beamlet is traced as three ordinary rays: the chief ray on the beam axis,
a waist ray launched parallel at a distance of one waist radius, and a
divergence ray launched from the waist center at the far-field divergence
angle. The heights and slopes of the two auxiliary rays relative to the
chief ray give the local beam radius and wavefront curvature anywhere along
the traced path. Independently, the complex beam parameter can be carried
along the chief ray with ABCD matrices built from the local surface
curvature at every hit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from ..geometry.transforms import ArrayLike3, as_vector3, normalize3d, perpendicular
from ..tracing.beam import Beam, BeamTree, is_paraxial
from ..tracing.rays import Ray
from ..tracing.solver import SolverConfig, SystemLike, as_frozen, solve
from ..tracing.sphere_tracer import mean_curvature
from .abcd import (
    beam_radius,
    curved_mirror,
    free_space,
    interface,
    q_from_waist,
    transform_q,
    waist_from_q,
    wavefront_radius,
)

logger = logging.getLogger(__name__)

# curvatures below this (1/m) are treated as flat
_FLAT_CURVATURE = 1e-3


@dataclass
class GaussianParameters:
    """Gaussian beam state at one point of the chief ray."""

    position: NDArray
    direction: NDArray
    w: float  # 1/e^2 intensity radius in meters
    R: float  # wavefront radius of curvature, inf when flat
    q: complex
    wavelength: float
    refractive_index: float

    @property
    def waist(self) -> float:
        """Waist radius of the beam passing through this point."""
        return waist_from_q(self.q, self.wavelength, self.refractive_index)[0]

    @property
    def waist_distance(self) -> float:
        """Signed distance from this point to the waist."""
        return waist_from_q(self.q, self.wavelength, self.refractive_index)[1]

    @property
    def rayleigh_range(self) -> float:
        return float(self.q.imag)


class GaussianBeamlet:
    """
    Fundamental Gaussian beam represented by a chief and two auxiliary rays.

    The beam starts at its waist at ``position``.

    Attributes:
        waist: Waist radius w0 in meters
        wavelength: Vacuum wavelength in meters
        medium_index: Index of the medium at the waist
        divergence: Far-field half angle lambda / (pi n w0)
        paraxial_threshold: Largest incidence angle accepted by ``is_valid``
        chief: Beam tree of the chief ray (after ``solve``)
        waist_tree: Beam tree of the waist ray (after ``solve``)
        divergence_tree: Beam tree of the divergence ray (after ``solve``)
    """

    def __init__(
        self,
        position: ArrayLike3,
        direction: ArrayLike3,
        wavelength: float,
        waist: float,
        *,
        medium_index: float = 1.0,
        paraxial_threshold: float = np.pi / 4,
    ):
        if not waist > 0:
            raise ValueError(f"waist must be positive, got {waist}")
        self.position = as_vector3(position, "position")
        self.direction = normalize3d(direction)
        self.wavelength = float(wavelength)
        self.waist = float(waist)
        self.medium_index = float(medium_index)
        self.paraxial_threshold = paraxial_threshold
        self.divergence = self.wavelength / (np.pi * self.medium_index * self.waist)

        self.chief: Optional[BeamTree] = None
        self.waist_tree: Optional[BeamTree] = None
        self.divergence_tree: Optional[BeamTree] = None

    def seed_rays(self) -> Tuple[Ray, Ray, Ray]:
        """Chief, waist and divergence rays."""
        e = perpendicular(self.direction)
        chief = Ray(self.position, self.direction, self.wavelength, self.medium_index)
        waist_ray = Ray(
            self.position + self.waist * e, self.direction, self.wavelength, self.medium_index
        )
        tilted = np.cos(self.divergence) * self.direction + np.sin(self.divergence) * e
        divergence_ray = Ray(self.position, tilted, self.wavelength, self.medium_index)
        return chief, waist_ray, divergence_ray

    def solve(self, system: SystemLike, config: Optional[SolverConfig] = None) -> BeamTree:
        """
        Trace the three rays through ``system``.

        Returns:
            The chief ray's beam tree
        """
        frozen = as_frozen(system)
        self.chief, self.waist_tree, self.divergence_tree = (
            solve(frozen, ray, config) for ray in self.seed_rays()
        )
        if not self.topology_matches():
            logger.warning("Auxiliary beamlet rays took a different path than the chief ray")
        elif not self.is_valid:
            logger.warning(
                f"Beamlet is not paraxial (threshold {np.degrees(self.paraxial_threshold):.1f} deg)"
            )
        return self.chief

    @property
    def solved(self) -> bool:
        return self.chief is not None

    def _require_solved(self) -> None:
        if not self.solved:
            raise RuntimeError("Beamlet has not been solved yet")

    @staticmethod
    def _signature(tree: BeamTree) -> List[Tuple]:
        return [
            (
                node.parent,
                tuple(
                    None if ray.intersection is None else ray.intersection.element_index
                    for ray in node.rays
                ),
            )
            for node in tree.nodes
        ]

    def topology_matches(self) -> bool:
        """Whether the auxiliary rays hit the same elements in the same order as the chief."""
        self._require_solved()
        reference = self._signature(self.chief)
        return all(
            self._signature(tree) == reference for tree in (self.waist_tree, self.divergence_tree)
        )

    @property
    def is_valid(self) -> bool:
        """Matching topologies and paraxial incidence on every chief beam."""
        self._require_solved()
        if not self.topology_matches():
            return False
        return all(is_paraxial(beam, self.paraxial_threshold) for beam in self.chief.beams())

    def beam_parameters(self, t: float, beam_index: int = 0) -> GaussianParameters:
        """
        Beam radius and curvature at distance ``t`` along a chief beam.

        Args:
            t: Cumulative distance from the source along the chief ray
            beam_index: Handle of the chief beam to follow

        Raises:
            ValueError: If the auxiliary rays do not follow the chief ray
        """
        self._require_solved()
        if not self.topology_matches():
            raise ValueError("Auxiliary rays do not follow the chief ray; parameters are undefined")
        beam, index, local = self.chief.beam(beam_index).locate(t)
        chief = beam.node.rays[index]
        point = chief.at(local)
        axis = chief.direction

        heights = []
        slopes = []
        for tree in (self.waist_tree, self.divergence_tree):
            aux = tree.nodes[beam.index].rays[index]
            axial = np.dot(aux.direction, axis)
            s = np.dot(point - aux.position, axis) / axial
            heights.append(aux.at(s) - point)
            slopes.append((aux.direction - axial * axis) / axial)

        w2 = sum(np.dot(h, h) for h in heights)
        inv_R = sum(np.dot(h, m) for h, m in zip(heights, slopes)) / w2
        n = chief.refractive_index
        inv_q = inv_R - 1j * self.wavelength / (np.pi * n * w2)
        return GaussianParameters(
            position=point,
            direction=axis.copy(),
            w=float(np.sqrt(w2)),
            R=np.inf if abs(inv_R) < 1e-300 else float(1 / inv_R),
            q=complex(1 / inv_q),
            wavelength=self.wavelength,
            refractive_index=n,
        )

    def _surface_matrix(self, ray: Ray, following: Ray) -> NDArray:
        hit = ray.intersection
        point = ray.at(hit.t)
        kappa = mean_curvature(hit.element, point, normal=hit.normal)
        incidence = np.dot(ray.direction, hit.normal)
        reflected = np.sign(np.dot(following.direction, hit.normal)) != np.sign(incidence)
        if abs(kappa) < _FLAT_CURVATURE:
            radius = np.inf
        else:
            radius = np.sign(incidence) / kappa
        if reflected:
            return curved_mirror(radius)
        return interface(ray.refractive_index, following.refractive_index, -radius)

    def abcd_trace(self, beam_index: int = 0) -> List[complex]:
        """
        Complex beam parameter at the start of every ray along a chief beam.

        The chain starts at the waist and walks the chief rays from the root
        to beam ``beam_index``, applying free-space propagation for every ray
        and the interface or mirror matrix of every hit.
        """
        self._require_solved()
        beam: Beam = self.chief.beam(beam_index)
        rays = [ray for b in beam.path() for ray in b.node.rays]
        q = q_from_waist(self.waist, self.wavelength, self.medium_index)
        chain = [q]
        for ray, following in zip(rays, rays[1:]):
            q = transform_q(q, free_space(ray.intersection.t))
            q = transform_q(q, self._surface_matrix(ray, following))
            chain.append(q)
        return chain

    def abcd_parameters(self, beam_index: int = 0) -> List[Tuple[float, float]]:
        """(w, R) at the start of every ray, derived from ``abcd_trace``."""
        rays = [ray for b in self.chief.beam(beam_index).path() for ray in b.node.rays]
        return [
            (beam_radius(q, self.wavelength, ray.refractive_index), wavefront_radius(q))
            for q, ray in zip(self.abcd_trace(beam_index), rays)
        ]

    def __repr__(self) -> str:
        return (
            f"GaussianBeamlet(w0={self.waist:.4g} m, wavelength={self.wavelength:.4g} m, "
            f"solved={self.solved})"
        )
