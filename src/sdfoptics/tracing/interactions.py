"""
Optical interaction rules.

Each rule maps an intersected ray to zero, one or two continuation rays.
Rules are looked up by element behavior in ``INTERACTION_RULES``; scalar and
polarized rays are handled inside each rule by dispatching on ``Ray.kind``.

Polarized fields are decomposed in the s/p basis of the plane of incidence:
``s = k_in x eta`` (normalized), ``p_in = k_in x s`` and ``p_out = k_out x s``,
where ``eta`` is the surface normal facing the incident side.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from ..exceptions import UnsupportedInteraction
from ..geometry.transforms import perpendicular
from ..optics.elements import Behavior
from ..optics.system import FrozenSystem
from .rays import Hint, Intersection, Ray, RayKind

logger = logging.getLogger(__name__)


@dataclass
class Continuation:
    """A ray produced by an interaction and the hint for tracing it."""

    ray: Ray
    hint: Hint


InteractionRule = Callable[[Ray, Intersection, float], List[Continuation]]


def reflect(direction: NDArray, normal: NDArray) -> NDArray:
    """Specular reflection of ``direction`` about ``normal``."""
    return direction - 2 * np.dot(direction, normal) * normal


def refract(direction: NDArray, eta: NDArray, n1: float, n2: float) -> Optional[NDArray]:
    """
    Vector form of Snell's law.

    Args:
        direction: Unit incident direction
        eta: Unit normal facing the incident side (``direction . eta <= 0``)
        n1: Index of the incident medium
        n2: Index of the transmitted medium

    Returns:
        Unit refracted direction, or None on total internal reflection
    """
    mu = n1 / n2
    cos_i = -np.dot(direction, eta)
    k = 1.0 - mu**2 * (1.0 - cos_i**2)
    if k < 0:
        return None
    out = mu * direction + (mu * cos_i - np.sqrt(k)) * eta
    return out / np.linalg.norm(out)


def fresnel_coefficients(n1: float, n2: float, cos_i: float) -> Tuple[complex, complex, complex, complex]:
    """
    Complex Fresnel amplitude coefficients (r_s, r_p, t_s, t_p).

    Beyond the critical angle the transmitted cosine turns imaginary and the
    reflection coefficients have unit magnitude.
    """
    sin2_t = (n1 / n2) ** 2 * (1.0 - cos_i**2)
    cos_t = np.sqrt(complex(1.0 - sin2_t))
    r_s = (n1 * cos_i - n2 * cos_t) / (n1 * cos_i + n2 * cos_t)
    r_p = (n2 * cos_i - n1 * cos_t) / (n2 * cos_i + n1 * cos_t)
    t_s = 2 * n1 * cos_i / (n1 * cos_i + n2 * cos_t)
    t_p = 2 * n1 * cos_i / (n2 * cos_i + n1 * cos_t)
    return complex(r_s), complex(r_p), complex(t_s), complex(t_p)


def fresnel_reflectance(n1: float, n2: float, cos_i: float) -> float:
    """Power reflectance for unpolarized light, (R_s + R_p) / 2."""
    r_s, r_p, _, _ = fresnel_coefficients(n1, n2, cos_i)
    return float((abs(r_s) ** 2 + abs(r_p) ** 2) / 2)


def _s_vector(direction: NDArray, eta: NDArray, field: Optional[NDArray]) -> NDArray:
    s = np.cross(direction, eta)
    norm = np.linalg.norm(s)
    if norm > 1e-12:
        return s / norm
    # normal incidence: any transverse vector spans the plane of incidence
    if field is not None:
        for part in (field.real, field.imag):
            transverse = part - np.dot(part, direction) * direction
            norm = np.linalg.norm(transverse)
            if norm > 1e-12:
                return transverse / norm
    return perpendicular(direction)


def _transform_field(
    field: NDArray,
    k_in: NDArray,
    k_out: NDArray,
    s: NDArray,
    a_s: complex,
    a_p: complex,
) -> NDArray:
    p_in = np.cross(k_in, s)
    p_out = np.cross(k_out, s)
    e_s = np.dot(s, field)
    e_p = np.dot(p_in, field)
    return a_s * e_s * s + a_p * e_p * p_out


def _child(ray: Ray, position: NDArray, direction: NDArray, index: float, **payload) -> Ray:
    return Ray(
        position=position,
        direction=direction,
        wavelength=ray.wavelength,
        refractive_index=index,
        **payload,
    )


def refractive_interaction(ray: Ray, hit: Intersection, ambient_index: float) -> List[Continuation]:
    """
    Refraction at a dielectric surface.

    Entering rays go from the ray's medium into the element; leaving rays go
    into ``ambient_index``, the medium beyond the surface (the touching
    element at a cemented interface, as resolved by the solver). Total
    internal reflection continues as a reflected ray inside the element.
    Partially reflective elements emit an additional Fresnel reflection.
    """
    element = hit.element
    d = ray.direction
    normal = hit.normal
    entering = np.dot(d, normal) < 0
    eta = normal if entering else -normal
    n1 = ray.refractive_index
    n2 = element.refractive_index(ray.wavelength) if entering else ambient_index
    cos_i = float(-np.dot(d, eta))
    point = ray.at(hit.t)
    reflected_dir = reflect(d, normal)
    transmitted_dir = refract(d, eta, n1, n2)
    polarized = ray.kind is RayKind.POLARIZED
    s = _s_vector(d, eta, ray.polarization) if polarized else None
    r_s, r_p, t_s, t_p = fresnel_coefficients(n1, n2, cos_i)

    if transmitted_dir is None:
        logger.debug(f"Total internal reflection in {element.name} at {point}")
        if polarized:
            field = _transform_field(ray.polarization, d, reflected_dir, s, r_s, r_p)
            child = _child(ray, point, reflected_dir, n1, polarization=field)
        else:
            child = _child(ray, point, reflected_dir, n1, intensity=ray.intensity)
        return [Continuation(child, hit.hint)]

    children = []
    if polarized:
        cos_t = float(-np.dot(transmitted_dir, eta))
        # amplitude scale that makes |E|^2 a power flux across the interface
        flux = np.sqrt(n2 * cos_t / (n1 * cos_i)) if cos_i > 0 else 0.0
        if element.partially_reflective:
            field = _transform_field(ray.polarization, d, reflected_dir, s, r_s, r_p)
            children.append(_child(ray, point, reflected_dir, n1, polarization=field))
        field = _transform_field(ray.polarization, d, transmitted_dir, s, flux * t_s, flux * t_p)
        children.append(_child(ray, point, transmitted_dir, n2, polarization=field))
    else:
        if element.partially_reflective:
            reflectance = fresnel_reflectance(n1, n2, cos_i)
            children.append(
                _child(ray, point, reflected_dir, n1, intensity=ray.intensity * reflectance)
            )
            transmitted = ray.intensity * (1.0 - reflectance)
        else:
            transmitted = ray.intensity
        children.append(_child(ray, point, transmitted_dir, n2, intensity=transmitted))
    return [Continuation(child, hit.hint) for child in children]


def reflective_interaction(ray: Ray, hit: Intersection, ambient_index: float) -> List[Continuation]:
    """Specular reflection; polarized rays see an ideal conductor (r_s=-1, r_p=+1)."""
    d = ray.direction
    point = ray.at(hit.t)
    out = reflect(d, hit.normal)
    if ray.kind is RayKind.POLARIZED:
        eta = hit.normal if np.dot(d, hit.normal) < 0 else -hit.normal
        s = _s_vector(d, eta, ray.polarization)
        field = _transform_field(ray.polarization, d, out, s, -1.0, 1.0)
        child = _child(ray, point, out, ray.refractive_index, polarization=field)
    else:
        child = _child(ray, point, out, ray.refractive_index, intensity=ray.intensity)
    return [Continuation(child, hit.hint)]


def splitting_interaction(ray: Ray, hit: Intersection, ambient_index: float) -> List[Continuation]:
    """
    Beamsplitter: always one reflected and one transmitted child.

    The transmitted child keeps its direction and passes through the splitter
    body. Without an explicit reflectivity the Fresnel coefficients of the
    element's index are used.
    """
    element = hit.element
    d = ray.direction
    point = ray.at(hit.t)
    eta = hit.normal if np.dot(d, hit.normal) < 0 else -hit.normal
    cos_i = float(-np.dot(d, eta))
    reflected_dir = reflect(d, hit.normal)
    n = ray.refractive_index

    if element.reflectivity is not None:
        R = element.reflectivity
        r_s, r_p = -np.sqrt(R), np.sqrt(R)
        t_s = t_p = np.sqrt(1.0 - R)
    else:
        n_element = element.refractive_index(ray.wavelength)
        r_s, r_p, _, _ = fresnel_coefficients(n, n_element, cos_i)
        R = fresnel_reflectance(n, n_element, cos_i)
        # lossless plate: the transmitted amplitude carries the remaining power
        t_s = np.sqrt(1.0 - abs(r_s) ** 2)
        t_p = np.sqrt(1.0 - abs(r_p) ** 2)

    if ray.kind is RayKind.POLARIZED:
        s = _s_vector(d, eta, ray.polarization)
        reflected = _child(
            ray,
            point,
            reflected_dir,
            n,
            polarization=_transform_field(ray.polarization, d, reflected_dir, s, r_s, r_p),
        )
        transmitted = _child(
            ray, point, d, n, polarization=_transform_field(ray.polarization, d, d, s, t_s, t_p)
        )
    else:
        reflected = _child(ray, point, reflected_dir, n, intensity=ray.intensity * R)
        transmitted = _child(ray, point, d, n, intensity=ray.intensity * (1.0 - R))

    return [
        Continuation(reflected, hit.hint),
        Continuation(transmitted, Hint(element.index, pass_through=True)),
    ]


def terminating_interaction(ray: Ray, hit: Intersection, ambient_index: float) -> List[Continuation]:
    """Absorbers and decorative elements end the ray."""
    return []


INTERACTION_RULES: Dict[Behavior, InteractionRule] = {
    Behavior.REFRACTIVE: refractive_interaction,
    Behavior.REFLECTIVE: reflective_interaction,
    Behavior.SPLITTING: splitting_interaction,
    Behavior.ABSORPTIVE: terminating_interaction,
    Behavior.NON_INTERACTABLE: terminating_interaction,
}


def interact(ray: Ray, hit: Intersection, ambient_index: float = 1.0) -> List[Continuation]:
    """
    Apply the interaction rule of the struck element.

    Raises:
        UnsupportedInteraction: If the element behavior has no rule
    """
    rule = INTERACTION_RULES.get(hit.element.behavior)
    if rule is None:
        raise UnsupportedInteraction(
            f"No interaction rule for behavior {hit.element.behavior!r} of {hit.element.name}"
        )
    return rule(ray, hit, ambient_index)


def check_interactions(system: FrozenSystem) -> None:
    """
    Raises:
        UnsupportedInteraction: If any element of ``system`` has no interaction rule
    """
    for element in system:
        if element.behavior not in INTERACTION_RULES:
            raise UnsupportedInteraction(
                f"No interaction rule for behavior {element.behavior!r} of {element.name}"
            )
