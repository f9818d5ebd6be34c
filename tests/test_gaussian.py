"""
Tests for the gaussian module.
"""

import numpy as np
import pytest

from sdfoptics.gaussian import (
    GaussianBeamlet,
    beam_radius,
    curved_mirror,
    free_space,
    interface,
    q_from_waist,
    rayleigh_range,
    thin_lens,
    transform_q,
    waist_from_q,
    wavefront_radius,
)
from sdfoptics.optics import System, beam_dump, concave_spherical_mirror, plano_convex_lens

WAVELENGTH = 1064e-9


@pytest.fixture
def empty_space():
    """System whose only element is far off the beam axis."""
    dump = beam_dump(10e-3)
    dump.translate3d((1.0, 0.0, 0.0))
    return System([dump])


@pytest.fixture
def lens_system():
    """Plano-convex lens, f = 100 mm, vertex at the origin."""
    return System([plano_convex_lens(50e-3, 5e-3, 25e-3, dispersion=1.5)])


class TestABCD:
    """Tests for the ABCD formulary."""

    def test_rayleigh_range(self):
        """Test z_R = pi n w0^2 / lambda."""
        zr = rayleigh_range(1e-3, WAVELENGTH)
        assert np.isclose(zr, np.pi * 1e-6 / WAVELENGTH)
        assert np.isclose(rayleigh_range(1e-3, WAVELENGTH, n=1.5), 1.5 * zr)

    def test_waist_parameter(self):
        """Test beam radius and curvature at and after the waist."""
        w0 = 1e-3
        zr = rayleigh_range(w0, WAVELENGTH)
        q0 = q_from_waist(w0, WAVELENGTH)
        assert np.isclose(beam_radius(q0, WAVELENGTH), w0)
        assert wavefront_radius(q0) == np.inf
        q1 = transform_q(q0, free_space(zr))
        assert np.isclose(beam_radius(q1, WAVELENGTH), np.sqrt(2) * w0)
        assert np.isclose(wavefront_radius(q1), 2 * zr)
        assert np.isclose(q1, q_from_waist(w0, WAVELENGTH, z=zr))

    def test_waist_from_q(self):
        """Test recovering the waist from a propagated parameter."""
        q = q_from_waist(0.5e-3, WAVELENGTH, z=0.3)
        w0, distance = waist_from_q(q, WAVELENGTH)
        assert np.isclose(w0, 0.5e-3)
        assert np.isclose(distance, -0.3)

    def test_thin_lens_focus(self):
        """Test the new waist position behind a thin lens."""
        w0 = 1e-3
        f = 0.1
        zr = rayleigh_range(w0, WAVELENGTH)
        q = transform_q(q_from_waist(w0, WAVELENGTH), thin_lens(f))
        new_w0, distance = waist_from_q(q, WAVELENGTH)
        assert np.isclose(distance, f / (1 + (f / zr) ** 2))
        assert np.isclose(new_w0, w0 / np.sqrt(1 + (zr / f) ** 2))

    def test_mirror_matches_lens(self):
        """Test a mirror of radius R acts as a lens of focal length R/2."""
        assert np.allclose(curved_mirror(0.2), thin_lens(0.1))
        assert np.allclose(curved_mirror(), np.eye(2))

    def test_flat_interface(self):
        """Test a flat interface scales q by n2/n1 and keeps the radius."""
        q = q_from_waist(1e-3, WAVELENGTH, z=0.2)
        q2 = transform_q(q, interface(1.0, 1.5))
        assert np.isclose(q2, 1.5 * q)
        assert np.isclose(beam_radius(q2, WAVELENGTH, 1.5), beam_radius(q, WAVELENGTH, 1.0))

    def test_curved_interface_power(self):
        """Test a convex glass surface focuses."""
        m = interface(1.0, 1.5, 0.05)
        assert m[1, 0] < 0
        assert np.isclose(np.linalg.det(m), 1.0 / 1.5)

    def test_unconfined_parameter(self):
        """Test real q values do not describe a beam."""
        with pytest.raises(ValueError):
            beam_radius(complex(1.0, 0.0), WAVELENGTH)
        with pytest.raises(ValueError):
            waist_from_q(complex(1.0, -1.0), WAVELENGTH)


class TestGaussianBeamlet:
    """Tests for ray-based Gaussian beamlets."""

    def test_seed_rays(self):
        """Test chief, waist and divergence ray geometry."""
        beamlet = GaussianBeamlet((0, 0, 0), (0, 1, 0), WAVELENGTH, waist=1e-3)
        chief, waist_ray, divergence_ray = beamlet.seed_rays()
        assert np.isclose(np.linalg.norm(waist_ray.position - chief.position), 1e-3)
        assert np.allclose(waist_ray.direction, chief.direction)
        angle = np.arccos(np.dot(divergence_ray.direction, chief.direction))
        assert np.isclose(angle, WAVELENGTH / (np.pi * 1e-3))
        assert np.allclose(divergence_ray.position, chief.position)

    def test_invalid_waist(self):
        """Test non-positive waist."""
        with pytest.raises(ValueError):
            GaussianBeamlet((0, 0, 0), (0, 1, 0), WAVELENGTH, waist=0.0)

    def test_requires_solve(self):
        """Test queries before tracing."""
        beamlet = GaussianBeamlet((0, 0, 0), (0, 1, 0), WAVELENGTH, waist=1e-3)
        assert not beamlet.solved
        with pytest.raises(RuntimeError):
            beamlet.beam_parameters(0.1)

    @pytest.mark.parametrize("z", [0.0, 0.5, 3.0])
    def test_free_space(self, empty_space, z):
        """Test ray-derived parameters follow the analytic Gaussian beam."""
        w0 = 1e-3
        beamlet = GaussianBeamlet((0, -1, 0), (0, 1, 0), WAVELENGTH, waist=w0)
        beamlet.solve(empty_space)
        assert beamlet.is_valid
        params = beamlet.beam_parameters(z)
        q = q_from_waist(w0, WAVELENGTH, z=z)
        assert np.allclose(params.position, [0.0, -1.0 + z, 0.0])
        assert np.isclose(params.w, beam_radius(q, WAVELENGTH), rtol=1e-6)
        assert np.isclose(params.q, q, rtol=1e-6)
        assert np.isclose(params.waist, w0, rtol=1e-6)
        assert np.isclose(params.rayleigh_range, rayleigh_range(w0, WAVELENGTH), rtol=1e-6)
        if z == 0.0:
            assert params.R == np.inf
        else:
            assert np.isclose(params.R, wavefront_radius(q), rtol=1e-6)
            assert np.isclose(params.waist_distance, -z, rtol=1e-6)

    def test_lens_matches_abcd(self, lens_system):
        """Test ray-derived and ABCD beam radius agree behind a lens."""
        beamlet = GaussianBeamlet((0, -0.05, 0), (0, 1, 0), WAVELENGTH, waist=1e-3)
        chief = beamlet.solve(lens_system)
        assert len(chief.root.rays) == 3
        assert beamlet.is_valid

        chain = beamlet.abcd_trace()
        assert len(chain) == 3
        assert chain[0] == q_from_waist(1e-3, WAVELENGTH)

        t = 0.05 + 0.005 + 0.05
        params = beamlet.beam_parameters(t)
        q_abcd = transform_q(chain[2], free_space(0.05))
        assert np.isclose(params.w, beam_radius(q_abcd, WAVELENGTH), rtol=1e-2)
        assert np.isclose(params.R, wavefront_radius(q_abcd), rtol=1e-2)
        assert params.R < 0
        assert params.w < 1e-3

    def test_inside_lens(self, lens_system):
        """Test parameters inside the glass use the glass index."""
        beamlet = GaussianBeamlet((0, -0.05, 0), (0, 1, 0), WAVELENGTH, waist=1e-3)
        beamlet.solve(lens_system)
        params = beamlet.beam_parameters(0.0525)
        assert params.refractive_index == 1.5
        q_abcd = transform_q(beamlet.abcd_trace()[1], free_space(0.0025))
        assert np.isclose(params.w, beam_radius(q_abcd, WAVELENGTH, 1.5), rtol=1e-2)

    def test_concave_mirror_matches_abcd(self):
        """Test a focusing mirror in both descriptions."""
        mirror = concave_spherical_mirror(0.2, 25e-3, 5e-3)
        beamlet = GaussianBeamlet((0, -0.05, 0), (0, 1, 0), WAVELENGTH, waist=0.5e-3)
        chief = beamlet.solve(System([mirror]))
        assert np.allclose(chief.root.rays[1].direction, [0.0, -1.0, 0.0], atol=1e-9)

        chain = beamlet.abcd_trace()
        q_abcd = transform_q(chain[1], free_space(0.05))
        params = beamlet.beam_parameters(0.1)
        assert np.allclose(params.position, [0.0, -0.05, 0.0], atol=1e-9)
        assert np.isclose(params.w, beam_radius(q_abcd, WAVELENGTH), rtol=1e-2)
        assert np.isclose(params.R, wavefront_radius(q_abcd), rtol=1e-2)
        assert params.R < 0

    def test_abcd_parameters(self, lens_system):
        """Test (w, R) pairs start at the waist."""
        beamlet = GaussianBeamlet((0, -0.05, 0), (0, 1, 0), WAVELENGTH, waist=1e-3)
        beamlet.solve(lens_system)
        pairs = beamlet.abcd_parameters()
        assert len(pairs) == 3
        assert np.isclose(pairs[0][0], 1e-3)
        assert pairs[0][1] == np.inf

    def test_topology_mismatch(self, lens_system):
        """Test a waist ray missing the lens invalidates the beamlet."""
        beamlet = GaussianBeamlet((0, -0.05, 0), (0, 1, 0), WAVELENGTH, waist=20e-3)
        beamlet.solve(lens_system)
        assert not beamlet.topology_matches()
        assert not beamlet.is_valid
        with pytest.raises(ValueError):
            beamlet.beam_parameters(0.1)

    def test_non_paraxial(self, lens_system):
        """Test steep incidence fails the paraxial check."""
        beamlet = GaussianBeamlet(
            (10e-3, -0.05, 0),
            (0, 1, 0),
            WAVELENGTH,
            waist=0.1e-3,
            paraxial_threshold=np.radians(5),
        )
        beamlet.solve(lens_system)
        assert beamlet.topology_matches()
        assert not beamlet.is_valid
