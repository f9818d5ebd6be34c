"""
Tests for the geometry module.
"""

import numpy as np
import pytest

from sdfoptics.exceptions import DegenerateGeometryError, InvalidDimensionError
from sdfoptics.geometry import (
    AcylindricalSurfaceSDF,
    AsphericSurfaceSDF,
    BoxSDF,
    CombineRule,
    ConcaveSphericalSurfaceSDF,
    ConvexSphericalSurfaceSDF,
    PlanoSurfaceSDF,
    RightAnglePrismSDF,
    RigidTransform,
    RingSDF,
    SphereSDF,
    align_matrix,
    aspheric_sag,
    biconcave_lens_sdf,
    biconvex_lens_sdf,
    combine,
    distance,
    meniscus_lens_sdf,
    normalize3d,
    perpendicular,
    plano_concave_lens_sdf,
    plano_convex_lens_sdf,
    rotation_matrix,
    sagitta,
    thin_lens_sdf,
)

R = 50e-3
D = 25e-3


def random_points(n=200, scale=0.03, seed=0):
    rng = np.random.default_rng(seed)
    return rng.uniform(-scale, scale, size=(n, 3))


class TestTransforms:
    """Tests for rotations and rigid placements."""

    def test_rotation_matrix_is_orthonormal(self):
        """Test Rodrigues rotation produces a proper rotation."""
        m = rotation_matrix((1.0, 2.0, 3.0), 0.7)
        assert np.allclose(m @ m.T, np.eye(3))
        assert np.isclose(np.linalg.det(m), 1.0)

    def test_rotation_about_z(self):
        """Test quarter turn about z maps x to y."""
        m = rotation_matrix((0, 0, 1), np.pi / 2)
        assert np.allclose(m @ np.array([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0])

    @pytest.mark.parametrize(
        "source,target",
        [
            ((0, 1, 0), (1, 0, 0)),
            ((0, 1, 0), (0, -1, 0)),
            ((0, 1, 0), (0, 1, 0)),
            ((1, 1, 0), (0, 0, 1)),
        ],
    )
    def test_align_matrix(self, source, target):
        """Test alignment maps source onto target, including antiparallel."""
        m = align_matrix(source, target)
        assert np.allclose(m @ normalize3d(source), normalize3d(target))

    def test_perpendicular(self):
        """Test perpendicular unit vector."""
        for v in ([1, 0, 0], [0, 1, 0], [0.3, -0.2, 0.9]):
            p = perpendicular(v)
            assert np.isclose(np.linalg.norm(p), 1.0)
            assert np.isclose(np.dot(p, v), 0.0)

    def test_normalize_zero_raises(self):
        """Test zero vector cannot be normalized."""
        with pytest.raises(ValueError):
            normalize3d((0, 0, 0))

    def test_transpose_is_cached(self):
        """Test orientation and transpose stay consistent."""
        t = RigidTransform()
        t.rotate3d((1, 1, 0), 0.4)
        t.xrotate3d(0.2)
        assert np.allclose(t.orientation.T, t.transposed_orientation)

    def test_align3d(self):
        """Test local y axis follows align3d target."""
        t = RigidTransform()
        t.align3d((1.0, 0.0, 0.0))
        assert np.allclose(t.orientation[:, 1], [1.0, 0.0, 0.0])

    def test_rotate_about_pivot(self):
        """Test rotation about an external pivot moves the position."""
        t = RigidTransform()
        t.translate_to3d((1.0, 0.0, 0.0))
        t.rotate_about(rotation_matrix((0, 0, 1), np.pi), (0.0, 0.0, 0.0))
        assert np.allclose(t.position, [-1.0, 0.0, 0.0])


class TestPrimitives:
    """Tests for primitive SDFs."""

    def test_sphere_surface(self):
        """Test sphere distance on and off the surface."""
        s = SphereSDF(1.0)
        assert np.isclose(s.sdf(np.array([1.0, 0.0, 0.0])), 0.0)
        assert np.isclose(s.sdf(np.array([0.0, 3.0, 0.0])), 2.0)
        assert np.isclose(s.sdf(np.zeros(3)), -1.0)

    def test_distance_function(self):
        """Test module-level distance matches the method."""
        s = SphereSDF(0.5)
        p = np.array([0.2, 0.9, -0.1])
        assert distance(s, p) == s.sdf(p)

    def test_plano_surface(self):
        """Test flat disc faces at y=0 and y=thickness."""
        plate = PlanoSurfaceSDF(5e-3, D)
        for p in ([0, 0, 0], [0, 5e-3, 0], [D / 2, 2.5e-3, 0], [0, 1e-3, -D / 2]):
            assert abs(plate.sdf(np.array(p, dtype=float))) < 1e-12
        assert plate.sdf(np.array([0.0, 2.5e-3, 0.0])) < 0
        assert np.isclose(plate.sdf(np.array([0.0, -1e-3, 0.0])), 1e-3)

    def test_convex_surface_points(self):
        """Test points on the convex cap, its rim and its back."""
        cap = ConvexSphericalSurfaceSDF(R, D)
        s = sagitta(R, D)
        assert np.isclose(cap.sag, s)
        rho = 7e-3
        on_sphere = np.array([rho, R - np.sqrt(R**2 - rho**2), 0.0])
        for p in (np.zeros(3), on_sphere, np.array([D / 2, s, 0.0]), np.array([0.0, s, 0.0])):
            assert abs(cap.sdf(p)) < 1e-12
        assert cap.sdf(np.array([0.0, s / 2, 0.0])) < 0
        assert np.isclose(cap.sdf(np.array([0.0, -1e-3, 0.0])), 1e-3)

    def test_concave_surface_points(self):
        """Test the concave face touching the origin."""
        face = ConcaveSphericalSurfaceSDF(R, D)
        rho = 9e-3
        on_sphere = np.array([0.0, -(R - np.sqrt(R**2 - rho**2)), rho])
        assert abs(face.sdf(np.zeros(3))) < 1e-12
        assert abs(face.sdf(on_sphere)) < 1e-12
        assert face.sdf(np.array([0.0, -1e-3, 0.0])) > 0
        assert face.thickness == 0.0

    def test_ring(self):
        """Test ring inner wall."""
        ring = RingSDF(D / 2, 2e-3, 4e-3)
        assert abs(ring.sdf(np.array([D / 2, 0.0, 0.0]))) < 1e-12
        assert ring.sdf(np.array([D / 2 + 1e-3, 0.0, 0.0])) < 0
        assert ring.sdf(np.zeros(3)) > 0
        assert np.isclose(ring.diameter, D + 4e-3)

    def test_box(self):
        """Test box faces."""
        box = BoxSDF((2.0, 4.0, 6.0))
        assert np.isclose(box.sdf(np.array([1.0, 0.0, 0.0])), 0.0)
        assert np.isclose(box.sdf(np.array([0.0, 3.0, 0.0])), 1.0)
        assert np.isclose(box.sdf(np.zeros(3)), -1.0)

    def test_prism(self):
        """Test right-angle prism legs and hypotenuse."""
        prism = RightAnglePrismSDF(10e-3, 10e-3)
        assert abs(prism.sdf(np.array([5e-3, 0.0, 0.0]))) < 1e-12
        assert abs(prism.sdf(np.array([0.0, 5e-3, 1e-3]))) < 1e-12
        assert abs(prism.sdf(np.array([5e-3, 5e-3, 0.0]))) < 1e-12
        assert prism.sdf(np.array([2e-3, 2e-3, 0.0])) < 0
        assert np.isclose(prism.sdf(np.array([5e-3, 5e-3, 0.0]) + 1e-3 * np.array([1, 1, 0]) / np.sqrt(2)), 1e-3)

    def test_aspheric_matches_sphere(self):
        """Test a conic-free asphere reproduces the spherical cap."""
        asphere = AsphericSurfaceSDF(R, D)
        cap = ConvexSphericalSurfaceSDF(R, D)
        points = np.array(
            [
                [0.0, -1e-3, 0.0],
                [3e-3, 0.5e-3, 0.0],
                [0.0, 1e-3, 4e-3],
                [14e-3, 1e-3, 0.0],
                [5e-3, 3e-3, 5e-3],
            ]
        )
        assert np.allclose(asphere.sdf(points), cap.sdf(points), atol=1e-9)

    def test_aspheric_sag(self):
        """Test sag equation for sphere and polynomial terms."""
        assert np.isclose(aspheric_sag(5e-3, 1 / R), R - np.sqrt(R**2 - 25e-6))
        assert np.isclose(aspheric_sag(1.0, 0.0, coefficients=(2.0, 3.0)), 5.0)

    def test_acylindrical_surface(self):
        """Test the acylinder profile is extruded along x."""
        acyl = AcylindricalSurfaceSDF(R, D, height=10e-3, conic_constant=-0.5)
        z = 6e-3
        y = aspheric_sag(z, 1 / R, -0.5)
        for x in (-4e-3, 0.0, 4e-3):
            assert abs(acyl.sdf(np.array([x, y, z]))) < 1e-9
        assert acyl.sdf(np.array([0.0, acyl.sag / 2, 0.0])) < 0
        assert acyl.sdf(np.array([6e-3, acyl.sag / 2, 0.0])) > 0

    def test_batch_matches_single(self):
        """Test (N, 3) evaluation matches pointwise evaluation."""
        cap = ConvexSphericalSurfaceSDF(R, D)
        cap.translate3d((1e-3, 2e-3, 0.0))
        cap.rotate3d((0.2, 0.3, 1.0), 0.4)
        points = random_points(20, 0.02)
        batch = cap.sdf(points)
        assert batch.shape == (20,)
        assert np.allclose(batch, [cap.sdf(p) for p in points])

    @pytest.mark.parametrize(
        "shape",
        [
            SphereSDF(10e-3),
            PlanoSurfaceSDF(5e-3, D),
            ConvexSphericalSurfaceSDF(R, D),
            ConcaveSphericalSurfaceSDF(R, D),
            RingSDF(D / 2, 2e-3, 4e-3),
            BoxSDF((10e-3, 5e-3, 8e-3)),
            RightAnglePrismSDF(10e-3, 10e-3),
        ],
    )
    def test_lipschitz_bound(self, shape):
        """Test distance changes no faster than the distance between points."""
        a = random_points(300, 0.03, seed=1)
        b = a + np.random.default_rng(2).normal(scale=2e-3, size=a.shape)
        diff = np.abs(shape.sdf(a) - shape.sdf(b))
        assert np.all(diff <= np.linalg.norm(a - b, axis=1) + 1e-12)

    def test_placement(self):
        """Test translation and alignment of a primitive."""
        plate = PlanoSurfaceSDF(2e-3, D)
        plate.align3d((1.0, 0.0, 0.0))
        plate.translate3d((0.1, 0.0, 0.0))
        assert abs(plate.sdf(np.array([0.1, 0.0, 0.0]))) < 1e-12
        assert abs(plate.sdf(np.array([0.102, 0.0, 0.0]))) < 1e-12
        assert plate.sdf(np.array([0.101, 0.0, 0.0])) < 0

    def test_bounding_sphere_encloses(self):
        """Test surface points lie inside the bounding sphere."""
        cap = ConvexSphericalSurfaceSDF(R, D)
        cap.translate3d((0.0, 0.01, 0.0))
        center, radius = cap.bounding_sphere()
        rim = np.array([D / 2, 0.01 + cap.sag, 0.0])
        assert np.linalg.norm(rim - center) <= radius + 1e-12


class TestConstructionErrors:
    """Tests for geometry validation."""

    def test_sagitta_exceeds_half_diameter(self):
        """Test degenerate spherical surfaces."""
        with pytest.raises(DegenerateGeometryError):
            ConvexSphericalSurfaceSDF(10e-3, D)
        with pytest.raises(DegenerateGeometryError):
            ConcaveSphericalSurfaceSDF(10e-3, D)

    def test_degenerate_asphere(self):
        """Test conic that is undefined at the rim."""
        with pytest.raises(DegenerateGeometryError):
            AsphericSurfaceSDF(13e-3, D, conic_constant=1.0)

    def test_non_positive_dimensions(self):
        """Test zero or negative sizes."""
        with pytest.raises(InvalidDimensionError):
            PlanoSurfaceSDF(0.0, D)
        with pytest.raises(InvalidDimensionError):
            SphereSDF(-1.0)
        with pytest.raises(InvalidDimensionError):
            BoxSDF((1.0, 0.0, 1.0))

    def test_errors_are_value_errors(self):
        """Test construction errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            PlanoSurfaceSDF(-1.0, D)

    def test_mechanical_diameter(self):
        """Test mechanical diameter must exceed the optical one."""
        with pytest.raises(InvalidDimensionError):
            plano_concave_lens_sdf(R, 3e-3, D, mechanical_diameter=D)
        with pytest.raises(InvalidDimensionError):
            biconcave_lens_sdf(R, R, 3e-3, D, mechanical_diameter=20e-3)

    def test_center_thickness_too_small(self):
        """Test convex lenses need room for a cylindrical section."""
        with pytest.raises(InvalidDimensionError):
            plano_convex_lens_sdf(R, 1e-3, D)


class TestComposite:
    """Tests for boolean composition."""

    @pytest.fixture
    def children(self):
        """Three overlapping and disjoint shapes."""
        a = SphereSDF(10e-3)
        b = BoxSDF((10e-3, 10e-3, 10e-3))
        b.translate3d((8e-3, 0.0, 0.0))
        c = PlanoSurfaceSDF(2e-3, 6e-3)
        c.translate3d((-20e-3, 0.0, 0.0))
        return a, b, c

    def test_union_is_minimum(self, children):
        """Test union equals the pointwise minimum of its children."""
        union = combine(CombineRule.UNION, *children)
        points = random_points(300, 0.03)
        expected = np.min([child.sdf(points) for child in children], axis=0)
        assert np.allclose(union.sdf(points), expected)
        assert union.sdf(np.zeros(3)) < 0
        assert union.sdf(np.array([0.0, 0.025, 0.0])) > 0

    def test_subtract(self, children):
        """Test subtraction equals max(base, -cutout)."""
        base, cutout, _ = children
        diff = combine(CombineRule.SUBTRACT, base, cutout)
        points = random_points(300, 0.03)
        expected = np.maximum(base.sdf(points), -cutout.sdf(points))
        assert np.allclose(diff.sdf(points), expected)
        assert diff.sdf(np.array([8e-3, 0.0, 0.0])) > 0

    def test_nested_composite_transform(self, children):
        """Test composites nest and carry their own placement."""
        inner = combine(CombineRule.UNION, *children[:2])
        outer = combine(CombineRule.UNION, inner, SphereSDF(1e-3))
        outer.translate3d((0.0, 0.1, 0.0))
        p = np.array([13e-3, 0.1, 0.0])
        assert abs(outer.sdf(p)) < 1e-12

    def test_invalid_composites(self):
        """Test empty or one-sided compositions."""
        with pytest.raises(ValueError):
            combine(CombineRule.UNION)
        with pytest.raises(ValueError):
            combine(CombineRule.SUBTRACT, SphereSDF(1.0))
        with pytest.raises(TypeError):
            combine("union", SphereSDF(1.0))


class TestLensShapes:
    """Tests for closed-volume lens builders."""

    def test_plano_convex(self):
        """Test vertex, back face and dimensions of a plano-convex lens."""
        lens = plano_convex_lens_sdf(R, 5e-3, D)
        assert abs(lens.sdf(np.zeros(3))) < 1e-12
        assert abs(lens.sdf(np.array([0.0, 5e-3, 0.0]))) < 1e-12
        assert lens.sdf(np.array([0.0, 2.5e-3, 0.0])) < 0
        assert np.isclose(lens.thickness, 5e-3)
        assert np.isclose(lens.diameter, D)

    def test_biconvex(self):
        """Test both vertices of a bi-convex lens."""
        lens = biconvex_lens_sdf(R, 2 * R, 6e-3, D)
        assert abs(lens.sdf(np.zeros(3))) < 1e-12
        assert abs(lens.sdf(np.array([0.0, 6e-3, 0.0]))) < 1e-12
        assert lens.sdf(np.array([0.0, 3e-3, 0.0])) < 0

    def test_plano_concave_with_ring(self):
        """Test plano-concave lens with and without mounting ring."""
        lens = plano_concave_lens_sdf(R, 3e-3, D)
        assert abs(lens.sdf(np.zeros(3))) < 1e-12
        assert abs(lens.sdf(np.array([0.0, 3e-3, 0.0]))) < 1e-12
        mounted = plano_concave_lens_sdf(R, 3e-3, D, mechanical_diameter=30e-3)
        assert np.isclose(mounted.diameter, 30e-3)
        assert mounted.sdf(np.array([14e-3, 1e-3, 0.0])) < 0

    def test_biconcave(self):
        """Test the thin center of a bi-concave lens."""
        lens = biconcave_lens_sdf(R, R, 2e-3, D)
        assert abs(lens.sdf(np.zeros(3))) < 1e-12
        assert abs(lens.sdf(np.array([0.0, 2e-3, 0.0]))) < 1e-12
        assert lens.sdf(np.array([0.0, -1e-4, 0.0])) > 0

    def test_thin_lens(self):
        """Test a thin lens is exactly the two sags thick."""
        lens = thin_lens_sdf(R, R, D)
        assert np.isclose(lens.thickness, 2 * sagitta(R, D))
        assert abs(lens.sdf(np.array([0.0, lens.thickness, 0.0]))) < 1e-12

    def test_meniscus(self):
        """Test meniscus vertices."""
        lens = meniscus_lens_sdf(R, 2 * R, 4e-3, D)
        assert abs(lens.sdf(np.zeros(3))) < 1e-12
        assert abs(lens.sdf(np.array([0.0, 4e-3, 0.0]))) < 1e-12
        assert lens.sdf(np.array([0.0, 2e-3, 0.0])) < 0
