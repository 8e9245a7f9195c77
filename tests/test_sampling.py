"""Unit tests for the hemisphere samplers.

Tests cover:
- Cosine-weighted mapping from explicit uniforms
- Blinn-Phong half-vector mapping from explicit uniforms
- Statistical behaviour of the random samplers
"""

import math

import taichi as ti


class TestCosineSampleHemisphere:
    """Tests for cosine_sample_hemisphere()."""

    def test_known_uniforms(self):
        """u1 = 0.25, u2 = 0.5 maps to azimuth pi/2 and radius sqrt(0.5)."""
        from src.brdf.core.sampling import cosine_sample_hemisphere

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = cosine_sample_hemisphere(0.25, 0.5)

        test_kernel()
        r = result[None]
        s = math.sqrt(0.5)
        assert abs(r[0]) < 1e-5
        assert abs(r[1] - s) < 1e-5
        assert abs(r[2] - s) < 1e-5

    def test_directions_are_unit_and_upper(self):
        """Every mapped direction is unit length with z >= 0."""
        from src.brdf.core.sampling import cosine_sample_hemisphere

        n = 16
        lengths = ti.field(dtype=ti.f32, shape=(n, n))
        zs = ti.field(dtype=ti.f32, shape=(n, n))

        @ti.kernel
        def test_kernel():
            for i, j in lengths:
                d = cosine_sample_hemisphere((i + 0.5) / n, (j + 0.5) / n)
                lengths[i, j] = ti.math.length(d)
                zs[i, j] = d.z

        test_kernel()
        assert abs(lengths.to_numpy() - 1.0).max() < 1e-5
        assert zs.to_numpy().min() >= 0.0


class TestBlinnPhongHalfVector:
    """Tests for blinn_phong_half_vector()."""

    def test_u2_one_gives_normal(self):
        """u2 = 1 gives cos(theta) = 1 for any shininess."""
        from src.brdf.core.sampling import blinn_phong_half_vector

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = blinn_phong_half_vector(0.3, 1.0, 50.0)

        test_kernel()
        r = result[None]
        assert abs(r[0]) < 1e-5
        assert abs(r[1]) < 1e-5
        assert abs(r[2] - 1.0) < 1e-5

    def test_zero_shininess_cos_equals_u2(self):
        """With s = 0, cos(theta) = u2."""
        from src.brdf.core.sampling import blinn_phong_half_vector

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = blinn_phong_half_vector(0.7, 0.36, 0.0)

        test_kernel()
        r = result[None]
        assert abs(r[2] - 0.36) < 1e-5
        assert abs(r[0] ** 2 + r[1] ** 2 + r[2] ** 2 - 1.0) < 1e-5

    def test_higher_shininess_concentrates_lobe(self):
        """For the same u2, larger shininess gives a larger cos(theta)."""
        from src.brdf.core.sampling import blinn_phong_half_vector

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = blinn_phong_half_vector(0.0, 0.2, 1.0).z
            result[1] = blinn_phong_half_vector(0.0, 0.2, 100.0).z

        test_kernel()
        assert result[1] > result[0]


class TestRandomSamplers:
    """Statistical tests for the random samplers."""

    def test_random_cosine_direction_mean_cosine(self):
        """E[cos(theta)] under cosine-weighted sampling is 2/3."""
        from src.brdf.core.sampling import random_cosine_direction

        num_samples = 20000
        zs = ti.field(dtype=ti.f32, shape=num_samples)

        @ti.kernel
        def test_kernel():
            for i in range(num_samples):
                zs[i] = random_cosine_direction().z

        test_kernel()
        values = zs.to_numpy()
        assert values.min() >= 0.0
        assert abs(values.mean() - 2.0 / 3.0) < 0.02

    def test_random_half_vectors_are_upper(self):
        """Random Blinn-Phong half-vectors lie in the upper hemisphere."""
        from src.brdf.core.sampling import random_blinn_phong_half_vector

        num_samples = 1000
        zs = ti.field(dtype=ti.f32, shape=num_samples)

        @ti.kernel
        def test_kernel():
            for i in range(num_samples):
                zs[i] = random_blinn_phong_half_vector(20.0).z

        test_kernel()
        assert zs.to_numpy().min() >= 0.0
