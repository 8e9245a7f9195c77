"""Unit tests for the Blinn-Phong metal material.

Tests cover:
- Tinted reflection lobe equals the Blinn-Phong lobe times the color
- Refraction lobe is always zero, with or without a layer
- Sampling over a refraction layer spends samples that carry no value
- Registry validation
"""

import logging

import numpy as np
import pytest
import taichi as ti

DIRECTION_PAIRS = [
    ((0.0, 0.0, 1.0), (0.0, 0.0, 1.0)),
    ((0.3, 0.1, 0.9), (-0.2, 0.0, 0.95)),
    ((0.7, 0.0, 0.7), (-0.7, 0.0, 0.7)),
    ((0.1, 0.6, 0.5), (0.2, -0.4, 0.8)),
]


def _unit(v):
    v = np.asarray(v, dtype=np.float32)
    return v / np.linalg.norm(v)


class TestMetalLobes:
    """Tests for the metal reflection and refraction lobes."""

    def test_tinted_reflection_kernel(self):
        """eval_blinn_phong_metal_reflection scales the scalar lobe per channel."""
        from src.brdf.materials.blinn_phong import eval_blinn_phong_reflection
        from src.brdf.materials.blinn_phong_metal import eval_blinn_phong_metal_reflection

        tinted = ti.Vector.field(3, dtype=ti.f32, shape=())
        plain = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            n = ti.math.vec3(0.0, 0.0, 1.0)
            wi = ti.math.normalize(ti.math.vec3(0.2, 0.1, 0.9))
            wo = ti.math.normalize(ti.math.vec3(-0.1, -0.1, 0.9))
            color = ti.math.vec3(1.0, 0.78, 0.34)
            tinted[None] = eval_blinn_phong_metal_reflection(color, wi, wo, n, 40.0, 0.9)
            plain[None] = eval_blinn_phong_reflection(wi, wo, n, 40.0, 0.9)

        test_kernel()
        t = tinted[None]
        p = plain[None]
        assert p > 0.0
        assert abs(t[0] - p * 1.0) < 1e-5 * p
        assert abs(t[1] - p * 0.78) < 1e-5 * p
        assert abs(t[2] - p * 0.34) < 1e-5 * p

    @pytest.mark.parametrize("wi,wo", DIRECTION_PAIRS)
    def test_reflection_matches_blinn_phong_times_color(self, library, wi, wo):
        """Metal reflection == Blinn-Phong reflection * color componentwise."""
        from src.brdf.core.evaluate import evaluate_reflection

        color = (0.9, 0.5, 0.2)
        plain = library.add_blinn_phong_material(shininess=20.0, r0=0.5)
        metal = library.add_blinn_phong_metal_material(shininess=20.0, color=color, r0=0.5)

        n = (0.0, 0.0, 1.0)
        expected = evaluate_reflection(plain, _unit(wi), _unit(wo), n) * np.array(color)
        actual = evaluate_reflection(metal, _unit(wi), _unit(wo), n)
        np.testing.assert_allclose(actual, expected, rtol=1e-5, atol=1e-7)

    @pytest.mark.parametrize("wi,wo", DIRECTION_PAIRS)
    def test_refraction_is_zero(self, library, wi, wo):
        """Metal refraction is zero even when a layer is present."""
        from src.brdf.core.evaluate import evaluate_refraction

        base = library.add_diffuse_material((0.9, 0.9, 0.9))
        bare = library.add_blinn_phong_metal_material(shininess=20.0, color=(1.0, 1.0, 1.0))
        layered = library.add_blinn_phong_metal_material(
            shininess=20.0, color=(1.0, 1.0, 1.0), refraction_layer=base
        )

        n = (0.0, 0.0, 1.0)
        for material_id in (bare, layered):
            refraction = evaluate_refraction(material_id, _unit(wi), _unit(wo), n)
            assert np.all(refraction == 0.0)

    def test_full_brdf_is_reflection_only(self, library):
        """A metal over a layer evaluates to its reflection lobe alone."""
        from src.brdf.core.evaluate import evaluate_brdf, evaluate_reflection

        base = library.add_diffuse_material((0.9, 0.9, 0.9))
        metal = library.add_blinn_phong_metal_material(
            shininess=10.0, color=(0.8, 0.6, 0.4), r0=0.7, refraction_layer=base
        )
        wi = _unit((0.3, 0.0, 0.9))
        wo = _unit((-0.2, 0.1, 0.9))
        n = (0.0, 0.0, 1.0)
        np.testing.assert_allclose(
            evaluate_brdf(metal, wi, wo, n),
            evaluate_reflection(metal, wi, wo, n),
            rtol=1e-6,
        )


class TestMetalSampling:
    """Tests for sampling a metal."""

    def test_layer_samples_carry_no_value(self, library):
        """Samples drawn through the layer have a density but a zero value."""
        from src.brdf.core.evaluate import sample_brdf_batch

        base = library.add_diffuse_material((0.9, 0.9, 0.9))
        metal = library.add_blinn_phong_metal_material(
            shininess=50.0, color=(1.0, 1.0, 1.0), r0=0.9, refraction_layer=base
        )
        batch = sample_brdf_batch(metal, (0.0, 0.0, 1.0), (0.0, 0.0, 1.0), count=2048)

        valid = batch.valid
        zero_value = valid & np.all(batch.brdf == 0.0, axis=1)
        nonzero_value = valid & np.any(batch.brdf > 0.0, axis=1)
        assert zero_value.sum() > 0
        assert nonzero_value.sum() > 0
        # Roughly half of the samples take each branch
        assert 0.35 < zero_value.sum() / 2048 < 0.65

    def test_metal_over_layer_logs_warning(self, library, caplog):
        """Building a metal over a refraction layer logs a warning."""
        base = library.add_diffuse_material((0.5, 0.5, 0.5))
        with caplog.at_level(logging.WARNING, logger="src.brdf.scene.library"):
            library.add_blinn_phong_metal_material(
                shininess=10.0, color=(1.0, 1.0, 1.0), refraction_layer=base
            )
        assert any("refraction layer" in record.message for record in caplog.records)


class TestMetalRegistry:
    """Tests for the metal registry."""

    def test_add_and_get_material(self):
        """Color and core index are readable from kernels."""
        from src.brdf.materials.blinn_phong import add_blinn_phong_material
        from src.brdf.materials.blinn_phong_metal import (
            add_blinn_phong_metal_material,
            get_metal_color,
            get_metal_core,
        )

        add_blinn_phong_material(5.0, 0.1)
        core = add_blinn_phong_material(80.0, 0.9)
        idx = add_blinn_phong_metal_material(core, (0.95, 0.64, 0.54))

        color = ti.Vector.field(3, dtype=ti.f32, shape=())
        core_out = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel(mat_idx: ti.i32):
            color[None] = get_metal_color(mat_idx)
            core_out[None] = get_metal_core(mat_idx)

        test_kernel(idx)
        assert idx == 0
        assert core_out[None] == 1
        assert abs(color[None][1] - 0.64) < 1e-6

    def test_color_validation(self):
        """Colors outside [0, 1] are rejected."""
        from src.brdf.materials.blinn_phong_metal import add_blinn_phong_metal_material

        with pytest.raises(ValueError, match="outside"):
            add_blinn_phong_metal_material(0, (1.2, 0.5, 0.5))

    def test_count_and_clear(self):
        """Count tracks additions and resets on clear."""
        from src.brdf.materials.blinn_phong_metal import (
            add_blinn_phong_metal_material,
            clear_metal_materials,
            get_metal_material_count,
        )

        add_blinn_phong_metal_material(0, (0.5, 0.5, 0.5))
        assert get_metal_material_count() == 1
        clear_metal_materials()
        assert get_metal_material_count() == 0
