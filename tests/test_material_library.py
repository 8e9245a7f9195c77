"""Unit tests for the MaterialLibrary.

Tests cover:
- Material registration and unified IDs
- R0 resolution from r0 / ior / default IOR
- Reference validation and tree depth limits
- Evaluation plan construction
- Configuration export and import (to_config, from_config, dicts)
- Clearing
"""

import pytest


class TestMaterialRegistration:
    """Tests for material registration."""

    def test_ids_are_sequential_across_types(self, library):
        """Every variant draws from one shared ID sequence."""
        a = library.add_diffuse_material((0.8, 0.3, 0.3))
        b = library.add_blinn_phong_material(shininess=10.0, r0=0.04, refraction_layer=a)
        c = library.add_blinn_phong_metal_material(shininess=100.0, color=(0.9, 0.8, 0.5))
        d = library.add_linear_blend_material(0.5, b, c)
        assert (a, b, c, d) == (0, 1, 2, 3)
        assert library.get_material_count() == 4

    def test_material_types(self, library):
        """Python-side type lookup follows registration."""
        from src.brdf.scene.library import MaterialType

        a = library.add_diffuse_material((0.5, 0.5, 0.5))
        b = library.add_blinn_phong_metal_material(shininess=1.0, color=(1.0, 1.0, 1.0))
        assert library.get_material_type_python(a) == MaterialType.DIFFUSE
        assert library.get_material_type_python(b) == MaterialType.BLINN_PHONG_METAL
        assert library.get_material_type_python(99) is None
        assert library.get_material_info(99) is None

    def test_info_records_params(self, library):
        """MaterialInfo keeps the parameters given at creation."""
        base = library.add_diffuse_material((0.1, 0.2, 0.3))
        coat = library.add_blinn_phong_material(shininess=50.0, r0=0.1, refraction_layer=base)
        info = library.get_material_info(coat)
        assert info.params == {"shininess": 50.0, "r0": 0.1, "refraction_layer": base}
        assert info.type_index == 0

    def test_invalid_color_leaves_library_unchanged(self, library):
        """A rejected metal does not register anything."""
        with pytest.raises(ValueError, match="outside"):
            library.add_blinn_phong_metal_material(shininess=1.0, color=(2.0, 0.0, 0.0))
        assert library.get_material_count() == 0

    def test_full_metal_registry_leaves_core_unwritten(self, library):
        """A metal rejected for capacity does not leave a Blinn-Phong entry behind."""
        from src.brdf.materials.blinn_phong import get_blinn_phong_material_count
        from src.brdf.materials.blinn_phong_metal import (
            MAX_METAL_MATERIALS,
            add_blinn_phong_metal_material,
        )

        for _ in range(MAX_METAL_MATERIALS):
            add_blinn_phong_metal_material(0, (0.5, 0.5, 0.5))

        with pytest.raises(RuntimeError, match="metal materials"):
            library.add_blinn_phong_metal_material(shininess=10.0, color=(1.0, 1.0, 1.0))
        assert get_blinn_phong_material_count() == 0
        assert library.get_material_count() == 0


class TestR0Resolution:
    """Tests for r0 / ior handling."""

    def test_default_ior(self, library):
        """Without r0 or ior, R0 derives from IOR 1.5 (0.04)."""
        coat = library.add_blinn_phong_material(shininess=10.0)
        assert library.get_material_info(coat).params["r0"] == pytest.approx(0.04)

    def test_r0_from_ior(self, library):
        """ior = 1.33 gives R0 ~ 0.02."""
        coat = library.add_blinn_phong_material(shininess=10.0, ior=1.33)
        assert library.get_material_info(coat).params["r0"] == pytest.approx(0.02006, abs=1e-4)

    def test_r0_and_ior_conflict(self, library):
        """Giving both r0 and ior is rejected."""
        with pytest.raises(ValueError, match="either r0 or ior"):
            library.add_blinn_phong_material(shininess=10.0, r0=0.04, ior=1.5)

    def test_ior_below_one(self, library):
        """ior < 1 is rejected."""
        with pytest.raises(ValueError, match="IOR"):
            library.add_blinn_phong_metal_material(shininess=10.0, color=(1, 1, 1), ior=0.5)


class TestReferences:
    """Tests for references between materials."""

    def test_unknown_layer_rejected(self, library):
        """A refraction layer must name a registered material."""
        with pytest.raises(ValueError, match="refraction_layer"):
            library.add_blinn_phong_material(shininess=10.0, refraction_layer=0)

    def test_unknown_blend_child_rejected(self, library):
        """Both blend children must be registered."""
        a = library.add_diffuse_material((0.5, 0.5, 0.5))
        with pytest.raises(ValueError, match="bsdf1"):
            library.add_linear_blend_material(0.5, a, 5)
        with pytest.raises(ValueError, match="bsdf0"):
            library.add_linear_blend_material(0.5, -1, a)

    def test_blend_weight_rejected(self, library):
        """Blend weights outside [0, 1] are rejected before registration."""
        a = library.add_diffuse_material((0.5, 0.5, 0.5))
        with pytest.raises(ValueError, match="outside"):
            library.add_linear_blend_material(1.5, a, a)
        assert library.get_material_count() == 1

    def test_depth(self, library):
        """Depth counts the longest reference chain including the material."""
        a = library.add_diffuse_material((0.5, 0.5, 0.5))
        b = library.add_blinn_phong_material(shininess=1.0, refraction_layer=a)
        c = library.add_linear_blend_material(0.5, a, b)
        assert library.get_material_depth(a) == 1
        assert library.get_material_depth(b) == 2
        assert library.get_material_depth(c) == 3
        with pytest.raises(ValueError, match="Invalid material_id"):
            library.get_material_depth(17)

    def test_max_tree_depth(self, library):
        """Chains deeper than MAX_TREE_DEPTH are rejected."""
        from src.brdf.scene.library import MAX_TREE_DEPTH

        node = library.add_diffuse_material((0.5, 0.5, 0.5))
        for _ in range(MAX_TREE_DEPTH - 1):
            node = library.add_blinn_phong_material(shininess=1.0, refraction_layer=node)
        assert library.get_material_depth(node) == MAX_TREE_DEPTH
        with pytest.raises(ValueError, match="depth"):
            library.add_blinn_phong_material(shininess=1.0, refraction_layer=node)

    def test_shared_children(self, library):
        """One material may be referenced by several parents."""
        from src.brdf.core.evaluate import evaluate_brdf

        base = library.add_diffuse_material((0.5, 0.5, 0.5))
        blend = library.add_linear_blend_material(0.3, base, base)
        n = (0.0, 0.0, 1.0)
        assert evaluate_brdf(blend, n, n, n) == pytest.approx(evaluate_brdf(base, n, n, n))


class TestEvaluationPlans:
    """Tests for the flattened evaluation plans."""

    def test_plan_terms(self, library):
        """Terms list each leaf lobe with its edge path."""
        from src.brdf.scene.library import EdgeKind

        a = library.add_diffuse_material((0.5, 0.5, 0.5))
        b = library.add_blinn_phong_material(shininess=1.0, refraction_layer=a)
        c = library.add_blinn_phong_metal_material(shininess=1.0, color=(1, 1, 1))
        d = library.add_linear_blend_material(0.5, b, c)

        assert library.get_material_info(a).terms == [(a, ())]
        assert library.get_material_info(b).terms == [(b, ()), (a, ((b, EdgeKind.LAYER),))]
        assert library.get_material_info(d).terms == [
            (b, ((d, EdgeKind.BLEND_FIRST),)),
            (a, ((d, EdgeKind.BLEND_FIRST), (b, EdgeKind.LAYER))),
            (c, ((d, EdgeKind.BLEND_SECOND),)),
        ]


class TestConfiguration:
    """Tests for configuration export and import."""

    def test_to_config(self, library):
        """to_config lists materials with lower-case type names."""
        a = library.add_diffuse_material((0.5, 0.4, 0.3))
        library.add_linear_blend_material(0.25, a, a)
        config = library.to_config()
        assert config.materials == [
            {"type": "diffuse", "color": [0.5, 0.4, 0.3]},
            {"type": "linear_blend", "w": 0.25, "bsdf0": 0, "bsdf1": 0},
        ]

    def test_round_trip_preserves_evaluation(self, library):
        """Reloading a config reproduces the same BRDF values."""
        from src.brdf.core.evaluate import evaluate_brdf

        base = library.add_diffuse_material((0.7, 0.2, 0.2))
        coat = library.add_blinn_phong_material(shininess=30.0, r0=0.05, refraction_layer=base)
        metal = library.add_blinn_phong_metal_material(
            shininess=200.0, color=(0.9, 0.7, 0.3), r0=0.8
        )
        blend = library.add_linear_blend_material(0.4, coat, metal)

        wi = (0.2, 0.1, 0.97)
        wo = (-0.3, 0.0, 0.95)
        n = (0.0, 0.0, 1.0)
        before = evaluate_brdf(blend, wi, wo, n)

        data = library.to_dict()
        library.clear()
        assert library.get_material_count() == 0
        library.from_dict(data)

        assert library.get_material_count() == 4
        assert library.to_dict() == data
        assert evaluate_brdf(blend, wi, wo, n) == pytest.approx(before, rel=1e-6)

    def test_from_config_ior(self, library):
        """Config entries may give ior instead of r0."""
        from src.brdf.scene.library import MaterialLibraryConfig

        library.from_config(
            MaterialLibraryConfig(materials=[{"type": "blinn_phong", "shininess": 5.0, "ior": 1.5}])
        )
        assert library.get_material_info(0).params["r0"] == pytest.approx(0.04)

    def test_unknown_type_rejected(self, library):
        """Unknown material types are rejected."""
        from src.brdf.scene.library import MaterialLibraryConfig

        with pytest.raises(ValueError, match="Unknown material type"):
            library.from_config(MaterialLibraryConfig(materials=[{"type": "velvet"}]))

    def test_blend_requires_children(self, library):
        """A blend entry without both children is rejected."""
        from src.brdf.scene.library import MaterialLibraryConfig

        config = MaterialLibraryConfig(
            materials=[
                {"type": "diffuse", "color": [0.5, 0.5, 0.5]},
                {"type": "linear_blend", "w": 0.5, "bsdf0": 0},
            ]
        )
        with pytest.raises(ValueError, match="bsdf1"):
            library.from_config(config)


class TestClear:
    """Tests for clearing the library."""

    def test_clear_resets_ids(self, library):
        """After clear(), IDs start again at zero."""
        library.add_diffuse_material((0.5, 0.5, 0.5))
        library.add_diffuse_material((0.5, 0.5, 0.5))
        library.clear()
        assert library.get_material_count() == 0
        assert library.materials == []
        assert library.add_diffuse_material((0.5, 0.5, 0.5)) == 0
