"""Linear blend of two materials.

A linear blend interpolates the BRDFs of two sub-materials:
    f = w * f0 + (1 - w) * f1

Sub-materials are referenced by unified material ID and may be any variant,
including other blends. Sampling picks bsdf0 with probability w (else bsdf1),
delegates to it, and reports the mixture density
    p = w * p0 + (1 - w) * p1
together with the blend's full BRDF value at the sampled direction. The
traversal itself lives in src.brdf.materials.dispatch.

Example:
    >>> from src.brdf.scene.library import MaterialLibrary
    >>> library = MaterialLibrary()
    >>> red = library.add_diffuse_material((0.8, 0.1, 0.1))
    >>> blue = library.add_diffuse_material((0.1, 0.1, 0.8))
    >>> purple = library.add_linear_blend_material(0.5, red, blue)
"""

import taichi as ti


@ti.func
def blend_factors(w: ti.f32):
    """Return the weights (w, 1 - w) applied to bsdf0 and bsdf1."""
    return w, 1.0 - w


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_BLEND_MATERIALS = 256

blend_weights = ti.field(dtype=ti.f32, shape=MAX_BLEND_MATERIALS)
# Unified material IDs of the two sub-materials
blend_first = ti.field(dtype=ti.i32, shape=MAX_BLEND_MATERIALS)
blend_second = ti.field(dtype=ti.i32, shape=MAX_BLEND_MATERIALS)
num_blend_materials = ti.field(dtype=ti.i32, shape=())


def clear_blend_materials() -> None:
    """Reset the blend registry to zero entries."""
    num_blend_materials[None] = 0


def add_linear_blend_material(w: float, bsdf0: int, bsdf1: int) -> int:
    """Add a linear blend to the registry.

    Args:
        w: Weight of bsdf0, in [0, 1]. bsdf1 receives 1 - w.
        bsdf0: Unified material ID of the first sub-material.
        bsdf1: Unified material ID of the second sub-material.

    Returns:
        The type-local index of the added blend.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If w is outside [0, 1].
    """
    if w < 0.0 or w > 1.0:
        raise ValueError(f"Blend weight w = {w} is outside [0, 1].")

    idx = num_blend_materials[None]
    if idx >= MAX_BLEND_MATERIALS:
        raise RuntimeError(
            f"Maximum number of blend materials ({MAX_BLEND_MATERIALS}) exceeded"
        )

    blend_weights[idx] = w
    blend_first[idx] = bsdf0
    blend_second[idx] = bsdf1
    num_blend_materials[None] = idx + 1
    return idx


def get_blend_material_count() -> int:
    """Get the number of blends in the registry."""
    return int(num_blend_materials[None])


@ti.func
def get_blend_weight(material_idx: ti.i32) -> ti.f32:
    """Get the weight of the first sub-material of a blend."""
    return blend_weights[material_idx]


@ti.func
def get_blend_first(material_idx: ti.i32) -> ti.i32:
    """Get the unified material ID of a blend's first sub-material."""
    return blend_first[material_idx]


@ti.func
def get_blend_second(material_idx: ti.i32) -> ti.i32:
    """Get the unified material ID of a blend's second sub-material."""
    return blend_second[material_idx]
