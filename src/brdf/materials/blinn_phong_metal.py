"""Blinn-Phong metal material implementation.

A metal is a Blinn-Phong coating whose reflection lobe is tinted by a color
and whose refraction lobe is removed (conductors do not transmit light):
    f_r_metal = f_r_blinn_phong * color   (componentwise)
    f_t_metal = 0

The color scale stands in for the wavelength-dependent reflectance of a
conductor without a complex-valued Fresnel treatment.

Each metal entry stores its tint plus the type-local index of a Blinn-Phong
registry entry (its "core") holding shininess, R0 and the optional layer.
Sampling follows the Blinn-Phong strategy unchanged, so a metal built over a
refraction layer still spends half of its samples on that layer even though
they carry no value.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.brdf.materials.blinn_phong_metal import (
    ...     eval_blinn_phong_metal_reflection,
    ... )
    >>> # Use within a Taichi kernel:
    >>> # brdf = eval_blinn_phong_metal_reflection(color, wi, wo, n, s, r0)
"""

import taichi as ti
import taichi.math as tm

from src.brdf.materials.blinn_phong import eval_blinn_phong_reflection

vec3 = tm.vec3


@ti.func
def eval_blinn_phong_metal_reflection(
    color: vec3,
    wi: vec3,
    wo: vec3,
    n: vec3,
    shininess: ti.f32,
    r0: ti.f32,
) -> vec3:
    """Evaluate the tinted Blinn-Phong reflection lobe of a metal."""
    return eval_blinn_phong_reflection(wi, wo, n, shininess, r0) * color


@ti.func
def eval_blinn_phong_metal_refraction() -> vec3:
    """Metals have no transmission; the refraction lobe is always zero."""
    return vec3(0.0, 0.0, 0.0)


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_METAL_MATERIALS = 256

metal_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
# Type-local index into the Blinn-Phong registry
metal_cores = ti.field(dtype=ti.i32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Reset the metal registry to zero entries."""
    num_metal_materials[None] = 0


def add_blinn_phong_metal_material(
    core_index: int,
    color: tuple[float, float, float],
) -> int:
    """Add a Blinn-Phong metal to the registry.

    Args:
        core_index: Type-local index of the Blinn-Phong entry providing
            shininess, R0 and the refraction layer.
        color: The reflection tint as an (R, G, B) tuple, each in [0, 1].

    Returns:
        The type-local index of the added metal.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any color component is outside [0, 1].
    """
    for i, component in enumerate(color):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Color component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(
            f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded"
        )

    metal_colors[idx] = vec3(color[0], color[1], color[2])
    metal_cores[idx] = core_index
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_color(material_idx: ti.i32) -> vec3:
    """Get the reflection tint of a metal by type-local index."""
    return metal_colors[material_idx]


@ti.func
def get_metal_core(material_idx: ti.i32) -> ti.i32:
    """Get the Blinn-Phong registry index backing a metal."""
    return metal_cores[material_idx]
