"""Diffuse (Lambertian) material implementation.

The Lambertian BRDF scatters incident light equally in all directions of the
upper hemisphere:
    f_r(wi, wo) = color / pi

It is sampled with cosine-weighted hemisphere sampling, whose density
    pdf(wi) = cos(theta) / pi
matches the cosine factor of the rendering equation, so the Monte Carlo
weight f * cos / pdf reduces to the color.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.brdf.materials.diffuse import eval_diffuse, sample_diffuse
    >>> # Use within a Taichi kernel:
    >>> # wi, brdf, pdf = sample_diffuse(color, wo, n)
"""

import taichi as ti
import taichi.math as tm

from src.brdf.core.sampling import cosine_sample_hemisphere, randf
from src.brdf.core.vector import (
    build_tangent_frame,
    local_to_world,
    normalize,
    same_hemisphere,
)

vec3 = tm.vec3


@ti.func
def eval_diffuse(color: vec3, wi: vec3, wo: vec3, n: vec3) -> vec3:
    """Evaluate the Lambertian BRDF.

    Args:
        color: The albedo (RGB).
        wi: Incident direction (toward the light).
        wo: Outgoing direction (toward the viewer).
        n: Surface normal.

    Returns:
        color / pi when wi is above the surface and wo lies on the same side,
        otherwise zero.
    """
    result = vec3(0.0, 0.0, 0.0)
    if tm.dot(wi, n) > 0.0 and same_hemisphere(wi, wo, n) == 1:
        result = color / tm.pi
    return result


@ti.func
def pdf_diffuse(n: vec3, wi: vec3) -> ti.f32:
    """Density of cosine-weighted sampling at wi (zero below the surface)."""
    cos_theta = tm.dot(n, wi)
    pdf = 0.0
    if cos_theta > 0.0:
        pdf = cos_theta / tm.pi
    return pdf


@ti.func
def sample_diffuse_with(color: vec3, wo: vec3, n: vec3, u1: ti.f32, u2: ti.f32):
    """Sample an incident direction for a diffuse surface from two uniforms.

    Args:
        color: The albedo (RGB).
        wo: Outgoing direction.
        n: Surface normal.
        u1: First uniform value in [0, 1).
        u2: Second uniform value in [0, 1).

    Returns:
        A tuple (wi, brdf, pdf). pdf is 0 if the sampled direction fell below
        the surface.
    """
    tangent, bitangent, normal = build_tangent_frame(n)
    local_dir = cosine_sample_hemisphere(u1, u2)
    wi = normalize(local_to_world(local_dir, tangent, bitangent, normal))
    pdf = pdf_diffuse(n, wi)
    brdf = eval_diffuse(color, wi, wo, n)
    return wi, brdf, pdf


@ti.func
def sample_diffuse(color: vec3, wo: vec3, n: vec3):
    """Sample an incident direction using the per-thread generator."""
    u1 = randf()
    u2 = randf()
    return sample_diffuse_with(color, wo, n, u1, u2)


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_DIFFUSE_MATERIALS = 256

diffuse_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_DIFFUSE_MATERIALS)
num_diffuse_materials = ti.field(dtype=ti.i32, shape=())


def clear_diffuse_materials() -> None:
    """Reset the diffuse registry to zero entries."""
    num_diffuse_materials[None] = 0


def add_diffuse_material(color: tuple[float, float, float]) -> int:
    """Add a diffuse material to the registry.

    Args:
        color: The albedo as an (R, G, B) tuple, each component in [0, 1].

    Returns:
        The type-local index of the added material.

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

    idx = num_diffuse_materials[None]
    if idx >= MAX_DIFFUSE_MATERIALS:
        raise RuntimeError(
            f"Maximum number of diffuse materials ({MAX_DIFFUSE_MATERIALS}) exceeded"
        )

    diffuse_colors[idx] = vec3(color[0], color[1], color[2])
    num_diffuse_materials[None] = idx + 1
    return idx


def get_diffuse_material_count() -> int:
    """Get the number of diffuse materials in the registry."""
    return int(num_diffuse_materials[None])


@ti.func
def get_diffuse_color(material_idx: ti.i32) -> vec3:
    """Get the albedo of a diffuse material by type-local index."""
    return diffuse_colors[material_idx]
