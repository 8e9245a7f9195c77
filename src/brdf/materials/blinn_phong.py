"""Blinn-Phong dielectric microfacet material implementation.

This module implements the reflection lobe of a dielectric coating modeled
with the Blinn-Phong microfacet distribution, plus the Fresnel split used to
pass the non-reflected energy to an optional underlying material (the
"refraction layer").

Key terms (wh = normalize(wi + wo), s = shininess):
    - Fresnel (Schlick):  F = R0 + (1 - R0)(1 - wh.wi)^5
    - Distribution:       D = (s + 2) / (2 pi) * (n.wh)^s
    - Shadowing/masking:  G = min(1, 2(n.wh)(n.wo)/(wo.wh), 2(n.wh)(n.wi)/(wo.wh))
    - Reflection lobe:    f_r = F D G / (4 (n.wo)(n.wi))
    - Refraction lobe:    f_t = (1 - F) * f_layer

The refraction lobe and the full material operations need to evaluate the
layer by material ID, so they live in src.brdf.materials.dispatch; this
module holds the lobe math and the registry.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.brdf.materials.blinn_phong import eval_blinn_phong_reflection
    >>> # Use within a Taichi kernel:
    >>> # brdf = eval_blinn_phong_reflection(wi, wo, n, shininess, r0)
"""

import taichi as ti
import taichi.math as tm

from src.brdf.core.vector import (
    EPSILON,
    reflect,
    safe_normalize,
)

vec3 = tm.vec3


def r0_from_ior(ior: float) -> float:
    """Compute the normal-incidence Fresnel reflectance of a dielectric.

    R0 = ((1 - ior) / (1 + ior))^2, assuming the outside medium is air.

    Args:
        ior: Index of refraction. Common values: Water=1.33, Glass=1.5.

    Returns:
        The reflectance at normal incidence, in [0, 1).

    Raises:
        ValueError: If ior is less than 1.0.
    """
    if ior < 1.0:
        raise ValueError(
            f"IOR = {ior} is less than 1.0. "
            "Index of refraction must be >= 1.0 for physical materials."
        )
    return ((1.0 - ior) / (1.0 + ior)) ** 2


@ti.func
def fresnel_schlick(r0: ti.f32, cosine: ti.f32) -> ti.f32:
    """Schlick's approximation of the Fresnel reflectance."""
    return r0 + (1.0 - r0) * ti.pow(1.0 - cosine, 5.0)


@ti.func
def blinn_phong_distribution(ndotwh: ti.f32, shininess: ti.f32) -> ti.f32:
    """Normalized Blinn-Phong microfacet distribution D."""
    return ((shininess + 2.0) / (2.0 * tm.pi)) * ti.pow(ndotwh, shininess)


@ti.func
def blinn_phong_geometry(
    ndotwh: ti.f32,
    ndotwo: ti.f32,
    ndotwi: ti.f32,
    wodotwh: ti.f32,
) -> ti.f32:
    """Blinn's shadowing-masking term G, clamped to [0, 1].

    Returns zero when wo.wh is too small to divide by.
    """
    g = 0.0
    if wodotwh > EPSILON:
        a = 2.0 * ndotwh * ndotwo / wodotwh
        b = 2.0 * ndotwh * ndotwi / wodotwh
        g = ti.min(1.0, ti.min(a, b))
    return g


@ti.func
def eval_blinn_phong_reflection(
    wi: vec3,
    wo: vec3,
    n: vec3,
    shininess: ti.f32,
    r0: ti.f32,
) -> ti.f32:
    """Evaluate the Blinn-Phong reflection lobe.

    All cosines are clamped to >= 0. Grazing or degenerate geometry
    (4 (n.wo)(n.wi) <= 0, or wo.wh ~ 0) yields zero instead of NaN/Inf.

    Args:
        wi: Incident direction.
        wo: Outgoing direction.
        n: Surface normal.
        shininess: The Blinn-Phong exponent s (>= 0).
        r0: Fresnel reflectance at normal incidence.

    Returns:
        The scalar reflection BRDF value (to be broadcast to RGB).
    """
    wh = safe_normalize(wi + wo)
    whdotwi = ti.max(0.0, tm.dot(wh, wi))
    ndotwh = ti.max(0.0, tm.dot(n, wh))
    ndotwi = ti.max(0.0, tm.dot(n, wi))
    ndotwo = ti.max(0.0, tm.dot(n, wo))
    wodotwh = ti.max(0.0, tm.dot(wo, wh))
    denom = 4.0 * ndotwo * ndotwi

    brdf = 0.0
    if denom > 0.0 and wodotwh > EPSILON:
        f = fresnel_schlick(r0, whdotwi)
        d = blinn_phong_distribution(ndotwh, shininess)
        g = blinn_phong_geometry(ndotwh, ndotwo, ndotwi, wodotwh)
        brdf = f * d * g / denom
    return brdf


@ti.func
def blinn_phong_layer_transmittance(wi: vec3, wo: vec3, r0: ti.f32) -> ti.f32:
    """Fraction of energy passed through the coating to the layer below.

    Uses the half-vector of wi and wo: 1 - F(|wh.wi|).
    """
    wh = safe_normalize(wi + wo)
    return 1.0 - fresnel_schlick(r0, ti.abs(tm.dot(wh, wi)))


@ti.func
def pdf_blinn_phong_half_vector(ndotwh: ti.f32, shininess: ti.f32) -> ti.f32:
    """Density of a sampled half-vector: (s + 1) (n.wh)^s / (2 pi)."""
    return (shininess + 1.0) * ti.pow(ti.max(0.0, ndotwh), shininess) / (2.0 * tm.pi)


@ti.func
def pdf_blinn_phong_reflection(wi: vec3, wo: vec3, n: vec3, shininess: ti.f32) -> ti.f32:
    """Solid-angle density of the reflection sampling strategy at wi.

    p(wi) = p_wh / (4 wo.wh), zero below the surface or for wo.wh ~ 0.
    The 50% branch probability is not included.
    """
    wh = safe_normalize(wi + wo)
    wodotwh = tm.dot(wo, wh)
    pdf = 0.0
    if tm.dot(n, wi) > 0.0 and wodotwh > EPSILON:
        pdf = pdf_blinn_phong_half_vector(tm.dot(n, wh), shininess) / (4.0 * wodotwh)
    return pdf


@ti.func
def sample_blinn_phong_reflection(wo: vec3, n: vec3, wh: vec3, shininess: ti.f32):
    """Reflect wo about a sampled half-vector.

    Args:
        wo: Outgoing direction.
        n: Surface normal.
        wh: Half-vector drawn from the Blinn-Phong distribution (world space).
        shininess: The Blinn-Phong exponent s.

    Returns:
        A tuple (wi, pdf). pdf is the reflection density (not halved), or 0
        when wo.wh is degenerate or wi ends up below the surface.
    """
    wi = reflect(wo, wh)
    wodotwh = tm.dot(wo, wh)
    pdf = 0.0
    if wodotwh > EPSILON and tm.dot(n, wi) > 0.0:
        pdf = pdf_blinn_phong_half_vector(tm.dot(n, wh), shininess) / (4.0 * wodotwh)
    return wi, pdf


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_BLINN_PHONG_MATERIALS = 256

# Marks a Blinn-Phong coating without an underlying material
NO_LAYER = -1

blinn_phong_shininess = ti.field(dtype=ti.f32, shape=MAX_BLINN_PHONG_MATERIALS)
blinn_phong_r0 = ti.field(dtype=ti.f32, shape=MAX_BLINN_PHONG_MATERIALS)
# Unified material ID of the refraction layer, or NO_LAYER
blinn_phong_layers = ti.field(dtype=ti.i32, shape=MAX_BLINN_PHONG_MATERIALS)
num_blinn_phong_materials = ti.field(dtype=ti.i32, shape=())


def clear_blinn_phong_materials() -> None:
    """Reset the Blinn-Phong registry to zero entries."""
    num_blinn_phong_materials[None] = 0


def add_blinn_phong_material(
    shininess: float,
    r0: float,
    refraction_layer: int = NO_LAYER,
) -> int:
    """Add a Blinn-Phong coating to the registry.

    The layer reference is stored as given; checking that it names an
    existing material is the caller's job (see MaterialLibrary).

    Args:
        shininess: The Blinn-Phong exponent (>= 0).
        r0: Fresnel reflectance at normal incidence, in [0, 1].
        refraction_layer: Unified material ID of the underlying material,
            or NO_LAYER.

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If shininess is negative or r0 is outside [0, 1].
    """
    if shininess < 0.0:
        raise ValueError(f"Shininess = {shininess} is negative. Shininess must be >= 0.")
    if r0 < 0.0 or r0 > 1.0:
        raise ValueError(f"R0 = {r0} is outside [0, 1].")

    idx = num_blinn_phong_materials[None]
    if idx >= MAX_BLINN_PHONG_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Blinn-Phong materials ({MAX_BLINN_PHONG_MATERIALS}) exceeded"
        )

    blinn_phong_shininess[idx] = shininess
    blinn_phong_r0[idx] = r0
    blinn_phong_layers[idx] = refraction_layer
    num_blinn_phong_materials[None] = idx + 1
    return idx


def get_blinn_phong_material_count() -> int:
    """Get the number of Blinn-Phong entries in the registry."""
    return int(num_blinn_phong_materials[None])


@ti.func
def get_blinn_phong_shininess(material_idx: ti.i32) -> ti.f32:
    """Get the shininess of a Blinn-Phong entry by type-local index."""
    return blinn_phong_shininess[material_idx]


@ti.func
def get_blinn_phong_r0(material_idx: ti.i32) -> ti.f32:
    """Get R0 of a Blinn-Phong entry by type-local index."""
    return blinn_phong_r0[material_idx]


@ti.func
def get_blinn_phong_layer(material_idx: ti.i32) -> ti.i32:
    """Get the refraction layer material ID (or NO_LAYER)."""
    return blinn_phong_layers[material_idx]
