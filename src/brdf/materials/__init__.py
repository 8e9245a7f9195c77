"""Materials module for BRDF models.

This module implements the surface reflectance models:

Components:
    diffuse: Ideal diffuse (Lambertian) reflection
    blinn_phong: Dielectric Blinn-Phong coating over an optional layer
    blinn_phong_metal: Tinted Blinn-Phong reflection without transmission
    linear_blend: Weighted mix of two materials
    dispatch: eval/pdf/sample by unified material ID

Each variant keeps its parameters in Taichi fields indexed by a type-local
index; src.brdf.scene.library maps unified material IDs onto them.
"""

from .blinn_phong import (
    NO_LAYER,
    blinn_phong_distribution,
    blinn_phong_geometry,
    eval_blinn_phong_reflection,
    fresnel_schlick,
    r0_from_ior,
)
from .blinn_phong_metal import (
    eval_blinn_phong_metal_reflection,
    eval_blinn_phong_metal_refraction,
)
from .diffuse import eval_diffuse, pdf_diffuse, sample_diffuse, sample_diffuse_with
from .linear_blend import blend_factors

# Note: dispatch is NOT imported here to avoid circular imports.
# Import directly from src.brdf.materials.dispatch when needed.

__all__ = [
    "eval_diffuse",
    "pdf_diffuse",
    "sample_diffuse",
    "sample_diffuse_with",
    "NO_LAYER",
    "r0_from_ior",
    "fresnel_schlick",
    "blinn_phong_distribution",
    "blinn_phong_geometry",
    "eval_blinn_phong_reflection",
    "eval_blinn_phong_metal_reflection",
    "eval_blinn_phong_metal_refraction",
    "blend_factors",
]
