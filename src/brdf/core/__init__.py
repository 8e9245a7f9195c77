"""Core BRDF module.

This module contains the building blocks the material models share:

Components:
    vector: Vector helpers, mirror reflection and tangent-frame construction
    sampling: Cosine-weighted and Blinn-Phong hemisphere samplers
    evaluate: Python-scope evaluation, sampling and albedo estimation

All per-direction math is written as Taichi functions and runs inside
Taichi kernels.
"""

from .sampling import (
    blinn_phong_half_vector,
    cosine_sample_hemisphere,
    randf,
    random_blinn_phong_half_vector,
    random_cosine_direction,
)
from .vector import (
    EPSILON,
    build_tangent_frame,
    cross,
    dot,
    length,
    length_squared,
    local_to_world,
    normalize,
    perpendicular,
    reflect,
    safe_normalize,
    same_hemisphere,
    vec3,
)

# Note: evaluate is NOT imported here to avoid circular imports (it depends on
# the material dispatch, which depends on the material library).
# Import directly from src.brdf.core.evaluate when needed.

__all__ = [
    "vec3",
    "EPSILON",
    "length",
    "length_squared",
    "dot",
    "cross",
    "normalize",
    "safe_normalize",
    "reflect",
    "perpendicular",
    "build_tangent_frame",
    "local_to_world",
    "same_hemisphere",
    "randf",
    "cosine_sample_hemisphere",
    "blinn_phong_half_vector",
    "random_cosine_direction",
    "random_blinn_phong_half_vector",
]
