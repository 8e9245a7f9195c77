"""Hemisphere sampling utilities for Monte Carlo BRDF sampling.

Each sampler comes in two forms:
    - An explicit form taking uniform numbers in [0, 1), used when the caller
      owns the random stream (and for deterministic tests).
    - A random form drawing from randf(), Taichi's per-thread generator.

Taichi keeps one generator state per thread and seeds it from
``ti.init(random_seed=...)``, so parallel kernels evaluating the same
material never share random state.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, random_seed=7)
    >>> from src.brdf.core.sampling import random_cosine_direction
    >>> # Use within a Taichi kernel:
    >>> # local_dir = random_cosine_direction()
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.func
def randf() -> ti.f32:
    """Draw one uniform value in [0, 1) from the per-thread generator."""
    return ti.random(ti.f32)


@ti.func
def cosine_sample_hemisphere(u1: ti.f32, u2: ti.f32) -> vec3:
    """Map two uniforms to a cosine-weighted direction in the local frame.

    The returned direction is z-up with PDF = cos(theta) / pi.

    Args:
        u1: Uniform value driving the azimuth.
        u2: Uniform value driving the radius on the unit disk.

    Returns:
        A unit direction with z >= 0.
    """
    phi = 2.0 * tm.pi * u1
    r = ti.sqrt(u2)
    z = ti.sqrt(ti.max(0.0, 1.0 - u2))
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z)


@ti.func
def blinn_phong_half_vector(u1: ti.f32, u2: ti.f32, shininess: ti.f32) -> vec3:
    """Map two uniforms to a Blinn-Phong distributed half-vector (local frame).

    phi = 2 pi u1
    cos(theta) = u2^(1 / (s + 1))

    The resulting half-vector density is (s + 1) cos^s(theta) / (2 pi).

    Args:
        u1: Uniform value driving the azimuth.
        u2: Uniform value driving the polar angle.
        shininess: The Blinn-Phong exponent s (>= 0).

    Returns:
        A unit half-vector with z >= 0.
    """
    phi = 2.0 * tm.pi * u1
    cos_theta = ti.pow(u2, 1.0 / (shininess + 1.0))
    sin_theta = ti.sqrt(ti.max(0.0, 1.0 - cos_theta * cos_theta))
    return vec3(sin_theta * ti.cos(phi), sin_theta * ti.sin(phi), cos_theta)


@ti.func
def random_cosine_direction() -> vec3:
    """Generate a random cosine-weighted direction in the local frame."""
    r1 = randf()
    r2 = randf()
    return cosine_sample_hemisphere(r1, r2)


@ti.func
def random_blinn_phong_half_vector(shininess: ti.f32) -> vec3:
    """Generate a random Blinn-Phong half-vector in the local frame."""
    r1 = randf()
    r2 = randf()
    return blinn_phong_half_vector(r1, r2, shininess)
