"""Vector and tangent-frame utilities for BRDF evaluation.

This module provides the small vector toolkit the material models are built
on: normalization with a degenerate-input guard, mirror reflection about an
axis, and the orthonormal tangent frame used to map locally sampled
directions into world space. All functions are Taichi functions and must be
called from within Taichi kernels.

Conventions:
    Every direction points away from the shading point. ``wo`` points toward
    the viewer, ``wi`` toward the light and ``n`` is the outward normal.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.brdf.core.vector import build_tangent_frame, local_to_world
    >>> # Use within a Taichi kernel:
    >>> # tangent, bitangent, normal = build_tangent_frame(n)
    >>> # wi = local_to_world(local_dir, tangent, bitangent, normal)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Denominators at or below this value are treated as zero
EPSILON = 1e-6


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product of two vectors."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product of two vectors."""
    return tm.cross(a, b)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    The input must not be zero-length; use safe_normalize() for vectors that
    can degenerate (e.g. the half-vector of two opposite directions).
    """
    return tm.normalize(v)


@ti.func
def safe_normalize(v: vec3) -> vec3:
    """Normalize a vector, returning the zero vector for near-zero input.

    Args:
        v: The input vector.

    Returns:
        v / |v|, or (0, 0, 0) when |v|^2 is below EPSILON^2.
    """
    len_sq = tm.dot(v, v)
    result = vec3(0.0, 0.0, 0.0)
    if len_sq > EPSILON * EPSILON:
        result = v / ti.sqrt(len_sq)
    return result


@ti.func
def reflect(direction: vec3, axis: vec3) -> vec3:
    """Mirror a direction about an axis.

    Both vectors point away from the surface, so reflecting the viewing
    direction about a microfacet normal yields the incident direction:
        wi = 2 (wo . wh) wh - wo

    Args:
        direction: The direction to mirror (e.g. wo).
        axis: The mirror axis (e.g. the half-vector wh), unit length.

    Returns:
        The mirrored direction.
    """
    return 2.0 * tm.dot(direction, axis) * axis - direction


@ti.func
def perpendicular(v: vec3) -> vec3:
    """Return a vector perpendicular to v (not normalized).

    Drops the component of smallest magnitude among x and y so the result
    stays well-conditioned for nearly axis-aligned inputs.
    """
    result = vec3(-v.z, 0.0, v.x)
    if ti.abs(v.x) < ti.abs(v.y):
        result = vec3(0.0, -v.z, v.y)
    return result


@ti.func
def build_tangent_frame(normal: vec3):
    """Build an orthonormal tangent frame around a normal.

    tangent = normalize(perpendicular(n))
    bitangent = normalize(cross(tangent, n))

    Args:
        normal: The surface normal (should be normalized).

    Returns:
        A tuple (tangent, bitangent, normal).
    """
    tangent = normalize(perpendicular(normal))
    bitangent = normalize(cross(tangent, normal))
    return tangent, bitangent, normal


@ti.func
def local_to_world(local_dir: vec3, tangent: vec3, bitangent: vec3, normal: vec3) -> vec3:
    """Transform a direction from the local (z-up) frame to world space."""
    return local_dir.x * tangent + local_dir.y * bitangent + local_dir.z * normal


@ti.func
def same_hemisphere(a: vec3, b: vec3, normal: vec3) -> ti.i32:
    """Check whether two directions lie on the same side of a surface.

    Returns:
        1 if dot(a, n) and dot(b, n) have the same (non-zero) sign, else 0.
    """
    result = 0
    if tm.dot(a, normal) * tm.dot(b, normal) > 0.0:
        result = 1
    return result
