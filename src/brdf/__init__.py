"""Layered Blinn-Phong BRDF core for a Taichi path tracer.

This package evaluates and importance-samples surface reflectance at a single
shading point, with support for:
- Lambertian (diffuse) reflection
- Blinn-Phong dielectric coatings over an arbitrary underlying material
- Tinted, non-transmissive Blinn-Phong metals
- Linear blends of any two materials (nested blends included)

Subpackages:
    core: Vector/frame utilities, hemisphere samplers, Python-scope evaluation
    materials: Per-variant BRDF lobes and material dispatch
    scene: Material library (unified material IDs and evaluation plans)
    preview: BRDF lobe images for visual inspection
"""

__version__ = "0.1.0"
