"""Pytest configuration for BRDF tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_material_data():
    """Clear every material registry before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here to avoid circular imports and ensure Taichi is initialized
    from src.brdf.materials.blinn_phong import clear_blinn_phong_materials
    from src.brdf.materials.blinn_phong_metal import clear_metal_materials
    from src.brdf.materials.diffuse import clear_diffuse_materials
    from src.brdf.materials.linear_blend import clear_blend_materials
    from src.brdf.scene.library import _clear_material_tracking

    def _clear_all():
        clear_diffuse_materials()
        clear_blinn_phong_materials()
        clear_metal_materials()
        clear_blend_materials()
        _clear_material_tracking()

    _clear_all()

    yield

    _clear_all()


@pytest.fixture
def library():
    """Create a fresh MaterialLibrary for a test."""
    from src.brdf.scene.library import MaterialLibrary

    lib = MaterialLibrary()
    yield lib
    lib.clear()
