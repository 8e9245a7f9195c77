"""Scene module for material management.

Components:
    library: Unified material IDs, the material arena and evaluation plans
"""

from .library import (
    DEFAULT_IOR,
    MAX_MATERIALS,
    MAX_TREE_DEPTH,
    EdgeKind,
    MaterialInfo,
    MaterialLibrary,
    MaterialLibraryConfig,
    MaterialType,
    get_material_type,
    get_material_type_index,
    is_valid_material,
    material_type_indices,
    material_types,
    num_materials,
)

__all__ = [
    "MaterialLibrary",
    "MaterialLibraryConfig",
    "MaterialInfo",
    "MaterialType",
    "EdgeKind",
    "MAX_MATERIALS",
    "MAX_TREE_DEPTH",
    "DEFAULT_IOR",
    "get_material_type",
    "get_material_type_index",
    "is_valid_material",
    "material_types",
    "material_type_indices",
    "num_materials",
]
