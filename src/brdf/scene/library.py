"""Material library: unified material IDs and evaluation plans.

This module provides the material arena the BRDF core reads from. Every
material, whatever its variant, receives a unified material ID; nested
references (a Blinn-Phong refraction layer, the two halves of a linear blend)
are stored as IDs into the same arena and never own the material they point
to. A material can only reference materials registered before it, so the
material graph is acyclic by construction.

Taichi functions cannot recurse, so the library flattens every material into
an evaluation plan when it is registered. A plan is a list of terms; each
term names one leaf lobe (a diffuse lobe or the reflection lobe of a
Blinn-Phong/metal node) and the edges leading from the material down to it:

    LAYER         Blinn-Phong or metal node -> its refraction layer
    BLEND_FIRST   linear blend -> bsdf0 (weight w)
    BLEND_SECOND  linear blend -> bsdf1 (weight 1 - w)

f and pdf are then sums over terms of (lobe value x product of edge factors),
evaluated with plain loops over Taichi fields.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.brdf.scene.library import MaterialLibrary
    >>> library = MaterialLibrary()
    >>> base = library.add_diffuse_material(color=(0.8, 0.2, 0.2))
    >>> plastic = library.add_blinn_phong_material(
    ...     shininess=200.0, ior=1.5, refraction_layer=base
    ... )
    >>> gold = library.add_blinn_phong_metal_material(
    ...     shininess=500.0, color=(1.0, 0.78, 0.34), r0=0.9
    ... )
    >>> worn = library.add_linear_blend_material(0.7, gold, plastic)
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti

from src.brdf.materials.blinn_phong import (
    NO_LAYER,
    add_blinn_phong_material,
    clear_blinn_phong_materials,
    r0_from_ior,
)
from src.brdf.materials.blinn_phong_metal import (
    MAX_METAL_MATERIALS,
    add_blinn_phong_metal_material,
    clear_metal_materials,
    get_metal_material_count,
)
from src.brdf.materials.diffuse import (
    add_diffuse_material,
    clear_diffuse_materials,
)
from src.brdf.materials.linear_blend import (
    add_linear_blend_material,
    clear_blend_materials,
)

logger = logging.getLogger(__name__)


class MaterialType(IntEnum):
    """Enumeration of supported material variants.

    Used for material dispatch to determine which lobe functions to call.
    """

    DIFFUSE = 0
    BLINN_PHONG = 1
    BLINN_PHONG_METAL = 2
    LINEAR_BLEND = 3


class EdgeKind(IntEnum):
    """Kind of edge between a material and one of its sub-materials."""

    LAYER = 0
    BLEND_FIRST = 1
    BLEND_SECOND = 2


# Maximum number of materials across all types
MAX_MATERIALS = 1024

# Longest chain of nested references, counting the material itself
MAX_TREE_DEPTH = 16

# Capacity of the flattened evaluation plans
MAX_PLAN_TERMS = 8192
MAX_PLAN_EDGES = 32768

# Index of refraction assumed when neither r0 nor ior is given (R0 = 0.04)
DEFAULT_IOR = 1.5

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local registry index for material_id i
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())

# Evaluation plan of material i: terms plan_offsets[i] .. plan_offsets[i] + plan_counts[i]
plan_offsets = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
plan_counts = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# Term t: lobe owner material ID and its edges
term_lobes = ti.field(dtype=ti.i32, shape=MAX_PLAN_TERMS)
term_edge_offsets = ti.field(dtype=ti.i32, shape=MAX_PLAN_TERMS)
term_edge_counts = ti.field(dtype=ti.i32, shape=MAX_PLAN_TERMS)
num_plan_terms = ti.field(dtype=ti.i32, shape=())
# Edge e: the material the edge leaves and the EdgeKind
edge_nodes = ti.field(dtype=ti.i32, shape=MAX_PLAN_EDGES)
edge_kinds = ti.field(dtype=ti.i32, shape=MAX_PLAN_EDGES)
num_plan_edges = ti.field(dtype=ti.i32, shape=())

# A flattened term: (lobe material ID, ((edge node, EdgeKind), ...))
PlanTerm = tuple[int, tuple[tuple[int, EdgeKind], ...]]


def _clear_material_tracking() -> None:
    """Clear the arena and plan counters."""
    num_materials[None] = 0
    num_plan_terms[None] = 0
    num_plan_edges[None] = 0


@ti.func
def is_valid_material(material_id: ti.i32) -> ti.i32:
    """Check whether a unified material ID is registered."""
    result = 0
    if 0 <= material_id < num_materials[None]:
        result = 1
    return result


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID.

    Returns:
        The material type as an integer (see MaterialType enum).
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local registry index for a given material ID.

    Returns:
        The index into the type-specific registry, or -1 for invalid IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The variant of the material.
        type_index: The index within the type-specific registry.
        params: The material parameters as provided during creation.
        depth: Length of the longest reference chain below and including
            this material (1 for a leaf).
        terms: The flattened evaluation plan.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]
    depth: int
    terms: list[PlanTerm]


@dataclass
class MaterialLibraryConfig:
    """Configuration describing a whole material library.

    Each entry is a dict with a "type" key ("diffuse", "blinn_phong",
    "blinn_phong_metal" or "linear_blend") plus that variant's parameters.
    References to other materials are indices of earlier entries.

    Attributes:
        materials: List of material configurations, in registration order.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)


class MaterialLibrary:
    """Registry of immutable materials addressed by unified material ID.

    The library owns every material's lifetime; materials reference each
    other by ID only. All state lives in module-level Taichi fields, so only
    one library is active at a time and creating a new one clears the
    previous contents.

    Attributes:
        materials: List of MaterialInfo for all registered materials.

    Example:
        >>> library = MaterialLibrary()
        >>> chalk = library.add_diffuse_material(color=(0.9, 0.9, 0.9))
        >>> varnish = library.add_blinn_phong_material(
        ...     shininess=80.0, r0=0.04, refraction_layer=chalk
        ... )
    """

    def __init__(self) -> None:
        """Initialize an empty library."""
        self.materials: list[MaterialInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all material registries and the evaluation plans."""
        clear_diffuse_materials()
        clear_blinn_phong_materials()
        clear_metal_materials()
        clear_blend_materials()
        _clear_material_tracking()
        self.materials.clear()

    def clear(self) -> None:
        """Remove every material from the library."""
        self._clear_all()
        logger.debug("Cleared material library")

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_diffuse_material(self, color: tuple[float, float, float]) -> int:
        """Add a diffuse (Lambertian) material.

        Args:
            color: The albedo as an (R, G, B) tuple, each component in [0, 1].

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If a registry or the plan table is full.
            ValueError: If any color component is outside [0, 1].
        """
        material_id = self._next_material_id()
        terms: list[PlanTerm] = [(material_id, ())]
        self._check_plan_capacity(terms)

        type_index = add_diffuse_material(color)
        return self._register(
            MaterialType.DIFFUSE,
            type_index,
            {"color": tuple(color)},
            depth=1,
            terms=terms,
        )

    def add_blinn_phong_material(
        self,
        shininess: float,
        r0: float | None = None,
        *,
        ior: float | None = None,
        refraction_layer: int | None = None,
    ) -> int:
        """Add a Blinn-Phong dielectric coating.

        Args:
            shininess: The Blinn-Phong exponent (>= 0).
            r0: Fresnel reflectance at normal incidence, in [0, 1].
            ior: Index of refraction used to derive R0 instead of r0.
                If neither is given, R0 is derived from DEFAULT_IOR.
            refraction_layer: Material ID of the underlying material, or None
                for a bare coating.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If a registry or the plan table is full.
            ValueError: If a parameter is invalid, both r0 and ior are given,
                the layer is not a registered material, or the resulting
                tree is deeper than MAX_TREE_DEPTH.
        """
        r0 = self._resolve_r0(r0, ior)
        depth = self._reference_depth(refraction_layer, "refraction_layer")
        material_id = self._next_material_id()
        terms = [(material_id, ())] + self._prefixed_terms(
            refraction_layer, material_id, EdgeKind.LAYER
        )
        self._check_plan_capacity(terms)

        layer = NO_LAYER if refraction_layer is None else refraction_layer
        type_index = add_blinn_phong_material(shininess, r0, layer)
        return self._register(
            MaterialType.BLINN_PHONG,
            type_index,
            {"shininess": shininess, "r0": r0, "refraction_layer": refraction_layer},
            depth=depth,
            terms=terms,
        )

    def add_blinn_phong_metal_material(
        self,
        shininess: float,
        color: tuple[float, float, float],
        r0: float | None = None,
        *,
        ior: float | None = None,
        refraction_layer: int | None = None,
    ) -> int:
        """Add a tinted Blinn-Phong metal.

        Args:
            shininess: The Blinn-Phong exponent (>= 0).
            color: The reflection tint as an (R, G, B) tuple, each in [0, 1].
            r0: Fresnel reflectance at normal incidence, in [0, 1].
            ior: Index of refraction used to derive R0 instead of r0.
            refraction_layer: Optional underlying material. It is sampled but
                never contributes, since metals do not transmit light.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If a registry or the plan table is full.
            ValueError: If a parameter is invalid (see add_blinn_phong_material).
        """
        r0 = self._resolve_r0(r0, ior)
        depth = self._reference_depth(refraction_layer, "refraction_layer")
        material_id = self._next_material_id()
        terms = [(material_id, ())] + self._prefixed_terms(
            refraction_layer, material_id, EdgeKind.LAYER
        )
        self._check_plan_capacity(terms)

        for i, component in enumerate(color):
            if component < 0.0 or component > 1.0:
                raise ValueError(f"Color component {i} = {component} is outside [0, 1].")

        # The core entry is written first, so the metal slot must exist up front
        if get_metal_material_count() >= MAX_METAL_MATERIALS:
            raise RuntimeError(
                f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded"
            )

        layer = NO_LAYER if refraction_layer is None else refraction_layer
        core_index = add_blinn_phong_material(shininess, r0, layer)
        type_index = add_blinn_phong_metal_material(core_index, color)
        if refraction_layer is not None:
            logger.warning(
                "Metal material %d has refraction layer %d; half of its samples "
                "will carry no contribution",
                material_id,
                refraction_layer,
            )
        return self._register(
            MaterialType.BLINN_PHONG_METAL,
            type_index,
            {
                "shininess": shininess,
                "r0": r0,
                "color": tuple(color),
                "refraction_layer": refraction_layer,
            },
            depth=depth,
            terms=terms,
        )

    def add_linear_blend_material(self, w: float, bsdf0: int, bsdf1: int) -> int:
        """Add a linear blend w * bsdf0 + (1 - w) * bsdf1.

        Args:
            w: Weight of bsdf0, in [0, 1].
            bsdf0: Material ID of the first sub-material.
            bsdf1: Material ID of the second sub-material.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If a registry or the plan table is full.
            ValueError: If w is outside [0, 1], a sub-material is not
                registered, or the resulting tree is too deep.
        """
        if w < 0.0 or w > 1.0:
            raise ValueError(f"Blend weight w = {w} is outside [0, 1].")
        depth = max(
            self._reference_depth(bsdf0, "bsdf0"),
            self._reference_depth(bsdf1, "bsdf1"),
        )
        material_id = self._next_material_id()
        terms = self._prefixed_terms(
            bsdf0, material_id, EdgeKind.BLEND_FIRST
        ) + self._prefixed_terms(bsdf1, material_id, EdgeKind.BLEND_SECOND)
        self._check_plan_capacity(terms)

        type_index = add_linear_blend_material(w, bsdf0, bsdf1)
        return self._register(
            MaterialType.LINEAR_BLEND,
            type_index,
            {"w": w, "bsdf0": bsdf0, "bsdf1": bsdf1},
            depth=depth,
            terms=terms,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_material_count(self) -> int:
        """Get the total number of materials in the library."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Get the material type for a given material ID (Python side).

        For kernel-side lookup, use the get_material_type() Taichi function.
        """
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id].material_type
        return None

    def get_material_depth(self, material_id: int) -> int:
        """Get the depth of a material's reference tree (1 for a leaf).

        Raises:
            ValueError: If material_id is not registered.
        """
        info = self.get_material_info(material_id)
        if info is None:
            raise ValueError(f"Invalid material_id: {material_id}")
        return info.depth

    # =========================================================================
    # Configuration
    # =========================================================================

    def to_config(self) -> MaterialLibraryConfig:
        """Export the library to a configuration object."""
        config = MaterialLibraryConfig()
        for mat in self.materials:
            mat_config: dict[str, Any] = {"type": mat.material_type.name.lower()}
            for key, value in mat.params.items():
                mat_config[key] = list(value) if isinstance(value, tuple) else value
            config.materials.append(mat_config)
        return config

    def from_config(self, config: MaterialLibraryConfig) -> None:
        """Load a library from a configuration object.

        Clears the current library and registers the configured materials
        in order, so entry i receives material ID i.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for mat_config in config.materials:
            mat_type = mat_config.get("type", "").lower()
            if mat_type == "diffuse":
                self.add_diffuse_material(_as_color(mat_config.get("color", [0.5, 0.5, 0.5])))
            elif mat_type == "blinn_phong":
                self.add_blinn_phong_material(
                    mat_config.get("shininess", 0.0),
                    mat_config.get("r0"),
                    ior=mat_config.get("ior"),
                    refraction_layer=mat_config.get("refraction_layer"),
                )
            elif mat_type == "blinn_phong_metal":
                self.add_blinn_phong_metal_material(
                    mat_config.get("shininess", 0.0),
                    _as_color(mat_config.get("color", [1.0, 1.0, 1.0])),
                    mat_config.get("r0"),
                    ior=mat_config.get("ior"),
                    refraction_layer=mat_config.get("refraction_layer"),
                )
            elif mat_type == "linear_blend":
                if "bsdf0" not in mat_config or "bsdf1" not in mat_config:
                    raise ValueError("linear_blend requires both 'bsdf0' and 'bsdf1'")
                self.add_linear_blend_material(
                    mat_config.get("w", 0.5),
                    mat_config["bsdf0"],
                    mat_config["bsdf1"],
                )
            else:
                raise ValueError(f"Unknown material type: {mat_type}")

    def to_dict(self) -> dict[str, Any]:
        """Export the library to a plain dictionary."""
        return {"materials": self.to_config().materials}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a library from a dictionary produced by to_dict()."""
        self.from_config(MaterialLibraryConfig(materials=list(data.get("materials", []))))

    # =========================================================================
    # Internals
    # =========================================================================

    def _next_material_id(self) -> int:
        material_id = int(num_materials[None])
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")
        return material_id

    @staticmethod
    def _resolve_r0(r0: float | None, ior: float | None) -> float:
        if r0 is not None and ior is not None:
            raise ValueError("Specify either r0 or ior, not both.")
        if r0 is None:
            return r0_from_ior(DEFAULT_IOR if ior is None else ior)
        return r0

    def _reference_depth(self, material_id: int | None, role: str) -> int:
        """Depth of a node referencing material_id, validating the reference."""
        if material_id is None:
            return 1
        if not isinstance(material_id, int) or not 0 <= material_id < len(self.materials):
            raise ValueError(f"Invalid {role}: {material_id} is not a registered material")
        depth = self.materials[material_id].depth + 1
        if depth > MAX_TREE_DEPTH:
            raise ValueError(
                f"Material tree depth {depth} exceeds the maximum of {MAX_TREE_DEPTH}"
            )
        return depth

    def _prefixed_terms(
        self,
        child_id: int | None,
        parent_id: int,
        kind: EdgeKind,
    ) -> list[PlanTerm]:
        """The child's plan with the parent -> child edge prepended to each term."""
        if child_id is None:
            return []
        return [
            (lobe, ((parent_id, kind),) + edges)
            for lobe, edges in self.materials[child_id].terms
        ]

    @staticmethod
    def _check_plan_capacity(terms: list[PlanTerm]) -> None:
        edge_count = sum(len(edges) for _, edges in terms)
        if int(num_plan_terms[None]) + len(terms) > MAX_PLAN_TERMS:
            raise RuntimeError(f"Maximum number of plan terms ({MAX_PLAN_TERMS}) exceeded")
        if int(num_plan_edges[None]) + edge_count > MAX_PLAN_EDGES:
            raise RuntimeError(f"Maximum number of plan edges ({MAX_PLAN_EDGES}) exceeded")

    def _register(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
        *,
        depth: int,
        terms: list[PlanTerm],
    ) -> int:
        """Assign the next unified ID and upload the evaluation plan."""
        material_id = self._next_material_id()

        term = int(num_plan_terms[None])
        edge = int(num_plan_edges[None])
        plan_offsets[material_id] = term
        plan_counts[material_id] = len(terms)
        for lobe, edges in terms:
            term_lobes[term] = lobe
            term_edge_offsets[term] = edge
            term_edge_counts[term] = len(edges)
            for node, kind in edges:
                edge_nodes[edge] = node
                edge_kinds[edge] = int(kind)
                edge += 1
            term += 1
        num_plan_terms[None] = term
        num_plan_edges[None] = edge

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        info = MaterialInfo(
            material_id=material_id,
            material_type=material_type,
            type_index=type_index,
            params=params,
            depth=depth,
            terms=terms,
        )
        self.materials.append(info)
        logger.debug(
            "Registered %s material %d (depth %d, %d plan terms)",
            material_type.name.lower(),
            material_id,
            depth,
            len(terms),
        )
        return material_id


def _as_color(values: Any) -> tuple[float, float, float]:
    return (float(values[0]), float(values[1]), float(values[2]))
