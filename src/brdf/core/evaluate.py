"""Python-scope evaluation of materials.

This module wraps the kernel-side material operations in kernels over NumPy
arrays so materials can be evaluated, sampled and checked from Python:

    - evaluate_brdf / evaluate_brdf_batch: f(wi, wo, n)
    - evaluate_reflection / evaluate_refraction: Blinn-Phong family lobes
    - evaluate_pdf / evaluate_pdf_batch: sampling density at wi
    - sample_brdf_batch: (wi, brdf, pdf) triples
    - estimate_albedo: Monte Carlo directional albedo, the "furnace test"

Directions are (3,) or (N, 3) array-likes; single rows broadcast against
batches. Results are float32 arrays.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, random_seed=1)
    >>> from src.brdf.scene.library import MaterialLibrary
    >>> from src.brdf.core.evaluate import estimate_albedo, evaluate_brdf
    >>> library = MaterialLibrary()
    >>> grey = library.add_diffuse_material((0.5, 0.5, 0.5))
    >>> evaluate_brdf(grey, (0, 0, 1), (0, 0, 1), (0, 0, 1))  # ~0.159 per channel
    >>> estimate_albedo(grey, (0, 0, 1), (0, 0, 1))           # ~0.5 per channel
"""

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.brdf.materials.dispatch import (
    eval_material,
    pdf_material,
    reflection_brdf,
    refraction_brdf,
    sample_material,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Which quantity _eval_brdf_kernel computes
_LOBE_FULL = 0
_LOBE_REFLECTION = 1
_LOBE_REFRACTION = 2

_albedo_sum = ti.Vector.field(3, dtype=ti.f32, shape=())


@dataclass
class SampleBatch:
    """A batch of BRDF samples.

    Attributes:
        wi: Sampled incident directions, shape (N, 3).
        brdf: BRDF values at the sampled directions, shape (N, 3).
        pdf: Solid-angle densities, shape (N,). Zero marks a discarded sample.
    """

    wi: npt.NDArray[np.float32]
    brdf: npt.NDArray[np.float32]
    pdf: npt.NDArray[np.float32]

    @property
    def valid(self) -> npt.NDArray[np.bool_]:
        """Mask of samples with a non-zero density."""
        return self.pdf > 0.0


# =============================================================================
# Kernels
# =============================================================================


@ti.func
def _load(arr: ti.template(), i: ti.i32) -> vec3:
    return vec3(arr[i, 0], arr[i, 1], arr[i, 2])


@ti.kernel
def _eval_brdf_kernel(
    material_id: ti.i32,
    lobe: ti.i32,
    wi: ti.types.ndarray(dtype=ti.f32, ndim=2),
    wo: ti.types.ndarray(dtype=ti.f32, ndim=2),
    n: ti.types.ndarray(dtype=ti.f32, ndim=2),
    out: ti.types.ndarray(dtype=ti.f32, ndim=2),
):
    for i in range(wi.shape[0]):
        wi_i = _load(wi, i)
        wo_i = _load(wo, i)
        n_i = _load(n, i)
        value = vec3(0.0, 0.0, 0.0)
        if lobe == _LOBE_REFLECTION:
            value = reflection_brdf(material_id, wi_i, wo_i, n_i)
        elif lobe == _LOBE_REFRACTION:
            value = refraction_brdf(material_id, wi_i, wo_i, n_i)
        else:
            value = eval_material(material_id, wi_i, wo_i, n_i)
        for c in ti.static(range(3)):
            out[i, c] = value[c]


@ti.kernel
def _eval_pdf_kernel(
    material_id: ti.i32,
    wi: ti.types.ndarray(dtype=ti.f32, ndim=2),
    wo: ti.types.ndarray(dtype=ti.f32, ndim=2),
    n: ti.types.ndarray(dtype=ti.f32, ndim=2),
    out: ti.types.ndarray(dtype=ti.f32, ndim=1),
):
    for i in range(wi.shape[0]):
        out[i] = pdf_material(material_id, _load(wi, i), _load(wo, i), _load(n, i))


@ti.kernel
def _sample_kernel(
    material_id: ti.i32,
    wo: ti.types.ndarray(dtype=ti.f32, ndim=2),
    n: ti.types.ndarray(dtype=ti.f32, ndim=2),
    out_wi: ti.types.ndarray(dtype=ti.f32, ndim=2),
    out_brdf: ti.types.ndarray(dtype=ti.f32, ndim=2),
    out_pdf: ti.types.ndarray(dtype=ti.f32, ndim=1),
):
    for i in range(wo.shape[0]):
        wi, brdf, pdf = sample_material(material_id, _load(wo, i), _load(n, i))
        for c in ti.static(range(3)):
            out_wi[i, c] = wi[c]
            out_brdf[i, c] = brdf[c]
        out_pdf[i] = pdf


@ti.kernel
def _estimate_albedo_kernel(
    material_id: ti.i32,
    wo: ti.types.ndarray(dtype=ti.f32, ndim=2),
    n: ti.types.ndarray(dtype=ti.f32, ndim=2),
    num_samples: ti.i32,
):
    for _ in range(num_samples):
        wo_v = _load(wo, 0)
        n_v = _load(n, 0)
        wi, brdf, pdf = sample_material(material_id, wo_v, n_v)
        if pdf > 0.0:
            _albedo_sum[None] += brdf * ti.max(0.0, tm.dot(n_v, wi)) / pdf


# =============================================================================
# Public API
# =============================================================================


def _as_direction_array(values: Any, name: str) -> npt.NDArray[np.float32]:
    """Convert (3,) or (N, 3) input to a float32 (N, 3) array."""
    arr = np.asarray(values, dtype=np.float32)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"{name} must have shape (3,) or (N, 3), got {np.shape(values)}")
    return arr


def _broadcast_directions(*arrays: npt.NDArray[np.float32]) -> list[npt.NDArray[np.float32]]:
    counts = {arr.shape[0] for arr in arrays if arr.shape[0] != 1}
    if len(counts) > 1:
        raise ValueError(f"Direction batches have mismatched lengths: {sorted(counts)}")
    count = counts.pop() if counts else 1
    return [np.ascontiguousarray(np.broadcast_to(arr, (count, 3))) for arr in arrays]


def _evaluate_lobe(
    material_id: int, lobe: int, wi: Any, wo: Any, n: Any
) -> npt.NDArray[np.float32]:
    wi_arr, wo_arr, n_arr = _broadcast_directions(
        _as_direction_array(wi, "wi"),
        _as_direction_array(wo, "wo"),
        _as_direction_array(n, "n"),
    )
    out = np.zeros((wi_arr.shape[0], 3), dtype=np.float32)
    _eval_brdf_kernel(material_id, lobe, wi_arr, wo_arr, n_arr, out)
    return out


def evaluate_brdf_batch(material_id: int, wi: Any, wo: Any, n: Any) -> npt.NDArray[np.float32]:
    """Evaluate f(wi, wo, n) for a batch of direction triples.

    Args:
        material_id: The unified material ID.
        wi: Incident directions, (3,) or (N, 3).
        wo: Outgoing directions, (3,) or (N, 3).
        n: Surface normals, (3,) or (N, 3).

    Returns:
        BRDF values of shape (N, 3).

    Raises:
        ValueError: If the inputs have incompatible shapes.
    """
    return _evaluate_lobe(material_id, _LOBE_FULL, wi, wo, n)


def evaluate_brdf(material_id: int, wi: Any, wo: Any, n: Any) -> npt.NDArray[np.float32]:
    """Evaluate f(wi, wo, n) for a single direction triple, shape (3,)."""
    return evaluate_brdf_batch(material_id, wi, wo, n)[0]


def evaluate_reflection(material_id: int, wi: Any, wo: Any, n: Any) -> npt.NDArray[np.float32]:
    """Evaluate the reflection lobe of a Blinn-Phong or metal material, shape (3,)."""
    return _evaluate_lobe(material_id, _LOBE_REFLECTION, wi, wo, n)[0]


def evaluate_refraction(material_id: int, wi: Any, wo: Any, n: Any) -> npt.NDArray[np.float32]:
    """Evaluate the refraction lobe of a Blinn-Phong or metal material, shape (3,)."""
    return _evaluate_lobe(material_id, _LOBE_REFRACTION, wi, wo, n)[0]


def evaluate_pdf_batch(material_id: int, wi: Any, wo: Any, n: Any) -> npt.NDArray[np.float32]:
    """Evaluate the sampling density at a batch of incident directions, shape (N,)."""
    wi_arr, wo_arr, n_arr = _broadcast_directions(
        _as_direction_array(wi, "wi"),
        _as_direction_array(wo, "wo"),
        _as_direction_array(n, "n"),
    )
    out = np.zeros(wi_arr.shape[0], dtype=np.float32)
    _eval_pdf_kernel(material_id, wi_arr, wo_arr, n_arr, out)
    return out


def evaluate_pdf(material_id: int, wi: Any, wo: Any, n: Any) -> float:
    """Evaluate the sampling density at a single incident direction."""
    return float(evaluate_pdf_batch(material_id, wi, wo, n)[0])


def sample_brdf_batch(
    material_id: int,
    wo: Any,
    n: Any,
    count: int | None = None,
) -> SampleBatch:
    """Draw BRDF samples.

    Args:
        material_id: The unified material ID.
        wo: Outgoing directions, (3,) or (N, 3).
        n: Surface normals, (3,) or (N, 3).
        count: Number of samples when wo and n are single directions.

    Returns:
        A SampleBatch with one sample per (wo, n) row.

    Raises:
        ValueError: If count conflicts with the batch size or is not positive.
    """
    wo_arr, n_arr = _broadcast_directions(
        _as_direction_array(wo, "wo"), _as_direction_array(n, "n")
    )
    if count is not None:
        if count <= 0:
            raise ValueError(f"count must be positive, got {count}")
        if wo_arr.shape[0] not in (1, count):
            raise ValueError(f"count={count} conflicts with a batch of {wo_arr.shape[0]}")
        wo_arr = np.ascontiguousarray(np.broadcast_to(wo_arr, (count, 3)))
        n_arr = np.ascontiguousarray(np.broadcast_to(n_arr, (count, 3)))

    size = wo_arr.shape[0]
    out_wi = np.zeros((size, 3), dtype=np.float32)
    out_brdf = np.zeros((size, 3), dtype=np.float32)
    out_pdf = np.zeros(size, dtype=np.float32)
    _sample_kernel(material_id, wo_arr, n_arr, out_wi, out_brdf, out_pdf)
    return SampleBatch(wi=out_wi, brdf=out_brdf, pdf=out_pdf)


def estimate_albedo(
    material_id: int,
    wo: Any,
    n: Any,
    num_samples: int = 65536,
) -> npt.NDArray[np.float32]:
    """Estimate the directional albedo of a material by importance sampling.

    Averages brdf * cos(theta_i) / pdf over num_samples samples; discarded
    samples (pdf = 0) contribute zero. For an energy-conserving material the
    result stays at or below 1 per channel.

    Args:
        material_id: The unified material ID.
        wo: Outgoing direction, shape (3,).
        n: Surface normal, shape (3,).
        num_samples: Number of Monte Carlo samples.

    Returns:
        The estimated albedo (RGB), shape (3,).

    Raises:
        ValueError: If num_samples is not positive or the directions are not (3,).
    """
    if num_samples <= 0:
        raise ValueError(f"num_samples must be positive, got {num_samples}")
    wo_arr = _as_direction_array(wo, "wo")
    n_arr = _as_direction_array(n, "n")
    if wo_arr.shape[0] != 1 or n_arr.shape[0] != 1:
        raise ValueError("estimate_albedo takes a single wo and n")

    _albedo_sum[None] = vec3(0.0, 0.0, 0.0)
    _estimate_albedo_kernel(
        material_id,
        np.ascontiguousarray(wo_arr),
        np.ascontiguousarray(n_arr),
        num_samples,
    )
    total = _albedo_sum[None]
    albedo = np.array([total[0], total[1], total[2]], dtype=np.float32) / num_samples
    logger.debug("Estimated albedo of material %d: %s", material_id, albedo)
    return albedo
