"""BRDF lobe images for visual inspection of materials.

A lobe image shows f(wi, wo, n) * cos(theta_i) for a fixed viewing direction
over the whole upper hemisphere, projected orthographically onto the tangent
plane: the image center is the normal, the rim of the disk is the horizon.
Pixels outside the unit disk are black.

Supported formats:
    - PNG (8-bit sRGB via Pillow)

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.brdf.scene.library import MaterialLibrary
    >>> from src.brdf.preview.lobe import save_lobe_png
    >>> library = MaterialLibrary()
    >>> glossy = library.add_blinn_phong_material(shininess=100.0, r0=0.04)
    >>> save_lobe_png(glossy, "glossy.png", wo=(0.5, 0.0, 0.866), tone_map="reinhard")
"""

from typing import Any, Literal

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.brdf.core.evaluate import evaluate_brdf_batch

# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]


def _tangent_frame_numpy(
    n: npt.NDArray[np.float32],
) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32]]:
    """Tangent and bitangent matching build_tangent_frame() in the kernels."""
    if abs(n[0]) < abs(n[1]):
        perp = np.array([0.0, -n[2], n[1]], dtype=np.float32)
    else:
        perp = np.array([-n[2], 0.0, n[0]], dtype=np.float32)
    tangent = perp / np.linalg.norm(perp)
    bitangent = np.cross(tangent, n)
    bitangent = bitangent / np.linalg.norm(bitangent)
    return tangent.astype(np.float32), bitangent.astype(np.float32)


def hemisphere_directions(
    resolution: int,
    n: Any = (0.0, 0.0, 1.0),
) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.bool_]]:
    """Directions of an orthographic hemisphere projection.

    Args:
        resolution: Image width and height in pixels.
        n: Surface normal at the image center.

    Returns:
        A tuple (directions, mask): directions has shape (res, res, 3) and is
        zero outside the disk; mask marks pixels inside the unit disk.

    Raises:
        ValueError: If resolution is not positive or n has zero length.
    """
    if resolution <= 0:
        raise ValueError(f"resolution must be positive, got {resolution}")
    normal = np.asarray(n, dtype=np.float32)
    norm = np.linalg.norm(normal)
    if norm == 0.0:
        raise ValueError("n must have non-zero length")
    normal = normal / norm
    tangent, bitangent = _tangent_frame_numpy(normal)

    coords = (np.arange(resolution, dtype=np.float32) + 0.5) * (2.0 / resolution) - 1.0
    x, y = np.meshgrid(coords, -coords)
    r2 = x * x + y * y
    mask = r2 < 1.0
    z = np.sqrt(np.maximum(0.0, 1.0 - r2))

    directions = (
        x[..., None] * tangent + y[..., None] * bitangent + z[..., None] * normal
    ).astype(np.float32)
    directions[~mask] = 0.0
    return directions, mask


def render_lobe_image(
    material_id: int,
    wo: Any,
    n: Any = (0.0, 0.0, 1.0),
    resolution: int = 128,
) -> npt.NDArray[np.float32]:
    """Render f(wi, wo, n) * cos(theta_i) over the hemisphere.

    Args:
        material_id: The unified material ID.
        wo: Viewing direction, shape (3,).
        n: Surface normal, shape (3,).
        resolution: Image width and height in pixels.

    Returns:
        Linear float32 image of shape (resolution, resolution, 3).
    """
    directions, mask = hemisphere_directions(resolution, n)
    normal = np.asarray(n, dtype=np.float32)
    normal = normal / np.linalg.norm(normal)

    image = np.zeros((resolution, resolution, 3), dtype=np.float32)
    wi = directions[mask]
    if wi.shape[0] > 0:
        brdf = evaluate_brdf_batch(material_id, wi, wo, normal)
        cos_theta = np.maximum(0.0, wi @ normal)
        image[mask] = brdf * cos_theta[:, None]
    return image


def tone_map_reinhard(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.float32]:
    """Apply Reinhard tone mapping: L / (1 + L)."""
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply exposure tone mapping: 1 - exp(-L * exposure)."""
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Apply gamma encoding, clamping to [0, 1] first."""
    if gamma == 1.0:
        return image
    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float32 image to 8-bit sRGB.

    Raises:
        ValueError: If tone_map is not a known method.
    """
    result = image.copy()
    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = np.clip(apply_gamma(result, gamma), 0.0, 1.0)
    return (result * 255).astype(np.uint8)


def save_lobe_png(
    material_id: int,
    filepath: str,
    *,
    wo: Any,
    n: Any = (0.0, 0.0, 1.0),
    resolution: int = 128,
    tone_map: ToneMapMethod = "reinhard",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Render a lobe image and save it as an 8-bit PNG.

    Args:
        material_id: The unified material ID.
        filepath: Output file path (should end in .png).
        wo: Viewing direction, shape (3,).
        n: Surface normal, shape (3,).
        resolution: Image width and height in pixels.
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping.
    """
    image = render_lobe_image(material_id, wo, n, resolution)
    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(image_uint8).save(filepath)
