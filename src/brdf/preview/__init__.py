"""Preview module for inspecting materials.

Components:
    lobe: Hemisphere images of f * cos and PNG export

Example:
    >>> from src.brdf.preview import save_lobe_png
    >>> save_lobe_png(material_id, "lobe.png", wo=(0.0, 0.0, 1.0))
"""

from src.brdf.preview.lobe import (
    ToneMapMethod,
    apply_gamma,
    hemisphere_directions,
    image_to_uint8,
    render_lobe_image,
    save_lobe_png,
    tone_map_exposure,
    tone_map_reinhard,
)

__all__ = [
    "hemisphere_directions",
    "render_lobe_image",
    "save_lobe_png",
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "image_to_uint8",
    "ToneMapMethod",
]
