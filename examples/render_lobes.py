#!/usr/bin/env python3
"""Render BRDF lobe images for a small set of materials.

This script builds a diffuse material, a plastic (a Blinn-Phong coating over
the diffuse base), a gold metal and a blend of the metal and the plastic, then
saves one hemisphere image of f * cos per material and prints a Monte Carlo
estimate of each material's directional albedo.

Usage:
    python -m examples.render_lobes [options]

Options:
    --resolution RES    Lobe image size in pixels (default: 256)
    --theta DEGREES     Viewing angle from the normal (default: 45)
    --samples SAMPLES   Samples for the albedo estimate (default: 65536)
    --output-dir DIR    Directory for the PNG files (default: lobes)
    --quiet             Suppress progress output

Example:
    python -m examples.render_lobes --resolution 128 --theta 60
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render BRDF lobe images.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--resolution",
        type=int,
        default=256,
        help="Lobe image size in pixels (default: 256)",
    )
    parser.add_argument(
        "--theta",
        type=float,
        default=45.0,
        help="Viewing angle from the normal in degrees (default: 45)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=65536,
        help="Samples for the albedo estimate (default: 65536)",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default="lobes",
        help="Directory for the PNG files (default: lobes)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_lobes(
    resolution: int = 256,
    theta_degrees: float = 45.0,
    num_samples: int = 65536,
    output_dir: str = "lobes",
    quiet: bool = False,
) -> list[Path]:
    """Build the demo materials and save one lobe image per material.

    Args:
        resolution: Lobe image size in pixels.
        theta_degrees: Angle between the viewing direction and the normal.
        num_samples: Number of samples for each albedo estimate.
        output_dir: Directory the PNG files are written to.
        quiet: If True, suppress progress output.

    Returns:
        Paths of the saved images.
    """
    # Lazy imports to allow Taichi initialization first
    from src.brdf.core.evaluate import estimate_albedo
    from src.brdf.preview.lobe import save_lobe_png
    from src.brdf.scene.library import MaterialLibrary

    library = MaterialLibrary()
    red = library.add_diffuse_material(color=(0.8, 0.2, 0.2))
    plastic = library.add_blinn_phong_material(shininess=200.0, ior=1.5, refraction_layer=red)
    gold = library.add_blinn_phong_metal_material(
        shininess=500.0, color=(1.0, 0.78, 0.34), r0=0.9
    )
    worn = library.add_linear_blend_material(0.7, gold, plastic)
    materials = {"diffuse": red, "plastic": plastic, "gold": gold, "worn_gold": worn}

    theta = math.radians(theta_degrees)
    wo = (math.sin(theta), 0.0, math.cos(theta))
    n = (0.0, 0.0, 1.0)

    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    saved = []
    for name, material_id in materials.items():
        start_time = time.time()
        output_file = out_dir / f"{name}.png"
        save_lobe_png(material_id, str(output_file), wo=wo, n=n, resolution=resolution)
        albedo = estimate_albedo(material_id, wo, n, num_samples=num_samples)
        saved.append(output_file)
        if not quiet:
            print(
                f"  {name:<10} albedo=({albedo[0]:.3f}, {albedo[1]:.3f}, {albedo[2]:.3f}) "
                f"-> {output_file} ({time.time() - start_time:.2f}s)"
            )

    return saved


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO)

    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_lobes(
            resolution=args.resolution,
            theta_degrees=args.theta,
            num_samples=args.samples,
            output_dir=args.output_dir,
            quiet=args.quiet,
        )
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
