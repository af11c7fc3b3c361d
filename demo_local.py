#!/usr/bin/env python3
"""
Local demonstration script for the stoneforge pipeline.
Reads a segmentation mask image (or draws a sample one), builds the stone mesh
and writes the STL, an overlay PNG and a metrics CSV.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from stoneforge import (
    HullStrategy,
    PipelineConfig,
    PipelineError,
    PixelMask,
    PreviewSlot,
    UVMode,
    run_pipeline,
)
from stoneforge.logging import configure_logging
from stoneforge.overlay import draw_overlay

log = logging.getLogger('stoneforge.demo')


def create_sample_mask(output_path: Path, width: int = 320, height: int = 240):
    """Create a sample silhouette-like mask: head and shoulders"""
    import cv2
    import numpy as np

    mask = np.zeros((height, width), dtype=np.uint8)
    cx = width // 2
    cv2.ellipse(mask, (cx, height // 3), (35, 45), 0, 0, 360, 255, -1)
    cv2.ellipse(mask, (cx, height - 10), (110, 80), 0, 180, 360, 255, -1)
    cv2.rectangle(mask, (cx - 20, height // 3 + 30), (cx + 20, height - 80), 255, -1)
    cv2.imwrite(str(output_path), mask)
    log.info("Created sample mask: %s", output_path)


def build_config(args) -> PipelineConfig:
    base = PipelineConfig.from_env()
    overrides = {
        "epsilon": args.epsilon,
        "hull_strategy": args.strategy,
        "k": args.k,
        "extrusion_height": args.height,
        "is_3d": False if args.flat else None,
        "bottom_face": False if args.no_bottom else None,
        "top_scale": args.top_scale,
        "noise_scale": args.noise_scale,
        "noise_strength": args.noise_strength,
        "scale_unit": args.scale_unit,
        "uv_mode": args.uv,
    }
    values = {k: v for k, v in overrides.items() if v is not None}
    return replace(base, **values)


def main():
    parser = argparse.ArgumentParser(description="Turn a segmentation mask into a stone mesh")
    parser.add_argument("mask", nargs='?', help="Path to mask image (foreground > 128)")
    parser.add_argument("--out", default="out", help="Output directory (default: out)")
    parser.add_argument("--create-sample", action="store_true", help="Create a sample mask image")
    parser.add_argument("--epsilon", type=float, help="Simplification tolerance in pixels")
    parser.add_argument("--strategy", choices=[s.value for s in HullStrategy], help="Ring ordering strategy")
    parser.add_argument("--k", type=int, help="Neighbour count for the concave hull")
    parser.add_argument("--height", type=float, help="Extrusion height")
    parser.add_argument("--flat", action="store_true", help="Build a flat 2D cap only")
    parser.add_argument("--no-bottom", action="store_true", help="Skip the bottom cap")
    parser.add_argument("--top-scale", type=float, help="Scale factor for the top layer")
    parser.add_argument("--noise-scale", type=float, help="Height noise frequency")
    parser.add_argument("--noise-strength", type=float, help="Height noise amplitude")
    parser.add_argument("--scale-unit", type=float, help="World units per pixel")
    parser.add_argument("--uv", choices=[m.value for m in UVMode], help="UV mapping for the parts")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    args = parser.parse_args()

    configure_logging(args.log_level)

    if args.create_sample:
        sample_path = Path("sample_mask.png")
        create_sample_mask(sample_path)
        if not args.mask:
            args.mask = str(sample_path)

    if not args.mask:
        log.error("No mask provided. Use --create-sample to generate one, or provide a path.")
        return 1

    mask_path = Path(args.mask)
    if not mask_path.exists():
        log.error("Mask file not found: %s", mask_path)
        return 1

    try:
        config = build_config(args)
        mask = PixelMask.from_image_bytes(mask_path.read_bytes())
        result = run_pipeline(mask, config)
    except (PipelineError, ValueError) as e:
        log.error("Pipeline failed: %s", e)
        return 1

    slot = PreviewSlot()
    slot.publish(result.preview)

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / "stone.stl").write_bytes(result.stl_bytes())
    (out_dir / "overlay.png").write_bytes(draw_overlay(mask, result.ring, result.metrics))
    (out_dir / "metrics.csv").write_bytes(result.csv_bytes())
    with open(out_dir / "metrics.json", 'w') as f:
        json.dump(result.metrics, f, indent=2)

    print("Results:")
    for key, value in result.metrics.items():
        if isinstance(value, float):
            print(f"  {key}: {value:.2f}")
        elif not isinstance(value, (list, tuple, dict)):
            print(f"  {key}: {value}")
    print(f"  preview points: {slot.current.point_count}")
    print(f"\nArtifacts written to {out_dir}/")
    return 0


if __name__ == "__main__":
    sys.exit(main())
