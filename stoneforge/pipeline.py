"""Mask-to-stone pipeline: trace, simplify, order, extrude, combine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

import numpy as np
import pandas as pd

from .combine import ExtrudedMesh, combine_meshes
from .config import HullStrategy, PipelineConfig
from .errors import EmptyMaskError
from .hull import order_ring
from .logging import timed
from .mask import PixelMask
from .measure import mesh_metrics, pca_axis_metrics, ring_metrics
from .overlay import draw_overlay
from .preview import PreviewPolyline, build_preview
from .simplify import simplify_ring
from .to_3d import extrude
from .trace import trace_contour

log = logging.getLogger('stoneforge.pipeline')


@dataclass
class PipelineResult:
    mesh: ExtrudedMesh
    ring: np.ndarray
    contour: np.ndarray
    simplified: np.ndarray
    strategy: HullStrategy
    preview: PreviewPolyline
    metrics: dict = field(default_factory=dict)

    def stl_bytes(self) -> bytes:
        return self.mesh.export(file_type="stl")

    def csv_bytes(self) -> bytes:
        df = pd.DataFrame([{k: v for k, v in self.metrics.items() if not isinstance(v, (list, tuple, dict))}])
        return df.to_csv(index=False).encode("utf-8")


@timed
def _trace(mask, config):
    return trace_contour(mask, step_factor=config.trace_step_factor)


@timed
def _simplify(contour, config):
    return simplify_ring(contour, config.epsilon)


@timed
def _order(points, config):
    return order_ring(points, config.hull_strategy, k=config.k, max_k=config.max_k)


@timed
def _build(ring, config):
    parts = extrude(ring, config)
    return combine_meshes(parts, material=config.material, with_collider=config.colliders)


def run_pipeline(mask: Union[PixelMask, np.ndarray], config: Optional[PipelineConfig] = None) -> PipelineResult:
    """Turn a segmentation mask into an extruded, UV-mapped stone mesh.

    The run has no side effects: the mask is only read and everything in the
    returned :class:`PipelineResult` belongs to the caller.

    Raises:
        EmptyMaskError: no foreground pixel in the mask.
        TracingBoundExceeded: the boundary walk did not close.
        DegenerateOrderingError: no usable ring, even with the convex fallback.
    """
    config = (config or PipelineConfig()).normalized()
    if not isinstance(mask, PixelMask):
        mask = PixelMask.from_array(mask)

    contour = _trace(mask, config)
    if len(contour) == 0:
        raise EmptyMaskError(mask.width, mask.height)

    simplified = _simplify(contour, config)
    ring, strategy = _order(simplified, config)
    mesh = _build(ring, config)
    preview = build_preview(ring, config.preview_scale, config.preview_offset)

    metrics = {
        "contour_points": len(contour),
        "simplified_points": len(simplified),
        "strategy": strategy.value,
        "epsilon": config.epsilon,
        "extrusion_height": config.extrusion_height,
        "scale_unit": config.scale_unit,
    }
    metrics.update(pca_axis_metrics(mask, config.scale_unit) or {})
    metrics.update(ring_metrics(ring))
    metrics.update(mesh_metrics(mesh))

    log.info("Built %s stone: %d contour -> %d simplified -> %d ring points, %d triangles",
             strategy.value, len(contour), len(simplified), len(ring), mesh.triangle_count)
    return PipelineResult(mesh=mesh, ring=ring, contour=contour, simplified=simplified,
                          strategy=strategy, preview=preview, metrics=metrics)


def process_image_bytes(image_bytes: bytes, config: Optional[PipelineConfig] = None) -> dict:
    """Run the pipeline on an encoded mask image and return export-ready artifacts."""
    mask = PixelMask.from_image_bytes(image_bytes)
    result = run_pipeline(mask, config)
    return {
        "overlay_png": draw_overlay(mask, result.ring, result.metrics),
        "stl_bytes": result.stl_bytes(),
        "csv_bytes": result.csv_bytes(),
        "metrics": result.metrics,
    }
