"""stoneforge: segmentation mask to extruded stone mesh."""

from .combine import ExtrudedMesh, combine_meshes
from .config import HullStrategy, PipelineConfig, UVMode
from .errors import (
    DegenerateOrderingError,
    EmptyMaskError,
    InvalidConfigurationError,
    PipelineError,
    TracingBoundExceeded,
)
from .hull import order_ring
from .mask import PixelMask
from .pipeline import PipelineResult, process_image_bytes, run_pipeline
from .preview import PreviewPolyline, PreviewSlot, build_preview
from .simplify import ramer_douglas_peucker, simplify_ring
from .to_3d import SubMesh, extrude
from .trace import trace_contour

__all__ = [
    "run_pipeline",
    "process_image_bytes",
    "PipelineResult",
    "PipelineConfig",
    "HullStrategy",
    "UVMode",
    "PixelMask",
    "trace_contour",
    "ramer_douglas_peucker",
    "simplify_ring",
    "order_ring",
    "extrude",
    "SubMesh",
    "combine_meshes",
    "ExtrudedMesh",
    "build_preview",
    "PreviewPolyline",
    "PreviewSlot",
    "PipelineError",
    "EmptyMaskError",
    "TracingBoundExceeded",
    "DegenerateOrderingError",
    "InvalidConfigurationError",
]
