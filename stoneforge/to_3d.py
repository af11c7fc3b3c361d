"""Extrude an ordered ring into top, bottom and side parts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import mapbox_earcut as earcut
import numpy as np
import trimesh
from shapely.geometry import Polygon

from .config import PipelineConfig, UVMode
from .errors import DegenerateOrderingError
from .hull import cross, signed_area
from .noise import perlin
from .uv import box_uvs, perimeter_uvs, planar_uvs

log = logging.getLogger('stoneforge.to_3d')

LAYER_TOLERANCE = 0.01


def vertex_normals(vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """Area-weighted vertex normals computed by trimesh from the triangle list."""
    if len(faces) == 0:
        return np.zeros((len(vertices), 3), dtype=float)
    mesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
    return np.array(mesh.vertex_normals, dtype=float)


@dataclass
class SubMesh:
    name: str
    vertices: np.ndarray
    faces: np.ndarray
    uv: np.ndarray = None
    normals: np.ndarray = None
    transform: np.ndarray = field(default_factory=lambda: np.eye(4))

    def __post_init__(self):
        self.vertices = np.asarray(self.vertices, dtype=float).reshape(-1, 3)
        self.faces = np.asarray(self.faces, dtype=np.int64).reshape(-1, 3)
        if self.uv is None:
            self.uv = planar_uvs(self.vertices)
        if self.normals is None:
            self.recalculate_normals()

    def recalculate_normals(self) -> None:
        self.normals = vertex_normals(self.vertices, self.faces)

    @property
    def triangle_count(self) -> int:
        return len(self.faces)


def _is_convex(ring: np.ndarray) -> bool:
    n = len(ring)
    for i in range(n):
        if cross(ring[i - 1], ring[i], ring[(i + 1) % n]) < 0:
            return False
    return True


def triangulate_ring(ring) -> np.ndarray:
    """Triangulate a simple counter-clockwise ring into ``n - 2`` triangles.

    Convex rings are fanned from the first vertex; other rings go through
    earcut. Triangles keep the ring's counter-clockwise winding.

    Raises:
        DegenerateOrderingError: earcut could not cover the ring.
    """
    ring = np.asarray(ring, dtype=float).reshape(-1, 2)
    n = len(ring)
    if n < 3:
        return np.empty((0, 3), dtype=np.int64)
    if signed_area(ring) < 0:
        raise ValueError("ring must be counter-clockwise")
    if _is_convex(ring):
        return np.array([[0, i, i + 1] for i in range(1, n - 1)], dtype=np.int64)

    tri = earcut.triangulate_float64(np.ascontiguousarray(ring), np.array([n], dtype=np.uint32))
    tri = np.asarray(tri, dtype=np.int64).reshape(-1, 3)
    if len(tri) != n - 2:
        raise DegenerateOrderingError("triangulation", f"earcut returned {len(tri)} triangles for {n} points")

    a, b, c = ring[tri[:, 0]], ring[tri[:, 1]], ring[tri[:, 2]]
    clockwise = ((b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])) < 0
    tri[clockwise] = tri[clockwise][:, ::-1]
    return tri


def _cap(name: str, ring: np.ndarray, z: float, flip: bool) -> SubMesh:
    vertices = np.column_stack([ring, np.full(len(ring), z)])
    faces = triangulate_ring(ring)
    if flip:
        faces = faces[:, ::-1]
    return SubMesh(name, vertices, faces)


def _sides(ring: np.ndarray, height: float) -> SubMesh:
    n = len(ring)
    bottom = np.column_stack([ring, np.zeros(n)])
    top = np.column_stack([ring, np.full(n, height)])
    faces = []
    for i in range(n):
        j = (i + 1) % n
        b0, b1 = i, j
        t0, t1 = i + n, j + n
        faces.append([b0, b1, t1])
        faces.append([b0, t1, t0])
    return SubMesh("sides", np.vstack([bottom, top]), faces)


def build_parts(ring, height: float, is_3d: bool = True, bottom_face: bool = True) -> list[SubMesh]:
    """Raw prism parts: top cap, optional bottom cap and side walls.

    In 2D mode only a flat top cap at z = 0 is produced.
    """
    ring = np.asarray(ring, dtype=float).reshape(-1, 2)
    if not is_3d:
        return [_cap("top", ring, 0.0, flip=False)]
    parts = [_cap("top", ring, height, flip=False)]
    if bottom_face:
        parts.append(_cap("bottom", ring, 0.0, flip=True))
    parts.append(_sides(ring, height))
    return parts


def _z_extent(parts: list[SubMesh]) -> tuple[float, float]:
    zs = np.concatenate([p.vertices[:, 2] for p in parts])
    return float(zs.min()), float(zs.max())


def scale_layers(parts: list[SubMesh], centroid, top_scale: float = 1.0, bottom_scale: float = 1.0) -> None:
    """Scale top and bottom layer vertices about ``centroid`` in the x-y plane.

    Layers are the vertices within :data:`LAYER_TOLERANCE` of the max / min z
    over all parts; when both coincide the top factor wins.
    """
    if top_scale == 1.0 and bottom_scale == 1.0:
        return
    min_z, max_z = _z_extent(parts)
    c = np.asarray(centroid, dtype=float)
    for part in parts:
        z = part.vertices[:, 2]
        top = np.abs(z - max_z) < LAYER_TOLERANCE
        bottom = ~top & (np.abs(z - min_z) < LAYER_TOLERANCE)
        part.vertices[top, :2] = c + (part.vertices[top, :2] - c) * top_scale
        part.vertices[bottom, :2] = c + (part.vertices[bottom, :2] - c) * bottom_scale


def add_height_noise(parts: list[SubMesh], noise_scale: float, noise_strength: float, seed: int = 0) -> None:
    """Raise top layer vertices by ``perlin(x * scale, y * scale) * strength``."""
    if noise_scale == 0 or noise_strength == 0:
        return
    _, max_z = _z_extent(parts)
    for part in parts:
        top = np.abs(part.vertices[:, 2] - max_z) < LAYER_TOLERANCE
        xy = part.vertices[top, :2]
        part.vertices[top, 2] += perlin(xy[:, 0] * noise_scale, xy[:, 1] * noise_scale, seed) * noise_strength


def apply_uvs(parts: list[SubMesh], mode: UVMode, height: float) -> None:
    mode = UVMode(mode)
    for part in parts:
        if mode is UVMode.BOX:
            part.uv = box_uvs(part.vertices, part.normals)
        elif mode is UVMode.PERIMETER and part.name == "sides":
            part.uv = perimeter_uvs(part.vertices, part.faces, height)
        else:
            part.uv = planar_uvs(part.vertices)


def extrude(ring, config: PipelineConfig) -> list[SubMesh]:
    """Build the prism parts for ``ring`` and run the deformation passes.

    Normals are recomputed from the final triangles after deformation, then
    UVs are assigned. Every part carries ``scale(config.scale_unit)`` as its
    local-to-world transform.
    """
    ring = np.asarray(ring, dtype=float).reshape(-1, 2)
    height = config.extrusion_height
    parts = build_parts(ring, height, config.is_3d, config.bottom_face)

    centroid = Polygon(ring).centroid
    scale_layers(parts, (centroid.x, centroid.y), config.top_scale, config.bottom_scale)
    add_height_noise(parts, config.noise_scale, config.noise_strength, config.noise_seed)

    transform = np.diag([config.scale_unit, config.scale_unit, config.scale_unit, 1.0])
    for part in parts:
        part.recalculate_normals()
        part.transform = transform.copy()
    apply_uvs(parts, config.uv_mode, height)

    log.debug("Extruded %d-point ring into %s", len(ring),
              ", ".join(f"{p.name}={p.triangle_count}" for p in parts))
    return parts
