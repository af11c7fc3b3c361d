"""Merge extruded parts into a single renderable mesh."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import trimesh

from .to_3d import SubMesh, vertex_normals
from .uv import planar_uvs

log = logging.getLogger('stoneforge.combine')


@dataclass
class ExtrudedMesh:
    vertices: np.ndarray
    faces: np.ndarray
    uv: np.ndarray
    normals: np.ndarray
    material: str = "stone"
    collider: Optional[trimesh.Trimesh] = None

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.faces)

    def to_trimesh(self) -> trimesh.Trimesh:
        """Hand the buffers to trimesh without merging or reordering vertices."""
        return trimesh.Trimesh(
            vertices=self.vertices,
            faces=self.faces,
            vertex_normals=self.normals,
            visual=trimesh.visual.TextureVisuals(uv=self.uv),
            process=False,
        )

    def welded(self) -> trimesh.Trimesh:
        """Copy with coincident vertices merged, e.g. for watertightness checks."""
        mesh = trimesh.Trimesh(vertices=self.vertices, faces=self.faces, process=False)
        mesh.merge_vertices()
        return mesh

    def export(self, file_type: str = "stl") -> bytes:
        data = self.to_trimesh().export(file_type=file_type)
        if isinstance(data, str):
            data = data.encode("utf-8")
        return data


def combine_meshes(parts: Sequence[SubMesh], material: str = "stone",
                   with_collider: bool = False) -> ExtrudedMesh:
    """Concatenate ``parts`` into one mesh expressed in world space.

    Each part's vertices go through its transform, faces are offset by the
    running vertex count, normals are recomputed from the merged triangles and
    a single planar UV set replaces the per-part UVs. The parts themselves are
    left untouched.
    """
    if not parts:
        raise ValueError("No meshes to combine")

    vertex_blocks = []
    face_blocks = []
    offset = 0
    for part in parts:
        world = trimesh.transformations.transform_points(part.vertices, part.transform)
        vertex_blocks.append(world)
        face_blocks.append(part.faces + offset)
        offset += len(part.vertices)

    vertices = np.vstack(vertex_blocks)
    faces = np.vstack(face_blocks).astype(np.int64)
    normals = vertex_normals(vertices, faces)
    uv = planar_uvs(vertices)

    collider = None
    if with_collider:
        collider = trimesh.Trimesh(vertices=vertices, faces=faces, process=True)

    log.debug("Combined %d parts into %d vertices / %d triangles",
              len(parts), len(vertices), len(faces))
    return ExtrudedMesh(vertices=vertices, faces=faces, uv=uv, normals=normals,
                        material=material, collider=collider)
