import cv2
import numpy as np
from shapely.geometry import Polygon

from .combine import ExtrudedMesh
from .mask import PixelMask


def pca_axis_metrics(mask: PixelMask, unit_per_px: float = 1.0):
    ys, xs = np.nonzero(mask.data)
    if xs.size == 0:
        return None
    pts = np.column_stack((xs, ys)).astype(np.float32)
    if len(pts) < 2:
        return dict(mask_area_px=1, length=0.0, width=0.0,
                    axis_origin=pts[0].tolist(), axis_vec=[1.0, 0.0])
    mean_init = np.array([], dtype=np.float32)
    mean, eigenvectors = cv2.PCACompute(pts, mean_init)
    axis_vec = eigenvectors[0]
    ortho_vec = eigenvectors[1]
    centered = pts - mean
    proj = centered @ axis_vec
    ortho = centered @ ortho_vec
    length_px = float(proj.max() - proj.min())
    width_px = float(ortho.max() - ortho.min())
    return dict(mask_area_px=int(xs.size), length=length_px * unit_per_px, width=width_px * unit_per_px,
                axis_origin=mean.flatten().tolist(), axis_vec=axis_vec.tolist())


def ring_metrics(ring):
    pts = np.asarray(ring, dtype=float).reshape(-1, 2)
    if len(pts) < 3:
        return dict(ring_points=len(pts), ring_area=0.0, ring_perimeter=0.0, ring_simple=False)
    poly = Polygon(pts)
    return dict(ring_points=len(pts), ring_area=float(poly.area), ring_perimeter=float(poly.length),
                ring_simple=bool(poly.exterior.is_simple))


def mesh_metrics(mesh: ExtrudedMesh):
    welded = mesh.welded()
    lo, hi = welded.bounds if len(welded.vertices) else (np.zeros(3), np.zeros(3))
    watertight = bool(welded.is_watertight)
    return dict(vertex_count=mesh.vertex_count, triangle_count=mesh.triangle_count,
                watertight=watertight, volume=float(welded.volume) if watertight else 0.0,
                size_x=float(hi[0] - lo[0]), size_y=float(hi[1] - lo[1]), size_z=float(hi[2] - lo[2]),
                material=mesh.material)
