"""UV projections for extruded parts."""

import numpy as np

SIDE_FACE_TOLERANCE = 0.01


def planar_uvs(vertices: np.ndarray) -> np.ndarray:
    """Project onto the x-y plane."""
    return np.asarray(vertices, dtype=float)[:, :2].copy()


def box_uvs(vertices: np.ndarray, normals: np.ndarray) -> np.ndarray:
    """Project each vertex onto the plane orthogonal to its dominant normal axis."""
    v = np.asarray(vertices, dtype=float)
    n = np.abs(np.asarray(normals, dtype=float))
    x_dominant = (n[:, 0] > n[:, 1]) & (n[:, 0] > n[:, 2])
    y_dominant = ~x_dominant & (n[:, 1] > n[:, 2])

    uvs = v[:, :2].copy()  # z-dominant
    uvs[x_dominant] = v[x_dominant][:, [1, 2]]
    uvs[y_dominant] = v[y_dominant][:, [0, 2]]
    return uvs


def perimeter_uvs(vertices: np.ndarray, faces: np.ndarray, height: float) -> np.ndarray:
    """Side-wall mapping: U from accumulated side-edge lengths, V from height.

    A triangle counts as a side face when two of its vertices share a z
    value. Each vertex accumulates the planar length of the triangle edge
    that ends at it; the totals are normalised by their sum. V is
    ``(z - min z) / height``.
    """
    v = np.asarray(vertices, dtype=float)
    uvs = np.zeros((len(v), 2), dtype=float)
    if len(v) == 0:
        return uvs

    accumulated = np.zeros(len(v), dtype=float)
    for i0, i1, i2 in np.asarray(faces, dtype=np.int64):
        p0, p1, p2 = v[i0], v[i1], v[i2]
        if (abs(p0[2] - p1[2]) < SIDE_FACE_TOLERANCE
                or abs(p1[2] - p2[2]) < SIDE_FACE_TOLERANCE
                or abs(p2[2] - p0[2]) < SIDE_FACE_TOLERANCE):
            accumulated[i1] += np.hypot(*(p1[:2] - p0[:2]))
            accumulated[i2] += np.hypot(*(p2[:2] - p1[:2]))
            accumulated[i0] += np.hypot(*(p0[:2] - p2[:2]))

    total = accumulated.sum()
    if total > 0:
        uvs[:, 0] = accumulated / total
    uvs[:, 1] = (v[:, 2] - v[:, 2].min()) / height
    return uvs
