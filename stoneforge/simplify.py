"""Ramer-Douglas-Peucker point reduction for traced contours."""

from __future__ import annotations

import numpy as np


def perpendicular_distance(a, b, p) -> float:
    """Distance from ``p`` to the line through ``a`` and ``b`` (twice the triangle area over the base)."""
    area = abs(0.5 * (a[0] * b[1] + b[0] * p[1] + p[0] * a[1]
                      - b[0] * a[1] - p[0] * b[1] - a[0] * p[1]))
    base = float(np.hypot(a[0] - b[0], a[1] - b[1]))
    if base == 0.0:
        return float(np.hypot(p[0] - a[0], p[1] - a[1]))
    return area / base * 2


def _distances(a: np.ndarray, b: np.ndarray, inner: np.ndarray) -> np.ndarray:
    line = b - a
    base = float(np.hypot(line[0], line[1]))
    vec = inner - a
    if base == 0.0:
        return np.hypot(vec[:, 0], vec[:, 1])
    return np.abs(line[0] * vec[:, 1] - line[1] * vec[:, 0]) / base


def _kept_indices(points: np.ndarray, start_idx: int, end_idx: int, epsilon: float) -> np.ndarray:
    keep = np.zeros((len(points),), dtype=bool)
    keep[start_idx] = True
    keep[end_idx] = True

    stack = [(start_idx, end_idx)]
    while stack:
        lo, hi = stack.pop()
        if hi <= lo + 1:
            continue
        dists = _distances(points[lo], points[hi], points[lo + 1:hi])
        # argmax returns the first maximum, so ties go to the lowest index
        rel = int(np.argmax(dists))
        if dists[rel] > epsilon:
            mid = lo + 1 + rel
            keep[mid] = True
            stack.append((lo, mid))
            stack.append((mid, hi))

    return np.flatnonzero(keep)


def ramer_douglas_peucker(points, epsilon: float) -> np.ndarray:
    """Simplify an open chain, keeping points farther than ``epsilon`` from their chord.

    Trailing points equal to the first point are dropped before simplifying
    so the baseline never has zero length.
    """
    if epsilon <= 0:
        raise ValueError("epsilon must be > 0")
    points = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(points) < 3:
        return points.copy()

    start_idx = 0
    end_idx = len(points) - 1
    while end_idx > start_idx and np.array_equal(points[start_idx], points[end_idx]):
        end_idx -= 1
    if end_idx == start_idx:
        return points[:1].copy()

    return points[_kept_indices(points, start_idx, end_idx, epsilon)]


def simplify_ring(points, epsilon: float) -> np.ndarray:
    """Simplify a closed contour.

    Runs :func:`ramer_douglas_peucker` on the open chain, then drops the last
    kept point when every point after the second-to-last kept point lies
    within ``epsilon`` of the closing chord back to the first point.
    """
    if epsilon <= 0:
        raise ValueError("epsilon must be > 0")
    points = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(points) < 3:
        return points.copy()

    end_idx = len(points) - 1
    while end_idx > 0 and np.array_equal(points[0], points[end_idx]):
        end_idx -= 1
    if end_idx == 0:
        return points[:1].copy()

    kept = _kept_indices(points, 0, end_idx, epsilon)
    if len(kept) > 3:
        prev = kept[-2]
        tail = points[prev + 1:end_idx + 1]
        if np.all(_distances(points[prev], points[0], tail) <= epsilon):
            kept = kept[:-1]
    return points[kept]
