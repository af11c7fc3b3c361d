"""Ring ordering: turn a simplified contour into a simple, counter-clockwise ring.

Each strategy is a :class:`RingOrderer`. Orderers copy the input into a
working pool of distinct points and remove points from it as they are
placed. :func:`order_ring` picks the strategy from the configuration, cleans
the result and falls back to the convex hull once when another strategy
cannot produce a ring.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
from shapely.geometry import LinearRing

from .config import MIN_K, HullStrategy
from .errors import DegenerateOrderingError

log = logging.getLogger('stoneforge.hull')

COLLINEAR_TOLERANCE = 1e-9

Point = tuple[float, float]


def cross(o, a, b) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def signed_area(ring) -> float:
    """Shoelace area, positive for counter-clockwise rings."""
    pts = np.asarray(ring, dtype=float).reshape(-1, 2)
    if len(pts) < 3:
        return 0.0
    x, y = pts[:, 0], pts[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def _dist2(a, b) -> float:
    return (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2


def _leftmost(pool: list[Point]) -> Point:
    return min(pool, key=lambda p: (p[0], p[1]))


def _unique_points(points) -> list[Point]:
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    return list(dict.fromkeys((float(x), float(y)) for x, y in pts))


def is_simple_ring(ring) -> bool:
    pts = np.asarray(ring, dtype=float).reshape(-1, 2)
    if len(pts) < 3:
        return False
    return LinearRing(pts).is_simple


class RingOrderer:
    """Base class for the ring ordering strategies."""

    strategy: HullStrategy

    def order(self, points) -> np.ndarray:
        pool = _unique_points(points)
        if len(pool) < 3:
            raise DegenerateOrderingError(self.strategy.value, f"only {len(pool)} distinct points")
        return np.asarray(self._order(pool), dtype=float).reshape(-1, 2)

    def _order(self, pool: list[Point]) -> list[Point]:
        raise NotImplementedError


class ConvexHullOrderer(RingOrderer):
    """Andrew's monotone chain. Concave detail is lost."""

    strategy = HullStrategy.CONVEX

    def _order(self, pool):
        pool.sort()
        hull: list[Point] = []
        for p in pool:
            while len(hull) >= 2 and cross(hull[-2], hull[-1], p) <= 0:
                hull.pop()
            hull.append(p)

        t = len(hull) + 1
        for p in reversed(pool[:-1]):
            while len(hull) >= t and cross(hull[-2], hull[-1], p) <= 0:
                hull.pop()
            hull.append(p)

        hull.pop()  # closing point repeats the first one
        return hull


class GiftWrapOrderer(RingOrderer):
    """Jarvis march from the leftmost point; closes within N iterations or fails."""

    strategy = HullStrategy.GIFT_WRAP

    def _order(self, pool):
        n = len(pool)
        start = _leftmost(pool)
        pool.remove(start)
        hull = [start]
        current = start

        for _ in range(n):
            candidate = start
            for p in pool:
                c = cross(current, candidate, p)
                if c < 0 or (c == 0 and _dist2(current, p) > _dist2(current, candidate)):
                    candidate = p
            if candidate == start:
                return hull
            hull.append(candidate)
            pool.remove(candidate)
            current = candidate

        raise DegenerateOrderingError(self.strategy.value, f"did not close within {n} iterations")


def _turn_angle(prev_dir, a, b) -> float:
    dx, dy = b[0] - a[0], b[1] - a[1]
    c = prev_dir[0] * dy - prev_dir[1] * dx
    d = prev_dir[0] * dx + prev_dir[1] * dy
    angle = math.atan2(c, d)
    if angle <= -math.pi + 1e-12:
        # a full reversal is the least preferred turn, whatever the sign of zero
        return math.pi
    return angle


def _on_segment(p, q, r) -> bool:
    return (min(p[0], q[0]) <= r[0] <= max(p[0], q[0])
            and min(p[1], q[1]) <= r[1] <= max(p[1], q[1]))


def segments_intersect(p1, p2, p3, p4) -> bool:
    """True when segments p1-p2 and p3-p4 cross or touch."""
    d1 = cross(p3, p4, p1)
    d2 = cross(p3, p4, p2)
    d3 = cross(p1, p2, p3)
    d4 = cross(p1, p2, p4)
    if ((d1 > 0 > d2) or (d1 < 0 < d2)) and ((d3 > 0 > d4) or (d3 < 0 < d4)):
        return True
    if d1 == 0 and _on_segment(p3, p4, p1):
        return True
    if d2 == 0 and _on_segment(p3, p4, p2):
        return True
    if d3 == 0 and _on_segment(p1, p2, p3):
        return True
    if d4 == 0 and _on_segment(p1, p2, p4):
        return True
    return False


def _edge_allowed(hull: list[Point], a: Point, b: Point, closing: bool) -> bool:
    if len(hull) >= 2:
        prev = hull[-2]
        # folding back along the previous edge
        if cross(prev, a, b) == 0 and (a[0] - prev[0]) * (b[0] - a[0]) + (a[1] - prev[1]) * (b[1] - a[1]) < 0:
            return False
    first = 1 if closing else 0
    for i in range(first, len(hull) - 2):
        if segments_intersect(hull[i], hull[i + 1], a, b):
            return False
    return True


def _concave_walk(pool: list[Point], k: int) -> Optional[list[Point]]:
    start = _leftmost(pool)
    pool.remove(start)
    hull = [start]
    current = start
    prev_dir = (0.0, -1.0)

    while True:
        candidates = list(pool)
        if len(hull) >= 3:
            candidates.append(start)
        if not candidates:
            return None

        nearest = sorted(candidates, key=lambda p: (_dist2(current, p), p))[:k]
        ranked = sorted(nearest, key=lambda p: (_turn_angle(prev_dir, current, p), _dist2(current, p), p))
        for candidate in ranked:
            if _edge_allowed(hull, current, candidate, closing=candidate == start):
                break
        else:
            return None

        if candidate == start:
            return hull
        hull.append(candidate)
        pool.remove(candidate)
        prev_dir = (candidate[0] - current[0], candidate[1] - current[1])
        current = candidate


class ConcaveHullOrderer(RingOrderer):
    """k-nearest-neighbour concave hull.

    From the leftmost point the walk picks, among the ``k`` nearest unused
    points, the one with the smallest signed turn relative to the previous
    edge whose new edge does not cross the ring built so far. A dead end or a
    non-simple result retries with ``k + 1`` up to ``max_k``.

    Concavities survive only where the input is dense relative to ``k``. When
    ``k`` reaches every remaining point, as on a ring simplified down to a
    handful of vertices, the smallest turn is always the outermost one and
    the walk reproduces the convex hull. Lower ``epsilon`` to keep notches.
    """

    strategy = HullStrategy.CONCAVE

    def __init__(self, k: int = 5, max_k: int = 25):
        self.k = max(k, MIN_K)
        self.max_k = max(max_k, self.k)

    def _order(self, pool):
        n = len(pool)
        limit = min(self.max_k, n - 1)
        first = min(self.k, limit)
        for k in range(first, limit + 1):
            ring = _concave_walk(list(pool), k)
            if ring is not None and len(ring) >= 3 and is_simple_ring(ring):
                if k != first:
                    log.debug("Concave hull closed with k=%d after retries", k)
                return ring
            log.debug("Concave hull dead end with k=%d", k)
        raise DegenerateOrderingError(self.strategy.value, f"no simple ring for k in [{first}, {limit}]")


class NearestNeighborOrderer(RingOrderer):
    """Greedy nearest-neighbour chain from the first point."""

    strategy = HullStrategy.NEAREST

    def _order(self, pool):
        current = pool.pop(0)
        chain = [current]
        while pool:
            nearest = min(pool, key=lambda p: _dist2(current, p))
            pool.remove(nearest)
            chain.append(nearest)
            current = nearest
        if not is_simple_ring(chain):
            raise DegenerateOrderingError(self.strategy.value, "chain intersects itself")
        return chain


ORDERERS = {
    HullStrategy.CONVEX: ConvexHullOrderer,
    HullStrategy.GIFT_WRAP: GiftWrapOrderer,
    HullStrategy.CONCAVE: ConcaveHullOrderer,
    HullStrategy.NEAREST: NearestNeighborOrderer,
}


def make_orderer(strategy: HullStrategy, k: int = 5, max_k: int = 25) -> RingOrderer:
    strategy = HullStrategy(strategy)
    if strategy is HullStrategy.CONCAVE:
        return ConcaveHullOrderer(k, max_k)
    return ORDERERS[strategy]()


def finalize_ring(points, strategy: str = "ring") -> np.ndarray:
    """Drop repeated and collinear vertices and wind the ring counter-clockwise.

    Raises:
        DegenerateOrderingError: fewer than 3 vertices remain or the area is zero.
    """
    ring: list[Point] = []
    for x, y in np.asarray(points, dtype=float).reshape(-1, 2):
        p = (float(x), float(y))
        if not ring or p != ring[-1]:
            ring.append(p)
    while len(ring) > 1 and ring[0] == ring[-1]:
        ring.pop()

    removed = True
    while removed and len(ring) >= 3:
        removed = False
        for i in range(len(ring)):
            prev, cur, nxt = ring[i - 1], ring[i], ring[(i + 1) % len(ring)]
            scale = math.sqrt(_dist2(prev, cur) * _dist2(cur, nxt))
            if abs(cross(prev, cur, nxt)) <= COLLINEAR_TOLERANCE * max(scale, 1.0):
                del ring[i]
                removed = True
                break

    if len(ring) < 3:
        raise DegenerateOrderingError(strategy, f"only {len(ring)} points survive ordering")
    area = signed_area(ring)
    if abs(area) <= COLLINEAR_TOLERANCE:
        raise DegenerateOrderingError(strategy, "ring has zero area")
    if area < 0:
        ring.reverse()
    return np.asarray(ring, dtype=float)


def order_ring(points, strategy: HullStrategy = HullStrategy.CONCAVE,
               k: int = 5, max_k: int = 25) -> tuple[np.ndarray, HullStrategy]:
    """Order ``points`` into a simple counter-clockwise ring.

    Returns the ring and the strategy that produced it. A failing non-convex
    strategy falls back to the convex hull once; if that also degenerates the
    :class:`DegenerateOrderingError` propagates.
    """
    strategy = HullStrategy(strategy)
    try:
        ring = make_orderer(strategy, k, max_k).order(points)
        return finalize_ring(ring, strategy.value), strategy
    except DegenerateOrderingError as e:
        if strategy is HullStrategy.CONVEX:
            raise
        log.warning("%s; falling back to convex hull", e)

    ring = ConvexHullOrderer().order(points)
    return finalize_ring(ring, HullStrategy.CONVEX.value), HullStrategy.CONVEX
