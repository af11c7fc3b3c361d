"""Seeded 2D Perlin gradient noise in the [0, 1] range."""

from functools import lru_cache

import numpy as np


@lru_cache(maxsize=16)
def _permutation(seed: int) -> np.ndarray:
    perm = np.random.default_rng(seed).permutation(256)
    table = np.concatenate([perm, perm])
    table.setflags(write=False)
    return table


def _fade(t):
    return t * t * t * (t * (t * 6 - 15) + 10)


def _grad(h, x, y):
    h = h & 3
    u = np.where(h & 1, -x, x)
    v = np.where(h & 2, -y, y)
    return u + v


def perlin(x, y, seed: int = 0):
    """Sample Perlin noise at ``(x, y)``; integer lattice points map to 0.5.

    Accepts scalars or arrays of matching shape and returns the same shape.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    perm = _permutation(int(seed))

    x0 = np.floor(x)
    y0 = np.floor(y)
    xf = x - x0
    yf = y - y0
    xi = x0.astype(np.int64) & 255
    yi = y0.astype(np.int64) & 255

    u = _fade(xf)
    v = _fade(yf)

    aa = perm[perm[xi] + yi]
    ab = perm[perm[xi] + yi + 1]
    ba = perm[perm[xi + 1] + yi]
    bb = perm[perm[xi + 1] + yi + 1]

    x1 = _lerp(_grad(aa, xf, yf), _grad(ba, xf - 1, yf), u)
    x2 = _lerp(_grad(ab, xf, yf - 1), _grad(bb, xf - 1, yf - 1), u)
    n = _lerp(x1, x2, v)
    return np.clip((n + 1) / 2, 0.0, 1.0)


def _lerp(a, b, t):
    return a + t * (b - a)
