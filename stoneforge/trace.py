"""Boundary following over a :class:`~stoneforge.mask.PixelMask`."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .errors import TracingBoundExceeded
from .mask import PixelMask

log = logging.getLogger('stoneforge.trace')

# (dx, dy) in rotation order: right, down, left, up (image rows grow downward)
DIRECTIONS = ((1, 0), (0, 1), (-1, 0), (0, -1))

TRACE_STEP_FACTOR = 4
MIN_TRACE_STEPS = 8


def max_trace_steps(mask: PixelMask, factor: int = TRACE_STEP_FACTOR) -> int:
    """Step budget: ``factor`` times the perimeter of the foreground bounding box."""
    bbox = mask.bounding_box()
    if bbox is None:
        return 0
    x0, y0, x1, y1 = bbox
    perimeter = 2 * ((x1 - x0 + 1) + (y1 - y0 + 1))
    return max(factor * perimeter, MIN_TRACE_STEPS)


def _boundary_start(mask: PixelMask, start: tuple[int, int]) -> tuple[int, int]:
    x, y = int(start[0]), int(start[1])
    if not mask.is_foreground(x, y):
        raise ValueError(f"Start pixel {(x, y)} is not foreground")
    while mask.is_foreground(x, y - 1):
        y -= 1
    return x, y


def trace_contour(mask: PixelMask, start: Optional[tuple[int, int]] = None,
                  step_factor: int = TRACE_STEP_FACTOR) -> np.ndarray:
    """Walk the outer boundary of the blob containing ``start``.

    Without ``start`` the walk begins at the first foreground pixel of a
    row-major scan. A given start is moved up to the boundary pixel of its
    column. Each step first swings the facing one quarter turn back toward
    the outside, then tries to advance, rotating clockwise up to four times
    until the target cell is foreground. The walk ends back at the start
    pixel, once it is about to leave it in the same direction as the first
    move. A start pixel that joins a thin feature to the rest of the blob is
    therefore passed through and the whole outline is traced.

    Returns an ``(N, 2)`` float array of ``(x, y)`` pixel coordinates with no
    equal consecutive points, or an empty ``(0, 2)`` array when the mask has
    no foreground.

    Raises:
        TracingBoundExceeded: the walk did not close within
            :func:`max_trace_steps` moves.
    """
    if start is None:
        start = mask.first_foreground()
        if start is None:
            log.debug("No foreground in %r", mask)
            return np.empty((0, 2), dtype=float)
    else:
        start = _boundary_start(mask, start)

    data = mask.data
    width, height = mask.width, mask.height
    max_steps = max_trace_steps(mask, step_factor)

    x, y = start
    facing = 0
    first_facing = None
    points = [start]
    # one extra iteration for the exit check made on returning to start
    for _ in range(max_steps + 1):
        facing = (facing + 3) % 4
        for _ in range(4):
            dx, dy = DIRECTIONS[facing]
            nx, ny = x + dx, y + dy
            if 0 <= nx < width and 0 <= ny < height and data[ny, nx]:
                break
            facing = (facing + 1) % 4
        else:
            # isolated pixel, nowhere to go
            return np.asarray(points, dtype=float)

        if (x, y) == start:
            if first_facing is None:
                first_facing = facing
            elif facing == first_facing:
                points.pop()
                log.debug("Contour closed after %d points", len(points))
                return np.asarray(points, dtype=float)
        x, y = nx, ny
        points.append((x, y))

    raise TracingBoundExceeded(start, max_steps)
