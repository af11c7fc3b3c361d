"""Live preview polyline of the ordered ring, owned by the caller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class PreviewPolyline:
    """Closed world-space polyline; the last point repeats the first."""
    points: np.ndarray
    width: float = 0.05

    @property
    def point_count(self) -> int:
        return len(self.points)


def build_preview(ring, scale: float = 0.04, offset=(-3.0, 0.0, -1.0), width: float = 0.05) -> PreviewPolyline:
    """Map ring points to ``(x * scale + ox, y * scale + oy, oz)`` and close the loop."""
    ring = np.asarray(ring, dtype=float).reshape(-1, 2)
    if len(ring) == 0:
        raise ValueError("Cannot preview an empty ring")
    ox, oy, oz = offset
    pts = np.column_stack([ring[:, 0] * scale + ox, ring[:, 1] * scale + oy, np.full(len(ring), oz)])
    pts = np.vstack([pts, pts[:1]])
    pts.setflags(write=False)
    return PreviewPolyline(points=pts, width=width)


class PreviewSlot:
    """Holds the preview currently shown; publishing replaces it.

    Callers publish only after a successful run, so a failed run leaves the
    previous preview in place.
    """

    def __init__(self):
        self._current: Optional[PreviewPolyline] = None

    @property
    def current(self) -> Optional[PreviewPolyline]:
        return self._current

    def publish(self, preview: PreviewPolyline) -> Optional[PreviewPolyline]:
        """Show ``preview`` and return the one it replaced."""
        previous, self._current = self._current, preview
        return previous

    def clear(self) -> Optional[PreviewPolyline]:
        previous, self._current = self._current, None
        return previous
