import numpy as np
import pytest

from stoneforge.preview import PreviewSlot, build_preview

RING = np.array([(0, 0), (100, 0), (100, 50)], dtype=float)


class TestBuildPreview:
    """Test the world-space preview polyline"""

    def test_closed_loop(self):
        preview = build_preview(RING)
        assert preview.point_count == len(RING) + 1
        assert np.array_equal(preview.points[0], preview.points[-1])

    def test_mapping(self):
        preview = build_preview(RING, scale=0.04, offset=(-3.0, 0.0, -1.0))
        assert np.allclose(preview.points[1], [1.0, 0.0, -1.0])
        assert np.allclose(preview.points[2], [1.0, 2.0, -1.0])
        assert np.allclose(preview.points[:, 2], -1.0)
        assert preview.width == 0.05

    def test_points_read_only(self):
        preview = build_preview(RING)
        with pytest.raises(ValueError):
            preview.points[0, 0] = 5.0

    def test_empty_ring(self):
        with pytest.raises(ValueError):
            build_preview(np.empty((0, 2)))


class TestPreviewSlot:
    """Test replace-on-publish semantics"""

    def test_publish_replaces(self):
        slot = PreviewSlot()
        first = build_preview(RING)
        second = build_preview(RING * 2)
        assert slot.publish(first) is None
        assert slot.publish(second) is first
        assert slot.current is second

    def test_clear(self):
        slot = PreviewSlot()
        preview = build_preview(RING)
        slot.publish(preview)
        assert slot.clear() is preview
        assert slot.current is None
