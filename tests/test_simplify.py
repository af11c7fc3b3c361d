import numpy as np
import cv2
import pytest
from shapely.geometry import LinearRing, Point

from stoneforge.mask import PixelMask
from stoneforge.simplify import perpendicular_distance, ramer_douglas_peucker, simplify_ring
from stoneforge.trace import trace_contour


def square_contour():
    """Trace the border of a filled 10x10 square"""
    mask = np.zeros((12, 12), dtype=np.uint8)
    cv2.rectangle(mask, (0, 0), (9, 9), 255, -1)
    return trace_contour(PixelMask.from_array(mask))


def disk_contour():
    """Trace the border of a filled disk of radius 20"""
    mask = np.zeros((101, 101), dtype=np.uint8)
    cv2.circle(mask, (50, 50), 20, 255, -1)
    return trace_contour(PixelMask.from_array(mask))


class TestPerpendicularDistance:
    """Test point-to-line distance"""

    def test_distance(self):
        assert perpendicular_distance((0, 0), (10, 0), (5, 3)) == pytest.approx(3.0)

    def test_distance_beyond_segment(self):
        """Test the distance is to the infinite line"""
        assert perpendicular_distance((0, 0), (10, 0), (20, -4)) == pytest.approx(4.0)

    def test_zero_base(self):
        """Test coincident line points fall back to point distance"""
        assert perpendicular_distance((1, 1), (1, 1), (4, 5)) == pytest.approx(5.0)


class TestRamerDouglasPeucker:
    """Test open chain simplification"""

    def test_collinear(self):
        """Test collinear points reduce to the endpoints"""
        pts = [(0, 0), (1, 0), (2, 0), (3, 0), (4, 0)]
        assert ramer_douglas_peucker(pts, 0.5).tolist() == [[0, 0], [4, 0]]

    def test_tie_goes_to_lowest_index(self):
        """Test equally distant points keep the earlier one"""
        pts = [(0, 0), (1, 1), (2, 1), (3, 0)]
        assert ramer_douglas_peucker(pts, 0.9).tolist() == [[0, 0], [1, 1], [3, 0]]

    def test_duplicate_endpoint(self):
        """Test a closing point equal to the first is dropped"""
        pts = [(0, 0), (5, 0), (5, 5), (0, 0)]
        assert ramer_douglas_peucker(pts, 1.0).tolist() == [[0, 0], [5, 0], [5, 5]]

    def test_short_input(self):
        """Test fewer than three points come back unchanged"""
        pts = np.array([[0.0, 0.0], [3.0, 4.0]])
        out = ramer_douglas_peucker(pts, 1.0)
        assert np.array_equal(out, pts)
        assert out is not pts

    @pytest.mark.parametrize("epsilon", [0, -1.0])
    def test_non_positive_epsilon(self, epsilon):
        """Test the tolerance must be positive"""
        with pytest.raises(ValueError):
            ramer_douglas_peucker([(0, 0), (1, 1), (2, 0)], epsilon)

    def test_keeps_endpoints(self):
        """Test the chain endpoints survive and every kept point comes from the input"""
        contour = disk_contour()
        out = ramer_douglas_peucker(contour, 1.5)
        assert np.array_equal(out[0], contour[0])
        assert np.array_equal(out[-1], contour[-1])
        traced = {tuple(p) for p in contour.tolist()}
        assert all(tuple(p) in traced for p in out.tolist())


class TestSimplifyRing:
    """Test closed contour simplification"""

    def test_square_corners(self):
        """Test the traced square reduces to its four corners"""
        out = simplify_ring(square_contour(), 0.5)
        assert out.tolist() == [[0, 0], [9, 0], [9, 9], [0, 9]]

    def test_points_within_epsilon(self):
        """Test every traced point lies within epsilon of the simplified ring"""
        contour = disk_contour()
        epsilon = 1.0
        ring = LinearRing(simplify_ring(contour, epsilon))
        for p in contour:
            assert ring.distance(Point(p)) <= epsilon + 1e-9

    def test_fewer_points_for_larger_epsilon(self):
        contour = disk_contour()
        assert len(simplify_ring(contour, 3.0)) < len(simplify_ring(contour, 1.0)) < len(contour)

    def test_non_positive_epsilon(self):
        with pytest.raises(ValueError):
            simplify_ring(square_contour(), 0.0)
