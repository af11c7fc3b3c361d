import numpy as np
import pytest
from unittest.mock import patch

from stoneforge.config import PipelineConfig, UVMode
from stoneforge.errors import DegenerateOrderingError
from stoneforge.hull import cross
from stoneforge.to_3d import (
    SubMesh,
    add_height_noise,
    build_parts,
    extrude,
    scale_layers,
    triangulate_ring,
    vertex_normals,
)

SQUARE = np.array([(0, 0), (10, 0), (10, 10), (0, 10)], dtype=float)
L_RING = np.array([(0, 0), (10, 0), (10, 4), (4, 4), (4, 10), (0, 10)], dtype=float)


def parts_by_name(parts):
    return {p.name: p for p in parts}


def triangle_areas(ring, faces):
    return np.array([cross(ring[a], ring[b], ring[c]) / 2 for a, b, c in faces])


class TestTriangulateRing:
    """Test cap triangulation"""

    def test_convex_fan(self):
        faces = triangulate_ring(SQUARE)
        assert faces.tolist() == [[0, 1, 2], [0, 2, 3]]

    def test_concave_ear_clipping(self):
        """Test a concave ring gives n - 2 triangles covering its area"""
        faces = triangulate_ring(L_RING)
        assert len(faces) == len(L_RING) - 2
        areas = triangle_areas(L_RING, faces)
        assert (areas > 0).all()
        assert areas.sum() == pytest.approx(64.0)

    def test_concave_triangles_counter_clockwise(self):
        """Test earcut output is rewound to match the ring"""
        u_ring = np.array([(0, 0), (10, 0), (10, 10), (7, 10), (7, 3), (3, 3), (3, 10), (0, 10)], dtype=float)
        faces = triangulate_ring(u_ring)
        assert len(faces) == 6
        areas = triangle_areas(u_ring, faces)
        assert (areas > 0).all()
        assert areas.sum() == pytest.approx(100 - 4 * 7)

    def test_incomplete_triangulation(self):
        """Test a ring earcut cannot cover is reported instead of patched over"""
        with patch("stoneforge.to_3d.earcut.triangulate_float64", return_value=np.array([0, 1, 2], dtype=np.uint32)):
            with pytest.raises(DegenerateOrderingError):
                triangulate_ring(L_RING)

    def test_clockwise_ring_rejected(self):
        with pytest.raises(ValueError):
            triangulate_ring(SQUARE[::-1])

    def test_too_few_points(self):
        assert triangulate_ring(SQUARE[:2]).shape == (0, 3)


class TestBuildParts:
    """Test prism construction"""

    def test_square_prism_triangle_count(self):
        """Test 2 top + 2 bottom + 8 side triangles"""
        parts = parts_by_name(build_parts(SQUARE, 10.0))
        assert parts["top"].triangle_count == 2
        assert parts["bottom"].triangle_count == 2
        assert parts["sides"].triangle_count == 8
        assert sum(p.triangle_count for p in parts.values()) == 12

    def test_layers(self):
        parts = parts_by_name(build_parts(SQUARE, 10.0))
        assert (parts["top"].vertices[:, 2] == 10.0).all()
        assert (parts["bottom"].vertices[:, 2] == 0.0).all()
        assert sorted(set(parts["sides"].vertices[:, 2])) == [0.0, 10.0]

    def test_side_winding(self):
        """Test the first side quad of each edge uses b0, b1, t1 then b0, t1, t0"""
        sides = parts_by_name(build_parts(SQUARE, 10.0))["sides"]
        n = len(SQUARE)
        assert sides.faces[:2].tolist() == [[0, 1, n + 1], [0, n + 1, n]]
        assert sides.faces[-2:].tolist() == [[n - 1, 0, n], [n - 1, n, 2 * n - 1]]

    def test_no_bottom(self):
        parts = build_parts(SQUARE, 10.0, bottom_face=False)
        assert [p.name for p in parts] == ["top", "sides"]

    def test_flat_mode(self):
        """Test 2D mode gives a single cap at z = 0"""
        parts = build_parts(L_RING, 10.0, is_3d=False)
        assert len(parts) == 1
        assert parts[0].name == "top"
        assert (parts[0].vertices[:, 2] == 0.0).all()
        assert parts[0].triangle_count == len(L_RING) - 2

    def test_indices_in_bounds(self):
        for part in build_parts(L_RING, 3.0):
            assert part.faces.min() >= 0
            assert part.faces.max() < len(part.vertices)


class TestNormals:
    """Test normals computed from the triangle list"""

    def test_cap_normals(self):
        parts = parts_by_name(build_parts(SQUARE, 10.0))
        assert np.allclose(parts["top"].normals, [0, 0, 1])
        assert np.allclose(parts["bottom"].normals, [0, 0, -1])

    def test_side_normals_point_outward(self):
        sides = parts_by_name(build_parts(SQUARE, 10.0))["sides"]
        outward = sides.vertices[:, :2] - [5.0, 5.0]
        assert ((sides.normals[:, :2] * outward).sum(axis=1) > 0).all()
        assert np.allclose(sides.normals[:, 2], 0)

    def test_submesh_defaults(self):
        part = SubMesh("tri", [[0, 0, 0], [1, 0, 0], [0, 1, 0]], [[0, 1, 2]])
        assert part.uv.tolist() == [[0, 0], [1, 0], [0, 1]]
        assert np.allclose(part.normals, [0, 0, 1])
        assert np.array_equal(part.transform, np.eye(4))


class TestDeformation:
    """Test layer scaling and height noise"""

    def test_scale_top_layer(self):
        parts = build_parts(SQUARE, 10.0)
        scale_layers(parts, (5.0, 5.0), top_scale=0.5)
        named = parts_by_name(parts)
        assert np.allclose(named["top"].vertices[:, :2], [(2.5, 2.5), (7.5, 2.5), (7.5, 7.5), (2.5, 7.5)])
        assert np.allclose(named["bottom"].vertices[:, :2], SQUARE)
        n = len(SQUARE)
        assert np.allclose(named["sides"].vertices[n:, :2], named["top"].vertices[:, :2])
        assert np.allclose(named["sides"].vertices[:n, :2], SQUARE)

    def test_scale_bottom_layer(self):
        parts = build_parts(SQUARE, 10.0)
        scale_layers(parts, (5.0, 5.0), bottom_scale=2.0)
        named = parts_by_name(parts)
        assert np.allclose(named["bottom"].vertices[:, :2], [(-5, -5), (15, -5), (15, 15), (-5, 15)])
        assert np.allclose(named["top"].vertices[:, :2], SQUARE)

    def test_noise_raises_top_layer_only(self):
        parts = build_parts(SQUARE * 3.3, 10.0)
        add_height_noise(parts, noise_scale=0.37, noise_strength=2.0, seed=5)
        named = parts_by_name(parts)
        top_z = named["top"].vertices[:, 2]
        assert ((top_z >= 10.0) & (top_z <= 12.0)).all()
        assert (named["bottom"].vertices[:, 2] == 0.0).all()
        n = len(SQUARE)
        assert np.array_equal(named["sides"].vertices[n:, 2], top_z)
        assert (named["sides"].vertices[:n, 2] == 0.0).all()

    def test_zero_noise_is_noop(self):
        parts = build_parts(SQUARE, 10.0)
        add_height_noise(parts, noise_scale=0.5, noise_strength=0.0)
        assert (parts_by_name(parts)["top"].vertices[:, 2] == 10.0).all()


class TestExtrude:
    """Test the full extrusion pass"""

    def test_default_config(self):
        parts = extrude(SQUARE, PipelineConfig())
        assert sum(p.triangle_count for p in parts) == 12
        for part in parts:
            assert np.array_equal(part.transform, np.eye(4))

    def test_scale_unit_transform(self):
        parts = extrude(SQUARE, PipelineConfig(scale_unit=0.5))
        for part in parts:
            assert np.allclose(np.diag(part.transform), [0.5, 0.5, 0.5, 1.0])
            # local vertices stay in pixel units
            assert part.vertices[:, :2].max() == 10.0

    def test_normals_follow_deformation(self):
        config = PipelineConfig(top_scale=0.6, noise_scale=0.2, noise_strength=1.5, noise_seed=3)
        for part in extrude(L_RING, config):
            assert np.allclose(part.normals, vertex_normals(part.vertices, part.faces))

    def test_perimeter_uvs_on_sides(self):
        sides = parts_by_name(extrude(SQUARE, PipelineConfig(uv_mode=UVMode.PERIMETER)))["sides"]
        assert sides.uv[:, 0].sum() == pytest.approx(1.0)
        assert ((sides.uv[:, 0] >= 0) & (sides.uv[:, 0] <= 1)).all()
        n = len(SQUARE)
        assert np.allclose(sides.uv[:n, 1], 0.0)
        assert np.allclose(sides.uv[n:, 1], 1.0)

    def test_planar_uvs(self):
        for part in extrude(SQUARE, PipelineConfig(uv_mode="planar")):
            assert np.array_equal(part.uv, part.vertices[:, :2])

    def test_box_uvs(self):
        parts = parts_by_name(extrude(SQUARE, PipelineConfig(uv_mode=UVMode.BOX)))
        top = parts["top"]
        assert np.array_equal(top.uv, top.vertices[:, :2])

    def test_flat_config(self):
        parts = extrude(SQUARE, PipelineConfig(is_3d=False))
        assert len(parts) == 1
        assert parts[0].triangle_count == 2
