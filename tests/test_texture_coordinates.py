import unittest

import numpy as np
import pytest

from mesh_examples import (
    annulus,
    bowtie,
    circle_fan,
    corner_touching_grid,
    cube_with_separate_faces,
    cube_without_seams,
    polygon_fan,
    quad,
)
from wirelabel.core.edge_groups import CyclicEdgeGroup
from wirelabel.core.labels import TextureLabel
from wirelabel.core.runtime_defaults import DEFAULTS
from wirelabel.core.texture_coordinates import (
    REGION_CLOSED,
    REGION_CYCLE,
    REGION_FALLBACK,
    REGION_TIMEOUT,
    WireframeTextureCoordinateGenerator,
    components_for_label,
    encode_edge_group_uvs,
    generate_wireframe_texture_coordinates,
)
from wirelabel.core.topology import MeshTopologyGraph


def _decoded_bits(uvs):
    """Label mask per vertex read back from one-hot coordinates."""
    uvs = np.asarray(uvs)
    bits = np.zeros(uvs.shape[0], dtype=np.uint8)
    for component in range(min(3, uvs.shape[1])):
        bits |= (uvs[:, component] == 1.0).astype(np.uint8) << component
    if uvs.shape[1] == 4:
        bits |= (uvs[:, 3] == 0.0).astype(np.uint8) << 3
    return bits


def _assert_no_filled_triangle(mesh, state):
    for a, b, c in mesh.faces:
        assert state.labels_of(a) & state.labels_of(b) & state.labels_of(c) == 0


class FakeClock:
    def __init__(self, step=1.0):
        self.now = 0.0
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


class TestEncodeEdgeGroupUvs(unittest.TestCase):
    def setUp(self):
        self.graph = MeshTopologyGraph.from_mesh(quad())
        self.bottom = self.graph.find_edge(0, 1)

    def test_components_for_label(self):
        self.assertEqual(components_for_label(TextureLabel.NONE), 2)
        self.assertEqual(components_for_label(TextureLabel.FIRST), 2)
        self.assertEqual(components_for_label(TextureLabel.SECOND), 2)
        self.assertEqual(components_for_label(TextureLabel.THIRD), 3)
        self.assertEqual(components_for_label(TextureLabel.FOURTH), 4)

    def test_fourth_label_is_stored_as_zero_w(self):
        groups = [CyclicEdgeGroup(edges=(self.bottom,), label=TextureLabel.FOURTH)]
        uvs = encode_edge_group_uvs(groups, self.graph, 4, 4)
        np.testing.assert_allclose(uvs[:, 3], [0.0, 0.0, 1.0, 1.0])
        np.testing.assert_allclose(uvs[:, :3], 0.0)

    def test_one_hot_components(self):
        groups = [
            CyclicEdgeGroup(edges=(self.bottom,), label=TextureLabel.FIRST),
            CyclicEdgeGroup(edges=(self.graph.find_edge(2, 3),), label=TextureLabel.THIRD),
        ]
        uvs = encode_edge_group_uvs(groups, self.graph, 4, 3)
        np.testing.assert_allclose(uvs, [[1, 0, 0], [1, 0, 0], [0, 0, 1], [0, 0, 1]])

    def test_existing_coordinates_are_kept_and_padded(self):
        existing = np.full((3, 2), 0.25)
        groups = [CyclicEdgeGroup(edges=(self.bottom,), label=TextureLabel.SECOND)]
        uvs = encode_edge_group_uvs(groups, self.graph, 4, 4, existing)
        np.testing.assert_allclose(
            uvs,
            [
                [0.25, 1.0, 0.0, 1.0],
                [0.25, 1.0, 0.0, 1.0],
                [0.25, 0.25, 0.0, 1.0],
                [0.0, 0.0, 0.0, 1.0],
            ],
        )

    def test_existing_coordinates_are_truncated(self):
        existing = np.arange(16, dtype=np.float64).reshape(4, 4)
        uvs = encode_edge_group_uvs([], self.graph, 4, 2, existing)
        np.testing.assert_allclose(uvs, existing[:, :2])

    def test_label_must_fit_components(self):
        groups = [CyclicEdgeGroup(edges=(self.bottom,), label=TextureLabel.THIRD)]
        with self.assertRaises(ValueError):
            encode_edge_group_uvs(groups, self.graph, 4, 2)
        with self.assertRaises(ValueError):
            encode_edge_group_uvs([], self.graph, 4, 5)


class TestGenerate(unittest.TestCase):
    def test_quad_uses_four_components(self):
        mesh = quad()
        result = generate_wireframe_texture_coordinates(mesh, channel=2, angle_cutoff_degrees=10.0)
        self.assertEqual(result.channel, 2)
        self.assertEqual(result.components, 4)
        self.assertEqual(result.max_label, TextureLabel.FOURTH)
        self.assertIs(mesh.uv_channels[2], result.uvs)
        np.testing.assert_array_equal(_decoded_bits(result.uvs), result.state.bits)
        self.assertEqual([r.kind for r in result.regions], [REGION_CYCLE])
        _assert_no_filled_triangle(mesh, result.state)

    def test_default_channel(self):
        mesh = circle_fan(8)
        result = WireframeTextureCoordinateGenerator().generate(mesh)
        self.assertEqual(result.channel, DEFAULTS.uv_channel)
        self.assertIn(DEFAULTS.uv_channel, mesh.uv_channels)

    def test_closed_cube_gets_no_labels(self):
        mesh = cube_without_seams()
        result = generate_wireframe_texture_coordinates(mesh, channel=0, angle_cutoff_degrees=10.0)
        self.assertEqual(result.components, 2)
        self.assertEqual(result.edge_groups, [])
        self.assertEqual([r.kind for r in result.regions], [REGION_CLOSED])
        np.testing.assert_allclose(result.uvs, np.zeros((8, 2)))

    def test_cube_with_separate_faces(self):
        mesh = cube_with_separate_faces()
        result = generate_wireframe_texture_coordinates(mesh, channel=1, angle_cutoff_degrees=10.0)
        self.assertEqual(len(result.regions), 6)
        self.assertEqual({r.super_region for r in result.regions}, set(range(6)))
        self.assertTrue(all(r.kind == REGION_CYCLE and r.n_groups == 4 for r in result.regions))
        for r in result.regions:
            self.assertEqual(len(r.labels), 4)
        self.assertEqual(result.components, 4)
        np.testing.assert_array_equal(_decoded_bits(result.uvs), result.state.bits)
        _assert_no_filled_triangle(mesh, result.state)

    def test_cube_labels_do_not_depend_on_face_order(self):
        reference = generate_wireframe_texture_coordinates(cube_with_separate_faces(), angle_cutoff_degrees=10.0)
        for order in ([5, 4, 3, 2, 1, 0], [2, 0, 4, 1, 5, 3]):
            mesh = cube_with_separate_faces(face_order=order)
            result = generate_wireframe_texture_coordinates(mesh, angle_cutoff_degrees=10.0)
            self.assertEqual(
                sorted((r.n_groups, r.labels) for r in result.regions),
                sorted((r.n_groups, r.labels) for r in reference.regions),
            )
            self.assertEqual(result.components, reference.components)
            self.assertEqual(
                sorted(bin(int(b)).count("1") for b in result.state.bits),
                sorted(bin(int(b)).count("1") for b in reference.state.bits),
            )
            _assert_no_filled_triangle(mesh, result.state)

    def test_regions_touching_at_corners_keep_every_triangle_open(self):
        mesh = corner_touching_grid()
        result = generate_wireframe_texture_coordinates(mesh, angle_cutoff_degrees=10.0)
        self.assertEqual([r.kind for r in result.regions], [REGION_CYCLE] * 4)
        self.assertEqual(sorted(r.n_triangles for r in result.regions), [1, 1, 3, 16])
        # Vertex 12 keeps the two labels of the lone triangle (7, 13, 12).
        self.assertEqual(bin(int(result.state.labels_of(12))).count("1"), 2)
        np.testing.assert_array_equal(_decoded_bits(result.uvs), result.state.bits)
        _assert_no_filled_triangle(mesh, result.state)


def test_circle_fan_rim_gets_both_labels():
    mesh = circle_fan(32)
    result = generate_wireframe_texture_coordinates(mesh, channel=3, angle_cutoff_degrees=10.0)
    assert result.components == 2
    np.testing.assert_allclose(result.uvs[0], [0.0, 0.0])
    np.testing.assert_allclose(result.uvs[1:], np.ones((32, 2)))


def test_smooth_circle_keeps_existing_second_component():
    mesh = circle_fan(32)
    mesh.uv_channels[3] = np.full((33, 2), 0.5)
    result = generate_wireframe_texture_coordinates(mesh, channel=3, angle_cutoff_degrees=89.0)
    assert result.components == 2
    np.testing.assert_allclose(result.uvs[0], [0.5, 0.5])
    np.testing.assert_allclose(result.uvs[1:, 0], 1.0)
    np.testing.assert_allclose(result.uvs[1:, 1], 0.5)


def test_bowtie_second_region_reuses_shared_vertex_labels():
    mesh = bowtie()
    result = generate_wireframe_texture_coordinates(mesh, channel=0, angle_cutoff_degrees=10.0)
    assert [r.kind for r in result.regions] == [REGION_CYCLE, REGION_CYCLE]
    assert [r.first_triangle for r in result.regions] == [0, 1]
    assert bin(result.state.labels_of(0)).count("1") == 2
    assert result.components == 3
    _assert_no_filled_triangle(mesh, result.state)


def test_annulus_uses_fallback_with_warning():
    mesh = annulus()
    seen = []
    result = generate_wireframe_texture_coordinates(mesh, channel=0, angle_cutoff_degrees=10.0, raise_warning=seen.append)
    assert [r.kind for r in result.regions] == [REGION_FALLBACK]
    assert result.warnings == seen
    assert any("do not form a single loop" in w for w in result.warnings)
    assert result.components == 2
    np.testing.assert_allclose(result.uvs[:, 0], 1.0)
    np.testing.assert_allclose(result.uvs[:, 1], 0.0)


def test_timeout_leaves_region_unlabeled():
    mesh = polygon_fan(10)
    result = generate_wireframe_texture_coordinates(
        mesh,
        channel=0,
        angle_cutoff_degrees=10.0,
        timeout_seconds=0.5,
        clock=FakeClock(),
    )
    assert [r.kind for r in result.regions] == [REGION_TIMEOUT]
    assert result.edge_groups == []
    assert any("no texture labels were assignable" in w for w in result.warnings)
    assert result.warnings[0].startswith("region(first_triangle=0, triangles=8): ")
    np.testing.assert_allclose(result.uvs, np.zeros((10, 2)))


def test_summary():
    result = generate_wireframe_texture_coordinates(quad(), channel=0, angle_cutoff_degrees=10.0)
    summary = result.summary()
    assert summary["components"] == 4
    assert summary["max_label"] == 4
    assert summary["n_regions"] == 1
    assert summary["n_edge_groups"] == 4
    assert summary["region_kinds"] == {REGION_CYCLE: 1}
    assert result.regions[0].to_dict()["labels"] == [1, 2, 3, 4]


@pytest.mark.parametrize(
    "channel, angle",
    [(-1, 10.0), (8, 10.0), ("x", 10.0), (0, -1.0), (0, 90.5), (0, float("nan"))],
)
def test_invalid_arguments(channel, angle):
    with pytest.raises(ValueError):
        generate_wireframe_texture_coordinates(quad(), channel=channel, angle_cutoff_degrees=angle)
