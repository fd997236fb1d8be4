"""
Mesh Topology Module
Vertex / edge / triangle adjacency built once from a raw triangle list.

Edges and triangles are stored in flat arenas and referenced by integer
handle. An edge is keyed by its canonical `(min, max)` vertex pair, so
triangles that use the same vertex pair in either winding share one edge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Any, Iterable, Optional, Sequence

import numpy as np

from .logging_utils import WarningSink, warning_sink

_LOGGER = logging.getLogger(__name__)

TRIANGLES_TOPOLOGY = "triangles"


class WireLabelError(RuntimeError):
    """Base class for structural failures while generating wireframe labels."""


class TopologyError(WireLabelError):
    """Raised when mesh connectivity is physically impossible for labeling."""


@dataclass
class Edge:
    """
    Canonical edge (first <= second) and the triangles using it.

    `triangles` is a multiset: a triangle listed twice in the input shows up
    twice here.
    """
    first: int
    second: int
    triangles: list[int] = field(default_factory=list)

    @property
    def vertices(self) -> tuple[int, int]:
        return self.first, self.second

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    @property
    def is_boundary(self) -> bool:
        return len(self.triangles) == 1

    @property
    def is_non_manifold(self) -> bool:
        return len(self.triangles) > 2


@dataclass
class Triangle:
    """
    Attributes:
        vertices: vertex indices in input winding order
        edges: edge handles (v0-v1, v1-v2, v2-v0)
        submesh: index of the submesh the triangle came from
        connected_edges: edges touching a vertex of this triangle that are not its own
    """
    vertices: tuple[int, int, int]
    edges: tuple[int, int, int]
    submesh: int = 0
    connected_edges: tuple[int, ...] = ()


def _submesh_buffer(submesh: Any) -> tuple[np.ndarray, str]:
    indices = getattr(submesh, "indices", submesh)
    topology = str(getattr(submesh, "topology", TRIANGLES_TOPOLOGY) or TRIANGLES_TOPOLOGY)
    return np.asarray(indices).reshape(-1), topology.strip().lower()


class MeshTopologyGraph:
    """
    Topology graph of a triangle mesh.

    Args:
        vertices: (N, 3) vertex positions
        submeshes: index buffers, either `Submesh`-like objects (`indices`,
            `topology`) or flat / (M, 3) integer arrays
        raise_warning: sink for non-fatal diagnostics (skipped submeshes,
            degenerate triangles); defaults to this module's logger

    Raises:
        ValueError: a triangle buffer length is not a multiple of 3 or an
            index is outside the vertex range
    """

    def __init__(
        self,
        vertices: np.ndarray,
        submeshes: Sequence[Any],
        *,
        raise_warning: Optional[WarningSink] = None,
    ):
        warn = raise_warning or warning_sink(_LOGGER)

        verts = np.asarray(vertices, dtype=np.float64)
        if verts.size == 0:
            verts = np.zeros((0, 3), dtype=np.float64)
        if verts.ndim != 2 or verts.shape[1] != 3:
            raise ValueError(f"vertices must be (N, 3), got {verts.shape}")
        self.vertices = verts

        n_vertices = int(verts.shape[0])
        self.edges: list[Edge] = []
        self.triangles: list[Triangle] = []
        self._edge_lookup: dict[tuple[int, int], int] = {}
        self._vertex_edges: list[list[int]] = [[] for _ in range(n_vertices)]
        self._vertex_triangles: list[list[int]] = [[] for _ in range(n_vertices)]

        for submesh_index, submesh in enumerate(submeshes):
            indices, topology = _submesh_buffer(submesh)
            if topology != TRIANGLES_TOPOLOGY:
                warn(f"Submesh {submesh_index} has topology '{topology}', only triangles are supported; skipped.")
                continue
            self._add_triangle_buffer(submesh_index, indices, warn)

        for triangle in self.triangles:
            own = set(triangle.edges)
            connected: set[int] = set()
            for v in triangle.vertices:
                connected.update(self._vertex_edges[v])
            triangle.connected_edges = tuple(sorted(connected - own))

    @classmethod
    def from_faces(
        cls,
        vertices: np.ndarray,
        faces: np.ndarray,
        *,
        raise_warning: Optional[WarningSink] = None,
    ) -> "MeshTopologyGraph":
        """Graph of a single triangle submesh given as an (M, 3) array."""
        return cls(vertices, [np.asarray(faces).reshape(-1)], raise_warning=raise_warning)

    @classmethod
    def from_mesh(cls, mesh: Any, *, raise_warning: Optional[WarningSink] = None) -> "MeshTopologyGraph":
        """Graph of a `MeshData` (or anything with `vertices` and `submeshes`)."""
        return cls(mesh.vertices, list(mesh.submeshes), raise_warning=raise_warning)

    def _add_triangle_buffer(self, submesh_index: int, indices: np.ndarray, warn: WarningSink) -> None:
        if indices.size % 3 != 0:
            raise ValueError(
                f"Submesh {submesh_index}: triangle index buffer length {indices.size} is not a multiple of 3"
            )
        if indices.size == 0:
            return
        if not np.issubdtype(indices.dtype, np.integer):
            raise ValueError(f"Submesh {submesh_index}: triangle indices must be integers")

        n_vertices = self.n_vertices
        lo = int(indices.min())
        hi = int(indices.max())
        if lo < 0 or hi >= n_vertices:
            raise ValueError(
                f"Submesh {submesh_index}: triangle index out of range [0, {n_vertices}) "
                f"(min={lo}, max={hi})"
            )

        degenerate = 0
        for a, b, c in indices.reshape(-1, 3).tolist():
            if a == b or b == c or a == c:
                degenerate += 1
                continue
            self._add_triangle((int(a), int(b), int(c)), submesh_index)

        if degenerate:
            warn(f"Submesh {submesh_index}: skipped {degenerate} degenerate triangle(s) with repeated vertices.")

    def _add_triangle(self, vertices: tuple[int, int, int], submesh_index: int) -> None:
        tri_id = len(self.triangles)
        a, b, c = vertices
        edge_ids = (
            self._get_or_add_edge(a, b),
            self._get_or_add_edge(b, c),
            self._get_or_add_edge(c, a),
        )
        for e in edge_ids:
            self.edges[e].triangles.append(tri_id)
        for v in vertices:
            self._vertex_triangles[v].append(tri_id)
        self.triangles.append(Triangle(vertices=vertices, edges=edge_ids, submesh=submesh_index))

    def _get_or_add_edge(self, u: int, v: int) -> int:
        key = (u, v) if u <= v else (v, u)
        edge_id = self._edge_lookup.get(key)
        if edge_id is None:
            edge_id = len(self.edges)
            self._edge_lookup[key] = edge_id
            self.edges.append(Edge(first=key[0], second=key[1]))
            self._vertex_edges[key[0]].append(edge_id)
            self._vertex_edges[key[1]].append(edge_id)
        return edge_id

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    @property
    def n_triangles(self) -> int:
        return len(self.triangles)

    def edge(self, edge_id: int) -> Edge:
        return self.edges[int(edge_id)]

    def triangle(self, tri_id: int) -> Triangle:
        return self.triangles[int(tri_id)]

    def find_edge(self, u: int, v: int) -> Optional[int]:
        """Handle of the edge between `u` and `v`, or None."""
        u, v = int(u), int(v)
        return self._edge_lookup.get((u, v) if u <= v else (v, u))

    def edge_vertices(self, edge_id: int) -> tuple[int, int]:
        e = self.edges[int(edge_id)]
        return e.first, e.second

    def triangle_count(self, edge_id: int) -> int:
        return len(self.edges[int(edge_id)].triangles)

    def edges_of_vertex(self, vertex: int) -> tuple[int, ...]:
        return tuple(self._vertex_edges[int(vertex)])

    def triangles_of_vertex(self, vertex: int) -> tuple[int, ...]:
        return tuple(self._vertex_triangles[int(vertex)])

    def shared_vertex(self, a: int, b: int) -> Optional[int]:
        """Vertex common to edges `a` and `b` (None if they are disjoint)."""
        ea = self.edges[int(a)]
        eb = self.edges[int(b)]
        if ea.first in (eb.first, eb.second):
            return ea.first
        if ea.second in (eb.first, eb.second):
            return ea.second
        return None

    def shared_triangles(self, a: int, b: int) -> list[int]:
        """Triangle handles incident to both edges (sorted, unique)."""
        tb = set(self.edges[int(b)].triangles)
        return sorted({t for t in self.edges[int(a)].triangles if t in tb})

    def boundary_edges(self, edge_ids: Optional[Iterable[int]] = None) -> list[int]:
        """Edges with exactly one triangle, in ascending handle order."""
        ids = range(self.n_edges) if edge_ids is None else edge_ids
        return sorted(int(e) for e in ids if len(self.edges[int(e)].triangles) == 1)

    def edge_direction(self, edge_id: int) -> np.ndarray:
        """Normalized `second - first`; zero vector when the edge has no length."""
        e = self.edges[int(edge_id)]
        n = self.n_vertices
        if not (0 <= e.first < n and 0 <= e.second < n):
            return np.zeros(3, dtype=np.float64)
        d = self.vertices[e.second] - self.vertices[e.first]
        length = float(np.linalg.norm(d))
        if not math.isfinite(length) or length < 1e-12:
            return np.zeros(3, dtype=np.float64)
        return d / length

    def edge_angle_degrees(self, a: int, b: int) -> float:
        """
        Angle between two edges' directions, folded into [0, 90].

        Edge direction sign depends only on vertex order, so 10 and 170
        degrees describe the same pair of lines.
        """
        da = self.edge_direction(a)
        db = self.edge_direction(b)
        if not np.any(da) or not np.any(db):
            return 0.0
        cos_angle = float(np.clip(np.dot(da, db), -1.0, 1.0))
        angle = math.degrees(math.acos(cos_angle))
        return min(angle, 180.0 - angle)
