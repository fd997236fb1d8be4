"""
Region partitioning.

Splits a triangle set into maximal connected components ("decoupled
groupings") under shared-edge or shared-vertex adjacency, and derives the
boundary grouping a boundary cycle protects.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional

import numpy as np
from scipy import sparse
from scipy.sparse import csgraph

from .topology import MeshTopologyGraph

if TYPE_CHECKING:
    from .boundary_cycle import BoundaryEdgeCycle


class AdjacencyType(Enum):
    SHARED_EDGES = "shared_edges"
    SHARED_VERTICES = "shared_vertices"


@dataclass(frozen=True)
class DecoupledGrouping:
    """
    A connected set of triangles with their edges and vertices.

    All handle tuples are sorted ascending.
    """
    adjacency: AdjacencyType
    triangles: tuple[int, ...]
    edges: tuple[int, ...]
    vertices: tuple[int, ...]

    @property
    def n_triangles(self) -> int:
        return len(self.triangles)

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    def boundary_edges(self, graph: MeshTopologyGraph) -> list[int]:
        return graph.boundary_edges(self.edges)


@dataclass(frozen=True)
class BoundaryGrouping:
    """
    Boundary edges of a cycle plus the triangles the labeling must not fill.

    Attributes:
        edges: boundary edge handles of the cycle
        triangles: triangles on those edges whose three vertices all lie on boundary edges
        vertices: vertices of `triangles`
    """
    edges: frozenset[int]
    triangles: tuple[int, ...]
    vertices: tuple[int, ...]

    @property
    def n_edges(self) -> int:
        return len(self.edges)


def _grouping_from_triangles(
    graph: MeshTopologyGraph,
    adjacency: AdjacencyType,
    triangles: Iterable[int],
) -> DecoupledGrouping:
    tris = tuple(sorted(int(t) for t in triangles))
    edges: set[int] = set()
    vertices: set[int] = set()
    for t in tris:
        tri = graph.triangles[t]
        edges.update(tri.edges)
        vertices.update(tri.vertices)
    return DecoupledGrouping(
        adjacency=adjacency,
        triangles=tris,
        edges=tuple(sorted(edges)),
        vertices=tuple(sorted(vertices)),
    )


def get_decoupled_groupings(
    graph: MeshTopologyGraph,
    adjacency: AdjacencyType,
    triangles: Optional[Iterable[int]] = None,
) -> list[DecoupledGrouping]:
    """
    Connected components of a triangle subset.

    Args:
        graph: mesh topology
        adjacency: shared-edge or shared-vertex relation between triangles
        triangles: triangle handles to partition (default: every triangle)

    Returns:
        Groupings ordered by their smallest triangle handle.
    """
    if triangles is None:
        subset = np.arange(graph.n_triangles, dtype=np.int64)
    else:
        subset = np.unique(np.fromiter((int(t) for t in triangles), dtype=np.int64))
    m = int(subset.size)
    if m == 0:
        return []

    local = {int(t): i for i, t in enumerate(subset.tolist())}

    # Star-connect every edge's (or vertex's) triangles to the first one.
    if adjacency is AdjacencyType.SHARED_EDGES:
        hubs = (graph.edges[e].triangles for e in range(graph.n_edges))
    elif adjacency is AdjacencyType.SHARED_VERTICES:
        hubs = (graph.triangles_of_vertex(v) for v in range(graph.n_vertices))
    else:
        raise ValueError(f"Unknown adjacency: {adjacency!r}")

    rows: list[int] = []
    cols: list[int] = []
    for incident in hubs:
        members = [local[t] for t in incident if t in local]
        if len(members) < 2:
            continue
        root = members[0]
        for other in members[1:]:
            rows.append(root)
            cols.append(other)

    data = np.ones(len(rows), dtype=np.int8)
    adjacency_matrix = sparse.csr_matrix(
        (data, (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64))),
        shape=(m, m),
    )
    n_components, labels = csgraph.connected_components(adjacency_matrix, directed=False, return_labels=True)

    components: list[list[int]] = [[] for _ in range(int(n_components))]
    for i, label in enumerate(labels.tolist()):
        components[int(label)].append(int(subset[i]))

    groupings = [_grouping_from_triangles(graph, adjacency, comp) for comp in components if comp]
    groupings.sort(key=lambda g: g.triangles[0])
    return groupings


def get_boundary_grouping(
    graph: MeshTopologyGraph,
    grouping: DecoupledGrouping,
    cycle: "BoundaryEdgeCycle",
) -> BoundaryGrouping:
    """
    Boundary grouping of a cycle.

    Only triangles incident to a cycle edge are candidates; a candidate is
    kept when each of its vertices is an endpoint of some cycle edge.
    """
    in_grouping = set(grouping.triangles)
    boundary_vertices: set[int] = set()
    for e in cycle.edges:
        boundary_vertices.update(graph.edge_vertices(e))

    candidates = sorted({t for e in cycle.edges for t in graph.edges[e].triangles if t in in_grouping})
    triangles = tuple(
        t for t in candidates if all(v in boundary_vertices for v in graph.triangles[t].vertices)
    )
    vertices = tuple(sorted({v for t in triangles for v in graph.triangles[t].vertices}))
    return BoundaryGrouping(edges=frozenset(cycle.edges), triangles=triangles, vertices=vertices)
