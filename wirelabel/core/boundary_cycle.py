"""
Boundary Cycle Module
Orders the boundary edges of a shared-edge grouping into one cycle.

Each step of the walk is classified:
    - SameTriangle: the edge and the next one belong to one triangle
    - EdgeAngle: no common triangle and the angle between them exceeds the cutoff

The cycle is rotated so that position 0 starts right after the first cut.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from .logging_utils import WarningSink, region_label, warning_sink
from .periodic_utils import index_periodic
from .regions import DecoupledGrouping
from .topology import MeshTopologyGraph, TopologyError

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundaryEdgeCycle:
    """
    Attributes:
        edges: boundary edge handles in cycle order
        shared_triangle_indices: positions i where edge i and edge i+1 share a triangle
        angle_difference_indices: (i, angle) where edge i and edge i+1 share no
            triangle and their angle exceeds the cutoff
    """
    edges: tuple[int, ...]
    shared_triangle_indices: tuple[int, ...] = ()
    angle_difference_indices: tuple[tuple[int, float], ...] = ()

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    def rotated(self, shift: int) -> "BoundaryEdgeCycle":
        """Cycle with position `shift` moved to position 0."""
        n = len(self.edges)
        if n == 0 or index_periodic(shift, n) == 0:
            return self
        edges = [0] * n
        for i, e in enumerate(self.edges):
            edges[index_periodic(i - shift, n)] = e
        return BoundaryEdgeCycle(
            edges=tuple(edges),
            shared_triangle_indices=tuple(sorted(index_periodic(i - shift, n) for i in self.shared_triangle_indices)),
            angle_difference_indices=tuple(
                sorted((index_periodic(i - shift, n), a) for i, a in self.angle_difference_indices)
            ),
        )


def _grouping_name(grouping: DecoupledGrouping) -> str:
    first = grouping.triangles[0] if grouping.triangles else -1
    return region_label(first, grouping.n_triangles)


def _edge_name(graph: MeshTopologyGraph, edge_id: int) -> str:
    a, b = graph.edge_vertices(edge_id)
    return f"edge {edge_id} ({a}, {b})"


def get_boundary_edge_cycle(
    grouping: DecoupledGrouping,
    graph: MeshTopologyGraph,
    angle_cutoff_degrees: float,
    raise_warning: Optional[WarningSink] = None,
) -> Optional[BoundaryEdgeCycle]:
    """
    Walk the boundary edges of `grouping` into a single cycle.

    Returns:
        The rotated cycle, or None when the grouping has no boundary edges or
        its boundary edges do not form exactly one simple loop.

    Raises:
        TopologyError: two consecutive boundary edges lie together in more
            than one triangle
    """
    warn = raise_warning or warning_sink(_LOGGER)

    non_manifold = [e for e in grouping.edges if graph.triangle_count(e) > 2]
    if non_manifold:
        shown = ", ".join(_edge_name(graph, e) for e in non_manifold[:8])
        more = f" and {len(non_manifold) - 8} more" if len(non_manifold) > 8 else ""
        warn(
            f"{_grouping_name(grouping)}: some edges belong to more than two triangles "
            f"({shown}{more}). Expected one triangle for boundary edges and two for surface edges."
        )

    boundary = grouping.boundary_edges(graph)
    if not boundary:
        return None

    boundary_set = set(boundary)
    n = len(boundary)
    start = boundary[0]
    current = start
    ordered: list[int] = []
    visited: set[int] = set()
    shared_indices: list[int] = []
    angle_indices: list[tuple[int, float]] = []

    for i in range(n):
        ordered.append(current)
        visited.add(current)

        first, second = graph.edge_vertices(current)
        touching = set(graph.edges_of_vertex(first))
        touching.update(graph.edges_of_vertex(second))
        candidates = sorted(
            e for e in touching
            if e in boundary_set and (e not in visited or (e == start and i == n - 1))
        )

        if len(candidates) > 1 and current != start:
            _LOGGER.debug("%s: boundary splits at %s", _grouping_name(grouping), _edge_name(graph, current))
            return None
        if not candidates:
            _LOGGER.debug("%s: boundary ends at %s", _grouping_name(grouping), _edge_name(graph, current))
            return None

        nxt = candidates[0]
        common = graph.shared_triangles(current, nxt)
        if len(common) > 1:
            raise TopologyError(
                f"{_grouping_name(grouping)}: {_edge_name(graph, current)} and {_edge_name(graph, nxt)} "
                f"are found together in {len(common)} triangles {common}"
            )
        if common:
            shared_indices.append(i)
        else:
            angle = graph.edge_angle_degrees(nxt, current)
            if angle > angle_cutoff_degrees:
                angle_indices.append((i, angle))

        current = nxt

    if current != start:
        return None

    cycle = BoundaryEdgeCycle(
        edges=tuple(ordered),
        shared_triangle_indices=tuple(shared_indices),
        angle_difference_indices=tuple(angle_indices),
    )

    if shared_indices:
        shift = shared_indices[0] + 1
    elif angle_indices:
        shift = angle_indices[0][0] + 1
    else:
        shift = 0
    return cycle.rotated(shift)
