"""
Fallback edge groups for boundaries that are not a single loop.

Boundary edges are traversed depth first. The current group continues across
transitions without a common triangle and a new group starts across
triangle-sharing ones. Groups are then labeled breadth first, alternating
First/Second and taking Third when neighbours already hold both.

Unlike the cycle solver this gives no coverage or "two away" guarantees.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
import logging
from typing import Optional

from .labels import TextureLabel
from .logging_utils import WarningSink, region_label, warning_sink
from .regions import DecoupledGrouping
from .topology import MeshTopologyGraph

_LOGGER = logging.getLogger(__name__)

_NEW_GROUP = -1


@dataclass(frozen=True)
class EdgeConnection:
    """
    Link from an edge to a neighbouring edge in another group.

    Attributes:
        starting_edge: edge the connection starts from
        vertex: vertex both edges share
        triangle: triangle containing both edges (None when they share none)
        other_edge: edge connected to
        other_group: index of the group holding `other_edge`
    """
    starting_edge: int
    vertex: int
    triangle: Optional[int]
    other_edge: int
    other_group: int


@dataclass
class FallbackEdgeGroup:
    edges: list[int] = field(default_factory=list)
    label: TextureLabel = TextureLabel.NONE
    connections: list[EdgeConnection] = field(default_factory=list)

    def neighbour_groups(self) -> list[int]:
        seen: list[int] = []
        for c in self.connections:
            if c.other_group not in seen:
                seen.append(c.other_group)
        return seen


def _boundary_neighbours(
    graph: MeshTopologyGraph,
    edge: int,
    boundary: set[int],
) -> list[tuple[int, int, Optional[int]]]:
    """(other_edge, shared_vertex, common_triangle) for boundary edges next to `edge`."""
    tri_id = graph.edges[edge].triangles[0]
    tri = graph.triangles[tri_id]
    own = set(tri.edges)
    out = []
    for other in sorted(own.union(tri.connected_edges)):
        if other == edge or other not in boundary:
            continue
        vertex = graph.shared_vertex(edge, other)
        if vertex is None:
            continue
        out.append((other, vertex, tri_id if other in own else None))
    return out


def _traverse(graph: MeshTopologyGraph, boundary: list[int]) -> list[FallbackEdgeGroup]:
    boundary_set = set(boundary)
    groups: list[FallbackEdgeGroup] = []
    group_of: dict[int, int] = {}
    linked: set[tuple[int, int]] = set()

    def connect(a: int, b: int, vertex: int, triangle: Optional[int]) -> None:
        ga = group_of[a]
        gb = group_of[b]
        if ga == gb or (a, b) in linked:
            return
        linked.add((a, b))
        linked.add((b, a))
        groups[ga].connections.append(EdgeConnection(a, vertex, triangle, b, gb))
        groups[gb].connections.append(EdgeConnection(b, vertex, triangle, a, ga))

    for seed in boundary:
        if seed in group_of:
            continue
        # (edge, group or _NEW_GROUP, edge reached from, shared vertex, common triangle)
        stack: list[tuple[int, int, Optional[int], int, Optional[int]]] = [(seed, _NEW_GROUP, None, -1, None)]
        while stack:
            edge, group_index, parent, vertex, triangle = stack.pop()
            if edge in group_of:
                if parent is not None:
                    connect(parent, edge, vertex, triangle)
                continue

            if group_index == _NEW_GROUP:
                group_index = len(groups)
                groups.append(FallbackEdgeGroup())
            group_of[edge] = group_index
            groups[group_index].edges.append(edge)
            if parent is not None:
                connect(parent, edge, vertex, triangle)

            for other, shared_v, common in reversed(_boundary_neighbours(graph, edge, boundary_set)):
                if other == parent:
                    continue
                next_group = group_index if common is None else _NEW_GROUP
                stack.append((other, next_group, edge, shared_v, common))

    return groups


def _assign_labels(groups: list[FallbackEdgeGroup]) -> None:
    for root in range(len(groups)):
        if groups[root].label != TextureLabel.NONE:
            continue
        groups[root].label = TextureLabel.FIRST
        queue = deque([root])
        while queue:
            gi = queue.popleft()
            for other in groups[gi].neighbour_groups():
                if groups[other].label != TextureLabel.NONE:
                    continue
                used = {groups[n].label for n in groups[other].neighbour_groups()}
                for candidate in (TextureLabel.FIRST, TextureLabel.SECOND, TextureLabel.THIRD):
                    if candidate not in used:
                        groups[other].label = candidate
                        break
                else:
                    groups[other].label = TextureLabel.THIRD
                queue.append(other)


def get_fallback_edge_groups(
    grouping: DecoupledGrouping,
    graph: MeshTopologyGraph,
    raise_warning: Optional[WarningSink] = None,
) -> list[FallbackEdgeGroup]:
    """Heuristic edge groups for a grouping whose boundary is not one loop."""
    warn = raise_warning or warning_sink(_LOGGER)
    boundary = grouping.boundary_edges(graph)
    first = grouping.triangles[0] if grouping.triangles else -1
    warn(
        f"{region_label(first, grouping.n_triangles)}: boundary edges do not form "
        f"a single loop ({len(boundary)} edges). Using the heuristic labeling for this unsupported topology."
    )
    if not boundary:
        return []

    groups = _traverse(graph, boundary)
    _assign_labels(groups)
    return groups
