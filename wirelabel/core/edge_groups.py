"""
Edge Groups Module
Splits a boundary cycle into labeled edge groups.

Cuts come from the cycle (SameTriangle, EdgeAngle). When no labeling exists
for a cut set, Virtual cuts are added one at a time; when that is exhausted
the least significant EdgeAngle cut is dropped and the relaxation restarts.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Optional, Sequence

from .boundary_cycle import BoundaryEdgeCycle
from .label_solver import Clock, LabelProblem, SolverResult, solve_labels
from .labels import GroupCutType, MAX_TEXTURE_LABELS, TextureLabel, VertexLabelState
from .periodic_utils import index_distance, index_periodic
from .regions import BoundaryGrouping
from .runtime_defaults import DEFAULTS
from .topology import MeshTopologyGraph, WireLabelError

_LOGGER = logging.getLogger(__name__)

MIN_TEXTURE_LABELS = 2


class LabelingError(WireLabelError):
    """No labeling exists for a boundary cycle under any relaxation."""


@dataclass(frozen=True)
class GroupCutIndex:
    """A cut after cycle position `edge_index` (between it and the next edge)."""
    edge_index: int
    cut_type: GroupCutType


@dataclass
class CyclicEdgeGroup:
    edges: tuple[int, ...]
    label: TextureLabel = TextureLabel.NONE


@dataclass
class EdgeGroupResults:
    edge_groups: Optional[list[CyclicEdgeGroup]] = None
    timed_out: bool = False
    timeout_seconds: float = 0.0

    @property
    def has_value(self) -> bool:
        return self.edge_groups is not None


def get_group_cut_indices(cycle: BoundaryEdgeCycle) -> list[GroupCutIndex]:
    """SameTriangle and EdgeAngle cuts of `cycle`, ordered by position."""
    cuts = [GroupCutIndex(i, GroupCutType.SAME_TRIANGLE) for i in cycle.shared_triangle_indices]
    cuts.extend(GroupCutIndex(i, GroupCutType.EDGE_ANGLE) for i, _ in cycle.angle_difference_indices)
    cuts.sort(key=lambda c: c.edge_index)
    return cuts


def split_edge_groups(
    edges: Sequence[int],
    cuts: Sequence[GroupCutIndex],
) -> tuple[list[tuple[int, ...]], list[GroupCutType]]:
    """
    Split cycle `edges` at `cuts` (sorted by position).

    Group k runs from the edge after cut k-1 up to and including the edge at
    cut k, so `cut_types[k]` is the cut that ends group k. Without cuts the
    whole cycle is one group closed by a Virtual cut.
    """
    n = len(edges)
    if not cuts:
        return [tuple(edges)], [GroupCutType.VIRTUAL]

    groups: list[tuple[int, ...]] = []
    cut_types: list[GroupCutType] = []
    prev = cuts[-1]
    for cut in cuts:
        start = index_periodic(prev.edge_index + 1, n)
        size = index_distance(prev.edge_index, cut.edge_index, n)
        groups.append(tuple(edges[index_periodic(start + k, n)] for k in range(size)))
        cut_types.append(cut.cut_type)
        prev = cut
    return groups, cut_types


def build_label_problem(
    groups: Sequence[Sequence[int]],
    cut_types: Sequence[GroupCutType],
    boundary_grouping: BoundaryGrouping,
    graph: MeshTopologyGraph,
    state: VertexLabelState,
) -> LabelProblem:
    edge_group_index: dict[int, int] = {}
    for gi, group in enumerate(groups):
        for e in group:
            edge_group_index[e] = gi

    # Every cycle vertex is tracked: one shared only by a corner with an
    # earlier region must not gain labels either.
    cycle_vertices = sorted({v for e in edge_group_index for v in graph.edge_vertices(e)})
    vertex_groups: dict[int, tuple[int, ...]] = {}
    for v in cycle_vertices:
        vertex_groups[v] = tuple(edge_group_index[e] for e in graph.edges_of_vertex(v) if e in edge_group_index)

    return LabelProblem(
        group_sizes=tuple(len(g) for g in groups),
        cut_types=tuple(cut_types),
        n_boundary_edges=sum(len(g) for g in groups),
        vertex_groups=vertex_groups,
        triangles=tuple(graph.triangles[t].vertices for t in boundary_grouping.triangles),
        initial_bits={v: state.labels_of(v) for v in vertex_groups},
    )


def _solve_for_cuts(problem: LabelProblem, *, started: float, timeout_seconds: float, clock: Clock) -> SolverResult:
    result = SolverResult()
    for max_labels in range(MIN_TEXTURE_LABELS, MAX_TEXTURE_LABELS + 1):
        result = solve_labels(problem, max_labels, started=started, timeout_seconds=timeout_seconds, clock=clock)
        if result.has_result or result.timed_out:
            return result
    return result


def try_add_best_virtual_cut(cuts: list[GroupCutIndex], n_edges: int, allow_between_virtual: bool) -> bool:
    """
    Add one Virtual cut inside the most promising run between cuts.

    Runs bounded by non-Virtual cuts are preferred, then longer runs. A run
    bounded by Virtual cuts on both sides is only split when
    `allow_between_virtual` is set (the last failure came from coverage).

    Returns:
        True if a cut was appended to `cuts`.
    """
    m = len(cuts)
    if m < 2:
        raise ValueError(f"try_add_best_virtual_cut needs at least two cuts, {m} given")

    chosen: list[tuple[GroupCutIndex, int, bool]] = []
    prev = cuts[-1]
    curr = cuts[0]
    prev_distance = index_distance(prev.edge_index, curr.edge_index, n_edges)
    for i in range(m):
        nxt = cuts[index_periodic(i + 1, m)]
        next_distance = index_distance(curr.edge_index, nxt.edge_index, n_edges)

        if nxt.cut_type is GroupCutType.VIRTUAL and prev.cut_type is not GroupCutType.VIRTUAL and prev_distance > 1:
            chosen.append((prev, prev_distance, False))
        elif nxt.cut_type is not GroupCutType.VIRTUAL and prev.cut_type is GroupCutType.VIRTUAL and next_distance > 1:
            chosen.append((nxt, next_distance, True))
        else:
            choose_next = next_distance > prev_distance
            chosen.append((nxt, next_distance, True) if choose_next else (prev, prev_distance, False))

        prev = curr
        curr = nxt
        prev_distance = next_distance

    # (cut, chosen neighbour, run length, towards next)
    candidates = [
        (cut, neighbour, distance, towards_next)
        for cut, (neighbour, distance, towards_next) in zip(cuts, chosen)
        if distance > 1
    ]
    if not candidates:
        return False

    sentinel = GroupCutIndex(-1, GroupCutType.VIRTUAL)
    best = (sentinel, sentinel, -1, False)
    for cand in candidates:
        if best[0].cut_type is GroupCutType.VIRTUAL and cand[0].cut_type is not GroupCutType.VIRTUAL:
            best = cand
        elif best[1].cut_type is GroupCutType.VIRTUAL and cand[1].cut_type is not GroupCutType.VIRTUAL:
            best = cand
        elif cand[2] > best[2]:
            best = cand

    cut, neighbour, distance, towards_next = best
    if (
        not allow_between_virtual
        and cut.cut_type is GroupCutType.VIRTUAL
        and neighbour.cut_type is GroupCutType.VIRTUAL
    ):
        return False

    step = min(2, distance - 1)
    index = index_periodic(cut.edge_index + (step if towards_next else -step), n_edges)
    cuts.append(GroupCutIndex(index, GroupCutType.VIRTUAL))
    return True


def _edge_index_to_remove(
    cuts: Sequence[GroupCutIndex],
    angles: dict[int, float],
    n_edges: int,
) -> Optional[int]:
    """Position of the EdgeAngle cut to drop next, or None if only SameTriangle cuts remain."""
    m = len(cuts)

    def neighbouring_sizes(position: int) -> tuple[int, int]:
        edge_index = cuts[position].edge_index
        before = cuts[index_periodic(position - 1, m)].edge_index
        after = cuts[index_periodic(position + 1, m)].edge_index
        return index_distance(before, edge_index, n_edges), index_distance(edge_index, after, n_edges)

    def sort_key(position: int) -> tuple[float, int, int]:
        size_prev, size_next = neighbouring_sizes(position)
        single_edge_groups = int(size_prev < 2) + int(size_next < 2)
        return angles.get(cuts[position].edge_index, 0.0), -single_edge_groups, size_prev + size_next

    positions = [p for p, c in enumerate(cuts) if c.cut_type is GroupCutType.EDGE_ANGLE]
    if not positions:
        return None
    return cuts[min(positions, key=sort_key)].edge_index


def _edge_groups_including_virtual_cuts(
    cycle: BoundaryEdgeCycle,
    cuts: Sequence[GroupCutIndex],
    boundary_grouping: BoundaryGrouping,
    graph: MeshTopologyGraph,
    state: VertexLabelState,
    *,
    started: float,
    timeout_seconds: float,
    clock: Clock,
) -> EdgeGroupResults:
    edges = cycle.edges
    n = len(edges)
    cuts = sorted(cuts, key=lambda c: c.edge_index)

    def attempt() -> tuple[list[tuple[int, ...]], SolverResult]:
        groups, cut_types = split_edge_groups(edges, cuts)
        problem = build_label_problem(groups, cut_types, boundary_grouping, graph, state)
        return groups, _solve_for_cuts(problem, started=started, timeout_seconds=timeout_seconds, clock=clock)

    groups, result = attempt()
    while not result.has_result and not result.timed_out and len(cuts) <= n:
        if len(cuts) == 0:
            cuts.append(GroupCutIndex(n - 1, GroupCutType.VIRTUAL))
        elif len(cuts) == 1:
            index = index_periodic(cuts[0].edge_index + 2, n)
            if index == cuts[0].edge_index:
                break
            cuts.append(GroupCutIndex(index, GroupCutType.VIRTUAL))
        elif not try_add_best_virtual_cut(cuts, n, result.rejected_by_coverage):
            break

        cuts.sort(key=lambda c: c.edge_index)
        groups, result = attempt()

    if result.has_result:
        return EdgeGroupResults(
            edge_groups=[CyclicEdgeGroup(edges=g, label=label) for g, label in zip(groups, result.labels)]
        )
    return EdgeGroupResults(timed_out=result.timed_out, timeout_seconds=result.elapsed_seconds)


def get_boundary_cycle_edge_groups(
    cycle: BoundaryEdgeCycle,
    boundary_grouping: BoundaryGrouping,
    graph: MeshTopologyGraph,
    state: VertexLabelState,
    *,
    timeout_seconds: Optional[float] = None,
    clock: Clock = time.monotonic,
) -> EdgeGroupResults:
    """
    Labeled edge groups of a boundary cycle.

    Args:
        cycle: the boundary cycle
        boundary_grouping: the cycle's protected triangles and their vertices
        graph: mesh topology
        state: labels already committed by earlier regions
        timeout_seconds: search budget for the whole cycle (default from runtime defaults)
        clock: monotonic clock in seconds

    Returns:
        EdgeGroupResults with `edge_groups`, or `timed_out` set when the budget ran out

    Raises:
        LabelingError: every relaxation failed without timing out
    """
    if timeout_seconds is None:
        timeout_seconds = DEFAULTS.solver_timeout_seconds
    started = clock()

    angles = {i: a for i, a in cycle.angle_difference_indices}
    cuts = get_group_cut_indices(cycle)
    kwargs = dict(started=started, timeout_seconds=float(timeout_seconds), clock=clock)

    results = _edge_groups_including_virtual_cuts(cycle, cuts, boundary_grouping, graph, state, **kwargs)
    while not results.has_value and not results.timed_out:
        index = _edge_index_to_remove(cuts, angles, cycle.n_edges)
        if index is None:
            raise LabelingError(
                f"No texture labels are assignable for a boundary cycle of {cycle.n_edges} edges "
                f"({len(cuts)} triangle-sharing cuts left)"
            )
        _LOGGER.debug("Dropping edge angle cut at %d (%.2f deg)", index, angles.get(index, 0.0))
        cuts = [c for c in cuts if c.edge_index != index]
        results = _edge_groups_including_virtual_cuts(cycle, cuts, boundary_grouping, graph, state, **kwargs)

    return results
