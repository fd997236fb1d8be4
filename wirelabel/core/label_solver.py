"""
Label Solver Module
Assigns one texture label per edge group of a boundary cycle.

Constraints:
    - groups on either side of a non-Virtual cut differ
    - across a SameTriangle cut the edges two away may not repeat a label
      that would fill the shared triangle
    - a vertex that already carries labels from earlier regions gains none
    - no protected triangle ends with one label on all three vertices

The search is a depth-first backtracking over an explicit work list, time
boxed by a caller supplied clock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import Callable, Mapping, Optional, Sequence

from .labels import GroupCutType, TextureLabel, label_bit
from .periodic_utils import index_periodic

_LOGGER = logging.getLogger(__name__)

Clock = Callable[[], float]

_CUT_REJECTED = 1
_COVERAGE_REJECTED = 2


@dataclass(frozen=True)
class LabelProblem:
    """
    One labeling problem for a fixed set of group cuts.

    Attributes:
        group_sizes: edge count of each group, in cycle order
        cut_types: cut type at the end of each group (between group k and k+1)
        n_boundary_edges: edges in the whole cycle
        vertex_groups: vertex -> indices of the groups with an edge on it
        triangles: vertex triples of the triangles that must not be filled
        initial_bits: vertex -> label mask committed by earlier regions
    """
    group_sizes: tuple[int, ...]
    cut_types: tuple[GroupCutType, ...]
    n_boundary_edges: int
    vertex_groups: Mapping[int, tuple[int, ...]] = field(default_factory=dict)
    triangles: tuple[tuple[int, int, int], ...] = ()
    initial_bits: Mapping[int, int] = field(default_factory=dict)

    def __post_init__(self):
        if len(self.group_sizes) != len(self.cut_types):
            raise ValueError(
                f"group_sizes ({len(self.group_sizes)}) and cut_types ({len(self.cut_types)}) must match"
            )

    @property
    def n_groups(self) -> int:
        return len(self.group_sizes)


@dataclass
class SolverResult:
    labels: Optional[list[TextureLabel]] = None
    rejected_by_coverage: bool = False
    timed_out: bool = False
    elapsed_seconds: float = 0.0

    @property
    def has_result(self) -> bool:
        return self.labels is not None


def group_sizes_at_least_two_labels(group_sizes: Sequence[int], max_labels: int) -> Optional[list[TextureLabel]]:
    """
    Direct labeling when every group has at least two edges.

    Alternating First/Second keeps neighbours distinct; an odd group count
    needs Third on the last group, so it requires an alphabet of 3.
    """
    n = len(group_sizes)
    if n == 0 or any(int(s) < 2 for s in group_sizes):
        return None
    if not (int(max_labels) >= 3 or n % 2 == 0):
        return None
    labels = [TextureLabel.FIRST if i % 2 == 0 else TextureLabel.SECOND for i in range(n)]
    if n % 2 != 0:
        labels[-1] = TextureLabel.THIRD
    return labels


def reject_by_cuts(problem: LabelProblem, partial: Sequence[int]) -> bool:
    """True when the newest entries of `partial` break a cut constraint."""
    n_groups = problem.n_groups
    n_partial = len(partial)
    n_edges = int(problem.n_boundary_edges)
    if n_edges <= 1 or n_partial <= 1:
        return False

    more_than_two_edges = n_edges > 2
    more_than_three_edges = n_edges > 3
    sizes = problem.group_sizes

    current = n_partial - 1
    to_check = [current - 1]
    if current > 1 and sizes[current - 1] <= 1:
        to_check.append(current - 2)
    if n_partial == n_groups:
        # Wrapped around: the last group now has its successor (group 0).
        to_check.append(current)
        to_check.append(0)
        if sizes[0] <= 1:
            to_check.append(1)

    for idx in to_check:
        cut = problem.cut_types[idx]
        if cut is GroupCutType.VIRTUAL:
            continue

        nxt = index_periodic(idx + 1, n_groups)
        if nxt < n_partial and partial[nxt] == partial[idx]:
            return True

        if cut is GroupCutType.SAME_TRIANGLE:
            prev = index_periodic(idx - 1, n_groups)
            after_next = index_periodic(idx + 2, n_groups)
            # Groups holding the edge before this cut's edge and the edge after the next one.
            if not (prev < n_partial and sizes[idx] < 2):
                prev = idx
            if not (nxt < n_partial and sizes[nxt] < 2):
                after_next = nxt

            if (
                more_than_two_edges
                and prev < n_partial
                and nxt < n_partial
                and prev != nxt
                and partial[prev] == partial[nxt]
            ):
                return True
            if more_than_two_edges and after_next < n_partial and partial[after_next] == partial[idx]:
                return True
            if (
                more_than_three_edges
                and prev < n_partial
                and after_next < n_partial
                and partial[after_next] == partial[prev]
            ):
                return True
    return False


def reject_by_coverage(problem: LabelProblem, partial: Sequence[int]) -> bool:
    """
    True when `partial` grows a previously labeled vertex's label set, or
    leaves a protected triangle with a label bit common to all its vertices.
    """
    n_partial = len(partial)
    final_bits: dict[int, int] = {}
    for vertex, groups in problem.vertex_groups.items():
        initial = int(problem.initial_bits.get(vertex, 0))
        final = initial
        for g in groups:
            if 0 <= g < n_partial:
                final |= label_bit(partial[g])
        if initial and (initial ^ final):
            return True
        final_bits[vertex] = final

    for a, b, c in problem.triangles:
        common = (
            final_bits.get(a, int(problem.initial_bits.get(a, 0)))
            & final_bits.get(b, int(problem.initial_bits.get(b, 0)))
            & final_bits.get(c, int(problem.initial_bits.get(c, 0)))
        )
        if common:
            return True
    return False


def _check(problem: LabelProblem, partial: Sequence[int]) -> int:
    if reject_by_cuts(problem, partial):
        return _CUT_REJECTED
    if reject_by_coverage(problem, partial):
        return _COVERAGE_REJECTED
    return 0


def backtrack_labels(
    problem: LabelProblem,
    max_labels: int,
    *,
    started: float,
    timeout_seconds: float,
    clock: Clock = time.monotonic,
) -> SolverResult:
    """
    Depth-first search over label sequences.

    Candidates are extended with First and advanced through the alphabet on
    rejection. `rejected_by_coverage` reports whether any candidate was
    rejected by the coverage constraint.
    """
    max_labels = int(max_labels)
    n_groups = problem.n_groups

    def timed_out_result() -> SolverResult:
        return SolverResult(timed_out=True, elapsed_seconds=float(clock() - started))

    partial: list[int] = []
    status = _check(problem, partial)
    if status == _COVERAGE_REJECTED:
        return SolverResult(rejected_by_coverage=True)
    if status == _CUT_REJECTED:
        return SolverResult()
    if n_groups == 0:
        return SolverResult(labels=[])
    if clock() - started > timeout_seconds:
        return timed_out_result()

    any_coverage_rejection = False
    partial.append(int(TextureLabel.FIRST))
    while partial:
        status = _check(problem, partial)
        if status == 0:
            if len(partial) == n_groups:
                return SolverResult(
                    labels=[TextureLabel(v) for v in partial],
                    rejected_by_coverage=any_coverage_rejection,
                )
            if clock() - started > timeout_seconds:
                return timed_out_result()
            partial.append(int(TextureLabel.FIRST))
            continue

        if status == _COVERAGE_REJECTED:
            any_coverage_rejection = True

        while partial and partial[-1] >= max_labels:
            partial.pop()
        if partial:
            partial[-1] += 1

    return SolverResult(rejected_by_coverage=any_coverage_rejection)


def solve_labels(
    problem: LabelProblem,
    max_labels: int,
    *,
    started: float,
    timeout_seconds: float,
    clock: Clock = time.monotonic,
) -> SolverResult:
    """Fast path first, then the full backtracking search."""
    fast = group_sizes_at_least_two_labels(problem.group_sizes, max_labels)
    if fast is not None and not reject_by_coverage(problem, fast):
        return SolverResult(labels=fast)

    result = backtrack_labels(
        problem,
        max_labels,
        started=started,
        timeout_seconds=timeout_seconds,
        clock=clock,
    )
    if result.timed_out:
        _LOGGER.debug(
            "Label search timed out after %.2fs (%d groups, alphabet %d)",
            result.elapsed_seconds,
            problem.n_groups,
            max_labels,
        )
    return result
