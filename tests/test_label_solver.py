import unittest

import pytest

from wirelabel.core.label_solver import (
    LabelProblem,
    backtrack_labels,
    group_sizes_at_least_two_labels,
    reject_by_coverage,
    reject_by_cuts,
    solve_labels,
)
from wirelabel.core.labels import GroupCutType, TextureLabel

E = GroupCutType.EDGE_ANGLE
S = GroupCutType.SAME_TRIANGLE
V = GroupCutType.VIRTUAL

F = TextureLabel.FIRST
SE = TextureLabel.SECOND
T = TextureLabel.THIRD
FO = TextureLabel.FOURTH


def _ring(n_groups, cut_type=E):
    return LabelProblem(
        group_sizes=(1,) * n_groups,
        cut_types=(cut_type,) * n_groups,
        n_boundary_edges=n_groups,
    )


def _quad_problem():
    # Four single-edge groups; cuts alternate edge-angle and triangle-sharing.
    return LabelProblem(group_sizes=(1, 1, 1, 1), cut_types=(E, S, E, S), n_boundary_edges=4)


def _never_called():
    raise AssertionError("clock should not be read")


class TestGroupSizesAtLeastTwo(unittest.TestCase):
    def test_even_count_alternates(self):
        self.assertEqual(group_sizes_at_least_two_labels([2, 2], 2), [F, SE])
        self.assertEqual(group_sizes_at_least_two_labels([3, 2, 5, 2], 2), [F, SE, F, SE])

    def test_odd_count_needs_third(self):
        self.assertIsNone(group_sizes_at_least_two_labels([2, 3, 2], 2))
        self.assertEqual(group_sizes_at_least_two_labels([2, 3, 2], 3), [F, SE, T])

    def test_single_edge_group_disables_fast_path(self):
        self.assertIsNone(group_sizes_at_least_two_labels([1, 2], 4))

    def test_empty(self):
        self.assertIsNone(group_sizes_at_least_two_labels([], 3))


class TestRejectByCuts(unittest.TestCase):
    def test_neighbours_across_edge_angle_cut_differ(self):
        problem = _ring(4)
        self.assertTrue(reject_by_cuts(problem, [1, 1]))
        self.assertFalse(reject_by_cuts(problem, [1, 2]))

    def test_wrap_around_is_checked_on_full_assignment(self):
        problem = _ring(3)
        self.assertTrue(reject_by_cuts(problem, [1, 2, 1]))
        self.assertFalse(reject_by_cuts(problem, [1, 2, 3]))

    def test_same_triangle_two_away(self):
        problem = _quad_problem()
        self.assertTrue(reject_by_cuts(problem, [1, 2, 1]))
        self.assertFalse(reject_by_cuts(problem, [1, 2, 3]))

    def test_virtual_cuts_are_ignored(self):
        problem = LabelProblem(group_sizes=(1, 1), cut_types=(V, V), n_boundary_edges=2)
        self.assertFalse(reject_by_cuts(problem, [1, 1]))

    def test_short_partials_pass(self):
        problem = _quad_problem()
        self.assertFalse(reject_by_cuts(problem, []))
        self.assertFalse(reject_by_cuts(problem, [1]))


class TestRejectByCoverage(unittest.TestCase):
    def test_labeled_vertex_may_not_gain_labels(self):
        problem = LabelProblem(
            group_sizes=(1, 1),
            cut_types=(V, V),
            n_boundary_edges=2,
            vertex_groups={5: (0, 1)},
            initial_bits={5: 0b0001},
        )
        self.assertFalse(reject_by_coverage(problem, []))
        self.assertFalse(reject_by_coverage(problem, [1, 1]))
        self.assertTrue(reject_by_coverage(problem, [1, 2]))

    def test_unlabeled_vertex_is_free(self):
        problem = LabelProblem(
            group_sizes=(1, 1),
            cut_types=(V, V),
            n_boundary_edges=2,
            vertex_groups={5: (0, 1)},
        )
        self.assertFalse(reject_by_coverage(problem, [1, 2]))

    def test_triangle_with_common_label_is_rejected(self):
        problem = LabelProblem(
            group_sizes=(1, 1),
            cut_types=(V, V),
            n_boundary_edges=2,
            vertex_groups={0: (0,), 1: (0, 1), 2: (1,)},
            triangles=((0, 1, 2),),
        )
        self.assertTrue(reject_by_coverage(problem, [1, 1]))
        self.assertFalse(reject_by_coverage(problem, [1, 2]))


def test_problem_requires_one_cut_per_group():
    with pytest.raises(ValueError):
        LabelProblem(group_sizes=(1, 2), cut_types=(E,), n_boundary_edges=3)


def test_backtrack_empty_problem():
    problem = LabelProblem(group_sizes=(), cut_types=(), n_boundary_edges=0)
    result = backtrack_labels(problem, 2, started=0.0, timeout_seconds=1.0, clock=lambda: 0.0)
    assert result.labels == []


def test_backtrack_alternates_on_even_ring():
    problem = _ring(32)
    result = backtrack_labels(problem, 2, started=0.0, timeout_seconds=60.0, clock=lambda: 0.0)
    assert result.labels == [F if i % 2 == 0 else SE for i in range(32)]
    assert not result.timed_out


def test_backtrack_odd_ring_needs_three_labels():
    problem = _ring(5)
    assert backtrack_labels(problem, 2, started=0.0, timeout_seconds=60.0, clock=lambda: 0.0).labels is None
    result = backtrack_labels(problem, 3, started=0.0, timeout_seconds=60.0, clock=lambda: 0.0)
    assert result.labels == [F, SE, F, SE, T]


def test_quad_cuts_need_four_distinct_labels():
    problem = _quad_problem()
    three = backtrack_labels(problem, 3, started=0.0, timeout_seconds=60.0, clock=lambda: 0.0)
    assert not three.has_result
    assert not three.timed_out

    four = backtrack_labels(problem, 4, started=0.0, timeout_seconds=60.0, clock=lambda: 0.0)
    assert four.labels == [F, SE, T, FO]


def test_coverage_rejection_is_reported_alongside_solution():
    problem = LabelProblem(
        group_sizes=(1, 1),
        cut_types=(V, V),
        n_boundary_edges=2,
        vertex_groups={0: (0,), 1: (0, 1), 2: (1,)},
        triangles=((0, 1, 2),),
    )
    result = backtrack_labels(problem, 2, started=0.0, timeout_seconds=60.0, clock=lambda: 0.0)
    assert result.labels == [F, SE]
    assert result.rejected_by_coverage


def test_root_rejected_by_coverage():
    problem = LabelProblem(
        group_sizes=(1,),
        cut_types=(V,),
        n_boundary_edges=1,
        vertex_groups={0: (0,), 1: (0,), 2: ()},
        triangles=((0, 1, 2),),
        initial_bits={0: 1, 1: 1, 2: 1},
    )
    result = backtrack_labels(problem, 4, started=0.0, timeout_seconds=60.0, clock=lambda: 0.0)
    assert not result.has_result
    assert result.rejected_by_coverage


def test_backtrack_times_out():
    problem = _ring(5)
    result = backtrack_labels(problem, 3, started=0.0, timeout_seconds=0.5, clock=lambda: 10.0)
    assert result.timed_out
    assert result.labels is None
    assert result.elapsed_seconds == pytest.approx(10.0)


def test_solve_uses_fast_path_without_search():
    problem = LabelProblem(group_sizes=(2, 2), cut_types=(E, E), n_boundary_edges=4)
    result = solve_labels(problem, 2, started=0.0, timeout_seconds=1.0, clock=_never_called)
    assert result.labels == [F, SE]


def test_solve_falls_back_to_search():
    problem = _ring(4)
    result = solve_labels(problem, 2, started=0.0, timeout_seconds=60.0, clock=lambda: 0.0)
    assert result.labels == [F, SE, F, SE]
