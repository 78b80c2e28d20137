"""Unit tests for the optimal assignment solver."""

import unittest
from itertools import permutations

from ledgermatch.matching.assignment import (
    InvalidScoreMatrixError,
    assignment_total,
    solve_assignment,
)


class AssignmentTests(unittest.TestCase):
    def test_prefers_diagonal_when_it_is_optimal(self) -> None:
        self.assertEqual(solve_assignment([[0.85, 0.40], [0.75, 0.90]]), [0, 1])

    def test_beats_greedy_choice(self) -> None:
        score = [[0.9, 0.8], [0.85, 0.1]]
        assignment = solve_assignment(score)
        self.assertEqual(assignment, [1, 0])
        self.assertAlmostEqual(assignment_total(score, assignment), 1.65)

    def test_matches_brute_force_optimum_and_is_injective(self) -> None:
        score = [
            [0.10, 0.95, 0.30, 0.55],
            [0.80, 0.70, 0.20, 0.05],
            [0.60, 0.90, 0.85, 0.40],
        ]
        assignment = solve_assignment(score)
        assigned = [col for col in assignment if col is not None]
        self.assertEqual(len(assigned), 3)
        self.assertEqual(len(set(assigned)), 3)

        best = max(
            sum(score[row][col] for row, col in enumerate(cols))
            for cols in permutations(range(4), 3)
        )
        self.assertAlmostEqual(assignment_total(score, assignment), best)

    def test_extra_rows_are_left_unassigned(self) -> None:
        self.assertEqual(solve_assignment([[0.5], [0.9]]), [None, 0])

    def test_empty_and_zero_column_matrices(self) -> None:
        self.assertEqual(solve_assignment([]), [])
        self.assertEqual(solve_assignment([[], []]), [None, None])

    def test_rejects_ragged_or_out_of_range_matrices(self) -> None:
        with self.assertRaises(InvalidScoreMatrixError):
            solve_assignment([[0.5, 0.2], [0.1]])
        with self.assertRaises(InvalidScoreMatrixError):
            solve_assignment([[1.5]])
        with self.assertRaises(ValueError):
            solve_assignment([[float("nan")]])
        with self.assertRaises(InvalidScoreMatrixError):
            solve_assignment([[True, 0.5]])


if __name__ == "__main__":
    unittest.main()
