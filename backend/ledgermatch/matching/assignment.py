"""Optimal one-to-one assignment over a score matrix (Kuhn–Munkres)."""

from __future__ import annotations

import math
from typing import List, Optional, Sequence


class InvalidScoreMatrixError(ValueError):
    """Raised for ragged matrices or cells outside [0, 1]."""


def validate_score_matrix(score: Sequence[Sequence[float]]) -> int:
    """Check the matrix shape and cell range; return the column count."""

    if not score:
        return 0
    n_cols = len(score[0])
    for r, row in enumerate(score):
        if len(row) != n_cols:
            raise InvalidScoreMatrixError(
                f"Row {r} has {len(row)} columns, expected {n_cols}"
            )
        for c, val in enumerate(row):
            if isinstance(val, bool) or not isinstance(val, (int, float)):
                raise InvalidScoreMatrixError(f"Cell ({r}, {c}) is not a number: {val!r}")
            if not math.isfinite(val) or val < 0.0 or val > 1.0:
                raise InvalidScoreMatrixError(f"Cell ({r}, {c}) is not a score in [0, 1]: {val!r}")
    return n_cols


def hungarian_min_cost(cost: List[List[float]]) -> List[Optional[int]]:
    """
    Solve the square assignment problem (minimize total cost).

    Returns a list `assignment` where assignment[row] = col. Columns are scanned
    left to right, so among equal-cost solutions the one reached first by that
    traversal wins. Runs in O(n^3).
    """
    n = len(cost)
    if n == 0:
        return []

    u = [0.0] * (n + 1)
    v = [0.0] * (n + 1)
    p = [0] * (n + 1)
    way = [0] * (n + 1)

    for i in range(1, n + 1):
        p[0] = i
        j0 = 0
        minv = [float("inf")] * (n + 1)
        used = [False] * (n + 1)
        while True:
            used[j0] = True
            i0 = p[j0]
            delta = float("inf")
            j1 = 0
            for j in range(1, n + 1):
                if used[j]:
                    continue
                cur = cost[i0 - 1][j - 1] - u[i0] - v[j]
                if cur < minv[j]:
                    minv[j] = cur
                    way[j] = j0
                if minv[j] < delta:
                    delta = minv[j]
                    j1 = j
            for j in range(0, n + 1):
                if used[j]:
                    u[p[j]] += delta
                    v[j] -= delta
                else:
                    minv[j] -= delta
            j0 = j1
            if p[j0] == 0:
                break
        while True:
            j1 = way[j0]
            p[j0] = p[j1]
            j0 = j1
            if j0 == 0:
                break

    assignment: List[Optional[int]] = [None] * n
    for j in range(1, n + 1):
        if p[j]:
            assignment[p[j] - 1] = j - 1
    return assignment


def solve_assignment(score: Sequence[Sequence[float]]) -> List[Optional[int]]:
    """
    Maximize the total score of a one-to-one row/column assignment.

    Scores become costs as `max_score - score`, so costs stay within
    [0, max_score]. The matrix is padded to a square with a dummy cost above
    every real cost; rows that land on padding come back as None.
    """
    n_cols = validate_score_matrix(score)
    n_rows = len(score)
    if n_rows == 0:
        return []
    if n_cols == 0:
        return [None] * n_rows

    max_score = max(float(val) for row in score for val in row)
    pad_cost = max_score + 1.0
    n = max(n_rows, n_cols)

    cost: List[List[float]] = []
    for r in range(n):
        if r < n_rows:
            row_cost = [max_score - float(val) for val in score[r]]
            row_cost.extend([pad_cost] * (n - n_cols))
        else:
            row_cost = [pad_cost] * n
        cost.append(row_cost)

    raw = hungarian_min_cost(cost)
    cleaned: List[Optional[int]] = []
    for c in raw[:n_rows]:
        if c is None or c >= n_cols:
            cleaned.append(None)
        else:
            cleaned.append(c)
    return cleaned


def assignment_total(score: Sequence[Sequence[float]], assignment: Sequence[Optional[int]]) -> float:
    total = 0.0
    for r, c in enumerate(assignment):
        if c is not None and 0 <= c < len(score[r]):
            total += float(score[r][c])
    return total
