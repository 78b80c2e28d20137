"""Identity matching and roster reconciliation package."""

from ledgermatch.matching.assignment import InvalidScoreMatrixError, solve_assignment
from ledgermatch.matching.reconciliation import reconcile
from ledgermatch.matching.resolver import IdentityResolver
from ledgermatch.matching.similarity import similarity
from ledgermatch.matching.types import CandidateName, IdentityRecord, ReconciliationReport, ResolutionReport

__all__ = [
    "CandidateName",
    "IdentityRecord",
    "IdentityResolver",
    "InvalidScoreMatrixError",
    "ReconciliationReport",
    "ResolutionReport",
    "reconcile",
    "similarity",
    "solve_assignment",
]
