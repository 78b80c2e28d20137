"""Name matching and roster reconciliation routes."""

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session

from ledgermatch.db.dependencies import get_db
from ledgermatch.matching.reconciliation import reconcile
from ledgermatch.schemas.alias import AliasRead
from ledgermatch.schemas.common import ApiResponse
from ledgermatch.schemas.identity import (
    ConfirmMatchRequest,
    MatchRequest,
    ReconcileRequest,
    ReconciliationReportRead,
    ResolutionReportRead,
)
from ledgermatch.services.matching import confirm_match, match_candidates

router = APIRouter()


@router.post("/groups/{group_key}/match", response_model=ApiResponse[ResolutionReportRead])
def post_match(
    payload: MatchRequest,
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[ResolutionReportRead]:
    """Match ledger names against the roster using learned aliases and positions."""

    report = match_candidates(
        db,
        group_key,
        [candidate.to_candidate() for candidate in payload.candidates],
        [record.to_record() for record in payload.roster],
        threshold=payload.threshold,
    )
    return ApiResponse(data=ResolutionReportRead.model_validate(report))


@router.post("/groups/{group_key}/match/confirm", response_model=ApiResponse[AliasRead])
def post_confirm_match(
    payload: ConfirmMatchRequest,
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[AliasRead]:
    """Record a human resolution as a learned alias."""

    alias = confirm_match(db, group_key, payload.raw_text, payload.record.to_record())
    if alias is None:
        raise HTTPException(status_code=422, detail="Record has no identifier or text is blank")
    return ApiResponse(data=AliasRead.model_validate(alias))


@router.post("/reconcile", response_model=ApiResponse[ReconciliationReportRead])
def post_reconcile(payload: ReconcileRequest) -> ApiResponse[ReconciliationReportRead]:
    """Diff a re-uploaded roster against the master roster."""

    report = reconcile(
        [record.to_record() for record in payload.new_roster],
        [record.to_record() for record in payload.master_roster],
    )
    return ApiResponse(data=ReconciliationReportRead.model_validate(report))
