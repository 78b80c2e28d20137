"""Member order routes for one group's ledger."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from ledgermatch.db.dependencies import get_db
from ledgermatch.schemas.common import ApiResponse
from ledgermatch.schemas.order import (
    BatchUpdateRequest,
    BatchUpdateResult,
    InitializeResult,
    IntegrityReport,
    OrderChange,
    OrderEntryRead,
    OrderGroupRead,
    PositionUpdateRequest,
    PositionUpdateResult,
    ReorderApplyRequest,
    ResetResult,
    RosterRequest,
    SyncResult,
)
from ledgermatch.schemas.transfer import ImportResult, OrderExport
from ledgermatch.services.order_store import (
    batch_update_positions,
    delete_group_data,
    get_group_metadata,
    get_ordered_members,
    initialize_order,
    list_groups,
    list_members_first_seen_in,
    reset_order_from_roster,
    sync_with_roster,
    update_member_position,
    validate_and_repair_order,
)
from ledgermatch.services.order_transfer import export_order, import_order
from ledgermatch.services.reorder import apply_reorder, preview_reorder

router = APIRouter(prefix="/groups/{group_key}")
groups_router = APIRouter()


@groups_router.get("/groups", response_model=ApiResponse[list[OrderGroupRead]])
def get_groups(db: Session = Depends(get_db)) -> ApiResponse[list[OrderGroupRead]]:
    """List every group with a persisted order."""

    return ApiResponse(data=[OrderGroupRead.model_validate(group) for group in list_groups(db)])


@router.get("/order", response_model=ApiResponse[list[OrderEntryRead]])
def get_order(
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[list[OrderEntryRead]]:
    """Active members in ledger order."""

    return ApiResponse(data=[OrderEntryRead.model_validate(entry) for entry in get_ordered_members(db, group_key)])


@router.get("/order/meta", response_model=ApiResponse[OrderGroupRead])
def get_order_meta(
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[OrderGroupRead]:
    group = get_group_metadata(db, group_key)
    if group is None:
        raise HTTPException(status_code=404, detail="Group not found")
    return ApiResponse(data=OrderGroupRead.model_validate(group))


@router.get("/order/new-members", response_model=ApiResponse[list[OrderEntryRead]])
def get_new_members(
    group_key: str = Path(..., min_length=1),
    month: str | None = Query(default=None, pattern=r"^\d{4}-\d{2}$"),
    db: Session = Depends(get_db),
) -> ApiResponse[list[OrderEntryRead]]:
    """Members first seen in a month (default: this month)."""

    return ApiResponse(
        data=[OrderEntryRead.model_validate(entry) for entry in list_members_first_seen_in(db, group_key, month)]
    )


@router.post("/order/initialize", response_model=ApiResponse[InitializeResult])
def post_initialize(
    payload: RosterRequest,
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[InitializeResult]:
    records = [record.to_record() for record in payload.records]
    return ApiResponse(data=initialize_order(db, group_key, records))


@router.post("/order/sync", response_model=ApiResponse[SyncResult])
def post_sync(
    payload: RosterRequest,
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[SyncResult]:
    """Append new roster members and reactivate returning ones."""

    records = [record.to_record() for record in payload.records]
    return ApiResponse(
        data=sync_with_roster(db, group_key, records, deactivate_missing=payload.deactivate_missing)
    )


@router.patch("/order/members/{member_id}", response_model=ApiResponse[PositionUpdateResult])
def patch_member_position(
    payload: PositionUpdateRequest,
    group_key: str = Path(..., min_length=1),
    member_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[PositionUpdateResult]:
    """Move one member, swapping with the current holder of the slot."""

    result = update_member_position(db, group_key, member_id, payload.position)
    if result is None:
        raise HTTPException(status_code=404, detail="Member not found")
    return ApiResponse(data=result)


@router.post("/order/batch", response_model=ApiResponse[BatchUpdateResult])
def post_batch_update(
    payload: BatchUpdateRequest,
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[BatchUpdateResult]:
    return ApiResponse(
        data=batch_update_positions(
            db,
            group_key,
            payload.updates,
            action=payload.action,
            description=payload.description,
        )
    )


@router.post("/order/reset", response_model=ApiResponse[ResetResult])
def post_reset(
    payload: RosterRequest,
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[ResetResult]:
    """Renumber the order to follow the master roster."""

    records = [record.to_record() for record in payload.records]
    return ApiResponse(data=reset_order_from_roster(db, group_key, records))


@router.post("/order/validate", response_model=ApiResponse[IntegrityReport])
def post_validate(
    group_key: str = Path(..., min_length=1),
    auto_repair: bool = Query(default=True),
    db: Session = Depends(get_db),
) -> ApiResponse[IntegrityReport]:
    return ApiResponse(data=validate_and_repair_order(db, group_key, auto_repair=auto_repair))


@router.get("/order/export", response_model=ApiResponse[OrderExport])
def get_export(
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[OrderExport]:
    return ApiResponse(data=export_order(db, group_key))


@router.post("/order/import", response_model=ApiResponse[ImportResult])
def post_import(
    payload: OrderExport,
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[ImportResult]:
    """Restore positions from an exported backup of the same group."""

    return ApiResponse(data=import_order(db, group_key, payload))


@router.post("/order/preview", response_model=ApiResponse[list[OrderChange]])
def post_preview(
    payload: ReorderApplyRequest,
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[list[OrderChange]]:
    return ApiResponse(data=preview_reorder(db, group_key, payload.proposed))


@router.post("/order/apply", response_model=ApiResponse[BatchUpdateResult | None])
def post_apply(
    payload: ReorderApplyRequest,
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[BatchUpdateResult | None]:
    """Apply the accepted subset of a proposed order."""

    return ApiResponse(
        data=apply_reorder(
            db,
            group_key,
            payload.proposed,
            selected_member_ids=payload.selected_member_ids,
        )
    )


@router.delete("", response_model=ApiResponse[dict[str, bool]])
def remove_group(
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[dict[str, bool]]:
    """Delete the group's order, history, snapshots and aliases."""

    if not delete_group_data(db, group_key):
        raise HTTPException(status_code=404, detail="Group not found")
    return ApiResponse(data={"deleted": True})
