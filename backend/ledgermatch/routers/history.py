"""Order history and snapshot routes."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from ledgermatch.db.dependencies import get_db
from ledgermatch.schemas.common import ApiResponse
from ledgermatch.schemas.history import HistoryEntryRead, SnapshotRead
from ledgermatch.schemas.order import RestoreResult
from ledgermatch.services.history import list_history
from ledgermatch.services.order_store import get_snapshot_for_history, list_snapshots, restore_snapshot

router = APIRouter(prefix="/groups/{group_key}")
snapshot_router = APIRouter()


@router.get("/history", response_model=ApiResponse[list[HistoryEntryRead]])
def get_history(
    group_key: str = Path(..., min_length=1),
    limit: int | None = Query(default=None, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> ApiResponse[list[HistoryEntryRead]]:
    """List order changes for a group, newest first."""

    return ApiResponse(data=[HistoryEntryRead.model_validate(entry) for entry in list_history(db, group_key, limit)])


@router.get("/snapshots", response_model=ApiResponse[list[SnapshotRead]])
def get_snapshots(
    group_key: str = Path(..., min_length=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> ApiResponse[list[SnapshotRead]]:
    return ApiResponse(
        data=[SnapshotRead.model_validate(snapshot) for snapshot in list_snapshots(db, group_key, limit)]
    )


@snapshot_router.get("/history/{entry_id}/snapshot", response_model=ApiResponse[SnapshotRead])
def get_history_snapshot(
    entry_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[SnapshotRead]:
    """Snapshot taken just before the given history entry, if still retained."""

    snapshot = get_snapshot_for_history(db, entry_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Snapshot not found")
    return ApiResponse(data=SnapshotRead.model_validate(snapshot))


@snapshot_router.post("/snapshots/{snapshot_id}/restore", response_model=ApiResponse[RestoreResult])
def post_restore(
    snapshot_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[RestoreResult]:
    """Undo back to a snapshot; the current order is snapshotted first."""

    result = restore_snapshot(db, snapshot_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Snapshot not found")
    return ApiResponse(data=result)
