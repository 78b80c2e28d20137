"""Learned alias routes."""

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session

from ledgermatch.db.dependencies import get_db
from ledgermatch.schemas.alias import AliasCreate, AliasRead
from ledgermatch.schemas.common import ApiResponse, DeleteResult
from ledgermatch.services.aliases import delete_alias, list_aliases, save_alias

router = APIRouter(prefix="/groups/{group_key}/aliases")


@router.get("", response_model=ApiResponse[list[AliasRead]])
def get_aliases(
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[list[AliasRead]]:
    return ApiResponse(data=[AliasRead.model_validate(alias) for alias in list_aliases(db, group_key)])


@router.post("", response_model=ApiResponse[AliasRead])
def post_alias(
    payload: AliasCreate,
    group_key: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[AliasRead]:
    """Save or reinforce a confirmed spelling."""

    alias = save_alias(db, group_key, payload.raw_text, payload.member_id, payload.display_name)
    if alias is None:
        raise HTTPException(status_code=422, detail="Alias text must not be blank")
    return ApiResponse(data=AliasRead.model_validate(alias))


@router.delete("/{alias_id}", response_model=ApiResponse[DeleteResult])
def remove_alias(
    group_key: str = Path(..., min_length=1),
    alias_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> ApiResponse[DeleteResult]:
    if not delete_alias(db, group_key, alias_id):
        raise HTTPException(status_code=404, detail="Alias not found")
    return ApiResponse(data=DeleteResult(id=alias_id, deleted=True))
