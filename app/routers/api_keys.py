from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app import models
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.schemas.requests import ApiKeyCreateRequest
from app.schemas.responses import ApiKeyCreated, ApiKeyOut, MessageResponse
from app.services import api_keys

router = APIRouter()


def _key_out(record: models.ApiKey) -> ApiKeyOut:
    return ApiKeyOut(
        id=record.id,
        name=record.name,
        tier=api_keys.record_tier(record),
        masked_key=api_keys.masked_key(record),
        is_active=record.is_active,
        last_used_at=record.last_used_at,
        created_at=record.created_at,
    )


@router.get("", response_model=List[ApiKeyOut])
def list_api_keys(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return [_key_out(record) for record in api_keys.list_keys(user.id, db)]


@router.post("", response_model=ApiKeyCreated)
def create_api_key(
    payload: ApiKeyCreateRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Issue a key. The plaintext `key` is returned here once and never again."""
    issued = api_keys.issue_key(user.id, payload.name, db, tier=payload.tier)
    return ApiKeyCreated(key=issued.key, api_key=_key_out(issued.record))


@router.delete("/{key_id}", response_model=MessageResponse)
def delete_api_key(
    key_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    api_keys.revoke_key(key_id, user.id, db)
    return MessageResponse(message="API key deactivated successfully")
