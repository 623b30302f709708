"""Admin entity endpoints - single-column updates"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from services.entity_store import EntityStore

from .dependencies import get_entity_store

router = APIRouter()


class UserUpdateRequest(BaseModel):
    role: str | None = None
    status: str | None = None


class ExtensionUpdateRequest(BaseModel):
    status: str


@router.patch("/users/{user_id}")
def update_user(
    user_id: int,
    request: UserUpdateRequest,
    store: EntityStore = Depends(get_entity_store),
) -> dict[str, Any]:
    for field, value in request.model_dump(exclude_none=True).items():
        if not store.update_entity_field("users", user_id, field, value):
            raise HTTPException(status_code=500, detail="Failed to update user")
    return {"success": True}


@router.patch("/extensions/{extension_id}")
def update_extension(
    extension_id: int,
    request: ExtensionUpdateRequest,
    store: EntityStore = Depends(get_entity_store),
) -> dict[str, Any]:
    if not store.update_entity_field("extensions", extension_id, "status", request.status):
        raise HTTPException(status_code=500, detail="Failed to update extension")
    return {"success": True}


@router.put("/models/{model_id}/default")
def set_default_model(
    model_id: int,
    store: EntityStore = Depends(get_entity_store),
) -> dict[str, Any]:
    if not store.set_default_model(model_id):
        raise HTTPException(status_code=500, detail="Failed to set default model")
    return {"success": True}
