from fastapi import APIRouter, Depends
from app.modules.family_members.schemas import (
    FamilyMemberCreate, FamilyMemberUpdate, FamilyMemberResponse
)
from app.core.dependencies import require_family_permission
from app.core.permissions import PermissionContext
from app.storage import DemoAwareStorage, get_storage
from typing import List

router = APIRouter(prefix="/family-members", tags=["family-members"])


@router.get("", response_model=List[FamilyMemberResponse])
async def list_family_members(
    context: PermissionContext = Depends(require_family_permission("view_calendar")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """List calendar participants of a family"""
    return storage.get_family_members(context.family_id)


@router.post("", response_model=FamilyMemberResponse, status_code=201)
async def create_family_member(
    member_data: FamilyMemberCreate,
    context: PermissionContext = Depends(require_family_permission("manage_members")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.create_family_member(context.family_id, member_data)


@router.put("/{member_id}", response_model=FamilyMemberResponse)
async def update_family_member(
    member_id: str,
    member_data: FamilyMemberUpdate,
    context: PermissionContext = Depends(require_family_permission("manage_members")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.update_family_member(context.family_id, member_id, member_data)


@router.delete("/{member_id}", status_code=204)
async def delete_family_member(
    member_id: str,
    context: PermissionContext = Depends(require_family_permission("manage_members")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Delete a participant; events left without participants are deleted too"""
    storage.delete_family_member(context.family_id, member_id)
    return None
