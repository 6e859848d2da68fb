from fastapi import APIRouter, Depends
from app.modules.messages.schemas import (
    FamilyMessageCreate, FamilyMessageBody, FamilyMessageResponse
)
from app.core.dependencies import require_family_permission
from app.core.errors import NotFoundError, PermissionDeniedError
from app.core.permissions import PermissionContext
from app.storage import DemoAwareStorage, get_storage
from typing import List

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("", response_model=List[FamilyMessageResponse])
async def list_family_messages(
    context: PermissionContext = Depends(require_family_permission("view_messages")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Family message board, oldest first; replies carry parent_message_id"""
    return storage.get_family_messages(context.family_id)


@router.post("", response_model=FamilyMessageResponse, status_code=201)
async def create_family_message(
    message_data: FamilyMessageBody,
    context: PermissionContext = Depends(require_family_permission("post_messages")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.create_family_message(context.family_id, FamilyMessageCreate(
        author_id=context.user_id,
        content=message_data.content,
        parent_message_id=message_data.parent_message_id,
    ))


@router.delete("/{message_id}", status_code=204)
async def delete_family_message(
    message_id: str,
    context: PermissionContext = Depends(require_family_permission("post_messages")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Authors and family owners may delete a message together with its replies"""
    message = next((m for m in storage.get_family_messages(context.family_id) if m.id == message_id), None)
    if not message:
        raise NotFoundError("Message not found")
    if message.author_id != context.user_id and context.role != "owner":
        raise PermissionDeniedError("Only the author or a family owner can delete this message")
    storage.delete_family_message(context.family_id, message_id)
    return None
