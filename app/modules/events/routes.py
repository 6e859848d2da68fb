from fastapi import APIRouter, Depends
from app.modules.events.schemas import (
    EventCreate, EventUpdate, EventResponse, EventPhotoUpdate,
    MessageCreate, MessageBody, MessageResponse,
    EventNoteCreate, EventNoteBody, EventNoteResponse
)
from app.modules.objects.s3_storage import normalize_object_url
from app.core.dependencies import require_family_permission
from app.core.errors import NotFoundError
from app.core.permissions import PermissionContext, require_permission
from app.storage import DemoAwareStorage, get_storage
from typing import List

router = APIRouter(prefix="/events", tags=["events"])


def _get_event_or_404(storage: DemoAwareStorage, family_id: str, event_id: str) -> EventResponse:
    event = storage.get_event(family_id, event_id)
    if not event:
        raise NotFoundError("Event not found")
    return event


@router.get("", response_model=List[EventResponse])
async def list_events(
    context: PermissionContext = Depends(require_family_permission("view_calendar")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """List a family's events ordered by start time"""
    return storage.get_events(context.family_id)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    context: PermissionContext = Depends(require_family_permission("view_calendar")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return _get_event_or_404(storage, context.family_id, event_id)


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(
    event_data: EventCreate,
    context: PermissionContext = Depends(require_family_permission("edit_events")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.create_event(context.family_id, event_data)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    event_data: EventUpdate,
    context: PermissionContext = Depends(require_family_permission("edit_events")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.update_event(context.family_id, event_id, event_data)


@router.delete("/{event_id}", status_code=204)
async def delete_event(
    event_id: str,
    context: PermissionContext = Depends(require_family_permission("delete_events")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Delete an event with its messages and notes"""
    storage.delete_event(context.family_id, event_id)
    return None


@router.post("/{event_id}/complete", response_model=EventResponse)
async def toggle_event_completion(
    event_id: str,
    context: PermissionContext = Depends(require_family_permission("complete_events")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Flip the completed flag; completed_at is stamped or cleared with it"""
    return storage.toggle_event_completion(context.family_id, event_id)


@router.put("/{event_id}/photo", response_model=EventResponse)
async def set_event_photo(
    event_id: str,
    photo_data: EventPhotoUpdate,
    context: PermissionContext = Depends(require_family_permission("edit_events")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Attach an uploaded photo; null removes it"""
    photo_url = normalize_object_url(photo_data.photo_url) if photo_data.photo_url else None
    return storage.set_event_photo(context.family_id, event_id, photo_url)


# Notes

@router.get("/{event_id}/notes", response_model=List[EventNoteResponse])
async def list_event_notes(
    event_id: str,
    context: PermissionContext = Depends(require_family_permission("view_calendar")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    _get_event_or_404(storage, context.family_id, event_id)
    return storage.get_event_notes(context.family_id, event_id)


@router.post("/{event_id}/notes", response_model=EventNoteResponse, status_code=201)
async def create_event_note(
    event_id: str,
    note_data: EventNoteBody,
    context: PermissionContext = Depends(require_family_permission("view_calendar")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Add a note, or a reply when parent_note_id is given"""
    return storage.create_event_note(context.family_id, EventNoteCreate(
        event_id=event_id,
        author_id=context.user_id,
        content=note_data.content,
        parent_note_id=note_data.parent_note_id,
    ))


@router.delete("/{event_id}/notes/{note_id}", status_code=204)
async def delete_event_note(
    event_id: str,
    note_id: str,
    context: PermissionContext = Depends(require_family_permission("view_calendar")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Authors delete their own notes; anyone who can edit events may delete any"""
    note = next((n for n in storage.get_event_notes(context.family_id, event_id) if n.id == note_id), None)
    if not note:
        raise NotFoundError("Note not found")
    if note.author_id != context.user_id:
        require_permission(context, "edit_events")
    storage.delete_event_note(context.family_id, note_id)
    return None


# Event chat

@router.get("/{event_id}/messages", response_model=List[MessageResponse])
async def list_event_messages(
    event_id: str,
    context: PermissionContext = Depends(require_family_permission("view_calendar")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Messages newest first"""
    _get_event_or_404(storage, context.family_id, event_id)
    return storage.get_event_messages(context.family_id, event_id)


@router.post("/{event_id}/messages", response_model=MessageResponse, status_code=201)
async def create_event_message(
    event_id: str,
    message_data: MessageBody,
    context: PermissionContext = Depends(require_family_permission("view_calendar")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    sender_name = message_data.sender_name
    if not sender_name:
        user = storage.get_user(context.user_id)
        sender_name = user.display_name if user else "Someone"
    return storage.create_message(context.family_id, MessageCreate(
        event_id=event_id,
        sender_id=context.user_id,
        sender_name=sender_name,
        content=message_data.content,
    ))


@router.delete("/{event_id}/messages/{message_id}", status_code=204)
async def delete_event_message(
    event_id: str,
    message_id: str,
    context: PermissionContext = Depends(require_family_permission("view_calendar")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Senders delete their own messages; anyone who can delete events may delete any"""
    message = next((m for m in storage.get_event_messages(context.family_id, event_id) if m.id == message_id), None)
    if not message:
        raise NotFoundError("Message not found")
    if message.sender_id != context.user_id:
        require_permission(context, "delete_events")
    storage.delete_message(context.family_id, message_id)
    return None
