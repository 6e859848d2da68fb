from fastapi import APIRouter, Depends, HTTPException
from app.modules.families.schemas import (
    FamilyCreate, FamilyUpdate, FamilyResponse, FamilyWithRoleResponse,
    FamilyJoin, FamilyInvite, FamilyMembershipResponse, MembershipRoleUpdate, RoleResponse
)
from app.modules.families.invites import join_url, render_invite_email
from app.modules.cron.email_client import ResendEmailClient, get_email_client
from app.config.permissions_config import DEFAULT_ROLE
from app.core.dependencies import get_current_user_id, get_path_family_context
from app.core.errors import InvalidOperationError, NotFoundError
from app.core.permissions import PermissionContext, require_permission
from app.storage import DemoAwareStorage, get_storage
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/families", tags=["families"])


@router.get("", response_model=List[FamilyWithRoleResponse])
async def list_families(
    user_id: str = Depends(get_current_user_id),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """List the families the caller belongs to, with the caller's role in each"""
    families = []
    for family in storage.get_user_families(user_id):
        membership = storage.get_user_family_membership(user_id, family.id)
        if membership:
            families.append(FamilyWithRoleResponse(**family.model_dump(), role=membership.role))
    return families


@router.post("", response_model=FamilyResponse, status_code=201)
async def create_family(
    family_data: FamilyCreate,
    user_id: str = Depends(get_current_user_id),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Create a family; the caller becomes its owner"""
    return storage.create_family(user_id, family_data)


@router.post("/join", response_model=FamilyMembershipResponse)
async def join_family(
    join_data: FamilyJoin,
    user_id: str = Depends(get_current_user_id),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Join a family by invite code as a member"""
    return storage.join_family(user_id, join_data.invite_code, DEFAULT_ROLE)


@router.get("/{family_id}", response_model=FamilyResponse)
async def get_family(
    context: PermissionContext = Depends(get_path_family_context),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.get_user_family(context.user_id, context.family_id)


@router.put("/{family_id}", response_model=FamilyResponse)
async def update_family(
    family_data: FamilyUpdate,
    context: PermissionContext = Depends(get_path_family_context),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Rename the family (requires manage_family)"""
    require_permission(context, "manage_family")
    return storage.update_family(context.family_id, family_data)


@router.get("/{family_id}/role", response_model=RoleResponse)
async def get_my_role(context: PermissionContext = Depends(get_path_family_context)):
    return RoleResponse(role=context.role)


@router.get("/{family_id}/memberships", response_model=List[FamilyMembershipResponse])
async def list_memberships(
    context: PermissionContext = Depends(get_path_family_context),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.get_family_memberships(context.family_id)


@router.put("/{family_id}/memberships/{user_id}", response_model=FamilyMembershipResponse)
async def update_membership_role(
    user_id: str,
    role_data: MembershipRoleUpdate,
    context: PermissionContext = Depends(get_path_family_context),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Change another user's role in the family (requires manage_family)"""
    require_permission(context, "manage_family")
    if user_id == context.user_id:
        raise InvalidOperationError("You cannot change your own role")
    return storage.update_membership_role(context.family_id, user_id, role_data.role)


@router.post("/{family_id}/invite")
def send_invite(
    invite: FamilyInvite,
    context: PermissionContext = Depends(get_path_family_context),
    storage: DemoAwareStorage = Depends(get_storage),
    email_client: ResendEmailClient = Depends(get_email_client)
):
    """Email the family's invite code to someone (requires manage_family)"""
    require_permission(context, "manage_family")
    family = storage.get_user_family(context.user_id, context.family_id)
    if not family:
        raise NotFoundError("Family not found")
    if not email_client.configured:
        raise HTTPException(status_code=503, detail="Email service not configured")

    subject, html, text = render_invite_email(family, join_url())
    if not email_client.send(invite.email, subject, html, text):
        raise HTTPException(status_code=502, detail="Invite email could not be sent")
    logger.info(f"User {context.user_id} sent an invite for family {family.id}")
    return {"success": True}
