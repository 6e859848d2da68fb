from fastapi import APIRouter, Depends
from app.modules.caregivers.schemas import (
    PayRateSet, PayRateResponse, TimeEntryCreate, TimeEntryResponse
)
from app.core.dependencies import get_family_context, require_family_permission
from app.core.errors import NotFoundError
from app.core.permissions import PermissionContext, has_permission, require_permission
from app.storage import DemoAwareStorage, get_storage
from typing import List, Optional

router = APIRouter(prefix="/caregivers", tags=["caregivers"])


@router.get("/pay-rates", response_model=List[PayRateResponse])
async def list_pay_rates(
    context: PermissionContext = Depends(require_family_permission("view_pay_rates")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.get_caregiver_pay_rates(context.family_id)


@router.get("/{user_id}/pay-rate", response_model=PayRateResponse)
async def get_pay_rate(
    user_id: str,
    context: PermissionContext = Depends(get_family_context),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Caregivers may read their own rate; other rates need view_pay_rates"""
    if user_id != context.user_id:
        require_permission(context, "view_pay_rates")
    rate = storage.get_caregiver_pay_rate(context.family_id, user_id)
    if not rate:
        raise NotFoundError("No pay rate set for this caregiver")
    return rate


@router.put("/{user_id}/pay-rate", response_model=PayRateResponse)
async def set_pay_rate(
    user_id: str,
    rate_data: PayRateSet,
    context: PermissionContext = Depends(require_family_permission("manage_pay_rates")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Create or replace a caregiver's hourly rate; existing time entries keep their rate"""
    if not storage.get_user_family_membership(user_id, context.family_id):
        raise NotFoundError("Caregiver is not a member of this family")
    return storage.set_caregiver_pay_rate(context.family_id, user_id, rate_data)


@router.get("/time-entries", response_model=List[TimeEntryResponse])
async def list_time_entries(
    caregiver_user_id: Optional[str] = None,
    context: PermissionContext = Depends(require_family_permission("view_time_entries")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Time entries newest first; without view_pay_rates a caller only sees their own"""
    if not has_permission(context, "view_pay_rates"):
        caregiver_user_id = context.user_id
    return storage.get_caregiver_time_entries(context.family_id, caregiver_user_id)


@router.post("/time-entries", response_model=TimeEntryResponse, status_code=201)
async def create_time_entry(
    entry_data: TimeEntryCreate,
    context: PermissionContext = Depends(require_family_permission("log_time")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Log worked time for the caller at their current rate"""
    return storage.create_caregiver_time_entry(context.family_id, context.user_id, entry_data)


@router.delete("/time-entries/{entry_id}", status_code=204)
async def delete_time_entry(
    entry_id: str,
    context: PermissionContext = Depends(require_family_permission("manage_pay_rates")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    storage.delete_caregiver_time_entry(context.family_id, entry_id)
    return None
