from fastapi import APIRouter, Depends, Query
from app.modules.medications.schemas import (
    MedicationCreate, MedicationUpdate, MedicationResponse,
    MedicationLogCreate, MedicationLogBody, MedicationLogResponse
)
from app.core.dependencies import require_family_permission
from app.core.errors import NotFoundError
from app.core.permissions import PermissionContext
from app.core.timeutils import naive_utc
from app.storage import DemoAwareStorage, get_storage
from datetime import datetime
from typing import List, Optional

router = APIRouter(prefix="/medications", tags=["medications"])


@router.get("", response_model=List[MedicationResponse])
async def list_medications(
    include_inactive: bool = False,
    context: PermissionContext = Depends(require_family_permission("view_medications")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Active medications; include_inactive=true also returns discontinued ones"""
    return storage.get_medications(context.family_id, include_inactive)


@router.post("", response_model=MedicationResponse, status_code=201)
async def create_medication(
    medication_data: MedicationCreate,
    context: PermissionContext = Depends(require_family_permission("manage_medications")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.create_medication(context.family_id, medication_data)


# Registered before /{medication_id} so "logs" is not taken for an id
@router.get("/logs", response_model=List[MedicationLogResponse])
async def list_medication_logs(
    medication_id: Optional[str] = None,
    since: Optional[datetime] = Query(None),
    context: PermissionContext = Depends(require_family_permission("view_medications")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Administration history newest first, optionally for one medication or since a time"""
    return storage.get_medication_logs(context.family_id, medication_id, naive_utc(since))


@router.get("/{medication_id}", response_model=MedicationResponse)
async def get_medication(
    medication_id: str,
    context: PermissionContext = Depends(require_family_permission("view_medications")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    medication = storage.get_medication(context.family_id, medication_id)
    if not medication:
        raise NotFoundError("Medication not found")
    return medication


@router.put("/{medication_id}", response_model=MedicationResponse)
async def update_medication(
    medication_id: str,
    medication_data: MedicationUpdate,
    context: PermissionContext = Depends(require_family_permission("manage_medications")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    return storage.update_medication(context.family_id, medication_id, medication_data)


@router.delete("/{medication_id}", status_code=204)
async def delete_medication(
    medication_id: str,
    context: PermissionContext = Depends(require_family_permission("manage_medications")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Discontinue a medication; its logs are kept"""
    storage.delete_medication(context.family_id, medication_id)
    return None


@router.post("/{medication_id}/logs", response_model=MedicationLogResponse, status_code=201)
async def log_medication(
    medication_id: str,
    log_data: MedicationLogBody,
    context: PermissionContext = Depends(require_family_permission("log_medications")),
    storage: DemoAwareStorage = Depends(get_storage)
):
    """Record a dose given or skipped by the caller"""
    return storage.create_medication_log(context.family_id, MedicationLogCreate(
        medication_id=medication_id,
        administered_by=context.user_id,
        administered_at=log_data.administered_at or datetime.utcnow(),
        scheduled_time=log_data.scheduled_time,
        status=log_data.status,
        notes=log_data.notes,
    ))
