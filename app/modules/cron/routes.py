from fastapi import APIRouter, Depends, Header, HTTPException
from app.config import settings
from app.modules.cron.schemas import WeeklySummaryResult
from app.modules.cron.service import WeeklySummaryService
from app.storage import DemoAwareStorage, get_storage
from typing import Optional
import secrets

router = APIRouter(prefix="/cron", tags=["cron"])


def get_weekly_summary_service(storage: DemoAwareStorage = Depends(get_storage)) -> WeeklySummaryService:
    return WeeklySummaryService(storage)


def verify_cron_secret(x_cron_secret: Optional[str] = Header(None)) -> None:
    if not settings.cron_secret:
        raise HTTPException(status_code=503, detail="Cron secret not configured")
    if not x_cron_secret or not secrets.compare_digest(x_cron_secret, settings.cron_secret):
        raise HTTPException(status_code=401, detail="Invalid cron secret")


@router.post("/weekly-summary", response_model=WeeklySummaryResult, dependencies=[Depends(verify_cron_secret)])
def send_weekly_summary(service: WeeklySummaryService = Depends(get_weekly_summary_service)):
    """Email every family's agenda for the coming week"""
    return service.run()
