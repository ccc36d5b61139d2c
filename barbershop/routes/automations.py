"""
Automation trigger endpoints
Called by an external scheduler (or the ARQ worker) every few minutes
"""

import hmac
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..config import AUTOMATION_CRON_SECRET
from ..database import get_db
from ..models_automation import AutomationType
from ..schemas import AutomationLogResponse, AutomationRunSummary, ErrorResponse
from ..services.appointment_reminders import run_appointment_reminders
from ..services.automation_common import ConfigurationError
from ..services.delivery_log import list_recent_logs
from ..services.marketing_automations import run_marketing_automations

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/automations", tags=["automations"])


def verify_cron_secret(x_cron_secret: Optional[str] = Header(None)):
    """Require X-Cron-Secret when AUTOMATION_CRON_SECRET is configured"""
    if not AUTOMATION_CRON_SECRET:
        return
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, AUTOMATION_CRON_SECRET):
        logger.warning("⚠️ Automation trigger rejected: invalid X-Cron-Secret")
        raise HTTPException(status_code=401, detail="Invalid cron secret")


def _error_response(error: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(error)})


@router.options("/appointment-reminders")
@router.options("/marketing")
async def automation_preflight():
    """
    Pre-flight without an Origin header (schedulers, health checks).
    Browser pre-flights are answered by CORSMiddleware before reaching here.
    """
    return Response(status_code=200)


@router.post(
    "/appointment-reminders",
    response_model=AutomationRunSummary,
    responses={500: {"model": ErrorResponse}},
    dependencies=[Depends(verify_cron_secret)],
)
async def trigger_appointment_reminders(db: Session = Depends(get_db)):
    """Send reminders for appointments entering their reminder window"""
    try:
        return await run_appointment_reminders(db)
    except ConfigurationError as e:
        logger.error(f"❌ Appointment reminders not configured: {str(e)}")
        return _error_response(e)
    except Exception as e:
        logger.error(f"❌ Appointment reminder run failed: {str(e)}")
        return _error_response(e)


@router.post(
    "/marketing",
    response_model=AutomationRunSummary,
    responses={500: {"model": ErrorResponse}},
    dependencies=[Depends(verify_cron_secret)],
)
async def trigger_marketing_automations(db: Session = Depends(get_db)):
    """Send birthday and rescue messages for companies at their daily send time"""
    try:
        return await run_marketing_automations(db)
    except ConfigurationError as e:
        logger.error(f"❌ Marketing automations not configured: {str(e)}")
        return _error_response(e)
    except Exception as e:
        logger.error(f"❌ Marketing automation run failed: {str(e)}")
        return _error_response(e)


@router.get(
    "/logs",
    response_model=List[AutomationLogResponse],
    dependencies=[Depends(verify_cron_secret)],
)
async def get_automation_logs(
    company_id: Optional[int] = None,
    automation_type: Optional[AutomationType] = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Most recent delivery log rows, newest first"""
    return list_recent_logs(db, company_id=company_id, automation_type=automation_type, limit=limit)
