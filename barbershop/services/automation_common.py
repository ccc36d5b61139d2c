"""
Pieces shared by the appointment reminder and marketing automation runs:
configuration guard, company lookup, and the pace -> send -> record step
"""

import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy.orm import Session

from ..config import EVOLUTION_API_URL
from ..models import Company, Unit
from ..models_automation import AutomationType, DeliveryStatus
from ..schemas import AutomationRunSummary
from ..shared.business_time import utcnow
from ..shared.validators import normalize_whatsapp_phone
from .delivery_log import record_outcome
from .pacing import BatchContext

logger = logging.getLogger(__name__)

# send_text(api_url, instance_name, api_key, number, text, presence_delay_ms)
SendFunc = Callable[..., Awaitable[tuple[bool, Optional[str]]]]


class ConfigurationError(Exception):
    """Raised when a run cannot start because a required setting is missing"""

    pass


def require_api_url(api_url: Optional[str] = None) -> str:
    url = api_url or EVOLUTION_API_URL
    if not url:
        logger.error("❌ EVOLUTION_API_URL not configured")
        raise ConfigurationError("EVOLUTION_API_URL not configured")
    return url


def get_company_for_owner(db: Session, owner_user_id: str) -> Optional[Company]:
    return (
        db.query(Company)
        .filter(Company.owner_user_id == owner_user_id)
        .order_by(Company.id.asc())
        .first()
    )


async def dispatch_message(
    db: Session,
    *,
    summary: AutomationRunSummary,
    batch: BatchContext,
    sender: SendFunc,
    api_url: str,
    unit: Unit,
    api_key: str,
    phone: str,
    text: str,
    recipient_label: str,
    automation_type: AutomationType,
    company_id: int,
    dedup_key: str,
    client_id: Optional[int] = None,
    appointment_id: Optional[int] = None,
) -> bool:
    """
    Wait for the recipient's turn in the batch, send, and record the outcome.
    Every attempt is recorded, so a failed send is not retried by later ticks.
    """
    await batch.wait_turn(recipient_label)

    number = normalize_whatsapp_phone(phone)
    logger.info(f"📱 Sending {automation_type.value} to {recipient_label} ({number})")

    try:
        success, error = await sender(
            api_url,
            unit.evolution_instance_name,
            api_key,
            number,
            text,
            batch.presence_delay(),
        )
    except Exception as e:
        success, error = False, str(e) or type(e).__name__

    recorded = record_outcome(
        db,
        company_id=company_id,
        automation_type=automation_type,
        status=DeliveryStatus.SENT if success else DeliveryStatus.FAILED,
        dedup_key=dedup_key,
        sent_at=utcnow(),
        client_id=client_id,
        appointment_id=appointment_id,
        error_message=error,
    )

    if not recorded:
        # An overlapping run already recorded this bucket; the row stays theirs
        logger.warning(f"⚠️ {automation_type.value} to {recipient_label} duplicated an overlapping run")
        summary.add_skipped(recipient_label, automation_type.value, detail="already_recorded")
    elif success:
        logger.info(f"✅ {automation_type.value} sent to {recipient_label}")
        summary.add_sent(recipient_label, automation_type.value)
    else:
        logger.error(f"❌ Failed to send {automation_type.value} to {recipient_label}: {error}")
        summary.add_failed(recipient_label, automation_type.value, error)

    return success
