"""
Automation delivery log
Dedup lookups before a send and append-only outcome records after it
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models_automation import AutomationLog, AutomationType, DeliveryStatus
from ..shared.business_time import business_day_start_utc

logger = logging.getLogger(__name__)

# A client gets at most one rescue message per cool-down, even if still inactive
RESCUE_COOLDOWN_DAYS = 30


def reminder_dedup_key(appointment_id: int) -> str:
    return f"{AutomationType.APPOINTMENT_REMINDER.value}:{appointment_id}"


def daily_dedup_key(automation_type: AutomationType, client_id: int, business_date: date) -> str:
    return f"{automation_type.value}:{client_id}:{business_date.isoformat()}"


def has_reminder_log(db: Session, appointment_id: int) -> bool:
    """Reminders are one-shot per appointment"""
    existing = (
        db.query(AutomationLog.id)
        .filter(
            AutomationLog.appointment_id == appointment_id,
            AutomationLog.automation_type == AutomationType.APPOINTMENT_REMINDER.value,
        )
        .first()
    )
    return existing is not None


def has_client_log_since(
    db: Session, client_id: int, automation_type: AutomationType, since: datetime
) -> bool:
    existing = (
        db.query(AutomationLog.id)
        .filter(
            AutomationLog.client_id == client_id,
            AutomationLog.automation_type == automation_type.value,
            AutomationLog.sent_at >= since,
        )
        .first()
    )
    return existing is not None


def has_birthday_log(db: Session, client_id: int, now: datetime) -> bool:
    """Birthday already handled during the current business-local day"""
    return has_client_log_since(db, client_id, AutomationType.BIRTHDAY, business_day_start_utc(now))


def has_rescue_log(db: Session, client_id: int, now: datetime) -> bool:
    """Rescue already handled within the cool-down window"""
    since = now - timedelta(days=RESCUE_COOLDOWN_DAYS)
    return has_client_log_since(db, client_id, AutomationType.RESCUE, since)


def record_outcome(
    db: Session,
    *,
    company_id: int,
    automation_type: AutomationType,
    status: DeliveryStatus,
    dedup_key: str,
    sent_at: datetime,
    client_id: Optional[int] = None,
    appointment_id: Optional[int] = None,
    error_message: Optional[str] = None,
) -> bool:
    """
    Append the outcome of a send attempt.

    Returns False when another run already recorded this bucket (unique
    dedup_key violation); the row is not written twice.
    """
    log = AutomationLog(
        company_id=company_id,
        client_id=client_id,
        appointment_id=appointment_id,
        automation_type=automation_type.value,
        status=status.value,
        error_message=error_message,
        sent_at=sent_at,
        dedup_key=dedup_key,
    )
    db.add(log)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"⚠️ Automation log {dedup_key} already recorded by an overlapping run")
        return False

    return True


def list_recent_logs(
    db: Session,
    company_id: Optional[int] = None,
    automation_type: Optional[AutomationType] = None,
    limit: int = 50,
) -> list[AutomationLog]:
    query = db.query(AutomationLog)
    if company_id is not None:
        query = query.filter(AutomationLog.company_id == company_id)
    if automation_type is not None:
        query = query.filter(AutomationLog.automation_type == automation_type.value)
    return query.order_by(AutomationLog.sent_at.desc(), AutomationLog.id.desc()).limit(limit).all()
