"""
Appointment reminder automation
Sends one WhatsApp reminder per appointment, `appointment_reminder_minutes`
before it starts. Meant to be triggered every few minutes (cron / ARQ).
"""

import asyncio
import logging
import random
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Appointment, Barber, BusinessSettings, Service, Unit
from ..models_automation import AutomationType
from ..schemas import AutomationRunSummary
from ..shared.business_time import utcnow
from .automation_common import (
    SendFunc,
    dispatch_message,
    get_company_for_owner,
    require_api_url,
)
from .candidate_selector import (
    find_client_for_appointment,
    get_reminder_appointments,
    group_by_unit,
)
from .credentials import get_unit_api_key
from .delivery_log import has_reminder_log, reminder_dedup_key
from .evolution_service import send_text
from .message_templates import MessageContext, render_message
from .pacing import BatchContext

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_MINUTES = 30


def _label(appointment: Appointment) -> str:
    return appointment.client_name or f"appointment {appointment.id}"


def _names_by_id(db: Session, model, ids: set) -> dict:
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    return {row.id: row.name for row in db.query(model).filter(model.id.in_(ids)).all()}


async def run_appointment_reminders(
    db: Session,
    now: Optional[datetime] = None,
    api_url: Optional[str] = None,
    sender: SendFunc = send_text,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> AutomationRunSummary:
    """
    Run one reminder pass over every company with reminders enabled.

    Raises:
        ConfigurationError: EVOLUTION_API_URL is not configured
    """
    api_url = require_api_url(api_url)
    now = now or utcnow()

    logger.info("=== STARTING APPOINTMENT REMINDERS ===")
    logger.info(f"Current time (UTC): {now.isoformat()}")

    settings_list = (
        db.query(BusinessSettings)
        .filter(BusinessSettings.appointment_reminder_enabled.is_(True))
        .order_by(BusinessSettings.id.asc())
        .all()
    )

    summary = AutomationRunSummary()
    if not settings_list:
        logger.info("No company with appointment reminders enabled")
        summary.message = "No company with appointment reminders enabled"
        return summary

    logger.info(f"Found {len(settings_list)} companies with appointment reminders enabled")

    for settings in settings_list:
        try:
            await _remind_company(db, settings, now, api_url, sender, sleep, rng, summary)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Reminder run failed for user_id={settings.user_id}, skipping company: {e}")
            continue

    logger.info(
        f"=== SUMMARY: {summary.sent} sent, {summary.failed} failed, "
        f"{summary.skipped} already sent, {summary.ignored} not dispatchable ==="
    )
    return summary


async def _remind_company(
    db: Session,
    settings: BusinessSettings,
    now: datetime,
    api_url: str,
    sender: SendFunc,
    sleep: Callable[[float], Awaitable[None]],
    rng: Optional[random.Random],
    summary: AutomationRunSummary,
) -> None:
    reminder_minutes = settings.appointment_reminder_minutes or DEFAULT_REMINDER_MINUTES
    logger.info(f"--- Processing user_id={settings.user_id}, reminder={reminder_minutes}min ---")

    company = get_company_for_owner(db, settings.user_id)
    if not company:
        logger.warning(f"Company not found for user_id={settings.user_id}")
        return

    appointments = get_reminder_appointments(db, company.id, now, reminder_minutes)
    if not appointments:
        logger.info(f"No appointments in the reminder window for {company.name}")
        return

    logger.info(f"Found {len(appointments)} appointments in the window for {company.name}")

    reachable = []
    for appointment in appointments:
        if not appointment.client_phone:
            logger.info(f"Appointment {appointment.id} has no phone, skipping")
            summary.add_ignored(_label(appointment), AutomationType.APPOINTMENT_REMINDER.value, "no_phone")
            continue
        reachable.append(appointment)

    for unit_id, unit_appointments in group_by_unit(reachable).items():
        unit = db.query(Unit).filter(Unit.id == unit_id).first()
        api_key = get_unit_api_key(unit) if unit else None
        if not unit or not api_key:
            logger.info(f"Unit {unit.name if unit else unit_id} has no WhatsApp configured")
            for appointment in unit_appointments:
                summary.add_ignored(
                    _label(appointment), AutomationType.APPOINTMENT_REMINDER.value, "no_whatsapp"
                )
            continue

        logger.info(f"Processing unit: {unit.name} (instance: {unit.evolution_instance_name})")

        barber_names = _names_by_id(db, Barber, {a.barber_id for a in unit_appointments})
        service_names = _names_by_id(db, Service, {a.service_id for a in unit_appointments})

        batch = BatchContext(len(unit_appointments), sleep=sleep, rng=rng)

        for appointment in unit_appointments:
            label = _label(appointment)

            if has_reminder_log(db, appointment.id):
                logger.info(f"Reminder already sent for appointment {appointment.id}")
                summary.add_skipped(label, AutomationType.APPOINTMENT_REMINDER.value)
                continue

            client = find_client_for_appointment(db, appointment)

            message = render_message(
                settings.appointment_reminder_template,
                AutomationType.APPOINTMENT_REMINDER,
                MessageContext(
                    client_name=appointment.client_name or "Cliente",
                    starts_at=appointment.start_time,
                    staff_name=barber_names.get(appointment.barber_id) or "Profissional",
                    service_name=service_names.get(appointment.service_id) or "Serviço",
                    unit_name=unit.name,
                ),
            )

            await dispatch_message(
                db,
                summary=summary,
                batch=batch,
                sender=sender,
                api_url=api_url,
                unit=unit,
                api_key=api_key,
                phone=appointment.client_phone,
                text=message,
                recipient_label=label,
                automation_type=AutomationType.APPOINTMENT_REMINDER,
                company_id=company.id,
                dedup_key=reminder_dedup_key(appointment.id),
                client_id=client.id if client else None,
                appointment_id=appointment.id,
            )
