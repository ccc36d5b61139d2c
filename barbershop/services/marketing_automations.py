"""
Marketing automations: birthday greetings and inactive-client rescue
Runs every few minutes; each company is only processed within a few minutes
of its configured daily send time (business-local clock).
"""

import asyncio
import logging
import random
from datetime import date, datetime
from typing import Awaitable, Callable, NamedTuple, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import BusinessSettings, Client, Unit
from ..models_automation import AutomationType
from ..schemas import AutomationRunSummary
from ..shared.business_time import business_today, utcnow
from .automation_common import (
    SendFunc,
    dispatch_message,
    get_company_for_owner,
    require_api_url,
)
from .candidate_selector import (
    days_since_visit,
    get_marketing_clients,
    is_birthday,
    is_rescue_due,
    within_send_window,
)
from .credentials import get_unit_api_key
from .delivery_log import daily_dedup_key, has_birthday_log, has_rescue_log
from .evolution_service import send_text
from .message_templates import MessageContext, render_message
from .pacing import BatchContext

logger = logging.getLogger(__name__)

DEFAULT_SEND_HOUR = 10
DEFAULT_SEND_MINUTE = 0
DEFAULT_RESCUE_DAYS = 30


class PlannedMessage(NamedTuple):
    client: Client
    automation_type: AutomationType
    days_since_visit: Optional[int]


def plan_client_messages(
    settings: BusinessSettings, client: Client, now: datetime, today: date
) -> list[PlannedMessage]:
    """Automations a client qualifies for right now (birthday and rescue are independent)"""
    planned = []

    if settings.birthday_automation_enabled and is_birthday(client.birth_date, today):
        planned.append(PlannedMessage(client, AutomationType.BIRTHDAY, None))

    if settings.rescue_automation_enabled:
        threshold = settings.rescue_days_threshold or DEFAULT_RESCUE_DAYS
        if is_rescue_due(client.last_visit_at, now, threshold):
            planned.append(
                PlannedMessage(client, AutomationType.RESCUE, days_since_visit(client.last_visit_at, now))
            )

    return planned


async def run_marketing_automations(
    db: Session,
    now: Optional[datetime] = None,
    api_url: Optional[str] = None,
    sender: SendFunc = send_text,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> AutomationRunSummary:
    """
    Run one birthday/rescue pass over every company with either automation enabled.

    Raises:
        ConfigurationError: EVOLUTION_API_URL is not configured
    """
    api_url = require_api_url(api_url)
    now = now or utcnow()
    today = business_today(now)

    logger.info("=== STARTING MARKETING AUTOMATIONS ===")
    logger.info(f"Current time (UTC): {now.isoformat()}, business date: {today.isoformat()}")

    settings_list = (
        db.query(BusinessSettings)
        .filter(
            or_(
                BusinessSettings.birthday_automation_enabled.is_(True),
                BusinessSettings.rescue_automation_enabled.is_(True),
            )
        )
        .order_by(BusinessSettings.id.asc())
        .all()
    )

    summary = AutomationRunSummary()
    if not settings_list:
        logger.info("No company with marketing automations enabled")
        summary.message = "No company with marketing automations enabled"
        return summary

    logger.info(f"Found {len(settings_list)} companies with marketing automations")

    for settings in settings_list:
        send_hour = settings.automation_send_hour if settings.automation_send_hour is not None else DEFAULT_SEND_HOUR
        send_minute = (
            settings.automation_send_minute if settings.automation_send_minute is not None else DEFAULT_SEND_MINUTE
        )

        if not within_send_window(now, send_hour, send_minute):
            logger.debug(
                f"user_id={settings.user_id} outside send window ({send_hour:02d}:{send_minute:02d}), skipping"
            )
            continue

        logger.info(f"--- user_id={settings.user_id} inside send window ({send_hour:02d}:{send_minute:02d}) ---")

        try:
            await _run_company(db, settings, now, today, api_url, sender, sleep, rng, summary)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Marketing run failed for user_id={settings.user_id}, skipping company: {e}")
            continue

    logger.info(
        f"=== SUMMARY: {summary.sent} sent, {summary.failed} failed, "
        f"{summary.skipped} already sent, {summary.ignored} not dispatchable ==="
    )
    return summary


async def _run_company(
    db: Session,
    settings: BusinessSettings,
    now: datetime,
    today: date,
    api_url: str,
    sender: SendFunc,
    sleep: Callable[[float], Awaitable[None]],
    rng: Optional[random.Random],
    summary: AutomationRunSummary,
) -> None:
    company = get_company_for_owner(db, settings.user_id)
    if not company:
        logger.warning(f"Company not found for user_id={settings.user_id}")
        return

    clients = get_marketing_clients(db, company.id)
    if not clients:
        logger.info(f"No clients found for {company.name}")
        return

    planned: list[PlannedMessage] = []
    for client in clients:
        planned.extend(plan_client_messages(settings, client, now, today))

    if not planned:
        logger.info(f"No birthday or rescue due today for {company.name}")
        return

    units = (
        db.query(Unit)
        .filter(
            Unit.company_id == company.id,
            Unit.evolution_instance_name.isnot(None),
            Unit.evolution_api_key.isnot(None),
        )
        .all()
    )
    channels: dict[int, tuple[Unit, str]] = {}
    for unit in units:
        api_key = get_unit_api_key(unit)
        if api_key:
            channels[unit.id] = (unit, api_key)

    logger.info(f"Units with WhatsApp: {', '.join(unit.name for unit, _ in channels.values()) or 'none'}")

    dispatchable = []
    for item in planned:
        if not item.client.phone:
            summary.add_ignored(item.client.name, item.automation_type.value, "no_phone")
        elif item.client.unit_id not in channels:
            logger.info(f"Client {item.client.name} has no unit with WhatsApp")
            summary.add_ignored(item.client.name, item.automation_type.value, "no_whatsapp")
        else:
            dispatchable.append(item)

    batch = BatchContext(len(dispatchable), sleep=sleep, rng=rng)

    for item in dispatchable:
        client = item.client
        unit, api_key = channels[client.unit_id]

        if item.automation_type == AutomationType.BIRTHDAY:
            already_sent = has_birthday_log(db, client.id, now)
            template = settings.birthday_message_template
        else:
            already_sent = has_rescue_log(db, client.id, now)
            template = settings.rescue_message_template

        if already_sent:
            logger.info(f"{item.automation_type.value} already sent to {client.name}")
            summary.add_skipped(client.name, item.automation_type.value)
            continue

        if item.automation_type == AutomationType.BIRTHDAY:
            logger.info(f"🎂 Sending birthday greeting to {client.name}")
        else:
            logger.info(f"🔄 Sending rescue to {client.name} ({item.days_since_visit} days since last visit)")

        message = render_message(
            template,
            item.automation_type,
            MessageContext(
                client_name=client.name,
                unit_name=unit.name,
                days_since_visit=item.days_since_visit,
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
            phone=client.phone,
            text=message,
            recipient_label=client.name,
            automation_type=item.automation_type,
            company_id=company.id,
            dedup_key=daily_dedup_key(item.automation_type, client.id, today),
            client_id=client.id,
        )
