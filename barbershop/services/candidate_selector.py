"""
Recipient selection for the scheduled automations
Reminders: appointments starting around now + lead time
Marketing: clients with a birthday today or inactive past the threshold
"""

import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models import Appointment, Client
from ..shared.business_time import to_business_time

logger = logging.getLogger(__name__)

# Tolerance around the target instant; absorbs jitter between cron ticks
WINDOW_TOLERANCE_MINUTES = 3

REMINDABLE_STATUSES = ("pending", "confirmed")

MINUTES_PER_DAY = 24 * 60


def reminder_window(now: datetime, lead_minutes: int) -> tuple[datetime, datetime]:
    """Inclusive [start, end] range of appointment start times to remind at `now`"""
    target = now + timedelta(minutes=lead_minutes)
    tolerance = timedelta(minutes=WINDOW_TOLERANCE_MINUTES)
    return target - tolerance, target + tolerance


def get_reminder_appointments(
    db: Session, company_id: int, now: datetime, lead_minutes: int
) -> list[Appointment]:
    """Pending/confirmed appointments of a company that start inside the reminder window"""
    window_start, window_end = reminder_window(now, lead_minutes)
    logger.info(f"Reminder window: {window_start.isoformat()} to {window_end.isoformat()}")

    return (
        db.query(Appointment)
        .filter(
            Appointment.company_id == company_id,
            Appointment.status.in_(REMINDABLE_STATUSES),
            Appointment.start_time >= window_start,
            Appointment.start_time <= window_end,
        )
        .order_by(Appointment.start_time.asc(), Appointment.id.asc())
        .all()
    )


def group_by_unit(appointments: list[Appointment]) -> "OrderedDict[int, list[Appointment]]":
    """Group appointments by unit, keeping selection order"""
    grouped: "OrderedDict[int, list[Appointment]]" = OrderedDict()
    for appointment in appointments:
        grouped.setdefault(appointment.unit_id, []).append(appointment)
    return grouped


def minutes_from_send_time(local_now: datetime, send_hour: int, send_minute: int) -> int:
    """Distance in minutes between local wall clock and the configured send time, around the clock"""
    configured = send_hour * 60 + send_minute
    current = local_now.hour * 60 + local_now.minute
    diff = abs(configured - current) % MINUTES_PER_DAY
    return min(diff, MINUTES_PER_DAY - diff)


def within_send_window(now: datetime, send_hour: int, send_minute: int) -> bool:
    """True when business-local `now` is within the tolerance of the daily send time"""
    local_now = to_business_time(now)
    return minutes_from_send_time(local_now, send_hour, send_minute) <= WINDOW_TOLERANCE_MINUTES


def is_birthday(birth_date: Optional[date], today: date) -> bool:
    """Month and day match today's business-local date (year ignored)"""
    if birth_date is None:
        return False
    return (birth_date.month, birth_date.day) == (today.month, today.day)


def days_since_visit(last_visit_at: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days elapsed since the last visit, or None if the client never visited"""
    if last_visit_at is None:
        return None
    return (now - last_visit_at) // timedelta(days=1)


def is_rescue_due(last_visit_at: Optional[datetime], now: datetime, threshold_days: int) -> bool:
    days = days_since_visit(last_visit_at, now)
    return days is not None and days >= threshold_days


def get_marketing_clients(db: Session, company_id: int) -> list[Client]:
    """Clients of a company that have not opted out of marketing messages"""
    return (
        db.query(Client)
        .filter(
            Client.company_id == company_id,
            or_(Client.marketing_opt_out.is_(None), Client.marketing_opt_out.is_(False)),
        )
        .order_by(Client.id.asc())
        .all()
    )


def find_client_for_appointment(db: Session, appointment: Appointment) -> Optional[Client]:
    """Client record matching the appointment's phone, as typed or digits-only"""
    if not appointment.client_phone:
        return None

    digits = "".join(ch for ch in appointment.client_phone if ch.isdigit())
    return (
        db.query(Client)
        .filter(
            Client.company_id == appointment.company_id,
            Client.unit_id == appointment.unit_id,
            or_(Client.phone == digits, Client.phone == appointment.client_phone),
        )
        .first()
    )
