"""
Automation Log Model
Append-only record of every outbound automation attempt (sent or failed).
This table is the only source of truth for "already sent" decisions.
"""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from .database import Base


class AutomationType(str, Enum):
    APPOINTMENT_REMINDER = "appointment_reminder"
    BIRTHDAY = "birthday"
    RESCUE = "rescue"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


class AutomationLog(Base):
    """Track WhatsApp messages sent by the scheduled automations"""

    __tablename__ = "automation_logs"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)

    automation_type = Column(String(50), nullable=False)  # appointment_reminder, birthday, rescue
    status = Column(String(20), nullable=False)  # sent, failed
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime, nullable=False)  # UTC

    # One row per idempotency bucket; a second insert for the same bucket fails
    dedup_key = Column(String(255), nullable=False, unique=True)

    __table_args__ = (
        Index("ix_automation_logs_appointment_type", "appointment_id", "automation_type"),
        Index("ix_automation_logs_client_type_sent", "client_id", "automation_type", "sent_at"),
    )
