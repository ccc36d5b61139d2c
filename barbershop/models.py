from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Company(Base):
    """A tenant: one barbershop business, possibly with several units"""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    owner_user_id = Column(String(255), index=True, nullable=False)  # External auth user id
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    units = relationship("Unit", back_populates="company")
    clients = relationship("Client", back_populates="company")
    appointments = relationship("Appointment", back_populates="company")


class BusinessSettings(Base):
    """Per-owner automation configuration, edited by the settings screen"""

    __tablename__ = "business_settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), unique=True, index=True, nullable=False)

    # Appointment reminders
    appointment_reminder_enabled = Column(Boolean, default=False, nullable=False)
    appointment_reminder_minutes = Column(Integer, default=30, nullable=True)  # Lead time
    appointment_reminder_template = Column(Text, nullable=True)

    # Birthday greetings
    birthday_automation_enabled = Column(Boolean, default=False, nullable=False)
    birthday_message_template = Column(Text, nullable=True)

    # Rescue (re-engagement) for inactive clients
    rescue_automation_enabled = Column(Boolean, default=False, nullable=False)
    rescue_message_template = Column(Text, nullable=True)
    rescue_days_threshold = Column(Integer, default=30, nullable=True)

    # Daily send time for birthday/rescue, in business-local time
    automation_send_hour = Column(Integer, default=10, nullable=True)
    automation_send_minute = Column(Integer, default=0, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Unit(Base):
    """Physical location of a company; owns its WhatsApp (Evolution API) instance"""

    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    # Evolution API credentials (api key encrypted)
    evolution_instance_name = Column(String(255), nullable=True)
    evolution_api_key = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    company = relationship("Company", back_populates="units")


class Barber(Base):
    __tablename__ = "barbers"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False, index=True)
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)

    client_name = Column(String(255), nullable=True)
    client_phone = Column(String(50), nullable=True)

    start_time = Column(DateTime, nullable=False, index=True)  # UTC
    end_time = Column(DateTime, nullable=True)
    status = Column(String(50), default="pending", nullable=False)  # pending, confirmed, completed, cancelled

    created_at = Column(DateTime, server_default=func.now())

    company = relationship("Company", back_populates="appointments")
    unit = relationship("Unit")
    barber = relationship("Barber")
    service = relationship("Service")


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=True, index=True)

    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    birth_date = Column(Date, nullable=True)
    last_visit_at = Column(DateTime, nullable=True)  # UTC
    marketing_opt_out = Column(Boolean, nullable=True)  # NULL means not opted out

    created_at = Column(DateTime, server_default=func.now())

    company = relationship("Company", back_populates="clients")
    unit = relationship("Unit")
