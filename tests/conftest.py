import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

from datetime import date, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from barbershop import models, models_automation  # noqa: E402, F401
from barbershop.database import Base  # noqa: E402
from barbershop.models import (  # noqa: E402
    Appointment,
    Barber,
    BusinessSettings,
    Client,
    Company,
    Service,
    Unit,
)
from barbershop.services.credentials import encrypt_credential  # noqa: E402

API_URL = "https://evolution.test"

# 13:00 UTC == 10:00 in the business time zone (UTC-3), the default daily send time
NOW = datetime(2025, 3, 15, 13, 0, 0)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


class FakeSender:
    """Stands in for evolution_service.send_text and records every call"""

    def __init__(self, responses=None):
        self.calls = []
        self.responses = list(responses or [])

    async def __call__(self, api_url, instance_name, api_key, number, text, presence_delay_ms=0):
        self.calls.append(
            {
                "api_url": api_url,
                "instance_name": instance_name,
                "api_key": api_key,
                "number": number,
                "text": text,
                "presence_delay_ms": presence_delay_ms,
            }
        )
        if self.responses:
            return self.responses.pop(0)
        return True, None


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def make_tenant(db):
    """Companies with one WhatsApp-enabled unit, one barber and one service"""

    def _make(owner_user_id, name, instance_name, api_key="unit-key"):
        company = Company(owner_user_id=owner_user_id, name=name)
        db.add(company)
        db.flush()

        settings = BusinessSettings(
            user_id=owner_user_id,
            appointment_reminder_enabled=True,
            appointment_reminder_minutes=30,
            birthday_automation_enabled=True,
            rescue_automation_enabled=True,
            rescue_days_threshold=30,
            automation_send_hour=10,
            automation_send_minute=0,
        )
        unit = Unit(
            company_id=company.id,
            name="Centro",
            evolution_instance_name=instance_name,
            evolution_api_key=encrypt_credential(api_key),
        )
        barber = Barber(company_id=company.id, name="Carlos")
        service = Service(company_id=company.id, name="Corte")
        db.add_all([settings, unit, barber, service])
        db.commit()

        return {
            "company": company,
            "settings": settings,
            "unit": unit,
            "barber": barber,
            "service": service,
        }

    return _make


@pytest.fixture
def tenant(make_tenant):
    return make_tenant("owner-1", "Barbearia Central", "central-centro")


@pytest.fixture
def make_appointment(db, tenant):
    def _make(start_time, owner=None, **overrides):
        owner = owner or tenant
        fields = {
            "company_id": owner["company"].id,
            "unit_id": owner["unit"].id,
            "barber_id": owner["barber"].id,
            "service_id": owner["service"].id,
            "client_name": "Ana",
            "client_phone": "(11) 91234-5678",
            "start_time": start_time,
            "end_time": start_time + timedelta(minutes=40),
            "status": "confirmed",
        }
        fields.update(overrides)
        appointment = Appointment(**fields)
        db.add(appointment)
        db.commit()
        return appointment

    return _make


@pytest.fixture
def make_client(db, tenant):
    def _make(name="Bruno", owner=None, **overrides):
        owner = owner or tenant
        fields = {
            "company_id": owner["company"].id,
            "unit_id": owner["unit"].id,
            "name": name,
            "phone": "11987654321",
            "birth_date": date(1990, 1, 1),
            "last_visit_at": NOW - timedelta(days=5),
        }
        fields.update(overrides)
        client = Client(**fields)
        db.add(client)
        db.commit()
        return client

    return _make
