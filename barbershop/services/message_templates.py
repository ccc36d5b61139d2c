"""
WhatsApp message templates for the automations.

Tenants write templates with {{token}} placeholders, in Portuguese or English
spelling. Every placeholder kind lists its accepted tokens and has a single
resolver, so synonyms always produce the same text.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from ..models_automation import AutomationType
from ..shared.business_time import to_business_time

DEFAULT_TEMPLATES = {
    AutomationType.APPOINTMENT_REMINDER: (
        "Olá {{nome}}! Lembrete: você tem um agendamento às {{horario}} com {{profissional}}. "
        "Serviço: {{servico}}. Te esperamos!"
    ),
    AutomationType.BIRTHDAY: "Feliz aniversário, {{nome}}! 🎂",
    AutomationType.RESCUE: "Olá {{nome}}! Sentimos sua falta. Que tal agendar uma visita?",
}

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class Placeholder(Enum):
    NAME = ("nome", "name")
    DATE = ("data", "date")
    TIME = ("horario", "hora", "time")
    STAFF = ("profissional", "barber")
    SERVICE = ("servico", "service")
    UNIT = ("unidade", "unit")
    DAYS_SINCE_VISIT = ("dias", "days")


TOKEN_LOOKUP = {token: placeholder for placeholder in Placeholder for token in placeholder.value}


@dataclass
class MessageContext:
    """Values available to a template; None means "leave the token as typed" """

    client_name: Optional[str] = None
    starts_at: Optional[datetime] = None  # naive UTC
    staff_name: Optional[str] = None
    service_name: Optional[str] = None
    unit_name: Optional[str] = None
    days_since_visit: Optional[int] = None


def _format_date(ctx: MessageContext) -> Optional[str]:
    if ctx.starts_at is None:
        return None
    return to_business_time(ctx.starts_at).strftime("%d/%m/%Y")


def _format_time(ctx: MessageContext) -> Optional[str]:
    if ctx.starts_at is None:
        return None
    return to_business_time(ctx.starts_at).strftime("%H:%M")


def _format_days(ctx: MessageContext) -> Optional[str]:
    if ctx.days_since_visit is None:
        return None
    return str(ctx.days_since_visit)


RESOLVERS: dict[Placeholder, Callable[[MessageContext], Optional[str]]] = {
    Placeholder.NAME: lambda ctx: ctx.client_name,
    Placeholder.DATE: _format_date,
    Placeholder.TIME: _format_time,
    Placeholder.STAFF: lambda ctx: ctx.staff_name,
    Placeholder.SERVICE: lambda ctx: ctx.service_name,
    Placeholder.UNIT: lambda ctx: ctx.unit_name,
    Placeholder.DAYS_SINCE_VISIT: _format_days,
}


def resolve_template(template: Optional[str], automation_type: AutomationType) -> str:
    """Tenant template, or the built-in default when it is empty"""
    if template and template.strip():
        return template
    return DEFAULT_TEMPLATES[automation_type]


def render_template(template: str, ctx: MessageContext) -> str:
    """
    Replace known placeholders (case-insensitive) with their values.
    Unknown tokens, and tokens with no value in this context, stay verbatim.
    """
    resolved: dict[Placeholder, Optional[str]] = {}

    def _substitute(match: re.Match) -> str:
        placeholder = TOKEN_LOOKUP.get(match.group(1).lower())
        if placeholder is None:
            return match.group(0)
        if placeholder not in resolved:
            resolved[placeholder] = RESOLVERS[placeholder](ctx)
        value = resolved[placeholder]
        return match.group(0) if value is None else value

    return PLACEHOLDER_PATTERN.sub(_substitute, template)


def render_message(template: Optional[str], automation_type: AutomationType, ctx: MessageContext) -> str:
    return render_template(resolve_template(template, automation_type), ctx)
