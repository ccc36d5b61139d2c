from datetime import datetime

from barbershop.models_automation import AutomationType
from barbershop.services.message_templates import (
    DEFAULT_TEMPLATES,
    MessageContext,
    render_message,
    render_template,
)

# 17:30 UTC == 14:30 business-local (UTC-3)
STARTS_AT = datetime(2025, 3, 15, 17, 30)


def test_renders_name_time_and_staff():
    ctx = MessageContext(client_name="Ana", starts_at=STARTS_AT, staff_name="Carlos")

    rendered = render_template("Oi {{nome}}, {{horario}} com {{profissional}}", ctx)

    assert rendered == "Oi Ana, 14:30 com Carlos"


def test_unknown_token_left_untouched():
    ctx = MessageContext(client_name="Ana")

    assert render_template("Oi {{nome}} {{xyz}}", ctx) == "Oi Ana {{xyz}}"


def test_synonyms_resolve_identically_and_ignore_case():
    ctx = MessageContext(
        client_name="Ana",
        starts_at=STARTS_AT,
        staff_name="Carlos",
        service_name="Corte",
        unit_name="Centro",
        days_since_visit=42,
    )

    rendered = render_template(
        "{{NOME}}/{{name}} {{data}}/{{Date}} {{hora}}/{{time}} {{barber}} {{SERVICE}}/{{servico}} "
        "{{unidade}}/{{unit}} {{dias}}/{{days}}",
        ctx,
    )

    assert rendered == "Ana/Ana 15/03/2025/15/03/2025 14:30/14:30 Carlos Corte/Corte Centro/Centro 42/42"


def test_token_without_value_is_left_verbatim():
    ctx = MessageContext(client_name="Bruno")

    assert render_template("Feliz aniversário {{nome}}! {{horario}}", ctx) == "Feliz aniversário Bruno! {{horario}}"


def test_whitespace_inside_braces_is_tolerated():
    assert render_template("Oi {{ nome }}", MessageContext(client_name="Ana")) == "Oi Ana"


def test_empty_template_falls_back_to_default():
    ctx = MessageContext(client_name="Bruno")

    assert render_message(None, AutomationType.BIRTHDAY, ctx) == "Feliz aniversário, Bruno! 🎂"
    assert render_message("   ", AutomationType.RESCUE, ctx).startswith("Olá Bruno!")


def test_every_automation_type_has_a_default():
    assert set(DEFAULT_TEMPLATES) == set(AutomationType)
