from datetime import date, datetime, timedelta

from conftest import NOW

from barbershop.services.candidate_selector import (
    days_since_visit,
    find_client_for_appointment,
    get_marketing_clients,
    get_reminder_appointments,
    group_by_unit,
    is_birthday,
    is_rescue_due,
    minutes_from_send_time,
    reminder_window,
    within_send_window,
)
from barbershop.shared.business_time import business_today


def test_reminder_window_is_three_minutes_around_target():
    start, end = reminder_window(NOW, 30)
    assert start == NOW + timedelta(minutes=27)
    assert end == NOW + timedelta(minutes=33)


def test_reminder_window_selection_boundaries(db, make_appointment, tenant):
    on_target = make_appointment(NOW + timedelta(minutes=30))
    early_edge = make_appointment(NOW + timedelta(minutes=27))
    late_edge = make_appointment(NOW + timedelta(minutes=33))
    make_appointment(NOW + timedelta(minutes=34))
    make_appointment(NOW + timedelta(minutes=26, seconds=59))

    selected = get_reminder_appointments(db, tenant["company"].id, NOW, 30)

    assert {a.id for a in selected} == {on_target.id, early_edge.id, late_edge.id}


def test_reminder_selection_only_pending_and_confirmed(db, make_appointment, tenant):
    pending = make_appointment(NOW + timedelta(minutes=30), status="pending")
    confirmed = make_appointment(NOW + timedelta(minutes=30), status="confirmed")
    make_appointment(NOW + timedelta(minutes=30), status="cancelled")
    make_appointment(NOW + timedelta(minutes=30), status="completed")

    selected = get_reminder_appointments(db, tenant["company"].id, NOW, 30)

    assert {a.id for a in selected} == {pending.id, confirmed.id}


def test_reminder_selection_is_scoped_to_company(db, make_appointment, tenant):
    make_appointment(NOW + timedelta(minutes=30))

    assert get_reminder_appointments(db, tenant["company"].id + 1, NOW, 30) == []


def test_group_by_unit_keeps_order(db, make_appointment):
    first = make_appointment(NOW + timedelta(minutes=28))
    second = make_appointment(NOW + timedelta(minutes=29), unit_id=99)
    third = make_appointment(NOW + timedelta(minutes=30))

    grouped = group_by_unit([first, second, third])

    assert list(grouped.keys()) == [first.unit_id, 99]
    assert grouped[first.unit_id] == [first, third]


def test_birthday_matches_month_and_day_only():
    birth = date(1990, 3, 15)
    assert is_birthday(birth, date(2025, 3, 15))
    assert is_birthday(birth, date(2031, 3, 15))
    assert not is_birthday(birth, date(2025, 3, 14))
    assert not is_birthday(birth, date(2025, 3, 16))
    assert not is_birthday(None, date(2025, 3, 15))


def test_business_today_uses_fixed_offset():
    # 01:00 UTC on the 16th is still the 15th in UTC-3
    assert business_today(datetime(2025, 3, 16, 1, 0)) == date(2025, 3, 15)
    assert business_today(datetime(2025, 3, 16, 3, 0)) == date(2025, 3, 16)


def test_rescue_threshold_is_inclusive():
    assert is_rescue_due(NOW - timedelta(hours=30 * 24), NOW, 30)
    assert not is_rescue_due(NOW - timedelta(hours=29 * 24), NOW, 30)
    assert not is_rescue_due(None, NOW, 30)


def test_days_since_visit_floors_partial_days():
    assert days_since_visit(NOW - timedelta(days=12, hours=23), NOW) == 12
    assert days_since_visit(None, NOW) is None


def test_send_window_tolerance():
    # NOW is 10:00 business-local
    assert within_send_window(NOW, 10, 0)
    assert within_send_window(NOW, 10, 3)
    assert within_send_window(NOW, 9, 57)
    assert not within_send_window(NOW, 10, 4)
    assert not within_send_window(NOW, 9, 56)


def test_send_window_wraps_around_midnight():
    assert minutes_from_send_time(datetime(2025, 3, 15, 0, 1), 23, 59) == 2
    assert minutes_from_send_time(datetime(2025, 3, 15, 23, 58), 0, 0) == 2


def test_marketing_clients_exclude_opt_out(db, make_client, tenant):
    default = make_client("Default", marketing_opt_out=None)
    opted_in = make_client("In", marketing_opt_out=False)
    make_client("Out", marketing_opt_out=True)

    clients = get_marketing_clients(db, tenant["company"].id)

    assert {c.id for c in clients} == {default.id, opted_in.id}


def test_find_client_for_appointment_matches_digits_or_raw(db, make_appointment, make_client):
    client = make_client("Ana", phone="11912345678")
    appointment = make_appointment(NOW + timedelta(minutes=30), client_phone="(11) 91234-5678")

    assert find_client_for_appointment(db, appointment).id == client.id
