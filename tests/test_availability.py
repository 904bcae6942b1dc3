from __future__ import annotations

from consultorio.availability import (
    DAILY_SLOTS,
    booking_form_state,
    day_availability,
    is_past,
    month_calendar,
)
from consultorio.models import AppointmentStatus
from consultorio.schemas import Appointment, BlockedDay

TODAY = "2024-06-10"


def _apps(n, day="2024-06-12", status=AppointmentStatus.SCHEDULED):
    return [Appointment(id=f"a{i}", date=day, time="10:00", status=status) for i in range(n)]


def test_past_is_plain_string_comparison():
    assert is_past("2024-06-09", TODAY)
    assert not is_past("2024-06-10", TODAY)
    assert not is_past("2024-06-11", TODAY)


def test_selectable_day():
    day = day_availability("2024-06-12", [], [], TODAY)
    assert day.selectable
    assert day.available_count == len(DAILY_SLOTS) == 20
    assert booking_form_state(day).submit_enabled


def test_full_day_is_only_a_warning():
    day = day_availability("2024-06-12", _apps(30), [], TODAY)
    assert day.is_full
    assert day.available_count == 0
    assert day.selectable

    assert not day_availability("2024-06-12", _apps(29), [], TODAY).is_full


def test_canceled_appointments_do_not_fill_the_day():
    day = day_availability("2024-06-12", _apps(40, status=AppointmentStatus.CANCELED), [], TODAY)
    assert not day.is_full
    assert day.available_count == 20


def test_holiday_wins_over_everything():
    day = day_availability("2024-11-15", [], [BlockedDay(id="b", date="2024-11-15")], TODAY)
    state = booking_form_state(day)
    assert not day.selectable
    assert state.reason == "Feriado: Proclamação da República"
    assert not (state.time_enabled or state.type_enabled or state.submit_enabled)


def test_blocked_and_past_reasons():
    blocked = day_availability("2024-06-15", [], [BlockedDay(id="b", date="2024-06-15")], TODAY)
    assert booking_form_state(blocked).reason == "Dia bloqueado na agenda"
    past = day_availability("2024-06-03", [], [], TODAY)
    assert booking_form_state(past).reason == "Data no passado"


def test_month_calendar():
    days = month_calendar(2024, 6, [], [BlockedDay(id="b", date="2024-06-15")], TODAY)
    assert len(days) == 30
    assert days[0].date == "2024-06-01"
    selectable = [d.date for d in days if d.selectable]
    assert selectable[0] == "2024-06-10"
    assert "2024-06-15" not in selectable
    assert len(selectable) == 20
