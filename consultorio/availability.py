from __future__ import annotations

import calendar
from dataclasses import dataclass
from typing import Iterable

from . import config
from .formatting import generate_daily_time_slots
from .holidays import holiday_name
from .models import AppointmentStatus
from .schemas import Appointment, BlockedDay

DAILY_SLOTS = generate_daily_time_slots()


@dataclass(frozen=True)
class DayAvailability:
    date: str
    holiday: str | None
    is_past: bool
    is_blocked: bool
    is_full: bool
    available_count: int

    @property
    def selectable(self) -> bool:
        """Dia aceita nova marcação: não é feriado, nem passado, nem bloqueado."""
        return self.holiday is None and not self.is_past and not self.is_blocked


@dataclass(frozen=True)
class BookingFormState:
    time_enabled: bool
    type_enabled: bool
    submit_enabled: bool
    reason: str | None = None


def is_past(date: str, today: str) -> bool:
    # comparação de texto YYYY-MM-DD, sem fuso
    return date < today


def is_blocked(date: str, blocked_days: Iterable[BlockedDay]) -> bool:
    return any(b.date == date for b in blocked_days)


def scheduled_count(date: str, appointments: Iterable[Appointment]) -> int:
    return sum(1 for a in appointments if a.date == date and a.status == AppointmentStatus.SCHEDULED)


def is_full(date: str, appointments: Iterable[Appointment]) -> bool:
    """Indicador visual apenas: não impede a marcação."""
    return scheduled_count(date, appointments) >= len(DAILY_SLOTS) * config.FULL_DAY_FACTOR


def day_availability(
    date: str,
    appointments: Iterable[Appointment],
    blocked_days: Iterable[BlockedDay],
    today: str,
) -> DayAvailability:
    taken = scheduled_count(date, appointments)
    return DayAvailability(
        date=date,
        holiday=holiday_name(date),
        is_past=is_past(date, today),
        is_blocked=is_blocked(date, blocked_days),
        is_full=taken >= len(DAILY_SLOTS) * config.FULL_DAY_FACTOR,
        available_count=max(0, len(DAILY_SLOTS) - taken),
    )


def month_calendar(
    year: int,
    month: int,
    appointments: Iterable[Appointment],
    blocked_days: Iterable[BlockedDay],
    today: str,
) -> list[DayAvailability]:
    appointments = list(appointments)
    blocked_days = list(blocked_days)
    _, days = calendar.monthrange(year, month)
    return [
        day_availability(f"{year:04d}-{month:02d}-{d:02d}", appointments, blocked_days, today)
        for d in range(1, days + 1)
    ]


def booking_form_state(day: DayAvailability) -> BookingFormState:
    if day.holiday:
        return BookingFormState(False, False, False, f"Feriado: {day.holiday}")
    if day.is_past:
        return BookingFormState(False, False, False, "Data no passado")
    if day.is_blocked:
        return BookingFormState(False, False, False, "Dia bloqueado na agenda")
    return BookingFormState(True, True, True)
