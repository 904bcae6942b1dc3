"""Resumos derivados (dashboard, dashboard gerencial, financeiro, administração)."""
from __future__ import annotations

import calendar
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from . import config
from .models import AppointmentStatus, TransactionType
from .schemas import Appointment, Patient, Transaction

WEEKDAY_LABELS = ("seg", "ter", "qua", "qui", "sex", "sáb", "dom")


@dataclass(frozen=True)
class DashboardSummary:
    monthly_revenue: float
    monthly_appointments: int
    occupancy_rate: int
    active_patients: int
    weekly_income: float


@dataclass
class DayCashFlow:
    day: str
    full_date: str
    income: float = 0.0
    expense: float = 0.0


@dataclass(frozen=True)
class FinancialSummary:
    transactions: list[Transaction]
    income: float
    expense: float

    @property
    def balance(self) -> float:
        return self.income - self.expense


@dataclass
class TodayOverview:
    scheduled: list[Appointment] = field(default_factory=list)
    completed: list[Appointment] = field(default_factory=list)
    canceled: list[Appointment] = field(default_factory=list)


def _month_key(value: str) -> str:
    return value[:7]


def count_weekdays(year: int, month: int) -> int:
    _, days = calendar.monthrange(year, month)
    return sum(1 for d in range(1, days + 1) if date(year, month, d).weekday() < 5)


def _sorted_by_slot(apps: Iterable[Appointment]) -> list[Appointment]:
    return sorted(apps, key=lambda a: (a.date, a.time))


def dashboard_summary(
    appointments: list[Appointment],
    transactions: list[Transaction],
    patients: list[Patient],
    today: date,
) -> DashboardSummary:
    month = today.strftime("%Y-%m")
    monthly_revenue = sum(
        t.amount for t in transactions if t.type == TransactionType.INCOME and _month_key(t.date) == month
    )
    monthly_appointments = sum(
        1 for a in appointments if _month_key(a.date) == month and a.status != AppointmentStatus.CANCELED
    )
    total_slots = count_weekdays(today.year, today.month) * config.OCCUPANCY_SLOTS_PER_WEEKDAY
    # arredondamento meio-para-cima
    occupancy = math.floor(monthly_appointments / total_slots * 100 + 0.5) if total_slots else 0

    # semana de domingo a sábado
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    end = start + timedelta(days=6)
    weekly_income = sum(
        t.amount
        for t in transactions
        if t.type == TransactionType.INCOME and start.isoformat() <= t.date[:10] <= end.isoformat()
    )

    return DashboardSummary(
        monthly_revenue=monthly_revenue,
        monthly_appointments=monthly_appointments,
        occupancy_rate=occupancy,
        active_patients=sum(1 for p in patients if p.is_active),
        weekly_income=weekly_income,
    )


def weekly_agenda(appointments: list[Appointment], today: date) -> list[Appointment]:
    """Consultas agendadas de hoje até daqui a 6 dias."""
    first, last = today.isoformat(), (today + timedelta(days=6)).isoformat()
    return _sorted_by_slot(
        a for a in appointments if a.status == AppointmentStatus.SCHEDULED and first <= a.date <= last
    )


def upcoming_appointments(appointments: list[Appointment], today: date, limit: int = 5) -> list[Appointment]:
    first = today.isoformat()
    return _sorted_by_slot(
        a for a in appointments if a.status == AppointmentStatus.SCHEDULED and a.date >= first
    )[:limit]


def weekly_cash_flow(transactions: list[Transaction], today: date) -> list[DayCashFlow]:
    """Entradas e saídas por dia da semana corrente (segunda a domingo)."""
    monday = today - timedelta(days=today.weekday())
    days = []
    for i in range(7):
        d = monday + timedelta(days=i)
        days.append(DayCashFlow(day=WEEKDAY_LABELS[i], full_date=d.isoformat()))
    by_date = {d.full_date: d for d in days}

    for t in transactions:
        bucket = by_date.get(t.date[:10])
        if bucket is None:
            continue
        if t.type == TransactionType.INCOME:
            bucket.income += t.amount
        else:
            bucket.expense += t.amount
    return days


def financial_summary(
    transactions: list[Transaction],
    mode: str = "all",
    day: str | None = None,
    month: str | None = None,
    type_: TransactionType | None = None,
    patient_id: str | None = None,
) -> FinancialSummary:
    """
    Filtro do módulo financeiro.
    mode: "all" | "daily" (usa ``day``) | "monthly" (usa ``month`` YYYY-MM);
    sem data informada o modo não restringe nada.
    """
    def matches(t: Transaction) -> bool:
        if patient_id and t.patient_id != patient_id:
            return False
        if type_ is not None and t.type != type_:
            return False
        if mode == "daily" and day:
            return t.date[:10] == day
        if mode == "monthly" and month:
            return _month_key(t.date) == month
        return True

    selected = sorted((t for t in transactions if matches(t)), key=lambda t: t.date, reverse=True)
    return FinancialSummary(
        transactions=selected,
        income=sum(t.amount for t in selected if t.type == TransactionType.INCOME),
        expense=sum(t.amount for t in selected if t.type == TransactionType.EXPENSE),
    )


def today_overview(appointments: list[Appointment], today: date) -> TodayOverview:
    overview = TodayOverview()
    target = today.isoformat()
    for a in sorted((a for a in appointments if a.date == target), key=lambda a: a.time):
        getattr(overview, a.status.value).append(a)
    return overview
