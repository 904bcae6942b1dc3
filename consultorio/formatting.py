from __future__ import annotations

import re
from datetime import date, datetime, timedelta

from . import config

_NON_DIGITS = re.compile(r"\D")


def digits_only(value: str | None) -> str:
    return _NON_DIGITS.sub("", value or "")


def today_string(now: datetime | date | None = None) -> str:
    """Data local em YYYY-MM-DD (sem conversão para UTC)."""
    d = now or datetime.now()
    return d.strftime("%Y-%m-%d")


def tomorrow_string(now: datetime | date | None = None) -> str:
    d = now or datetime.now()
    return (d + timedelta(days=1)).strftime("%Y-%m-%d")


def format_date_br(value: str) -> str:
    """2024-06-10 -> 10/06/2024"""
    parts = value[:10].split("-")
    if len(parts) != 3:
        return value
    year, month, day = parts
    return f"{day}/{month}/{year}"


def format_brl(value: float) -> str:
    """1234.5 -> 'R$ 1.234,50'"""
    sign = "-" if value < 0 else ""
    integer, decimals = f"{abs(value):,.2f}".split(".")
    return f"{sign}R$ {integer.replace(',', '.')},{decimals}"


def parse_currency(value: str) -> float:
    """Valor digitado na máscara ("R$ 1.234,56"): os dois últimos dígitos são centavos."""
    numeric = digits_only(value)
    if not numeric:
        return 0.0
    return int(numeric) / 100


def generate_daily_time_slots(interval_minutes: int = config.SLOT_INTERVAL_MINUTES) -> list[str]:
    return [
        f"{h:02d}:{m:02d}"
        for h in range(config.SLOT_START_HOUR, config.SLOT_END_HOUR)
        for m in range(0, 60, interval_minutes)
    ]
