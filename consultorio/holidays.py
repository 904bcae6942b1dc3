"""Feriados nacionais brasileiros (fixos + móveis a partir da Páscoa)."""
from __future__ import annotations

from datetime import date, timedelta
from functools import lru_cache

FIXED_HOLIDAYS = {
    "01-01": "Confraternização Universal",
    "04-21": "Tiradentes",
    "05-01": "Dia do Trabalho",
    "09-07": "Independência do Brasil",
    "10-12": "Nossa Senhora Aparecida",
    "11-02": "Finados",
    "11-15": "Proclamação da República",
    "12-25": "Natal",
}


def easter_date(year: int) -> date:
    """Domingo de Páscoa (algoritmo de Meeus/Jones/Butcher)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


@lru_cache(maxsize=64)
def holidays_for_year(year: int) -> dict[str, str]:
    result = {f"{year}-{md}": name for md, name in FIXED_HOLIDAYS.items()}
    easter = easter_date(year)
    movable = {
        easter - timedelta(days=47): "Carnaval",
        easter - timedelta(days=2): "Sexta-feira Santa",
        easter + timedelta(days=60): "Corpus Christi",
    }
    for d, name in movable.items():
        result.setdefault(d.isoformat(), name)
    return dict(sorted(result.items()))


def holiday_name(date_string: str) -> str | None:
    """Nome do feriado para YYYY-MM-DD, ou None."""
    try:
        year = int(date_string[:4])
    except ValueError:
        return None
    return holidays_for_year(year).get(date_string[:10])
