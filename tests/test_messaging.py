from __future__ import annotations

from consultorio.formatting import (
    format_brl,
    format_date_br,
    generate_daily_time_slots,
    parse_currency,
)
from consultorio.messaging import (
    birthday_message,
    gmail_compose_link,
    has_valid_phone,
    reminder_message,
    whatsapp_link,
)
from consultorio.schemas import Appointment, Patient


def test_currency():
    assert format_brl(1234.5) == "R$ 1.234,50"
    assert format_brl(0) == "R$ 0,00"
    assert parse_currency("R$ 1.234,56") == 1234.56
    assert parse_currency("R$ 0,05") == 0.05
    assert parse_currency("") == 0.0


def test_dates_and_slots():
    assert format_date_br("2024-06-10") == "10/06/2024"
    slots = generate_daily_time_slots()
    assert slots[0] == "08:00" and slots[-1] == "17:30"
    assert len(slots) == 20


def test_phone_rule():
    assert has_valid_phone("(11) 98765-4321")
    assert not has_valid_phone("98765-432")
    assert not has_valid_phone(None)


def test_whatsapp_link_encodes_message():
    link = whatsapp_link("(11) 98765-4321", "Olá Ana, tudo bem?")
    assert link == "https://wa.me/5511987654321?text=Ol%C3%A1%20Ana%2C%20tudo%20bem%3F"


def test_reminder_context():
    app = Appointment(id="a", date="2024-06-10", time="14:00")
    assert "hoje, dia 10/06/2024 às 14:00" in reminder_message("Ana", app, "2024-06-10", "2024-06-11")
    later = app.model_copy(update={"date": "2024-06-20"})
    msg = reminder_message("Ana", later, "2024-06-10", "2024-06-11")
    assert "agendada para dia 20/06/2024" in msg
    assert msg.startswith("Olá Ana")


def test_birthday_and_gmail():
    assert "feliz aniversário" in birthday_message(Patient(id="p", name="Ana"))
    link = gmail_compose_link("ana@example.com", "Recibo", "Segue o recibo")
    assert link.startswith("https://mail.google.com/mail/?view=cm&fs=1&to=ana%40example.com")
    assert "su=Recibo" in link
