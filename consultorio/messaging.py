"""
Mensagens de saída (WhatsApp, Gmail).

Os links são apenas montados; o envio acontece fora do sistema e não há
confirmação de entrega.
"""
from __future__ import annotations

from urllib.parse import quote, urlencode

from . import config
from .formatting import digits_only, format_date_br
from .schemas import Appointment, Patient

MIN_PHONE_DIGITS = 10


def has_valid_phone(phone: str | None) -> bool:
    return len(digits_only(phone)) >= MIN_PHONE_DIGITS


def whatsapp_link(phone: str, message: str) -> str:
    return f"https://wa.me/55{digits_only(phone)}?text={quote(message, safe='')}"


def gmail_compose_link(to: str, subject: str, body: str) -> str:
    query = urlencode({"view": "cm", "fs": "1", "to": to, "su": subject, "body": body}, quote_via=quote)
    return f"https://mail.google.com/mail/?{query}"


def reminder_message(name: str, appointment: Appointment, today: str, tomorrow: str) -> str:
    if appointment.date == today:
        context = "hoje, "
    elif appointment.date == tomorrow:
        context = "amanhã, "
    else:
        context = ""
    return (
        f"Olá {name}, lembrete da sua consulta agendada para {context}"
        f"dia {format_date_br(appointment.date)} às {appointment.time}. {config.CLINIC_NAME}."
    )


def birthday_message(patient: Patient) -> str:
    return (
        f"{patient.name}, a {config.CLINIC_NAME}, deseja um feliz aniversário "
        "e muitos anos de vida, parabéns!!!"
    )
