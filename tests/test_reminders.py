from __future__ import annotations

import pytest

from consultorio import records, services
from consultorio.models import NotificationType
from consultorio.services import InvalidPhone, ReminderSource


@pytest.fixture
def tomorrow_app(store, ana):
    return services.create_appointment(store, ana.id, "2024-06-11", "09:30", "ct-1").record


def test_marking_is_idempotent_on_flag_but_appends_every_time(store, tomorrow_app):
    services.mark_reminder_sent(store, tomorrow_app.id)
    services.mark_reminder_sent(store, tomorrow_app.id)

    assert services.get_appointment(store, tomorrow_app.id).reminder_sent is True
    assert len(store.notification_logs) == 2
    assert all(log.type == NotificationType.SMS for log in store.notification_logs)


@pytest.mark.parametrize(
    "source, expected",
    [
        (ReminderSource.MANUAL, 'Enviado via WhatsApp. Msg: "oi"'),
        (ReminderSource.BOOKING_CONFIRMATION, 'Enviado via WhatsApp (confirmação de agendamento). Msg: "oi"'),
        (ReminderSource.DAILY_CHECK, "Enviado via Verificação Diária."),
    ],
)
def test_every_call_site_has_the_same_two_effects(store, tomorrow_app, source, expected):
    res = services.mark_reminder_sent(store, tomorrow_app.id, source, "oi")

    assert res.ok
    assert res.record.reminder_sent is True
    assert len(store.notification_logs) == 1
    log = store.notification_logs[0]
    assert log.details == expected
    assert log.patient_name == "Ana"
    assert log.status == "sent"


def test_reminder_marking_ignores_status(store, tomorrow_app):
    services.cancel_appointment(store, tomorrow_app.id)
    services.mark_reminder_sent(store, tomorrow_app.id)
    app = services.get_appointment(store, tomorrow_app.id)
    assert app.reminder_sent is True
    assert app.status.is_terminal


def test_whatsapp_draft_uses_tomorrow_context(store, tomorrow_app):
    draft = services.prepare_whatsapp_reminder(store, tomorrow_app.id)

    assert draft.link.startswith("https://wa.me/5511987654321?text=")
    assert "amanhã, dia 11/06/2024 às 09:30" in draft.message
    assert draft.patient_name == "Ana"


def test_whatsapp_rejects_short_phone(store):
    bob = records.create_patient(store, {"name": "Bob", "phone": "1234"}).record
    app = services.create_appointment(store, bob.id, "2024-06-11", "10:00", "ct-1").record

    with pytest.raises(InvalidPhone):
        services.prepare_whatsapp_reminder(store, app.id)
    assert store.toasts[-1].type == "error"


def test_pending_reminders_are_tomorrow_scheduled_and_unsent(store, ana, tomorrow_app):
    late = services.create_appointment(store, ana.id, "2024-06-11", "16:00", "ct-1").record
    sent = services.create_appointment(store, ana.id, "2024-06-11", "08:00", "ct-1").record
    canceled = services.create_appointment(store, ana.id, "2024-06-11", "11:00", "ct-1").record
    services.create_appointment(store, ana.id, "2024-06-12", "10:00", "ct-1")
    services.mark_reminder_sent(store, sent.id)
    services.cancel_appointment(store, canceled.id)

    assert [a.id for a in services.pending_reminders(store)] == [tomorrow_app.id, late.id]
