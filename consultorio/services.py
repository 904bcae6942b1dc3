"""
Agenda: ciclo de vida da consulta, bloqueio de dias e lembretes.

Estados: scheduled (inicial) -> completed | canceled (terminais).
O reagendamento mantém a consulta em scheduled e troca apenas data, hora e
o indicador de lembrete.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any

from . import config
from .availability import booking_form_state, day_availability
from .formatting import format_brl
from .messaging import has_valid_phone, reminder_message, whatsapp_link
from .models import AppointmentStatus, NotificationType, TransactionType
from .schemas import Appointment, BlockedDay, NotificationLog, Patient, Transaction
from .store import ClinicStore, RescheduleDraft, new_id

logger = logging.getLogger(__name__)

UNKNOWN_PATIENT = "Paciente Não Identificado"
DEFAULT_TIME = "00:00"


# =========================
# Erros de domínio
# =========================
class DomainError(ValueError):
    pass


class RecordNotFound(DomainError):
    pass


class InvalidTransition(DomainError):
    pass


class DayNotSelectable(DomainError):
    pass


class MissingRequiredField(DomainError):
    pass


class InvalidPhone(DomainError):
    pass


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    message: str
    record: Any = None


SYNC_ERROR = "Não foi possível salvar no banco. A alteração foi desfeita."


class ReminderSource(str, enum.Enum):
    MANUAL = "manual"
    BOOKING_CONFIRMATION = "booking_confirmation"
    DAILY_CHECK = "daily_check"


@dataclass(frozen=True)
class WhatsAppDraft:
    appointment_id: str
    patient_name: str
    phone: str
    message: str
    link: str


# =========================
# Helper
# =========================
def get_appointment(store: ClinicStore, appointment_id: str) -> Appointment:
    app = store.find("appointments", appointment_id)
    if app is None:
        raise RecordNotFound(f"Consulta {appointment_id} não encontrada.")
    return app


def _require_scheduled(app: Appointment) -> None:
    if app.status.is_terminal:
        raise InvalidTransition(f"Consulta já está em estado final ({app.status.value}).")


def _require_selectable(store: ClinicStore, date: str) -> None:
    day = day_availability(date, store.appointments, store.blocked_days, store.today())
    if not day.selectable:
        raise DayNotSelectable(f"{date}: {booking_form_state(day).reason}")


def time_conflicts(
    store: ClinicStore, date: str, time: str, exclude_id: str | None = None
) -> list[Appointment]:
    """Outras consultas agendadas no mesmo dia e horário (aviso, não bloqueio)."""
    return [
        a
        for a in store.appointments
        if a.date == date
        and a.time == time
        and a.status == AppointmentStatus.SCHEDULED
        and a.id != exclude_id
    ]


# =========================
# Consultas de agenda
# =========================
def split_agenda(store: ClinicStore) -> tuple[list[Appointment], list[Appointment]]:
    """(agendadas em ordem crescente, histórico em ordem decrescente)"""
    scheduled = sorted(
        (a for a in store.appointments if a.status == AppointmentStatus.SCHEDULED),
        key=lambda a: (a.date, a.time),
    )
    history = sorted(
        (a for a in store.appointments if a.status.is_terminal),
        key=lambda a: (a.date, a.time),
        reverse=True,
    )
    return scheduled, history


def todays_appointments(store: ClinicStore) -> list[Appointment]:
    today = store.today()
    return sorted(
        (a for a in store.appointments if a.date == today and a.status == AppointmentStatus.SCHEDULED),
        key=lambda a: a.time,
    )


def pending_reminders(store: ClinicStore) -> list[Appointment]:
    """Consultas de amanhã, agendadas, com lembrete ainda não enviado."""
    tomorrow = store.tomorrow()
    return sorted(
        (
            a
            for a in store.appointments
            if a.date == tomorrow and a.status == AppointmentStatus.SCHEDULED and not a.reminder_sent
        ),
        key=lambda a: a.time,
    )


def birthday_patients(store: ClinicStore) -> list[Patient]:
    now = store.now()
    result = []
    for p in store.patients:
        if not p.is_active or not p.date_of_birth:
            continue
        parts = p.date_of_birth.split("-")
        if len(parts) != 3:
            continue
        try:
            month, day = int(parts[1]), int(parts[2])
        except ValueError:
            continue
        if month == now.month and day == now.day:
            result.append(p)
    return result


# =========================
# Marcação (use case core)
# =========================
def create_appointment(
    store: ClinicStore,
    patient_id: str | None = None,
    date: str | None = None,
    time: str | None = None,
    consultation_type_id: str | None = None,
) -> OperationResult:
    """
    Use case: agendar consulta.
    - sem validação estrita: paciente ausente vira "Paciente Não Identificado",
      preço 0, data de hoje, horário 00:00
    - o preço do tipo de consulta é copiado no momento da marcação
    - o dia precisa ser selecionável (não feriado, não passado, não bloqueado)
    """
    if config.STRICT_VALIDATION:
        missing = [
            name
            for name, value in (
                ("patientId", patient_id),
                ("date", date),
                ("time", time),
                ("consultationTypeId", consultation_type_id),
            )
            if not value
        ]
        if missing:
            raise MissingRequiredField(f"Campos obrigatórios: {', '.join(missing)}")

    patient = store.find("patients", patient_id) if patient_id else None
    ctype = store.find("consultation_types", consultation_type_id) if consultation_type_id else None
    date = date or store.today()
    time = time or DEFAULT_TIME
    _require_selectable(store, date)

    app = Appointment(
        id=new_id("app"),
        patient_id=patient_id or "",
        patient_name=patient.name if patient else UNKNOWN_PATIENT,
        date=date,
        time=time,
        status=AppointmentStatus.SCHEDULED,
        consultation_type_id=consultation_type_id or "",
        price=ctype.price if ctype else 0.0,
        reminder_sent=False,
    )
    if not store.save("appointments", app):
        return OperationResult(False, SYNC_ERROR)

    store.log_action("Agendamento Criado", f"Paciente: {app.patient_name}, Data: {app.date}, Hora: {app.time}")
    store.notify("Consulta agendada com sucesso!", "success")
    return OperationResult(True, "Consulta agendada com sucesso!", app)


def delete_appointment(store: ClinicStore, appointment_id: str) -> OperationResult:
    app = get_appointment(store, appointment_id)
    if not store.remove("appointments", app.id):
        return OperationResult(False, SYNC_ERROR)
    store.log_action("Agendamento Excluído", f"Paciente: {app.patient_name}, Data: {app.date}, Hora: {app.time}")
    store.notify("Agendamento excluído.", "info")
    return OperationResult(True, "Agendamento excluído.", app)


# =========================
# Reagendamento (duas etapas)
# =========================
def stage_reschedule(store: ClinicStore, appointment_id: str, date: str, time: str) -> RescheduleDraft:
    """Primeira etapa: guarda a nova data/hora sem tocar na consulta."""
    app = get_appointment(store, appointment_id)
    _require_scheduled(app)
    _require_selectable(store, date)
    store.pending_reschedule = RescheduleDraft(app.id, date, time)
    return store.pending_reschedule


def cancel_reschedule(store: ClinicStore) -> None:
    store.pending_reschedule = None


def confirm_reschedule(store: ClinicStore) -> OperationResult:
    draft = store.pending_reschedule
    if draft is None:
        raise InvalidTransition("Nenhum reagendamento pendente.")
    store.pending_reschedule = None

    app = get_appointment(store, draft.appointment_id)
    _require_scheduled(app)

    updated = app.model_copy(update={"date": draft.date, "time": draft.time, "reminder_sent": False})
    if not store.save("appointments", updated):
        return OperationResult(False, SYNC_ERROR)

    store.log_action(
        "Consulta Reagendada",
        f"Paciente: {app.patient_name}. De: {app.date} {app.time} Para: {draft.date} {draft.time}",
    )
    store.notify("Consulta reagendada com sucesso!", "success")
    return OperationResult(True, "Consulta reagendada com sucesso!", updated)


# =========================
# Conclusão / cancelamento
# =========================
def complete_appointment(
    store: ClinicStore, appointment_id: str, payment_method: str | None = None
) -> OperationResult:
    """
    Use case: finalizar consulta.
    - gera uma receita com o preço copiado na marcação e a data da consulta
    - depois muda o status para completed
    - se a segunda escrita falhar, a receita é apagada do banco e as duas
      alterações locais são desfeitas
    """
    app = get_appointment(store, appointment_id)
    _require_scheduled(app)

    description = f"Consulta - {app.patient_name}"
    if payment_method:
        description += f" ({payment_method})"
    tx = Transaction(
        id=new_id("t"),
        description=description,
        amount=app.price,
        type=TransactionType.INCOME,
        date=app.date,
        patient_id=app.patient_id or None,
    )

    snap = store.snapshot("transactions", "appointments")
    if not store.save("transactions", tx):
        return OperationResult(False, SYNC_ERROR)

    updated = app.model_copy(update={"status": AppointmentStatus.COMPLETED})
    if not store.save("appointments", updated):
        if not store.api.transactions.delete(tx.id):
            logger.error("Receita %s ficou órfã no banco (consulta %s não concluída)", tx.id, app.id)
        store.restore(snap)
        return OperationResult(False, SYNC_ERROR)

    details = f"Paciente: {app.patient_name}, Data: {app.date}, Hora: {app.time}. Receita gerada: {format_brl(app.price)}"
    if payment_method:
        details += f". Método: {payment_method}"
    store.log_action("Consulta Finalizada", details)
    store.notify("Consulta Finalizada", "success")
    return OperationResult(True, "Consulta Finalizada", updated)


def cancel_appointment(store: ClinicStore, appointment_id: str) -> OperationResult:
    app = get_appointment(store, appointment_id)
    _require_scheduled(app)

    updated = app.model_copy(update={"status": AppointmentStatus.CANCELED})
    if not store.save("appointments", updated):
        return OperationResult(False, SYNC_ERROR)

    store.log_action("Consulta Cancelada", f"Paciente: {app.patient_name}, Data: {app.date}, Hora: {app.time}")
    store.notify("Consulta Cancelada", "success")
    return OperationResult(True, "Consulta Cancelada", updated)


# =========================
# Lembretes
# =========================
def prepare_whatsapp_reminder(store: ClinicStore, appointment_id: str) -> WhatsAppDraft:
    app = get_appointment(store, appointment_id)
    patient = store.find("patients", app.patient_id)
    if patient is None:
        raise RecordNotFound(f"Paciente {app.patient_id} não encontrado.")
    if not has_valid_phone(patient.phone):
        msg = f"Erro: Paciente {patient.name} não possui um número de WhatsApp válido."
        store.notify(msg, "error")
        raise InvalidPhone(msg)

    message = reminder_message(patient.name, app, store.today(), store.tomorrow())
    return WhatsAppDraft(app.id, patient.name, patient.phone, message, whatsapp_link(patient.phone, message))


def _reminder_details(source: ReminderSource, message: str | None) -> str:
    if source is ReminderSource.DAILY_CHECK:
        return "Enviado via Verificação Diária."
    prefix = "Enviado via WhatsApp"
    if source is ReminderSource.BOOKING_CONFIRMATION:
        prefix += " (confirmação de agendamento)"
    return f'{prefix}. Msg: "{message}"' if message else f"{prefix}."


def mark_reminder_sent(
    store: ClinicStore,
    appointment_id: str,
    source: ReminderSource = ReminderSource.MANUAL,
    message: str | None = None,
) -> OperationResult:
    """
    Marca o lembrete como enviado, de qualquer origem (botão, confirmação de
    agendamento, verificação diária). O indicador termina sempre True; cada
    chamada acrescenta uma linha nova no log de notificações.
    """
    app = get_appointment(store, appointment_id)
    updated = app.model_copy(update={"reminder_sent": True})
    if not store.save("appointments", updated):
        return OperationResult(False, SYNC_ERROR)

    entry = NotificationLog(
        id=new_id("log"),
        date=store.now().isoformat(),
        patient_name=app.patient_name,
        type=NotificationType.SMS,
        status="sent",
        details=_reminder_details(source, message),
    )
    store.save("notification_logs", entry, prepend=True)
    return OperationResult(True, "Lembrete registrado.", updated)


# =========================
# Bloqueio de dias
# =========================
def block_day(store: ClinicStore, date: str, reason: str | None = None) -> OperationResult:
    """Não afeta consultas já marcadas; só impede novas marcações."""
    day = BlockedDay(id=new_id("bd-"), date=date, reason=reason)
    if not store.save("blocked_days", day):
        return OperationResult(False, SYNC_ERROR)
    store.log_action("Dia Bloqueado", f"Data bloqueada na agenda: {date}")
    return OperationResult(True, "Dia bloqueado.", day)


def unblock_day(store: ClinicStore, date: str) -> OperationResult:
    day = next((b for b in store.blocked_days if b.date == date), None)
    if day is None:
        return OperationResult(False, "Dia não está bloqueado.")
    if not store.remove("blocked_days", day.id):
        return OperationResult(False, SYNC_ERROR)
    store.log_action("Dia Desbloqueado", f"Data liberada na agenda: {date}")
    return OperationResult(True, "Dia desbloqueado.", day)
