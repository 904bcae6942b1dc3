from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, field_validator

from . import backup, records, reports, services
from .auth_security import (
    check_password,
    get_session_id,
    get_subject,
    is_master_token,
    new_session_id,
    session_token,
)
from .availability import booking_form_state, day_availability, month_calendar
from .checks import StartupChecks
from .config import configure_logging
from .db import init_db
from .formatting import parse_currency
from .holidays import holidays_for_year
from .messaging import birthday_message, gmail_compose_link, whatsapp_link
from .models import NoteEvaluation, TransactionType
from .schemas import EmergencyContact, Record
from .seed import seed_base
from .services import DomainError, OperationResult, RecordNotFound, ReminderSource
from .store import ClinicStore

logger = logging.getLogger(__name__)

# Authorization: Bearer <token>
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

app = FastAPI(title="Consultório API", version="1.0.0")


# Startup

@app.on_event("startup")
def startup() -> None:
    # tabelas + tipos de consulta padrão (idempotente)
    configure_logging()
    init_db()
    seed_base()


# Estado da sessão (um único consultório, uma única sessão)

_store: ClinicStore | None = None
_checks: StartupChecks | None = None


def get_store() -> ClinicStore:
    global _store
    if _store is None:
        _store = ClinicStore()
    return _store


def get_checks(store: ClinicStore = Depends(get_store)) -> StartupChecks:
    global _checks
    if _checks is None or _checks.store is not store:
        _checks = StartupChecks(store)
    return _checks


# Erros

@app.exception_handler(RecordNotFound)
def not_found_handler(request: Request, exc: RecordNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(records.InvalidPassword)
def invalid_password_handler(request: Request, exc: records.InvalidPassword) -> JSONResponse:
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(DomainError)
def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Erro inesperado em %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Ops! Algo deu errado.", "technical": f"{type(exc).__name__}: {exc}"},
    )


# Esquemas

class LoginIn(BaseModel):
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    is_master: bool = False


class PasswordConfirmIn(BaseModel):
    password: str


class RestoreIn(BaseModel):
    password: str
    data: dict[str, Any]


class PatientIn(Record):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    date_of_birth: str | None = None
    address: str | None = None
    occupation: str | None = None
    internal_notes: str | None = None
    emergency_contact: EmergencyContact | None = None


class AppointmentIn(Record):
    patient_id: str | None = None
    date: str | None = None
    time: str | None = None
    consultation_type_id: str | None = None


class RescheduleIn(Record):
    date: str
    time: str


class CompleteIn(Record):
    payment_method: str | None = None


class ReminderIn(Record):
    source: ReminderSource = ReminderSource.MANUAL
    message: str | None = None


class BlockDayIn(Record):
    date: str
    reason: str | None = None


# valores digitados com máscara chegam como texto
def _masked_value(v):
    return parse_currency(v) if isinstance(v, str) else v


class TransactionIn(Record):
    description: str
    amount: float
    type: TransactionType
    date: str
    patient_id: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _masked_amount(cls, v):
        return _masked_value(v)


class ConsultationTypeIn(Record):
    name: str
    price: float

    @field_validator("price", mode="before")
    @classmethod
    def _masked_price(cls, v):
        return _masked_value(v)


class NoteIn(Record):
    content: str
    evaluation: NoteEvaluation | None = None


class ObservationIn(Record):
    content: str


class PasswordChangeIn(Record):
    old_password: str = ""
    new_password: str
    confirm_password: str
    onboarding: bool = False


class ImageIn(Record):
    image: str | None = None


def _result(res: OperationResult) -> dict[str, Any]:
    return {
        "ok": res.ok,
        "message": res.message,
        "record": res.record.to_json() if isinstance(res.record, Record) else jsonable_encoder(res.record),
    }


def _rows(items: list[Record]) -> list[dict[str, Any]]:
    return [r.to_json() for r in items]


def _day(day) -> dict[str, Any]:
    form = booking_form_state(day)
    return {
        "date": day.date,
        "holiday": day.holiday,
        "isPast": day.is_past,
        "isBlocked": day.is_blocked,
        "isFull": day.is_full,
        "availableCount": day.available_count,
        "selectable": day.selectable,
        "form": {
            "timeEnabled": form.time_enabled,
            "typeEnabled": form.type_enabled,
            "submitEnabled": form.submit_enabled,
            "reason": form.reason,
        },
    }


def _patient(store: ClinicStore, patient_id: str):
    patient = store.find("patients", patient_id)
    if patient is None:
        raise RecordNotFound(f"Paciente {patient_id} não encontrado.")
    return patient


def _check(checks: StartupChecks) -> dict[str, Any] | None:
    current = checks.current
    if current is None:
        return None
    payload = current.payload
    if isinstance(payload, list):
        payload = _rows(payload)
    return {"name": current.name, "payload": payload}


# Dependências de autenticação

def get_session_store(
    token: str = Depends(oauth2_scheme),
    store: ClinicStore = Depends(get_store),
    checks: StartupChecks = Depends(get_checks),
) -> ClinicStore:
    # elimina espaços / aspas acidentais
    token = token.strip().strip('"').strip("'")
    session_id = get_session_id(token)
    if not get_subject(token) or not session_id or session_id in store.revoked_sessions:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Sessão inválida")
    if store.session_id is None:
        # processo reiniciado: a sessão do token é retomada
        store.session_id = session_id
        store.is_master_session = is_master_token(token)
    elif store.session_id != session_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Sessão inválida")
    if not store.is_loaded and store.load():
        # nova carga: a cadeia recomeça (Welcome só no login)
        checks.on_data_loaded()
    return store


# Autenticação

@app.post("/api/auth/login", response_model=TokenOut)
def login(
    payload: LoginIn,
    store: ClinicStore = Depends(get_store),
    checks: StartupChecks = Depends(get_checks),
) -> TokenOut:
    # a senha configurável vem de app_settings
    if not store.is_loaded:
        store.load()
    outcome = check_password(payload.password, store.password)
    if not outcome.ok:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Senha incorreta.")

    if store.session_id:
        store.revoked_sessions.add(store.session_id)
    session_id = new_session_id()
    store.session_id = session_id
    store.is_master_session = outcome.is_master
    checks.on_login(outcome.is_master)
    checks.on_data_loaded()
    return TokenOut(access_token=session_token(outcome, session_id), is_master=outcome.is_master)


@app.post("/api/auth/logout")
def logout(store: ClinicStore = Depends(get_session_store), checks: StartupChecks = Depends(get_checks)) -> dict[str, Any]:
    store.reset()
    checks.sequence = None
    checks.welcome_armed = False
    return {"ok": True}


# Verificações pós-login

@app.get("/api/checks/current")
def api_check_current(
    store: ClinicStore = Depends(get_session_store), checks: StartupChecks = Depends(get_checks)
) -> dict[str, Any] | None:
    # conteúdo do aviso aberto reflete o estado atual (ex.: lembrete já enviado)
    checks.refresh()
    return _check(checks)


@app.post("/api/checks/dismiss")
def api_check_dismiss(
    store: ClinicStore = Depends(get_session_store), checks: StartupChecks = Depends(get_checks)
) -> dict[str, Any] | None:
    checks.dismiss()
    return _check(checks)


# Pacientes

@app.get("/api/patients")
def api_patients(active: bool | None = None, store: ClinicStore = Depends(get_session_store)) -> list[dict]:
    rows = []
    for p in store.patients:
        if active is None or p.is_active == active:
            rows.append({**p.to_json(), "anamnesisComplete": bool(p.anamnesis and p.anamnesis.is_complete)})
    return rows


@app.post("/api/patients")
def api_create_patient(payload: PatientIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    data = payload.model_dump(exclude_unset=True)
    return _result(records.create_patient(store, data))


@app.put("/api/patients/{patient_id}")
def api_update_patient(
    patient_id: str, payload: PatientIn, store: ClinicStore = Depends(get_session_store)
) -> dict[str, Any]:
    return _result(records.update_patient(store, patient_id, payload.model_dump(exclude_unset=True)))


@app.post("/api/patients/{patient_id}/toggle-active")
def api_toggle_patient(patient_id: str, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(records.toggle_patient_active(store, patient_id))


@app.delete("/api/patients/{patient_id}")
def api_delete_patient(patient_id: str, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(records.delete_patient(store, patient_id))


@app.put("/api/patients/{patient_id}/anamnesis")
def api_save_anamnesis(
    patient_id: str, payload: dict[str, Any], store: ClinicStore = Depends(get_session_store)
) -> dict[str, Any]:
    return _result(records.save_anamnesis(store, patient_id, payload))


@app.get("/api/patients/{patient_id}/birthday-message")
def api_birthday_message(patient_id: str, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    patient = _patient(store, patient_id)
    message = birthday_message(patient)
    return {"message": message, "link": whatsapp_link(patient.phone, message)}


@app.get("/api/patients/{patient_id}/email-link")
def api_email_link(
    patient_id: str,
    subject: str = Query(""),
    body: str = Query(""),
    store: ClinicStore = Depends(get_session_store),
) -> dict[str, Any]:
    patient = _patient(store, patient_id)
    return {"link": gmail_compose_link(patient.email, subject, body)}


# Prontuário

@app.get("/api/patients/{patient_id}/notes")
def api_patient_notes(patient_id: str, store: ClinicStore = Depends(get_session_store)) -> list[dict]:
    return _rows(records.patient_notes(store, patient_id))


@app.post("/api/patients/{patient_id}/notes")
def api_add_note(patient_id: str, payload: NoteIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(records.add_session_note(store, patient_id, payload.content, payload.evaluation))


@app.put("/api/notes/{note_id}")
def api_edit_note(note_id: str, payload: NoteIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(records.edit_session_note(store, note_id, payload.content, payload.evaluation))


@app.get("/api/patients/{patient_id}/observations")
def api_patient_observations(patient_id: str, store: ClinicStore = Depends(get_session_store)) -> list[dict]:
    return _rows([o for o in store.observations if o.patient_id == patient_id])


@app.post("/api/patients/{patient_id}/observations")
def api_add_observation(
    patient_id: str, payload: ObservationIn, store: ClinicStore = Depends(get_session_store)
) -> dict[str, Any]:
    return _result(records.add_observation(store, patient_id, payload.content))


@app.delete("/api/observations/{observation_id}")
def api_delete_observation(observation_id: str, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(records.delete_observation(store, observation_id))


# Agenda

@app.get("/api/appointments")
def api_appointments(store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    scheduled, history = services.split_agenda(store)
    return {"scheduled": _rows(scheduled), "history": _rows(history)}


@app.post("/api/appointments")
def api_create_appointment(payload: AppointmentIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    conflicts = []
    if payload.date and payload.time:
        conflicts = services.time_conflicts(store, payload.date, payload.time)
    out = _result(
        services.create_appointment(
            store,
            patient_id=payload.patient_id,
            date=payload.date,
            time=payload.time,
            consultation_type_id=payload.consultation_type_id,
        )
    )
    out["conflicts"] = _rows(conflicts)
    return out


@app.delete("/api/appointments/{appointment_id}")
def api_delete_appointment(appointment_id: str, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(services.delete_appointment(store, appointment_id))


@app.post("/api/appointments/{appointment_id}/reschedule")
def api_stage_reschedule(
    appointment_id: str, payload: RescheduleIn, store: ClinicStore = Depends(get_session_store)
) -> dict[str, Any]:
    draft = services.stage_reschedule(store, appointment_id, payload.date, payload.time)
    conflicts = services.time_conflicts(store, draft.date, draft.time, exclude_id=draft.appointment_id)
    return {
        "appointmentId": draft.appointment_id,
        "date": draft.date,
        "time": draft.time,
        "conflicts": _rows(conflicts),
    }


@app.post("/api/reschedule/confirm")
def api_confirm_reschedule(store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(services.confirm_reschedule(store))


@app.post("/api/reschedule/cancel")
def api_cancel_reschedule(store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    services.cancel_reschedule(store)
    return {"ok": True}


@app.post("/api/appointments/{appointment_id}/complete")
def api_complete_appointment(
    appointment_id: str, payload: CompleteIn | None = None, store: ClinicStore = Depends(get_session_store)
) -> dict[str, Any]:
    method = payload.payment_method if payload else None
    return _result(services.complete_appointment(store, appointment_id, payment_method=method))


@app.post("/api/appointments/{appointment_id}/cancel")
def api_cancel_appointment(appointment_id: str, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(services.cancel_appointment(store, appointment_id))


@app.get("/api/appointments/{appointment_id}/whatsapp")
def api_whatsapp_reminder(appointment_id: str, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    draft = services.prepare_whatsapp_reminder(store, appointment_id)
    return {"patientName": draft.patient_name, "phone": draft.phone, "message": draft.message, "link": draft.link}


@app.post("/api/appointments/{appointment_id}/reminder")
def api_mark_reminder(
    appointment_id: str, payload: ReminderIn | None = None, store: ClinicStore = Depends(get_session_store)
) -> dict[str, Any]:
    payload = payload or ReminderIn()
    return _result(services.mark_reminder_sent(store, appointment_id, payload.source, payload.message))


@app.get("/api/reminders/pending")
def api_pending_reminders(store: ClinicStore = Depends(get_session_store)) -> list[dict]:
    return _rows(services.pending_reminders(store))


# Disponibilidade / bloqueios

@app.get("/api/availability/{day}")
def api_availability(day: date, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _day(day_availability(day.isoformat(), store.appointments, store.blocked_days, store.today()))


@app.get("/api/calendar/{year}/{month}")
def api_calendar(year: int, month: int, store: ClinicStore = Depends(get_session_store)) -> list[dict]:
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="Mês inválido.")
    return [_day(d) for d in month_calendar(year, month, store.appointments, store.blocked_days, store.today())]


@app.get("/api/holidays/{year}")
def api_holidays(year: int) -> dict[str, str]:
    return holidays_for_year(year)


@app.get("/api/blocked-days")
def api_blocked_days(store: ClinicStore = Depends(get_session_store)) -> list[dict]:
    return _rows(store.blocked_days)


@app.post("/api/blocked-days")
def api_block_day(payload: BlockDayIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(services.block_day(store, payload.date, payload.reason))


@app.delete("/api/blocked-days/{day}")
def api_unblock_day(day: str, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(services.unblock_day(store, day))


# Financeiro

@app.get("/api/transactions")
def api_transactions(
    mode: str = Query("all", pattern="^(all|daily|monthly)$"),
    day: str | None = None,
    month: str | None = None,
    type_: TransactionType | None = Query(None, alias="type"),
    patient_id: str | None = None,
    store: ClinicStore = Depends(get_session_store),
) -> dict[str, Any]:
    summary = reports.financial_summary(store.transactions, mode, day, month, type_, patient_id)
    return {
        "transactions": _rows(summary.transactions),
        "income": summary.income,
        "expense": summary.expense,
        "balance": summary.balance,
    }


@app.post("/api/transactions")
def api_add_transaction(payload: TransactionIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(
        records.add_transaction(
            store, payload.description, payload.amount, payload.type, payload.date, payload.patient_id
        )
    )


@app.put("/api/transactions/{transaction_id}")
def api_update_transaction(
    transaction_id: str, payload: TransactionIn, store: ClinicStore = Depends(get_session_store)
) -> dict[str, Any]:
    return _result(
        records.update_transaction(
            store, transaction_id, payload.description, payload.amount, payload.type, payload.date, payload.patient_id
        )
    )


@app.delete("/api/transactions/{transaction_id}")
def api_delete_transaction(transaction_id: str, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(records.delete_transaction(store, transaction_id))


# Tipos de consulta

@app.get("/api/consultation-types")
def api_consultation_types(store: ClinicStore = Depends(get_session_store)) -> list[dict]:
    return _rows(store.consultation_types)


@app.post("/api/consultation-types")
def api_add_consultation_type(
    payload: ConsultationTypeIn, store: ClinicStore = Depends(get_session_store)
) -> dict[str, Any]:
    return _result(records.add_consultation_type(store, payload.name, payload.price))


@app.put("/api/consultation-types/{type_id}")
def api_update_consultation_type(
    type_id: str, payload: ConsultationTypeIn, store: ClinicStore = Depends(get_session_store)
) -> dict[str, Any]:
    return _result(records.update_consultation_type(store, type_id, payload.name, payload.price))


@app.delete("/api/consultation-types/{type_id}")
def api_delete_consultation_type(type_id: str, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(records.delete_consultation_type(store, type_id))


# Logs

@app.get("/api/notification-logs")
def api_notification_logs(store: ClinicStore = Depends(get_session_store)) -> list[dict]:
    return _rows(store.notification_logs)


@app.get("/api/audit-logs")
def api_audit_logs(store: ClinicStore = Depends(get_session_store)) -> list[dict]:
    return _rows(store.audit_logs)


# Dashboards

@app.get("/api/dashboard")
def api_dashboard(store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    today = store.now().date()
    summary = reports.dashboard_summary(store.appointments, store.transactions, store.patients, today)
    overview = reports.today_overview(store.appointments, today)
    return {
        "summary": jsonable_encoder(summary),
        "weeklyAgenda": _rows(reports.weekly_agenda(store.appointments, today)),
        "today": {
            "scheduled": _rows(overview.scheduled),
            "completed": _rows(overview.completed),
            "canceled": _rows(overview.canceled),
        },
    }


@app.get("/api/management")
def api_management(store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    today = store.now().date()
    summary = reports.dashboard_summary(store.appointments, store.transactions, store.patients, today)
    return {
        "summary": jsonable_encoder(summary),
        "cashFlow": jsonable_encoder(reports.weekly_cash_flow(store.transactions, today)),
        "upcoming": _rows(reports.upcoming_appointments(store.appointments, today)),
    }


# Configurações

@app.get("/api/settings")
def api_settings(store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return {
        "profileImage": store.profile_image,
        "signatureImage": store.signature_image,
        "onboarding": records.onboarding_pending(store),
        "isMasterSession": store.is_master_session,
    }


@app.post("/api/settings/password")
def api_change_password(payload: PasswordChangeIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(
        records.change_password(
            store, payload.old_password, payload.new_password, payload.confirm_password, payload.onboarding
        )
    )


@app.put("/api/settings/profile-image")
def api_profile_image(payload: ImageIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(records.set_profile_image(store, payload.image))


@app.put("/api/settings/signature-image")
def api_signature_image(payload: ImageIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return _result(records.set_signature_image(store, payload.image))


# Backup

@app.post("/api/backup")
def api_backup(payload: PasswordConfirmIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    if not records.password_matches(store, payload.password):
        raise records.InvalidPassword("Senha incorreta.")
    return {"filename": backup.backup_filename(store.now()), "document": backup.build_backup(store)}


@app.post("/api/restore")
def api_restore(payload: RestoreIn, store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    report = backup.restore_backup(store, payload.data, payload.password)
    return jsonable_encoder(report)


# Notificações de interface

@app.get("/api/toasts")
def api_toasts(store: ClinicStore = Depends(get_session_store)) -> list[dict]:
    return jsonable_encoder(store.active_toasts())


@app.get("/api/sync-status")
def api_sync_status(store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    return {"degraded": store.sync_degraded, "failures": jsonable_encoder(store.sync_failures)}


@app.post("/api/sync-status/ack")
def api_sync_ack(store: ClinicStore = Depends(get_session_store)) -> dict[str, Any]:
    store.clear_sync_failures()
    return {"ok": True}
