"""Pacientes, prontuário (PEP), financeiro manual, tipos de consulta e configurações."""
from __future__ import annotations

from typing import Any

from . import config
from .models import NoteEvaluation, TransactionType
from .schemas import Anamnesis, ConsultationType, EmergencyContact, InternalObservation, Patient, SessionNote, Transaction
from .services import SYNC_ERROR, DomainError, OperationResult, RecordNotFound, todays_appointments
from .store import ClinicStore, new_id

PATIENT_FIELDS = ("name", "email", "phone", "date_of_birth", "address", "occupation", "internal_notes")
MIN_PASSWORD_LENGTH = 4


class InvalidPassword(DomainError):
    pass


def _get(store: ClinicStore, collection: str, record_id: str, label: str) -> Any:
    record = store.find(collection, record_id)
    if record is None:
        raise RecordNotFound(f"{label} {record_id} não encontrado.")
    return record


# =========================
# Pacientes
# =========================
def create_patient(store: ClinicStore, data: dict[str, Any]) -> OperationResult:
    patient = Patient(
        id=new_id("p"),
        join_date=store.today(),
        is_active=True,
        emergency_contact=EmergencyContact.model_validate(data.get("emergency_contact") or {}),
        **{k: data[k] for k in PATIENT_FIELDS if data.get(k) is not None},
    )
    if not store.save("patients", patient, prepend=True):
        return OperationResult(False, SYNC_ERROR)
    store.patients.sort(key=lambda p: p.name)
    store.log_action("Cadastro Criado", f"Paciente: {patient.name}")
    store.notify("Paciente cadastrado com sucesso!", "success")
    return OperationResult(True, "Paciente cadastrado com sucesso!", patient)


def update_patient(store: ClinicStore, patient_id: str, data: dict[str, Any]) -> OperationResult:
    original = _get(store, "patients", patient_id, "Paciente")
    changes: dict[str, Any] = {k: data[k] for k in PATIENT_FIELDS if k in data}
    if "emergency_contact" in data:
        changes["emergency_contact"] = EmergencyContact.model_validate(data["emergency_contact"] or {})
    updated = original.model_copy(update=changes)
    if not store.save("patients", updated):
        return OperationResult(False, SYNC_ERROR)

    changed = []
    if original.email != updated.email:
        changed.append("Email")
    if original.phone != updated.phone:
        changed.append("Tel")
    store.log_action("Cadastro Atualizado", f"Paciente: {updated.name}. {', '.join(changed)}")
    store.notify("Dados do paciente atualizados.", "success")
    return OperationResult(True, "Dados do paciente atualizados.", updated)


def toggle_patient_active(store: ClinicStore, patient_id: str) -> OperationResult:
    patient = _get(store, "patients", patient_id, "Paciente")
    updated = patient.model_copy(update={"is_active": not patient.is_active})
    if not store.save("patients", updated):
        return OperationResult(False, SYNC_ERROR)
    label = "Ativo" if updated.is_active else "Inativo"
    store.log_action("Status Paciente Alterado", f"Paciente: {patient.name}. Novo Status: {label}")
    store.notify(f"Status alterado para {label}.", "success")
    return OperationResult(True, f"Status alterado para {label}.", updated)


def delete_patient(store: ClinicStore, patient_id: str) -> OperationResult:
    """Exclusão definitiva (ação explícita); consultas mantêm o nome copiado."""
    patient = _get(store, "patients", patient_id, "Paciente")
    if not store.remove("patients", patient.id):
        return OperationResult(False, SYNC_ERROR)
    store.log_action("Paciente Excluído", f"Nome: {patient.name}, ID: {patient.id}")
    store.notify("Paciente excluído com sucesso.", "success")
    return OperationResult(True, "Paciente excluído com sucesso.", patient)


def save_anamnesis(store: ClinicStore, patient_id: str, data: dict[str, Any]) -> OperationResult:
    patient = _get(store, "patients", patient_id, "Paciente")
    updated = patient.model_copy(update={"anamnesis": Anamnesis.model_validate(data)})
    if not store.save("patients", updated):
        return OperationResult(False, SYNC_ERROR)
    store.log_action("Anamnese Atualizada", f"Paciente: {patient.name}")
    store.notify("Ficha de anamnese atualizada.", "success")
    return OperationResult(True, "Ficha de anamnese atualizada.", updated)


# =========================
# Prontuário
# =========================
def add_session_note(
    store: ClinicStore, patient_id: str, content: str, evaluation: NoteEvaluation | None = None
) -> OperationResult:
    """Anotação de sessão, vinculada à consulta de hoje do paciente quando houver."""
    patient = _get(store, "patients", patient_id, "Paciente")
    today_app = next((a for a in todays_appointments(store) if a.patient_id == patient_id), None)
    note = SessionNote(
        id=new_id("n"),
        patient_id=patient_id,
        date=store.now().isoformat(),
        content=content,
        appointment_id=today_app.id if today_app else None,
        evaluation=evaluation,
    )
    if not store.save("notes", note, prepend=True):
        return OperationResult(False, SYNC_ERROR)
    label = evaluation.value if evaluation else "Sem avaliação"
    store.log_action("Anotação de Sessão Criada", f"Paciente: {patient.name} - Avaliação: {label}")
    store.notify("Anotação e avaliação salvas com sucesso!", "success")
    return OperationResult(True, "Anotação e avaliação salvas com sucesso!", note)


def edit_session_note(
    store: ClinicStore, note_id: str, content: str, evaluation: NoteEvaluation | None = None
) -> OperationResult:
    note = _get(store, "notes", note_id, "Anotação")
    updated = note.model_copy(update={"content": content, "evaluation": evaluation})
    if not store.save("notes", updated):
        return OperationResult(False, SYNC_ERROR)
    patient = store.find("patients", note.patient_id)
    store.log_action("Anotação Editada", f"Paciente: {patient.name if patient else note.patient_id}, Nota ID: {note.id}")
    store.notify("Anotação atualizada com sucesso!", "success")
    return OperationResult(True, "Anotação atualizada com sucesso!", updated)


def add_observation(store: ClinicStore, patient_id: str, content: str) -> OperationResult:
    patient = _get(store, "patients", patient_id, "Paciente")
    obs = InternalObservation(id=new_id("o"), patient_id=patient_id, date=store.now().isoformat(), content=content)
    if not store.save("observations", obs, prepend=True):
        return OperationResult(False, SYNC_ERROR)
    store.log_action("Observação Interna Criada", f"Paciente: {patient.name}")
    return OperationResult(True, "Observação salva.", obs)


def delete_observation(store: ClinicStore, observation_id: str) -> OperationResult:
    obs = _get(store, "observations", observation_id, "Observação")
    if not store.remove("observations", obs.id):
        return OperationResult(False, SYNC_ERROR)
    store.log_action("Observação Interna Excluída", f"ID: {obs.id}")
    return OperationResult(True, "Observação removida.", obs)


def patient_notes(store: ClinicStore, patient_id: str) -> list[SessionNote]:
    return sorted((n for n in store.notes if n.patient_id == patient_id), key=lambda n: n.date, reverse=True)


# =========================
# Financeiro (lançamentos manuais)
# =========================
def _validate_transaction(description: str, amount: float, date: str) -> None:
    if not description.strip():
        raise DomainError("Descrição é obrigatória.")
    if amount <= 0:
        raise DomainError("Valor inválido.")
    if not date:
        raise DomainError("Data é obrigatória.")


def add_transaction(
    store: ClinicStore,
    description: str,
    amount: float,
    type_: TransactionType,
    date: str,
    patient_id: str | None = None,
) -> OperationResult:
    _validate_transaction(description, amount, date)
    tx = Transaction(
        id=new_id("t"), description=description, amount=amount, type=type_, date=date, patient_id=patient_id or None
    )
    if not store.save("transactions", tx, prepend=True):
        return OperationResult(False, SYNC_ERROR)
    label = "Receita" if type_ == TransactionType.INCOME else "Despesa"
    store.log_action("Transação Criada", f"{label}: {description} - {amount}")
    store.notify("Transação adicionada com sucesso.", "success")
    return OperationResult(True, "Transação adicionada com sucesso.", tx)


def update_transaction(
    store: ClinicStore,
    transaction_id: str,
    description: str,
    amount: float,
    type_: TransactionType,
    date: str,
    patient_id: str | None = None,
) -> OperationResult:
    tx = _get(store, "transactions", transaction_id, "Transação")
    _validate_transaction(description, amount, date)
    updated = tx.model_copy(
        update={"description": description, "amount": amount, "type": type_, "date": date, "patient_id": patient_id or None}
    )
    if not store.save("transactions", updated):
        return OperationResult(False, SYNC_ERROR)
    store.log_action("Transação Editada", f"ID: {tx.id}")
    store.notify("Transação atualizada.", "success")
    return OperationResult(True, "Transação atualizada.", updated)


def delete_transaction(store: ClinicStore, transaction_id: str) -> OperationResult:
    tx = _get(store, "transactions", transaction_id, "Transação")
    if not store.remove("transactions", tx.id):
        return OperationResult(False, SYNC_ERROR)
    store.log_action("Transação Excluída", f"ID: {tx.id} - {tx.description}")
    store.notify("Transação removida.", "info")
    return OperationResult(True, "Transação removida.", tx)


# =========================
# Tipos de consulta
# =========================
def _validate_consultation_type(name: str, price: float) -> None:
    if not name.strip():
        raise DomainError("O nome é obrigatório.")
    if price <= 0:
        raise DomainError("Valor inválido.")


def add_consultation_type(store: ClinicStore, name: str, price: float) -> OperationResult:
    _validate_consultation_type(name, price)
    ctype = ConsultationType(id=new_id("ct-"), name=name.strip(), price=price)
    if not store.save("consultation_types", ctype):
        return OperationResult(False, SYNC_ERROR)
    store.consultation_types.sort(key=lambda c: c.name)
    store.notify("Tipo de consulta adicionado.", "success")
    return OperationResult(True, "Tipo de consulta adicionado.", ctype)


def update_consultation_type(store: ClinicStore, type_id: str, name: str, price: float) -> OperationResult:
    """Consultas já marcadas mantêm o preço copiado na marcação."""
    ctype = _get(store, "consultation_types", type_id, "Tipo de consulta")
    _validate_consultation_type(name, price)
    updated = ctype.model_copy(update={"name": name.strip(), "price": price})
    if not store.save("consultation_types", updated):
        return OperationResult(False, SYNC_ERROR)
    store.notify("Tipo de consulta atualizado.", "success")
    return OperationResult(True, "Tipo de consulta atualizado.", updated)


def delete_consultation_type(store: ClinicStore, type_id: str) -> OperationResult:
    ctype = _get(store, "consultation_types", type_id, "Tipo de consulta")
    if not store.remove("consultation_types", ctype.id):
        return OperationResult(False, SYNC_ERROR)
    store.notify("Tipo de consulta removido.", "info")
    return OperationResult(True, "Tipo de consulta removido.", ctype)


# =========================
# Configurações
# =========================
def password_matches(store: ClinicStore, candidate: str) -> bool:
    return candidate in (store.password, config.MASTER_PASSWORD)


def change_password(store: ClinicStore, old: str, new: str, confirm: str, onboarding: bool = False) -> OperationResult:
    # o primeiro acesso dispensa a senha antiga só enquanto a senha padrão está ativa
    onboarding = onboarding and store.password == config.DEFAULT_PASSWORD
    if not onboarding and not password_matches(store, old):
        raise InvalidPassword("A senha antiga está incorreta.")
    if len(new) < MIN_PASSWORD_LENGTH:
        raise DomainError(f"A nova senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres.")
    if new != confirm:
        raise DomainError("As novas senhas não coincidem.")

    was_default = store.password == config.DEFAULT_PASSWORD
    if not store.set_setting("password", new):
        return OperationResult(False, SYNC_ERROR)
    store.log_action("Senha Alterada", "Senha de acesso alterada.")
    msg = (
        "Senha padrão alterada. Por favor, faça login com a nova senha."
        if was_default
        else "Senha alterada com sucesso!"
    )
    store.notify(msg, "success")
    return OperationResult(True, msg)


def set_profile_image(store: ClinicStore, image: str | None) -> OperationResult:
    if not store.set_setting("profileImage", image):
        return OperationResult(False, SYNC_ERROR)
    return OperationResult(True, "Foto de perfil atualizada." if image else "Foto de perfil removida.")


def set_signature_image(store: ClinicStore, image: str | None) -> OperationResult:
    if not store.set_setting("signatureImage", image):
        return OperationResult(False, SYNC_ERROR)
    return OperationResult(True, "Assinatura atualizada." if image else "Assinatura removida.")


def onboarding_pending(store: ClinicStore) -> dict[str, bool]:
    return {
        "password_changed": store.password != config.DEFAULT_PASSWORD,
        "profile_image_set": bool(store.profile_image),
    }
