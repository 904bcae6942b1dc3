from __future__ import annotations

import pytest

from consultorio import config, records, services
from consultorio.gateway import ClinicApi
from consultorio.models import NoteEvaluation, TransactionType
from consultorio.records import InvalidPassword
from consultorio.services import DomainError, RecordNotFound


def test_create_patient_defaults_and_ordering(store):
    records.create_patient(store, {"name": "Zeca"})
    res = records.create_patient(store, {"name": "Bruna", "emergency_contact": {"name": "Mãe", "phone": "11"}})

    p = res.record
    assert p.id.startswith("p")
    assert p.join_date == "2024-06-10"
    assert p.is_active
    assert p.emergency_contact.name == "Mãe"
    assert [x.name for x in store.patients] == ["Bruna", "Zeca"]
    assert store.audit_logs[0].action == "Cadastro Criado"


def test_update_patient_lists_changed_contacts(store, ana):
    records.update_patient(store, ana.id, {"phone": "11 90000-0000", "address": "Rua A"})
    assert store.audit_logs[0].details == "Paciente: Ana. Tel"
    assert store.find("patients", ana.id).address == "Rua A"


def test_toggle_and_delete_patient(store, ana):
    assert records.toggle_patient_active(store, ana.id).record.is_active is False
    assert records.toggle_patient_active(store, ana.id).record.is_active is True

    records.delete_patient(store, ana.id)
    assert store.patients == []
    assert ClinicApi().patients.list() == []
    with pytest.raises(RecordNotFound):
        records.delete_patient(store, ana.id)


def test_anamnesis_accepts_wire_names(store, ana):
    res = records.save_anamnesis(
        store, ana.id, {"civilStatus": "Solteira", "substanceUse_none": True, "mainSymptoms_otherFear": "altura"}
    )
    anamnesis = res.record.anamnesis

    assert anamnesis.civil_status == "Solteira"
    assert anamnesis.substance_use_none is True
    assert anamnesis.main_symptoms_other_fear == "altura"
    assert anamnesis.is_complete
    assert ClinicApi().patients.list()[0].anamnesis == anamnesis


def test_session_note_links_todays_appointment(store, ana):
    app = services.create_appointment(store, ana.id, "2024-06-10", "15:00", "ct-1").record

    note = records.add_session_note(store, ana.id, "Sessão produtiva", NoteEvaluation.BOM).record
    assert note.appointment_id == app.id

    edited = records.edit_session_note(store, note.id, "Revisado", NoteEvaluation.OTIMO).record
    assert edited.content == "Revisado"
    assert records.patient_notes(store, ana.id) == [edited]


def test_session_note_without_appointment_today(store, ana):
    services.create_appointment(store, ana.id, "2024-06-11", "15:00", "ct-1")
    note = records.add_session_note(store, ana.id, "Sem consulta hoje").record
    assert note.appointment_id is None
    assert note.evaluation is None


def test_observations(store, ana):
    obs = records.add_observation(store, ana.id, "Prefere manhãs").record
    assert store.observations == [obs]
    records.delete_observation(store, obs.id)
    assert store.observations == []


@pytest.mark.parametrize(
    "description, amount, date",
    [("", 10, "2024-06-10"), ("Aluguel", 0, "2024-06-10"), ("Aluguel", 10, "")],
)
def test_manual_transaction_validation(store, description, amount, date):
    with pytest.raises(DomainError):
        records.add_transaction(store, description, amount, TransactionType.EXPENSE, date)
    assert store.transactions == []


def test_manual_transaction_crud(store):
    tx = records.add_transaction(store, "Aluguel", 800, TransactionType.EXPENSE, "2024-06-05").record
    updated = records.update_transaction(store, tx.id, "Aluguel sala", 850, TransactionType.EXPENSE, "2024-06-05").record
    assert updated.amount == 850
    records.delete_transaction(store, tx.id)
    assert store.transactions == []


def test_consultation_types(store):
    with pytest.raises(DomainError):
        records.add_consultation_type(store, " ", 100)
    with pytest.raises(DomainError):
        records.add_consultation_type(store, "Grupo", 0)

    ct = records.add_consultation_type(store, "Grupo", 80).record
    assert [c.name for c in store.consultation_types] == [
        "Avaliação Inicial",
        "Grupo",
        "Sessão Individual",
        "Terapia de Casal",
    ]
    records.delete_consultation_type(store, ct.id)
    assert store.find("consultation_types", ct.id) is None


def test_change_password_rules(store):
    with pytest.raises(InvalidPassword):
        records.change_password(store, "errada", "1234", "1234")
    with pytest.raises(DomainError):
        records.change_password(store, "2577", "12", "12")
    with pytest.raises(DomainError):
        records.change_password(store, "2577", "1234", "4321")

    res = records.change_password(store, config.MASTER_PASSWORD, "1234", "1234")
    assert res.message.startswith("Senha padrão alterada")
    assert store.password == "1234"
    assert ClinicApi().settings.get("password") == "1234"
    assert records.password_matches(store, "1234")
    assert records.password_matches(store, config.MASTER_PASSWORD)
    assert not records.password_matches(store, "2577")


def test_onboarding_pending(store):
    assert records.onboarding_pending(store) == {"password_changed": False, "profile_image_set": False}
    records.change_password(store, "", "7777", "7777", onboarding=True)
    records.set_profile_image(store, "img")
    records.set_signature_image(store, "sig")
    assert records.onboarding_pending(store) == {"password_changed": True, "profile_image_set": True}
    assert store.signature_image == "sig"


def test_onboarding_flag_needs_default_password(store):
    records.change_password(store, "2577", "9999", "9999")

    with pytest.raises(InvalidPassword):
        records.change_password(store, "wrong", "1111", "1111", onboarding=True)
    assert store.password == "9999"
