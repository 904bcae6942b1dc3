"""
Registros de domínio.

Nomes Python em snake_case, nomes JSON em camelCase (formato do arquivo de
backup e da API). Registros são tratados como valores: uma alteração gera
uma cópia com ``model_copy(update=...)``.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import AppointmentStatus, NoteEvaluation, NotificationType, TransactionType


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class EmergencyContact(Record):
    name: str = ""
    phone: str = ""


class Anamnesis(Record):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    # 1. Dados pessoais
    civil_status: str = ""
    has_children: str = ""
    number_of_children: int | str = ""
    had_abortion: str = ""
    occupation: str = ""
    education_level: str = ""

    # 2. Histórico familiar
    mothers_name: str = ""
    mothers_relationship: str = ""
    fathers_name: str = ""
    fathers_relationship: str = ""
    has_siblings: str = ""
    number_of_siblings: int | str = ""
    siblings_relationship: str = ""
    childhood_description: str = ""

    # 3. Saúde geral
    continuous_medication: str = ""
    medications_details: str = ""
    relevant_medical_diagnosis: str = ""
    substance_use_marijuana: bool = Field(False, alias="substanceUse_marijuana")
    substance_use_cocaine: bool = Field(False, alias="substanceUse_cocaine")
    substance_use_alcohol: bool = Field(False, alias="substanceUse_alcohol")
    substance_use_cigarette: bool = Field(False, alias="substanceUse_cigarette")
    substance_use_none: bool = Field(False, alias="substanceUse_none")
    sleep_quality: str = ""

    # 4. Aspectos psicológicos e emocionais
    main_symptoms_sadness: bool = Field(False, alias="mainSymptoms_sadness")
    main_symptoms_depression: bool = Field(False, alias="mainSymptoms_depression")
    main_symptoms_anxiety: bool = Field(False, alias="mainSymptoms_anxiety")
    main_symptoms_nervousness: bool = Field(False, alias="mainSymptoms_nervousness")
    main_symptoms_phobias: bool = Field(False, alias="mainSymptoms_phobias")
    main_symptoms_other_fear: str = Field("", alias="mainSymptoms_otherFear")
    anxiety_level: str = ""
    irritability_level: str = ""
    sadness_level: str = ""
    carries_guilt: str = ""
    carries_injustice: str = ""
    suicidal_thoughts: str = ""
    suicidal_thoughts_comment: str = ""

    # 5. Vida social e rotina
    has_close_friends: str = ""
    social_consideration: str = ""
    physical_activity: str = ""
    financial_status: str = ""
    daily_routine: str = ""

    # 6. Buscando ajuda
    how_found_analysis: str = ""
    how_found_analysis_other: str = ""
    previous_therapy: str = ""
    previous_therapy_duration: str = ""
    main_reason: str = ""
    situation_start: str = ""
    triggering_event: str = ""
    expectations_analysis: str = ""

    # 7. Observações gerais
    general_observations: str = ""

    @property
    def is_complete(self) -> bool:
        """Ficha considerada preenchida se qualquer resposta foi dada."""
        return any(v not in ("", False, 0, None) for v in self.model_dump().values())


class Patient(Record):
    id: str
    name: str = ""
    email: str = ""
    phone: str = ""
    join_date: str = ""
    date_of_birth: str = ""
    address: str = ""
    occupation: str = ""
    emergency_contact: EmergencyContact = Field(default_factory=EmergencyContact)
    anamnesis: Anamnesis | None = None
    internal_notes: str | None = None
    is_active: bool = True


class ConsultationType(Record):
    id: str
    name: str
    price: float = 0.0


class Appointment(Record):
    id: str
    patient_id: str = ""
    patient_name: str = ""
    date: str
    time: str
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    consultation_type_id: str = ""
    price: float = 0.0
    reminder_sent: bool = False


class SessionNote(Record):
    id: str
    patient_id: str
    date: str
    content: str = ""
    appointment_id: str | None = None
    evaluation: NoteEvaluation | None = None


class InternalObservation(Record):
    id: str
    patient_id: str
    date: str
    content: str = ""


class Transaction(Record):
    id: str
    description: str = ""
    amount: float = 0.0
    type: TransactionType
    date: str
    patient_id: str | None = None


class BlockedDay(Record):
    id: str
    date: str
    reason: str | None = None


class NotificationLog(Record):
    id: str
    date: str
    patient_name: str = ""
    type: NotificationType = NotificationType.SMS
    status: str = "sent"
    details: str = ""


class AuditLogEntry(Record):
    id: str
    timestamp: str
    action: str
    details: str = ""
    user: str
