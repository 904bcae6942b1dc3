from __future__ import annotations

import enum
from typing import Any

from sqlalchemy import JSON, Boolean, Enum, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


def _values(e: type[enum.Enum]) -> list[str]:
    return [m.value for m in e]


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self is not AppointmentStatus.SCHEDULED


class TransactionType(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class NotificationType(str, enum.Enum):
    EMAIL = "email"
    SMS = "sms"
    BOTH = "both"


class NoteEvaluation(str, enum.Enum):
    PESSIMO = "pessimo"
    RUIM = "ruim"
    BOM = "bom"
    OTIMO = "otimo"


# Datas em texto YYYY-MM-DD e horários HH:MM: a comparação é lexicográfica,
# sem conversão de fuso.


class Patient(Base):
    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(160), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    join_date: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    date_of_birth: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    occupation: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    emergency_contact: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    anamnesis: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"Patient({self.name}, ativo={self.is_active})"


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # sem FK: o nome do paciente fica desnormalizado e sobrevive à exclusão
    patient_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    patient_name: Mapped[str] = mapped_column(String(160), nullable=False, default="")
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(5), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, native_enum=False, values_callable=_values, length=16),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
    )
    consultation_type_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"Appointment({self.patient_name} {self.date} {self.time} {self.status.value})"


class SessionNote(Base):
    __tablename__ = "session_notes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    patient_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    date: Mapped[str] = mapped_column(String(40), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    appointment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    evaluation: Mapped[NoteEvaluation | None] = mapped_column(
        Enum(NoteEvaluation, native_enum=False, values_callable=_values, length=16), nullable=True
    )


class InternalObservation(Base):
    __tablename__ = "internal_observations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    patient_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    date: Mapped[str] = mapped_column(String(40), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, native_enum=False, values_callable=_values, length=16), nullable=False
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    patient_id: Mapped[str | None] = mapped_column(String(64), nullable=True)


class ConsultationType(Base):
    __tablename__ = "consultation_types"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)


class BlockedDay(Base):
    __tablename__ = "blocked_days"

    # data não é única: bloqueios repetidos no mesmo dia são aceitos
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)


class NotificationLog(Base):
    __tablename__ = "notification_logs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    date: Mapped[str] = mapped_column(String(40), nullable=False)
    patient_name: Mapped[str] = mapped_column(String(160), nullable=False, default="")
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, native_enum=False, values_callable=_values, length=16), nullable=False
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="sent")
    details: Mapped[str] = mapped_column(Text, nullable=False, default="")


class AuditLogEntry(Base):
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    action: Mapped[str] = mapped_column(String(120), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user: Mapped[str] = mapped_column(String(120), nullable=False)


class AppSetting(Base):
    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
