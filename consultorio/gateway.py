"""
Gateway de persistência: list / save (upsert) / delete por tabela.

Falhas do banco nunca sobem para quem chama: são registradas no log e viram
um valor degradado (lista vazia, None, False). "Tabela inexistente" é aviso,
qualquer outra falha é erro.
"""
from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, inspect, select
from sqlalchemy.exc import SQLAlchemyError

from . import models, schemas
from .db import Base, db_session

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=schemas.Record)

# código Postgres para "relation does not exist"
_PG_UNDEFINED_TABLE = "42P01"


def is_missing_table(exc: BaseException) -> bool:
    orig = getattr(exc, "orig", None) or exc
    if getattr(orig, "pgcode", None) == _PG_UNDEFINED_TABLE:
        return True
    msg = str(orig).lower()
    return "no such table" in msg or ("relation" in msg and "does not exist" in msg)


def _log_failure(table: str, operation: str, exc: SQLAlchemyError) -> None:
    if is_missing_table(exc):
        logger.warning("Tabela %s não encontrada (%s): %s", table, operation, exc)
    else:
        logger.error("Erro ao %s em %s: %s", operation, table, exc)


def _row_to_dict(row: Base) -> dict[str, Any]:
    return {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}


class TableGateway(Generic[R]):
    def __init__(self, table: str, model: type[Base], record_type: type[R]) -> None:
        self.table = table
        self.model = model
        self.record_type = record_type

    def list(self) -> list[R]:
        try:
            with db_session() as s:
                rows = s.scalars(select(self.model)).all()
                return [self.record_type.model_validate(_row_to_dict(r)) for r in rows]
        except SQLAlchemyError as e:
            _log_failure(self.table, "buscar", e)
            return []

    def save(self, item: R) -> R | None:
        try:
            with db_session() as s:
                row = s.merge(self.model(**item.model_dump()))
                s.flush()
                return self.record_type.model_validate(_row_to_dict(row))
        except SQLAlchemyError as e:
            _log_failure(self.table, "salvar", e)
            return None

    def delete(self, record_id: str) -> bool:
        try:
            with db_session() as s:
                s.execute(delete(self.model).where(self.model.id == record_id))
            return True
        except SQLAlchemyError as e:
            _log_failure(self.table, "deletar", e)
            return False


class SettingsGateway:
    """Configurações chave/valor (password, profileImage, signatureImage)."""

    table = "app_settings"

    def get(self, key: str) -> str | None:
        try:
            with db_session() as s:
                row = s.get(models.AppSetting, key)
                return row.value if row else None
        except SQLAlchemyError as e:
            _log_failure(self.table, f"buscar config {key}", e)
            return None

    def set(self, key: str, value: str | None) -> bool:
        try:
            with db_session() as s:
                s.merge(models.AppSetting(key=key, value=value))
            return True
        except SQLAlchemyError as e:
            _log_failure(self.table, f"salvar config {key}", e)
            return False


class ClinicApi:
    """Um gateway por tabela, com os nomes usados pelo store."""

    def __init__(self) -> None:
        self.patients = TableGateway("patients", models.Patient, schemas.Patient)
        self.appointments = TableGateway("appointments", models.Appointment, schemas.Appointment)
        self.notes = TableGateway("session_notes", models.SessionNote, schemas.SessionNote)
        self.observations = TableGateway(
            "internal_observations", models.InternalObservation, schemas.InternalObservation
        )
        self.transactions = TableGateway("transactions", models.Transaction, schemas.Transaction)
        self.consultation_types = TableGateway(
            "consultation_types", models.ConsultationType, schemas.ConsultationType
        )
        self.blocked_days = TableGateway("blocked_days", models.BlockedDay, schemas.BlockedDay)
        self.notification_logs = TableGateway(
            "notification_logs", models.NotificationLog, schemas.NotificationLog
        )
        self.audit_logs = TableGateway("audit_logs", models.AuditLogEntry, schemas.AuditLogEntry)
        self.settings = SettingsGateway()
