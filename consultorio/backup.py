"""
Backup completo em JSON e restauração.

Formato do documento (versão 2.0):
    version, timestamp, patients, appointments, notes, observations,
    transactions, consultationTypes, auditLogs,
    settings{profileImage, signatureImage}
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from . import config, schemas
from .records import InvalidPassword, password_matches
from .services import DomainError
from .store import ClinicStore

logger = logging.getLogger(__name__)

INVALID_BACKUP = "Arquivo de backup inválido ou corrompido."

# chave do documento -> (coleção do store, tipo do registro)
BACKUP_COLLECTIONS: dict[str, tuple[str, type[schemas.Record]]] = {
    "patients": ("patients", schemas.Patient),
    "appointments": ("appointments", schemas.Appointment),
    "notes": ("notes", schemas.SessionNote),
    "observations": ("observations", schemas.InternalObservation),
    "transactions": ("transactions", schemas.Transaction),
    "consultationTypes": ("consultation_types", schemas.ConsultationType),
    "auditLogs": ("audit_logs", schemas.AuditLogEntry),
}

# coleções regravadas registro a registro no banco
REPLAYED = ("patients", "appointments")


class InvalidBackup(DomainError):
    pass


@dataclass
class RestoreReport:
    replaced: list[str] = field(default_factory=list)
    upserts: dict[str, int] = field(default_factory=dict)
    failed: dict[str, int] = field(default_factory=dict)
    images_applied: list[str] = field(default_factory=list)


def _confirm(store: ClinicStore, password: str) -> None:
    if not password_matches(store, password):
        raise InvalidPassword("Senha incorreta.")


# =========================
# Backup
# =========================
def build_backup(store: ClinicStore) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "version": config.BACKUP_VERSION,
        "timestamp": store.now().isoformat(),
    }
    for key, (collection, _) in BACKUP_COLLECTIONS.items():
        doc[key] = [r.to_json() for r in getattr(store, collection)]
    doc["settings"] = {
        "profileImage": store.profile_image,
        "signatureImage": store.signature_image,
    }
    return doc


def backup_filename(now: datetime) -> str:
    return f"backup_completo_clinica_{now:%d-%m-%Y}_{now:%H-%M}.json"


def dump_backup(store: ClinicStore, password: str, directory: str | Path = ".") -> Path:
    """Grava o backup em ``directory`` e devolve o caminho do arquivo."""
    _confirm(store, password)
    path = Path(directory) / backup_filename(store.now())
    path.write_text(json.dumps(build_backup(store), ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Backup gravado em %s", path)
    store.notify("Backup completo realizado e download iniciado.", "success")
    return path


def load_backup_file(path: str | Path) -> dict[str, Any]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidBackup(INVALID_BACKUP) from e
    return data


# =========================
# Restauração
# =========================
def _parse(data: Any) -> dict[str, list[schemas.Record]]:
    if not isinstance(data, dict):
        raise InvalidBackup(INVALID_BACKUP)

    parsed: dict[str, list[schemas.Record]] = {}
    for key, (_, record_type) in BACKUP_COLLECTIONS.items():
        if data.get(key) is None:
            continue
        try:
            parsed[key] = TypeAdapter(list[record_type]).validate_python(data[key])
        except ValidationError as e:
            logger.warning("Backup rejeitado: seção %s inválida", key)
            raise InvalidBackup(INVALID_BACKUP) from e
    return parsed


def restore_backup(store: ClinicStore, data: Any, password: str) -> RestoreReport:
    """
    Substitui (não mescla) cada coleção presente no documento e regrava
    pacientes e consultas com um upsert por registro.
    O documento é validado por inteiro antes de qualquer alteração.
    """
    _confirm(store, password)
    parsed = _parse(data)
    report = RestoreReport()

    for key, rows in parsed.items():
        collection, _ = BACKUP_COLLECTIONS[key]
        setattr(store, collection, list(rows))
        report.replaced.append(collection)

    for collection in REPLAYED:
        if collection not in report.replaced:
            continue
        gateway = getattr(store.api, collection)
        ok = failed = 0
        for record in getattr(store, collection):
            if gateway.save(record) is None:
                failed += 1
                store.sync_failed(collection, "restore", record.id)
            else:
                ok += 1
        report.upserts[collection] = ok
        report.failed[collection] = failed

    settings = data.get("settings") or {}
    for key in ("profileImage", "signatureImage"):
        if key in settings:
            store.set_setting(key, settings[key])
            report.images_applied.append(key)

    logger.info("Restauração concluída: %s", report)
    store.notify("Restauração iniciada! Dados sendo enviados ao banco...", "info")
    return report
