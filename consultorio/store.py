"""
Estado da aplicação em memória (fonte única da verdade da sessão).

Cada mutação segue o mesmo caminho: snapshot da coleção, alteração local
otimista, chamada ao gateway; se o gateway devolver falha a coleção volta ao
snapshot, a falha fica registrada em ``sync_failures`` e um toast de erro é
emitido.
"""
from __future__ import annotations

import logging
import secrets
import string
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from . import config, schemas
from .formatting import today_string, tomorrow_string
from .gateway import ClinicApi

logger = logging.getLogger(__name__)

COLLECTIONS = (
    "patients",
    "appointments",
    "notes",
    "observations",
    "transactions",
    "consultation_types",
    "notification_logs",
    "audit_logs",
    "blocked_days",
)

SETTING_KEYS = {
    "password": "password",
    "profileImage": "profile_image",
    "signatureImage": "signature_image",
}

_ALPHABET = string.ascii_lowercase + string.digits


def new_id(prefix: str) -> str:
    """Token baseado no timestamp (ms) com sufixo aleatório."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"{prefix}{int(time.time() * 1000)}-{suffix}"


@dataclass
class Toast:
    id: str
    message: str
    type: str  # success | error | info
    created_at: datetime


@dataclass(frozen=True)
class SyncFailure:
    table: str
    operation: str
    record_id: str
    at: datetime


@dataclass
class RescheduleDraft:
    appointment_id: str
    date: str
    time: str


@dataclass
class ClinicStore:
    api: Any = field(default_factory=ClinicApi)
    clock: Callable[[], datetime] = datetime.now

    patients: list[schemas.Patient] = field(default_factory=list)
    appointments: list[schemas.Appointment] = field(default_factory=list)
    notes: list[schemas.SessionNote] = field(default_factory=list)
    observations: list[schemas.InternalObservation] = field(default_factory=list)
    transactions: list[schemas.Transaction] = field(default_factory=list)
    consultation_types: list[schemas.ConsultationType] = field(default_factory=list)
    notification_logs: list[schemas.NotificationLog] = field(default_factory=list)
    audit_logs: list[schemas.AuditLogEntry] = field(default_factory=list)
    blocked_days: list[schemas.BlockedDay] = field(default_factory=list)

    password: str = config.DEFAULT_PASSWORD
    profile_image: str | None = None
    signature_image: str | None = None

    is_loaded: bool = False
    is_master_session: bool = False
    pending_reschedule: RescheduleDraft | None = None
    # id da sessão aberta no login (jti do token); revogado no logout
    session_id: str | None = None
    revoked_sessions: set[str] = field(default_factory=set)
    toasts: list[Toast] = field(default_factory=list)
    sync_failures: list[SyncFailure] = field(default_factory=list)

    # -------------------------
    # Datas
    # -------------------------
    def now(self) -> datetime:
        return self.clock()

    def today(self) -> str:
        return today_string(self.clock())

    def tomorrow(self) -> str:
        return tomorrow_string(self.clock())

    # -------------------------
    # Carga inicial
    # -------------------------
    def load(self, max_workers: int = len(COLLECTIONS)) -> bool:
        """Busca todas as tabelas em paralelo e depois as configurações."""
        try:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                futures = {name: pool.submit(getattr(self.api, name).list) for name in COLLECTIONS}
                results = {name: fut.result() for name, fut in futures.items()}

            settings = {attr: self.api.settings.get(key) for key, attr in SETTING_KEYS.items()}
        except Exception:
            logger.exception("Erro ao carregar dados do banco")
            self.notify("Erro de conexão ao carregar dados.", "error")
            return False

        for name, rows in results.items():
            setattr(self, name, list(rows))
        self.audit_logs.sort(key=lambda e: e.timestamp, reverse=True)
        self.notification_logs.sort(key=lambda e: e.date, reverse=True)

        for attr, value in settings.items():
            if value:
                setattr(self, attr, value)

        self.is_loaded = True
        return True

    def reset(self) -> None:
        """Logout: descarta o estado da sessão."""
        for name in COLLECTIONS:
            setattr(self, name, [])
        self.password = config.DEFAULT_PASSWORD
        self.profile_image = None
        self.signature_image = None
        self.is_loaded = False
        self.is_master_session = False
        self.pending_reschedule = None
        if self.session_id:
            self.revoked_sessions.add(self.session_id)
        self.session_id = None

    # -------------------------
    # Busca
    # -------------------------
    def find(self, collection: str, record_id: str) -> Any | None:
        return next((r for r in getattr(self, collection) if r.id == record_id), None)

    # -------------------------
    # Escrita otimista
    # -------------------------
    def snapshot(self, *collections: str) -> dict[str, list]:
        return {name: list(getattr(self, name)) for name in collections}

    def restore(self, snap: dict[str, list]) -> None:
        for name, rows in snap.items():
            setattr(self, name, rows)

    def put(self, collection: str, record: Any, *, prepend: bool = False) -> None:
        """Substitui pelo id ou insere (no início se ``prepend``)."""
        rows = getattr(self, collection)
        for i, r in enumerate(rows):
            if r.id == record.id:
                rows[i] = record
                return
        if prepend:
            rows.insert(0, record)
        else:
            rows.append(record)

    def drop(self, collection: str, record_id: str) -> None:
        setattr(self, collection, [r for r in getattr(self, collection) if r.id != record_id])

    def save(self, collection: str, record: Any, *, prepend: bool = False) -> bool:
        snap = self.snapshot(collection)
        self.put(collection, record, prepend=prepend)
        if getattr(self.api, collection).save(record) is None:
            self.restore(snap)
            self.sync_failed(collection, "save", record.id)
            return False
        return True

    def remove(self, collection: str, record_id: str) -> bool:
        snap = self.snapshot(collection)
        self.drop(collection, record_id)
        if not getattr(self.api, collection).delete(record_id):
            self.restore(snap)
            self.sync_failed(collection, "delete", record_id)
            return False
        return True

    def sync_failed(self, table: str, operation: str, record_id: str) -> None:
        logger.warning("Falha de sincronização (%s %s %s): alteração local revertida", operation, table, record_id)
        self.sync_failures.append(SyncFailure(table, operation, record_id, self.now()))
        self.notify("Não foi possível salvar no banco. A alteração foi desfeita.", "error")

    @property
    def sync_degraded(self) -> bool:
        return bool(self.sync_failures)

    def clear_sync_failures(self) -> None:
        self.sync_failures.clear()

    # -------------------------
    # Configurações
    # -------------------------
    def set_setting(self, key: str, value: str | None) -> bool:
        attr = SETTING_KEYS[key]
        previous = getattr(self, attr)
        setattr(self, attr, value)
        if not self.api.settings.set(key, value):
            setattr(self, attr, previous)
            self.sync_failed("app_settings", "save", key)
            return False
        return True

    # -------------------------
    # Auditoria e toasts
    # -------------------------
    def log_action(self, action: str, details: str) -> schemas.AuditLogEntry:
        entry = schemas.AuditLogEntry(
            id=new_id("log-"),
            timestamp=self.now().isoformat(),
            action=action,
            details=details,
            user=config.PRACTITIONER_NAME,
        )
        self.save("audit_logs", entry, prepend=True)
        return entry

    def notify(self, message: str, type_: str = "success") -> Toast:
        toast = Toast(new_id("toast-"), message, type_, self.now())
        self.toasts.append(toast)
        return toast

    def active_toasts(self) -> list[Toast]:
        limit = self.now() - timedelta(seconds=config.TOAST_TIMEOUT_SECONDS)
        self.toasts = [t for t in self.toasts if t.created_at > limit]
        return list(self.toasts)

    def drain_toasts(self) -> list[Toast]:
        out, self.toasts = self.toasts, []
        return out
