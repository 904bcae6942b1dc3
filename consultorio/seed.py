from __future__ import annotations

from sqlalchemy import select

from .db import db_session
from .models import ConsultationType

DEFAULT_CONSULTATION_TYPES = [
    ("ct-1", "Sessão Individual", 150.0),
    ("ct-2", "Terapia de Casal", 250.0),
    ("ct-3", "Avaliação Inicial", 100.0),
]


def seed_base() -> None:
    """
    Popula os tipos de consulta padrão (idempotente, pelo nome).
    """
    with db_session() as s:
        for type_id, name, price in DEFAULT_CONSULTATION_TYPES:
            exists = s.execute(
                select(ConsultationType).where(ConsultationType.name == name)
            ).scalar_one_or_none()
            if exists is None:
                s.add(ConsultationType(id=type_id, name=name, price=price))
