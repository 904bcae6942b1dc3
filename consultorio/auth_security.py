from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from . import config

SESSION_SUBJECT = "consultorio"


@dataclass(frozen=True)
class LoginOutcome:
    ok: bool
    is_master: bool = False


def check_password(candidate: str, current: str) -> LoginOutcome:
    """
    Senha única do consultório (texto puro): a senha configurável ou a
    senha mestra fixa. A senha mestra abre a mesma sessão com a flag
    ``is_master`` (o aviso de boas-vindas não é exibido).
    """
    if candidate == config.MASTER_PASSWORD:
        return LoginOutcome(ok=True, is_master=True)
    if candidate == current:
        return LoginOutcome(ok=True)
    return LoginOutcome(ok=False)


def create_access_token(subject: str = SESSION_SUBJECT, extra: dict[str, Any] | None = None) -> str:
    """
    Datetime com timezone para evitar deslocamentos no ``exp``.
    """
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload: dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if extra:
        payload.update(extra)

    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALG)


def new_session_id() -> str:
    return str(uuid.uuid4())


def session_token(outcome: LoginOutcome, session_id: str) -> str:
    return create_access_token(extra={"master": outcome.is_master, "jti": session_id})


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALG])


def get_subject(token: str) -> str | None:
    try:
        payload = decode_token(token)
        return payload.get("sub")
    except JWTError:
        return None


def get_session_id(token: str) -> str | None:
    try:
        return decode_token(token).get("jti")
    except JWTError:
        return None


def is_master_token(token: str) -> bool:
    try:
        return bool(decode_token(token).get("master", False))
    except JWTError:
        return False
