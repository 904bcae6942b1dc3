from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parents[1]

# Banco: SQLite local por padrão, Postgres (Supabase) em produção
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'consultorio.sqlite'}")
SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"

# Senha compartilhada (não por usuário) + senha mestre fixa
DEFAULT_PASSWORD = os.getenv("CLINIC_DEFAULT_PASSWORD", "2577")
MASTER_PASSWORD = os.getenv("CLINIC_MASTER_PASSWORD", "140552")

PRACTITIONER_NAME = os.getenv("CLINIC_PRACTITIONER", "Vanessa Gonçalves")
CLINIC_NAME = os.getenv("CLINIC_NAME", "Clínica Vanessa Gonçalves")

# Em produção: definir via variável de ambiente
JWT_SECRET = os.getenv("JWT_SECRET", "CHANGE_ME_DEV_SECRET")
JWT_ALG = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "480"))

# Política de campos obrigatórios: desligada = padrões silenciosos
STRICT_VALIDATION = os.getenv("STRICT_VALIDATION", "0") == "1"

# Agenda
SLOT_START_HOUR = 8
SLOT_END_HOUR = 18
SLOT_INTERVAL_MINUTES = 30
FULL_DAY_FACTOR = 1.5
OCCUPANCY_SLOTS_PER_WEEKDAY = 8

TOAST_TIMEOUT_SECONDS = 5
BACKUP_VERSION = "2.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
