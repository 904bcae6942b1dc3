from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from . import config


def _build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # SQLite local: a carga inicial usa várias threads
        return create_engine(
            url,
            echo=config.SQL_ECHO,
            future=True,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, echo=config.SQL_ECHO, future=True, pool_pre_ping=True)


engine = _build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base ORM para todos os modelos."""
    pass


def configure_engine(url: str) -> Engine:
    """Troca o banco em uso (testes, CLI com --database-url)."""
    global engine
    engine.dispose()
    engine = _build_engine(url)
    SessionLocal.configure(bind=engine)
    return engine


def init_db() -> None:
    """Cria as tabelas se não existirem."""
    from . import models  # noqa: F401  registra os modelos no metadata

    Base.metadata.create_all(bind=engine)


@contextmanager
def db_session() -> Iterator[Session]:
    """
    Context manager para a sessão:
    - commit se tudo ok
    - rollback em exceções
    - close sempre
    """
    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
