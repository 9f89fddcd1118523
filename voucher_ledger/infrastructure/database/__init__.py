"""
Database initialization and session management.
"""

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from voucher_ledger.infrastructure.database.models import (
    AuditLog,
    LeaseTransaction,
    LedgerVoucher,
    LedgerVoucherLine,
    PostingAttachment,
)


def build_engine(database_url: str) -> Engine:
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if "sqlite" in database_url:
        db_path = database_url.split("sqlite:///", 1)[-1]
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(database_url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(database_url, echo=False)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Initialize database - create all tables."""
    SQLModel.metadata.create_all(bind=engine)


__all__ = [
    "AuditLog",
    "LeaseTransaction",
    "LedgerVoucher",
    "LedgerVoucherLine",
    "PostingAttachment",
    "build_engine",
    "build_session_factory",
    "init_db",
]
