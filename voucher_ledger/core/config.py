"""
Runtime configuration read from the environment.
"""

import os
from dataclasses import dataclass

DEFAULT_API_URL = "https://localhost:7153/api"


@dataclass(frozen=True)
class Settings:
    store_backend: str = "sql"
    api_url: str = DEFAULT_API_URL
    api_token: str | None = None
    http_timeout: float = 30.0
    database_url: str = "sqlite:///./data/ledger.db"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            store_backend=os.getenv("LEDGER_STORE_BACKEND", "sql").lower(),
            api_url=os.getenv("LEDGER_API_URL", DEFAULT_API_URL).rstrip("/"),
            api_token=os.getenv("LEDGER_API_TOKEN") or None,
            http_timeout=float(os.getenv("LEDGER_HTTP_TIMEOUT", "30")),
            database_url=get_engine_url(os.getenv("DATABASE_TYPE", "sqlite")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def get_engine_url(database_type: str = "sqlite") -> str:
    """Database URL for the local ledger store."""
    db_type = database_type or os.getenv("DATABASE_TYPE", "sqlite")

    if db_type == "sqlite":
        db_path = os.getenv("DATABASE_PATH", "./data/ledger.db")
        return f"sqlite:///{db_path}"
    elif db_type == "postgresql":
        host = os.getenv("DB_HOST", "localhost")
        port = os.getenv("DB_PORT", "5432")
        dbname = os.getenv("DB_NAME", "ledger")
        user = os.getenv("DB_USER", "postgres")
        password = os.getenv("DB_PASSWORD", "postgres")
        return f"postgresql://{user}:{password}@{host}:{port}/{dbname}"
    else:
        raise ValueError(f"Unsupported database type: {db_type}")
