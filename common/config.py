from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env en la raíz del repo; las variables reales del entorno tienen prioridad.
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    db_url: str
    db_echo: bool
    db_auto_create_schema: bool

    site_staleness_seconds: float
    uptime_quantum_seconds: float

    ingest_api_key: str | None
    debug_errors: bool
    log_level: str


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("BANDWIDTH_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    db_url = os.getenv("DB_URL", "sqlite:///./bandwidth.db")

    # Ventana de staleness: sin reporte activo en este tiempo => sitio offline.
    staleness = float(os.getenv("SITE_STALENESS_SECONDS", "60"))
    # Cada reporte activo representa un intervalo fijo de reporte del agente.
    quantum = float(os.getenv("UPTIME_QUANTUM_SECONDS", "10"))

    return Settings(
        db_url=db_url,
        db_echo=_flag("DB_ECHO"),
        db_auto_create_schema=_flag("DB_AUTO_CREATE_SCHEMA", "1"),
        site_staleness_seconds=staleness,
        uptime_quantum_seconds=quantum,
        ingest_api_key=os.getenv("INGEST_API_KEY") or None,
        debug_errors=_flag("INGEST_DEBUG_ERRORS"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
