"""Fixtures compartidos: BD SQLite en memoria, tracker, telemetría y reloj fijo."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
from prometheus_client import CollectorRegistry
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bandwidth_api.liveness import (
    LivenessEngine,
    LivenessPolicy,
    OfflineTracker,
    ensure_schema,
)
from bandwidth_api.telemetry import SiteTelemetry


NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def statements(db_engine) -> List[str]:
    """SQL ejecutado contra la BD, para contar escrituras."""
    log: List[str] = []

    @event.listens_for(db_engine, "before_cursor_execute")
    def _record(conn, cursor, statement, parameters, context, executemany):
        log.append(" ".join(statement.split()).upper())

    return log


def count_updates(statements: List[str]) -> int:
    return sum(1 for s in statements if s.startswith("UPDATE"))


@pytest.fixture
def add_site(db_engine):
    """Registra un sitio (fuera de banda, como hace el registro real)."""

    def _add(
        site_id: int,
        pub_key: str,
        org_id: str = "org-a",
        *,
        online: bool = True,
        last_update: Optional[datetime] = None,
        transport: str = "wireguard",
        megabytes_in: int = 0,
        megabytes_out: int = 0,
    ) -> None:
        with db_engine.begin() as conn:
            conn.execute(
                text("""
                    INSERT INTO sites (site_id, org_id, pub_key, name, type, online,
                                       last_bandwidth_update, megabytes_in, megabytes_out)
                    VALUES (:site_id, :org_id, :pub_key, :name, :type, :online,
                            :last_update, :megabytes_in, :megabytes_out)
                """),
                {
                    "site_id": site_id,
                    "org_id": org_id,
                    "pub_key": pub_key,
                    "name": f"site-{site_id}",
                    "type": transport,
                    "online": online,
                    "last_update": last_update.isoformat() if last_update else None,
                    "megabytes_in": megabytes_in,
                    "megabytes_out": megabytes_out,
                },
            )

    return _add


@pytest.fixture
def grant_exit_node(db_engine):
    def _grant(exit_node_id: int, org_id: str) -> None:
        with db_engine.begin() as conn:
            conn.execute(
                text("INSERT INTO exit_node_orgs (exit_node_id, org_id) VALUES (:e, :o)"),
                {"e": exit_node_id, "o": org_id},
            )

    return _grant


@pytest.fixture
def fetch_site(db_engine):
    def _fetch(site_id: int) -> dict:
        with db_engine.connect() as conn:
            row = conn.execute(
                text("SELECT * FROM sites WHERE site_id = :site_id"),
                {"site_id": site_id},
            ).mappings().one()
        return dict(row)

    return _fetch


@pytest.fixture
def tracker() -> OfflineTracker:
    return OfflineTracker()


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def telemetry(registry) -> SiteTelemetry:
    return SiteTelemetry(registry)


@pytest.fixture
def engine(tracker, telemetry) -> LivenessEngine:
    return LivenessEngine(
        tracker=tracker,
        telemetry=telemetry,
        policy=LivenessPolicy(staleness_seconds=60, uptime_quantum_seconds=10),
        clock=lambda: NOW,
    )


def minutes_ago(minutes: float) -> datetime:
    return NOW - timedelta(minutes=minutes)
