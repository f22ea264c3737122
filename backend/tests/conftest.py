"""
Configuration partagée pour tous les tests.

- `client` : API avec la BDD mockée (aucune connexion réelle à PostgreSQL)
- `local_db` : base locale de l'appareil en SQLite mémoire
- `remote_db` / `remote_client` : store distant en SQLite mémoire, derrière l'API réelle
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import MagicMock

import sems_scanner.models  # noqa: F401
from sems_scanner.database import Base, LocalBase, get_db
from sems_scanner.main import app
from sems_scanner.models.event import Event
from sems_scanner.models.student import Level, Section, Student

EVENT_ID = "8f6c1a52-3d0e-4d3b-9a51-7c2f0b9e4a10"
EVENT_DATE = date(2026, 3, 2)

SESSION_CONFIG = {
    "version": 2,
    "dates": [
        {
            "date": "2026-03-02",
            "sessions": [
                {
                    "id": "2026-03-02-morning_in",
                    "name": "Morning In",
                    "period": "morning",
                    "direction": "in",
                    "opens": "07:00",
                    "lateAfter": "07:15",
                    "closes": "08:00",
                },
                {
                    "id": "2026-03-02-morning_out",
                    "name": "Morning Out",
                    "period": "morning",
                    "direction": "out",
                    "opens": "11:00",
                    "lateAfter": None,
                    "closes": "12:00",
                },
            ],
        }
    ],
}


def _sqlite_engine(savepoints: bool = False, foreign_keys: bool = False):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    if savepoints:
        # pysqlite ne gère pas SAVEPOINT correctement sans émettre BEGIN soi-même
        @event.listens_for(engine, "connect")
        def _connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin(conn):
            conn.exec_driver_sql("BEGIN")

    if foreign_keys:
        # Comme PostgreSQL : une présence pour un élève inconnu est refusée
        @event.listens_for(engine, "connect")
        def _foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


@pytest.fixture
def client():
    """Client HTTP de test avec la BDD mockée."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def local_session_factory():
    """Fabrique de sessions sur une base locale vierge (un appareil)."""
    def _make():
        engine = _sqlite_engine()
        LocalBase.metadata.create_all(bind=engine)
        return sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    return _make


@pytest.fixture
def local_db(local_session_factory):
    db = local_session_factory()
    yield db
    db.close()


@pytest.fixture
def remote_engine():
    engine = _sqlite_engine(savepoints=True, foreign_keys=True)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def remote_db(remote_engine):
    db = sessionmaker(autocommit=False, autoflush=False, bind=remote_engine)()
    yield db
    db.close()


@pytest.fixture
def remote_client(remote_engine):
    """API réelle branchée sur le store distant SQLite."""
    RemoteSession = sessionmaker(autocommit=False, autoflush=False, bind=remote_engine)

    def _get_db():
        db = RemoteSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def seeded_remote(remote_db):
    """
    Store distant avec un événement et quatre élèves :
    alice et bob (Grade 7 - Rizal), carla (Grade 8 - Bonifacio), dan (inactif).
    """
    grade7 = Level(id="lvl-7", name="Grade 7")
    grade8 = Level(id="lvl-8", name="Grade 8")
    rizal = Section(id="sec-rizal", name="Rizal", level_id="lvl-7")
    bonifacio = Section(id="sec-bonifacio", name="Bonifacio", level_id="lvl-8")
    remote_db.add_all([grade7, grade8, rizal, bonifacio])
    remote_db.add_all([
        Student(id="stu-alice", student_school_id="100000000001", first_name="Alice",
                last_name="Reyes", section_id="sec-rizal", qr_hash="QR-ALICE"),
        Student(id="stu-bob", student_school_id="100000000002", first_name="Bob",
                last_name="Santos", section_id="sec-rizal", qr_hash="QR-BOB"),
        Student(id="stu-carla", student_school_id="100000000003", first_name="Carla",
                last_name="Cruz", section_id="sec-bonifacio", qr_hash="QR-CARLA"),
        Student(id="stu-dan", student_school_id="100000000004", first_name="Dan",
                last_name="Lopez", section_id="sec-rizal", qr_hash="QR-DAN", is_active=False),
    ])
    remote_db.add(
        Event(
            id=EVENT_ID,
            title="Foundation Day",
            start_date=EVENT_DATE,
            end_date=EVENT_DATE,
            venue="Main Gymnasium",
            audience_config={"rules": [{"effect": "include", "kind": "LEVEL", "levelIds": ["lvl-7"]}]},
            session_config=SESSION_CONFIG,
        )
    )
    remote_db.commit()
    return remote_db
