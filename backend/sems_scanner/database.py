"""
Connexions aux deux bases de données.

- Base distante (PostgreSQL) : événements, élèves, sessions et journaux de présence.
  Accédée par l'API FastAPI uniquement.
- Base locale de l'appareil (SQLite) : snapshot d'événement, liste d'élèves autorisés
  et file des scans. Privée à un seul appareil.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker

from sems_scanner.config import settings

# Store distant
engine = create_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Store local (appareil)
local_engine = create_engine(
    settings.LOCAL_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

LocalSession = sessionmaker(autocommit=False, autoflush=False, bind=local_engine)

LocalBase = declarative_base()


@event.listens_for(local_engine, "connect")
def _sqlite_pragmas(dbapi_connection, connection_record):
    """WAL + synchronous=FULL : un scan commité survit à une coupure de courant."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=FULL")
    cursor.close()


def get_db():
    """Dépendance FastAPI : fournit une session BDD et la ferme après usage."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_local_db(bind=None) -> None:
    """Crée les tables locales de l'appareil si elles n'existent pas."""
    import sems_scanner.models  # noqa: F401 : enregistre les tables dans LocalBase.metadata

    LocalBase.metadata.create_all(bind=bind or local_engine)
