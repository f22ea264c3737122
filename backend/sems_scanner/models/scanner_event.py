"""
Modèle SQLAlchemy du snapshot d'événement (base locale de l'appareil).
Un seul snapshot par événement, remplacé en bloc à chaque téléchargement.
"""

from sqlalchemy import JSON, Column, DateTime, String

from sems_scanner.database import LocalBase


class ScannerEvent(LocalBase):
    __tablename__ = "scanner_events"

    id = Column(String(36), primary_key=True)             # = event_id distant
    title = Column(String(255), nullable=False)
    venue = Column(String(255), nullable=True)
    start_date = Column(String(10), nullable=False)       # YYYY-MM-DD
    end_date = Column(String(10), nullable=False)
    session_config = Column(JSON, nullable=True)          # Planning des sessions, tel que téléchargé
    downloaded_at = Column(DateTime, nullable=False)
