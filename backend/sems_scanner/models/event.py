"""
Modèle SQLAlchemy pour les événements (store distant).
La configuration des sessions et du public cible est stockée en JSON.
"""

import uuid
from sqlalchemy import JSON, Column, Date, DateTime, String, Text, func

from sems_scanner.database import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    venue = Column(String(255), nullable=True)            # Nom de la salle / du lieu
    audience_config = Column(JSON, nullable=True)          # {"rules": [...]}, None = tous les élèves
    session_config = Column(JSON, nullable=True)           # {"version": 2, "dates": [...]}
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
