"""
Modèle SQLAlchemy pour les sessions d'un événement (store distant).

Les sessions ne sont pas créées par l'administration : elles sont matérialisées
à la première synchronisation d'un scan qui les référence (recherche par événement + nom).
Le nom porte la date ("Morning In (2026-03-02)") : une session par jour de l'événement.
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, String, Time, UniqueConstraint, func

from sems_scanner.database import Base


class EventSession(Base):
    __tablename__ = "event_sessions"
    __table_args__ = (
        UniqueConstraint("event_id", "name", name="uq_event_session_name"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    session_type = Column(String(30), nullable=False)     # morning_in, morning_out, afternoon_in, ...
    start_time = Column(Time, nullable=False)
    late_threshold_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
