"""
Modèle SQLAlchemy pour les présences synchronisées (store distant).

La contrainte d'unicité (event_session_id, student_id) garantit une seule présence
par élève et par session, même si plusieurs appareils ont scanné le même élève hors-ligne.
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, func

from sems_scanner.database import Base


class AttendanceLog(Base):
    __tablename__ = "attendance_logs"
    __table_args__ = (
        UniqueConstraint("event_session_id", "student_id", name="uq_attendance_session_student"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_session_id = Column(
        String(36), ForeignKey("event_sessions.id", ondelete="CASCADE"), nullable=False
    )
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    scanned_at = Column(DateTime, nullable=False)          # Timestamp de l'appareil (offline)
    status = Column(String(20), nullable=False)            # present, late
    synced_at = Column(DateTime, server_default=func.now())
