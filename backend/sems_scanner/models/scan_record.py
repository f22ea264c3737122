"""
Modèle SQLAlchemy de la file des scans (base locale de l'appareil).

Architecture offline-first :
- id         : UUID généré sur l'appareil, clé d'idempotence
- scanned_at : horloge locale au moment du scan
- Une ligne par tentative de scan, jamais supprimée (piste d'audit)
- Seul sync_status évolue : pending → synced
"""

from sqlalchemy import Column, DateTime, Index, String, Text

from sems_scanner.database import LocalBase


class ScanRecord(LocalBase):
    __tablename__ = "scan_queue"
    __table_args__ = (
        Index("ix_scan_event_session_student", "event_id", "session_id", "student_id"),
        Index("ix_scan_event_sync_status", "event_id", "sync_status"),
    )

    id = Column(String(36), primary_key=True)
    event_id = Column(String(36), nullable=False)
    student_id = Column(String(36), nullable=False, default="")  # "" si QR inconnu
    qr_hash = Column(String(255), nullable=False)
    scanned_at = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False)            # PRESENT, LATE, DENIED, DUPLICATE
    reason = Column(Text, nullable=True)

    session_id = Column(String(100), nullable=True)        # NULL si aucune session ouverte
    session_name = Column(String(255), nullable=True)
    session_direction = Column(String(3), nullable=True)   # in, out

    sync_status = Column(String(10), nullable=False, default="pending")  # pending, synced
    created_at = Column(DateTime, nullable=False)
