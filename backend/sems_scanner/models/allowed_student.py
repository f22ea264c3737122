"""
Modèle SQLAlchemy des élèves autorisés à un événement (base locale de l'appareil).
Clé unique (event_id, qr_hash) : une recherche par scan.
"""

from sqlalchemy import Column, Index, Integer, String, UniqueConstraint

from sems_scanner.database import LocalBase


class AllowedStudent(LocalBase):
    __tablename__ = "allowed_students"
    __table_args__ = (
        UniqueConstraint("event_id", "qr_hash", name="uq_allowed_event_qr"),
        Index("ix_allowed_event_student", "event_id", "student_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(36), nullable=False, index=True)
    student_id = Column(String(36), nullable=False)
    qr_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    lrn = Column(String(50), nullable=False, default="")
    grade = Column(String(100), nullable=False, default="")
    section = Column(String(100), nullable=False, default="")
