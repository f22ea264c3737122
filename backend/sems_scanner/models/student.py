"""
Modèles SQLAlchemy pour les élèves et leur rattachement niveau / section (store distant).
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, func

from sems_scanner.database import Base


class Level(Base):
    """Niveau scolaire (ex. Grade 7)."""
    __tablename__ = "levels"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)


class Section(Base):
    """Section d'un niveau (ex. Grade 7 - Rizal)."""
    __tablename__ = "sections"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    level_id = Column(String(36), ForeignKey("levels.id"), nullable=True)


class Student(Base):
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_school_id = Column(String(50), nullable=False)   # LRN
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    section_id = Column(String(36), ForeignKey("sections.id"), nullable=True)
    qr_hash = Column(String(255), unique=True, nullable=False)  # Contenu du QR code de l'élève
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
