"""
Schémas Pydantic du bundle téléchargé par l'appareil avant de passer hors-ligne.
Endpoint : GET /api/sems/events/{event_id}/scanner-resources

Ce bundle contient tout ce dont le scanner a besoin pour fonctionner sans réseau :
- Les infos de l'événement et son planning de sessions
- Les élèves autorisés avec le contenu de leur QR code
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel

from sems_scanner.schemas.session_config import EventSessionConfig


class ScannerEventInfo(BaseModel):
    """Informations essentielles de l'événement pour le mode offline."""
    id: str
    title: str
    start_date: date
    end_date: date
    venue: Optional[str] = None
    session_config: Optional[EventSessionConfig] = None


class ScannerStudentResource(BaseModel):
    """Élève autorisé à l'événement."""
    id: str
    full_name: str
    lrn: str = ""
    level_id: Optional[str] = None
    level_name: Optional[str] = None
    section_id: Optional[str] = None
    section_name: Optional[str] = None
    qr_hash: str


class ScannerResources(BaseModel):
    event: ScannerEventInfo
    students: List[ScannerStudentResource]
    generated_at: datetime  # Timestamp UTC de génération du bundle
