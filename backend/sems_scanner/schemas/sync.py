"""
Schémas Pydantic pour la synchronisation offline → online.
Endpoint : POST /api/sems/events/{event_id}/scans
"""

from datetime import datetime, time
from typing import List, Optional

from pydantic import BaseModel, field_validator

from sems_scanner.schemas.scan import SCAN_STATUSES

MAX_BATCH_SIZE = 500


class ScanUploadItem(BaseModel):
    """Un scan de la file locale, enrichi des infos de sa session."""

    id: str                       # UUID généré par l'appareil, clé d'idempotence locale
    student_id: str = ""
    qr_hash: str
    scanned_at: datetime          # Timestamp local au moment du scan (avant réseau)
    status: str                   # PRESENT, LATE, DENIED, DUPLICATE
    reason: Optional[str] = None
    session_id: Optional[str] = None
    session_name: Optional[str] = None
    session_direction: Optional[str] = None
    # Permettent de créer la session distante si elle n'existe pas encore
    session_period: Optional[str] = None
    session_opens: Optional[time] = None
    session_closes: Optional[time] = None
    session_late_after: Optional[time] = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        if v not in SCAN_STATUSES:
            raise ValueError(f"Statut de scan invalide. Valeurs acceptées : {SCAN_STATUSES}")
        return v


class ScanUploadRequest(BaseModel):
    """Corps de la requête batch de synchronisation."""

    scans: List[ScanUploadItem]

    @field_validator("scans")
    @classmethod
    def scans_not_too_large(cls, v: List[ScanUploadItem]) -> List[ScanUploadItem]:
        if len(v) > MAX_BATCH_SIZE:
            raise ValueError(f"Batch trop grand : maximum {MAX_BATCH_SIZE} scans par requête.")
        return v


class ScanUploadResponse(BaseModel):
    """Rapport de synchronisation retourné par le store distant."""

    uploaded: int
    duplicates: int
    skipped: int
    errors: int
    uploaded_ids: List[str] = []      # scans insérés
    duplicate_ids: List[str] = []     # scans déjà présents (autre appareil ou retry)
    message: str = ""


class SyncResult(BaseModel):
    """Bilan d'une réconciliation côté appareil."""

    event_id: str
    uploaded: int = 0
    duplicates: int = 0
    skipped: int = 0
    errors: int = 0
    synced_ids: List[str] = []
