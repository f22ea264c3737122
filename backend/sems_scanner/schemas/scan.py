"""
Schémas Pydantic des résultats de scan côté appareil.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

PRESENT = "PRESENT"
LATE = "LATE"
DENIED = "DENIED"
DUPLICATE = "DUPLICATE"

SCAN_STATUSES = {PRESENT, LATE, DENIED, DUPLICATE}
# Seuls ces statuts deviennent une présence dans le store distant
ATTENDED_STATUSES = {PRESENT, LATE}

SYNC_PENDING = "pending"
SYNC_SYNCED = "synced"


class ScanResult(BaseModel):
    """Scan classé et enregistré, renvoyé à l'appelant pour affichage."""

    id: str
    event_id: str
    student_id: str
    qr_hash: str
    scanned_at: datetime
    status: str
    reason: Optional[str]
    session_id: Optional[str]
    session_name: Optional[str]
    session_direction: Optional[str]
    sync_status: str
    created_at: datetime

    # Affichage (non persisté)
    student_name: Optional[str] = None
    lrn: str = ""
    grade: str = ""
    section: str = ""
    message: str = ""

    model_config = {"from_attributes": True}

    @property
    def is_registered(self) -> bool:
        return bool(self.student_id)


class ScanStats(BaseModel):
    """Compteurs affichés sur l'écran du scanner."""

    total_scanned: int = 0     # PRESENT + LATE
    total_late: int = 0
    total_denied: int = 0
    total_duplicates: int = 0
    pending: int = 0
