"""
Router pour la synchronisation des scans offline → online.
Reçoit les scans de présence depuis un appareil et les insère avec idempotence.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from sems_scanner.database import get_db
from sems_scanner.routers.responses import success
from sems_scanner.schemas.envelope import ApiResponse
from sems_scanner.schemas.sync import ScanUploadRequest, ScanUploadResponse
from sems_scanner.services import scan_upload_service

router = APIRouter(prefix="/api/sems/events", tags=["Synchronisation offline"])


@router.post(
    "/{event_id}/scans",
    response_model=ApiResponse[ScanUploadResponse],
    summary="Synchroniser les scans d'un événement (offline → online)",
)
def upload_scans(event_id: str, data: ScanUploadRequest, db: Session = Depends(get_db)):
    """
    Reçoit un batch de scans générés hors-ligne et crée les présences correspondantes.

    Comportement :
    - Seuls PRESENT et LATE sont insérés ; les autres statuts sont comptés "skipped"
    - Les sessions distantes sont créées à la volée (recherche par nom)
    - Idempotent : une présence déjà existante pour (session, élève) est un doublon, pas une erreur
    - Retourne le rapport : insérés / doublons / ignorés / erreurs, avec les ids concernés

    Retourne 404 si l'événement est introuvable.
    """
    try:
        return success(scan_upload_service.upload_scans(db, event_id, data.scans))
    except ValueError as e:
        msg = str(e)
        if "introuvable" in msg:
            raise HTTPException(status_code=404, detail=msg)
        raise HTTPException(status_code=400, detail=msg)
