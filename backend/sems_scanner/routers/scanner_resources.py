"""
Router du bundle scanner : téléchargé par l'appareil avant de passer hors-ligne.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from sems_scanner.database import get_db
from sems_scanner.routers.responses import success
from sems_scanner.schemas.envelope import ApiResponse
from sems_scanner.schemas.scanner_resources import ScannerResources
from sems_scanner.services import scanner_resources_service

router = APIRouter(prefix="/api/sems/events", tags=["Scanner"])


@router.get(
    "/{event_id}/scanner-resources",
    response_model=ApiResponse[ScannerResources],
    summary="Télécharger les données offline d'un événement",
)
def get_scanner_resources(event_id: str, db: Session = Depends(get_db)):
    """
    Retourne l'événement, son planning de sessions et les élèves autorisés
    (filtrés selon le public cible), avec le contenu de leur QR code.

    Retourne 404 si l'événement est introuvable.
    """
    try:
        return success(scanner_resources_service.get_scanner_resources(db, event_id))
    except ValueError as e:
        msg = str(e)
        if "introuvable" in msg:
            raise HTTPException(status_code=404, detail=msg)
        raise HTTPException(status_code=400, detail=msg)
