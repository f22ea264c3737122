"""
Cache local des ressources d'un événement (snapshot + élèves autorisés).

Un téléchargement remplace en une seule transaction le snapshot et la liste des élèves
de l'événement : soit tout est écrit, soit rien ne change.
"""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sems_scanner.models.allowed_student import AllowedStudent
from sems_scanner.models.scanner_event import ScannerEvent
from sems_scanner.schemas.scanner_resources import ScannerResources
from sems_scanner.schemas.session_config import EventSessionConfig

logger = logging.getLogger(__name__)


class ResourceCacheError(Exception):
    """L'écriture du snapshot a échoué ; les données précédentes sont intactes."""


class ResourceCache:
    def __init__(self, db: Session):
        self.db = db

    def download(self, remote, event_id: str) -> ScannerEvent:
        """
        Télécharge le bundle de l'événement depuis le store distant puis le met en cache.
        Une erreur réseau (RemoteStoreError) remonte telle quelle : rien n'est écrit.
        """
        resources = remote.fetch_event_snapshot(event_id)
        return self.store(resources)

    def store(self, resources: ScannerResources) -> ScannerEvent:
        """
        Remplace le snapshot et la liste des élèves autorisés de l'événement.

        Lève ResourceCacheError si la transaction ne peut aboutir (disque plein, I/O).
        """
        event = resources.event
        session_config = None
        if event.session_config is not None:
            session_config = event.session_config.model_dump(mode="json", by_alias=True)

        try:
            snapshot = self.db.get(ScannerEvent, event.id)
            if snapshot is None:
                snapshot = ScannerEvent(id=event.id)
                self.db.add(snapshot)
            snapshot.title = event.title
            snapshot.venue = event.venue
            snapshot.start_date = event.start_date.isoformat()
            snapshot.end_date = event.end_date.isoformat()
            snapshot.session_config = session_config
            snapshot.downloaded_at = datetime.now()

            self.db.execute(delete(AllowedStudent).where(AllowedStudent.event_id == event.id))

            # Un même QR ne peut figurer qu'une fois par événement (clé de recherche)
            rows = {}
            for student in resources.students:
                rows[student.qr_hash] = AllowedStudent(
                    event_id=event.id,
                    student_id=student.id,
                    qr_hash=student.qr_hash,
                    full_name=student.full_name,
                    lrn=student.lrn or "",
                    grade=student.level_name or "",
                    section=student.section_name or "",
                )
            self.db.add_all(rows.values())
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Échec de l'écriture du snapshot de l'événement %s : %s", event.id, exc)
            raise ResourceCacheError(
                f"Impossible d'enregistrer les données de l'événement {event.id}."
            ) from exc

        logger.info(
            "Snapshot enregistré — événement %s : %d élèves autorisés",
            event.id, len(rows),
        )
        return snapshot

    def get(self, event_id: str) -> Optional[ScannerEvent]:
        return self.db.get(ScannerEvent, event_id)

    def get_schedule(self, event_id: str) -> Optional[EventSessionConfig]:
        """Planning des sessions du snapshot, ou None si absent ou illisible."""
        snapshot = self.get(event_id)
        if snapshot is None or not snapshot.session_config:
            return None
        try:
            return EventSessionConfig.model_validate(snapshot.session_config)
        except ValidationError as exc:
            logger.warning("Planning illisible pour l'événement %s : %s", event_id, exc)
            return None

    def lookup_allowed(self, event_id: str, qr_hash: str) -> Optional[AllowedStudent]:
        return self.db.execute(
            select(AllowedStudent).where(
                AllowedStudent.event_id == event_id,
                AllowedStudent.qr_hash == qr_hash,
            )
        ).scalar()

    def count(self, event_id: str) -> int:
        return self.db.execute(
            select(func.count()).select_from(AllowedStudent).where(AllowedStudent.event_id == event_id)
        ).scalar() or 0

    def list_events(self) -> List[ScannerEvent]:
        """Événements téléchargés sur l'appareil, triés par date de début."""
        return list(
            self.db.execute(select(ScannerEvent).order_by(ScannerEvent.start_date)).scalars().all()
        )

    def clear(self, event_id: str) -> bool:
        """
        Supprime le snapshot et les élèves autorisés de l'événement.
        Les scans enregistrés sont conservés (piste d'audit).
        Retourne False si aucun snapshot n'existait.
        """
        snapshot = self.get(event_id)
        if snapshot is None:
            return False
        try:
            self.db.execute(delete(AllowedStudent).where(AllowedStudent.event_id == event_id))
            self.db.delete(snapshot)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise ResourceCacheError(
                f"Impossible de supprimer les données de l'événement {event_id}."
            ) from exc
        logger.info("Données locales supprimées — événement %s", event_id)
        return True
