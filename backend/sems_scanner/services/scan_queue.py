"""
File locale des scans (append-only).

Chaque tentative de scan y est ajoutée avec sync_status="pending". Les lignes ne sont
jamais modifiées ni supprimées, sauf le passage pending → synced par la synchronisation.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from sems_scanner.models.scan_record import ScanRecord
from sems_scanner.schemas.scan import (
    ATTENDED_STATUSES,
    DENIED,
    DUPLICATE,
    LATE,
    PRESENT,
    SYNC_PENDING,
    SYNC_SYNCED,
    ScanStats,
)

logger = logging.getLogger(__name__)


class ScanQueue:
    def __init__(self, db: Session):
        self.db = db

    def append(self, record: ScanRecord) -> ScanRecord:
        """
        Ajoute un scan à la file.
        Idempotent : si l'id existe déjà, l'enregistrement existant est renvoyé tel quel.
        """
        existing = self.db.get(ScanRecord, record.id)
        if existing is not None:
            logger.debug("Scan %s déjà en file, ignoré", record.id)
            return existing

        if not record.sync_status:
            record.sync_status = SYNC_PENDING
        self.db.add(record)
        self.db.commit()
        return record

    def find_by_session_and_student(
        self,
        event_id: str,
        session_id: str,
        student_id: str,
    ) -> Optional[ScanRecord]:
        """Premier scan PRESENT/LATE de l'élève pour cette session, ou None."""
        return self.db.execute(
            select(ScanRecord)
            .where(
                ScanRecord.event_id == event_id,
                ScanRecord.session_id == session_id,
                ScanRecord.student_id == student_id,
                ScanRecord.status.in_(ATTENDED_STATUSES),
            )
            .order_by(ScanRecord.scanned_at)
            .limit(1)
        ).scalar()

    def list_pending(self, event_id: str) -> List[ScanRecord]:
        """Scans non synchronisés de l'événement, dans l'ordre de capture."""
        return list(
            self.db.execute(
                select(ScanRecord)
                .where(
                    ScanRecord.event_id == event_id,
                    ScanRecord.sync_status == SYNC_PENDING,
                )
                .order_by(ScanRecord.created_at, ScanRecord.scanned_at)
            ).scalars().all()
        )

    def count_pending(self, event_id: str) -> int:
        return self.db.execute(
            select(func.count())
            .select_from(ScanRecord)
            .where(ScanRecord.event_id == event_id, ScanRecord.sync_status == SYNC_PENDING)
        ).scalar() or 0

    def pending_event_ids(self) -> List[str]:
        """Événements ayant encore des scans à synchroniser."""
        return list(
            self.db.execute(
                select(ScanRecord.event_id)
                .where(ScanRecord.sync_status == SYNC_PENDING)
                .distinct()
            ).scalars().all()
        )

    def mark_synced(self, ids: Iterable[str]) -> int:
        """Passe les scans donnés en synced. Retourne le nombre de lignes modifiées."""
        ids = list(set(ids))
        if not ids:
            return 0
        result = self.db.execute(
            update(ScanRecord)
            .where(ScanRecord.id.in_(ids), ScanRecord.sync_status == SYNC_PENDING)
            .values(sync_status=SYNC_SYNCED)
        )
        self.db.commit()
        return result.rowcount

    def stats(self, event_id: str) -> ScanStats:
        rows = self.db.execute(
            select(ScanRecord.status, func.count())
            .where(ScanRecord.event_id == event_id)
            .group_by(ScanRecord.status)
        ).all()
        counts = {status: total for status, total in rows}

        return ScanStats(
            total_scanned=counts.get(PRESENT, 0) + counts.get(LATE, 0),
            total_late=counts.get(LATE, 0),
            total_denied=counts.get(DENIED, 0),
            total_duplicates=counts.get(DUPLICATE, 0),
            pending=self.count_pending(event_id),
        )
