"""
Réconciliation de la file locale avec le store distant (côté appareil).

Stratégie :
- Seuls les scans PRESENT/LATE avec élève et session sont transmis ; DENIED et DUPLICATE
  restent locaux (comptés comme "skipped")
- Le store distant applique une contrainte d'unicité (session, élève) : un scan déjà
  présent, envoyé par un autre appareil ou lors d'un essai précédent, revient en "duplicate"
- Les scans insérés ou reconnus comme doublons passent en synced ; les autres restent
  pending pour le prochain passage
- Erreur réseau : rien n'est marqué, l'appel suivant repart de toute la file pending
"""

import logging
from typing import List, Optional

from sems_scanner.models.scan_record import ScanRecord
from sems_scanner.schemas.scan import ATTENDED_STATUSES
from sems_scanner.schemas.session_config import EventSessionConfig
from sems_scanner.schemas.sync import MAX_BATCH_SIZE, ScanUploadItem, SyncResult
from sems_scanner.services.resource_cache import ResourceCache
from sems_scanner.services.scan_queue import ScanQueue
from sems_scanner.services.session_resolver import find_session

logger = logging.getLogger(__name__)


def is_transmittable(record: ScanRecord) -> bool:
    """Un scan n'est envoyé que s'il représente une présence rattachée à une session."""
    return record.status in ATTENDED_STATUSES and bool(record.student_id) and bool(record.session_id)


def to_upload_item(record: ScanRecord, schedule: Optional[EventSessionConfig] = None) -> ScanUploadItem:
    """Convertit un scan local en élément d'upload, enrichi des horaires de sa session."""
    session = None
    if record.session_id:
        session = find_session(schedule, record.session_id, on_date=record.scanned_at.date())

    return ScanUploadItem(
        id=record.id,
        student_id=record.student_id,
        qr_hash=record.qr_hash,
        scanned_at=record.scanned_at,
        status=record.status,
        reason=record.reason,
        session_id=record.session_id,
        session_name=record.session_name,
        session_direction=record.session_direction,
        session_period=session.period if session else None,
        session_opens=session.opens if session else None,
        session_closes=session.closes if session else None,
        session_late_after=session.late_after if session else None,
    )


class SyncReconciler:
    def __init__(self, cache: ResourceCache, queue: ScanQueue, remote):
        self.cache = cache
        self.queue = queue
        self.remote = remote

    def upload(self, event_id: str) -> SyncResult:
        """
        Envoie les scans pending de l'événement au store distant.

        1. Lit la file pending, écarte DENIED / DUPLICATE / scans sans élève ou session
        2. Enrichit chaque scan des horaires de sa session (création distante paresseuse)
        3. Envoie par lots de MAX_BATCH_SIZE
        4. Marque synced les scans insérés et les doublons distants

        Une RemoteStoreError interrompt l'appel et remonte : aucun scan n'est marqué.
        """
        pending = self.queue.list_pending(event_id)
        to_send = [r for r in pending if is_transmittable(r)]
        result = SyncResult(event_id=event_id, skipped=len(pending) - len(to_send))

        if not to_send:
            logger.info(
                "Sync événement %s : rien à envoyer (%d scans locaux ignorés)",
                event_id, result.skipped,
            )
            return result

        schedule = self.cache.get_schedule(event_id)
        items = [to_upload_item(r, schedule) for r in to_send]

        synced_ids: List[str] = []
        for start in range(0, len(items), MAX_BATCH_SIZE):
            batch = items[start:start + MAX_BATCH_SIZE]
            response = self.remote.upload_scans(event_id, batch)

            result.uploaded += response.uploaded
            result.duplicates += response.duplicates
            result.errors += response.errors
            # Le serveur ne refiltre que ce qu'on lui envoie : ses "skipped" s'ajoutent aux nôtres
            result.skipped += response.skipped
            synced_ids.extend(response.uploaded_ids)
            synced_ids.extend(response.duplicate_ids)

        # Marquage après le dernier lot : une erreur réseau en cours de route ne marque rien
        self.queue.mark_synced(synced_ids)
        result.synced_ids = synced_ids

        logger.info(
            "Sync événement %s : %d envoyés, %d doublons, %d ignorés, %d erreurs",
            event_id, result.uploaded, result.duplicates, result.skipped, result.errors,
        )
        return result

    def sync_all(self) -> List[SyncResult]:
        """
        Synchronise tous les événements ayant des scans pending.
        Une erreur sur un événement n'empêche pas les autres d'être traités.
        """
        results = []
        for event_id in self.queue.pending_event_ids():
            try:
                results.append(self.upload(event_id))
            except Exception as exc:
                logger.error("Sync événement %s interrompue : %s", event_id, exc)
        return results
