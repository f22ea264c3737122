"""
Planificateur APScheduler pour la synchronisation automatique des scans.

Le job s'exécute toutes les SYNC_INTERVAL_MINUTES minutes et envoie au store distant
les scans pending de tous les événements. Sans réseau, il échoue (journalisé) et le
passage suivant reprend toute la file.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from sems_scanner.config import settings
from sems_scanner.database import LocalSession
from sems_scanner.services.remote_store import HttpRemoteStore
from sems_scanner.services.resource_cache import ResourceCache
from sems_scanner.services.scan_queue import ScanQueue
from sems_scanner.services.sync_service import SyncReconciler

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()

SYNC_JOB_ID = "scan_queue_sync"


def _sync_scheduled(remote) -> None:
    """
    Tâche planifiée : synchronise tous les événements ayant des scans pending.
    Ouvre sa propre session locale (thread du scheduler, distinct de la boucle de scan).
    """
    db = LocalSession()
    try:
        reconciler = SyncReconciler(ResourceCache(db), ScanQueue(db), remote)
        for result in reconciler.sync_all():
            logger.info(
                "Sync automatique — événement %s : %d envoyés, %d doublons, %d erreurs",
                result.event_id, result.uploaded, result.duplicates, result.errors,
            )
    except Exception as exc:
        logger.error("Erreur lors de la synchronisation automatique : %s", exc)
    finally:
        db.close()


def start_sync_scheduler(remote=None, interval_minutes: int = None) -> None:
    """Démarre la synchronisation périodique en arrière-plan."""
    if remote is None:
        remote = HttpRemoteStore()

    minutes = interval_minutes or settings.SYNC_INTERVAL_MINUTES
    scheduler.add_job(
        _sync_scheduled,
        trigger="interval",
        minutes=minutes,
        args=[remote],
        id=SYNC_JOB_ID,
        replace_existing=True,
        max_instances=1,
    )
    if not scheduler.running:
        scheduler.start()
    logger.info("Scheduler démarré — synchronisation des scans toutes les %d minutes.", minutes)


def stop_sync_scheduler() -> None:
    """Arrête le planificateur proprement."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
