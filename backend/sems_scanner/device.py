"""
Assemblage du scanner côté appareil.

Relie la base locale, le cache de ressources, la file des scans, le store distant
et la boucle de capture. C'est la surface appelée par l'application qui héberge le scanner.
"""

import logging
from datetime import datetime
from typing import Iterable, Iterator, Optional, Tuple

from sqlalchemy.orm import Session

from sems_scanner.database import LocalSession, init_local_db
from sems_scanner.schemas.scan import ScanResult, ScanStats
from sems_scanner.schemas.sync import SyncResult
from sems_scanner.services.capture import CaptureDebouncer, ScanLoop
from sems_scanner.services.remote_store import HttpRemoteStore
from sems_scanner.services.resource_cache import ResourceCache
from sems_scanner.services.scan_classifier import classify_scan
from sems_scanner.services.scan_queue import ScanQueue
from sems_scanner.services.sync_service import SyncReconciler

logger = logging.getLogger(__name__)


class ScannerDevice:
    """
    `db` : session SQLAlchemy sur la base locale (créée sur LOCAL_DATABASE_URL si absente).
    `remote` : client du store distant (HttpRemoteStore par défaut).
    """

    def __init__(self, db: Optional[Session] = None, remote=None):
        if db is None:
            init_local_db()
            db = LocalSession()
        self.db = db
        self.remote = remote if remote is not None else HttpRemoteStore()
        self.cache = ResourceCache(db)
        self.queue = ScanQueue(db)
        self.reconciler = SyncReconciler(self.cache, self.queue, self.remote)

    def close(self) -> None:
        self.db.close()

    def download(self, event_id: str):
        return self.cache.download(self.remote, event_id)

    def clear(self, event_id: str) -> bool:
        return self.cache.clear(event_id)

    def scan(self, event_id: str, qr_hash: str, now: Optional[datetime] = None) -> ScanResult:
        return classify_scan(self.cache, self.queue, event_id, qr_hash, now)

    def scan_loop(self, event_id: str, debouncer: Optional[CaptureDebouncer] = None) -> ScanLoop:
        return ScanLoop(lambda value, timestamp: self.scan(event_id, value, timestamp), debouncer)

    def run(self, event_id: str, source: Iterable[Tuple[str, datetime]]) -> Iterator[ScanResult]:
        """Classe en série chaque valeur de la source de capture, frames répétées exclues."""
        return self.scan_loop(event_id).run(source)

    def upload(self, event_id: str) -> SyncResult:
        return self.reconciler.upload(event_id)

    def sync_all(self):
        return self.reconciler.sync_all()

    def stats(self, event_id: str) -> ScanStats:
        return self.queue.stats(event_id)
