"""
Classification d'un scan hors-ligne.

Point d'entrée unique appelé une fois par QR capturé. N'utilise que les données locales
et l'horloge de l'appareil, sans aucun appel réseau.

Ordre d'évaluation (la première branche qui s'applique gagne) :
1. Pas de snapshot pour l'événement      → DENIED
2. Aucune session ouverte                → DENIED (raison du résolveur)
3. QR absent de la liste des autorisés   → DENIED
4. Déjà PRESENT/LATE pour cette session  → DUPLICATE
5. Sinon                                 → LATE ou PRESENT selon late_after

Chaque branche ajoute exactement un nouveau scan "pending" à la file.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sems_scanner.models.scan_record import ScanRecord
from sems_scanner.schemas.scan import (
    DENIED,
    DUPLICATE,
    LATE,
    PRESENT,
    SYNC_PENDING,
    ScanResult,
)
from sems_scanner.services.resource_cache import ResourceCache
from sems_scanner.services.scan_queue import ScanQueue
from sems_scanner.services.session_resolver import NOT_OPEN, is_late, resolve_active_session

logger = logging.getLogger(__name__)

DOWNLOAD_FIRST = "Please download event data first."
NOT_REGISTERED = "This student is not registered for this event."


def _build_message(status: str, session_name: Optional[str], reason: Optional[str]) -> str:
    """Message affiché à l'opérateur pour le résultat du scan."""
    if reason:
        return reason
    if status == PRESENT:
        return f"On time for {session_name}" if session_name else "On time"
    if status == LATE:
        return f"Late for {session_name}" if session_name else "Late"
    if status == DUPLICATE:
        return f"Already scanned for {session_name}" if session_name else "Already scanned"
    return "Can't scan this student."


def classify_scan(
    cache: ResourceCache,
    queue: ScanQueue,
    event_id: str,
    qr_hash: str,
    now: Optional[datetime] = None,
) -> ScanResult:
    """
    Classe un QR scanné et enregistre le scan dans la file locale.

    `now` vaut par défaut l'heure locale de l'appareil. Ne lève jamais d'exception
    pour un contenu de QR quelconque : l'appelant reçoit toujours un ScanResult.
    """
    now = now or datetime.now()
    qr_hash = (qr_hash or "").strip()

    status = DENIED
    reason: Optional[str] = None
    student = None
    session = None

    snapshot = cache.get(event_id)
    if snapshot is None:
        reason = DOWNLOAD_FIRST
    else:
        resolved = resolve_active_session(cache.get_schedule(event_id), now)
        if not resolved.is_active:
            reason = resolved.reason or NOT_OPEN
        else:
            session = resolved.session
            student = cache.lookup_allowed(event_id, qr_hash)

            if student is None:
                reason = NOT_REGISTERED
            elif queue.find_by_session_and_student(event_id, session.id, student.student_id):
                status = DUPLICATE
                reason = f"Already scanned for {session.name}."
            else:
                status = LATE if is_late(session, now) else PRESENT

    record = ScanRecord(
        id=str(uuid.uuid4()),
        event_id=event_id,
        student_id=student.student_id if student else "",
        qr_hash=qr_hash,
        scanned_at=now,
        status=status,
        reason=reason,
        session_id=session.id if session else None,
        session_name=session.name if session else None,
        session_direction=session.direction if session else None,
        sync_status=SYNC_PENDING,
        created_at=datetime.now(),
    )
    record = queue.append(record)

    logger.debug(
        "Scan %s — événement %s, session %s : %s (%s)",
        record.id, event_id, record.session_id, status, reason or "-",
    )

    result = ScanResult.model_validate(record)
    result.message = _build_message(status, record.session_name, reason)
    if student is not None:
        result.student_name = student.full_name
        result.lrn = student.lrn or ""
        result.grade = student.grade or ""
        result.section = student.section or ""
    return result
