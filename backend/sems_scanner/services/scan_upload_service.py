"""
Service d'insertion des scans synchronisés (store distant).

Pour chaque batch reçu d'un appareil :
- Ne conserve que les scans PRESENT/LATE rattachés à un élève et une session
- Regroupe les scans par session et par jour, et retrouve (ou crée) la session distante
  correspondante, par événement + nom daté ("Morning In (2026-03-02)")
- Insère une présence par scan ; une présence déjà enregistrée pour (session, élève)
  est un doublon, pas une erreur → upload idempotent, rejouable après un échec partiel
  ou une course entre appareils. Toute autre violation d'intégrité (élève supprimé,
  champ manquant) est une erreur : le scan reste pending côté appareil.
"""

import logging
from collections import OrderedDict
from datetime import date, time
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sems_scanner.models.attendance_log import AttendanceLog
from sems_scanner.models.event import Event
from sems_scanner.models.event_session import EventSession
from sems_scanner.schemas.scan import ATTENDED_STATUSES, PRESENT
from sems_scanner.schemas.sync import ScanUploadItem, ScanUploadResponse

logger = logging.getLogger(__name__)

DEFAULT_OPENS = time(7, 0)
DEFAULT_CLOSES = time(8, 0)


def to_session_type(period: Optional[str], direction: Optional[str]) -> str:
    """morning + in → "morning_in"."""
    return f"{(period or 'morning').lower()}_{(direction or 'in').lower()}"


def to_session_name(name: str, on_date: date) -> str:
    """Nom de la session distante : une session par jour de l'événement."""
    return f"{name} ({on_date.isoformat()})"


def _find_session(db: Session, event_id: str, name: str) -> Optional[EventSession]:
    return db.execute(
        select(EventSession).where(
            EventSession.event_id == event_id,
            EventSession.name == name,
        ).limit(1)
    ).scalar()


def _attendance_exists(db: Session, event_session_id: str, student_id: str) -> bool:
    return db.execute(
        select(AttendanceLog.id).where(
            AttendanceLog.event_session_id == event_session_id,
            AttendanceLog.student_id == student_id,
        ).limit(1)
    ).scalar() is not None


def _find_or_create_session(db: Session, event_id: str, config_session_id: str, first: ScanUploadItem) -> str:
    """
    Retourne l'id de la session distante correspondant au groupe de scans.
    La création utilise les horaires transmis avec le premier scan du groupe.
    """
    name = to_session_name(first.session_name or config_session_id, first.scanned_at.date())

    existing = _find_session(db, event_id, name)
    if existing:
        return existing.id

    session = EventSession(
        event_id=event_id,
        name=name,
        session_type=to_session_type(first.session_period, first.session_direction),
        start_time=first.session_opens or DEFAULT_OPENS,
        late_threshold_time=first.session_late_after,
        end_time=first.session_closes or DEFAULT_CLOSES,
    )
    try:
        with db.begin_nested():
            db.add(session)
    except IntegrityError:
        # Créée entre-temps par l'upload d'un autre appareil
        existing = _find_session(db, event_id, name)
        if existing is None:
            raise
        return existing.id
    logger.info("Session distante créée — événement %s : %s (%s)", event_id, name, session.session_type)
    return session.id


def upload_scans(db: Session, event_id: str, scans: List[ScanUploadItem]) -> ScanUploadResponse:
    """
    Insère en batch les scans reçus depuis un appareil.

    Lève ValueError si l'événement est introuvable.
    Toute la transaction est commitée en une seule fois.
    """
    event = db.get(Event, event_id)
    if event is None:
        raise ValueError(f"Événement {event_id} introuvable.")

    valid = [
        s for s in scans
        if s.status in ATTENDED_STATUSES and s.student_id and s.session_id
    ]
    skipped = len(scans) - len(valid)

    if not valid:
        return ScanUploadResponse(
            uploaded=0, duplicates=0, skipped=skipped, errors=0,
            message="No valid scans to upload.",
        )

    # Un même id de session peut revenir sur plusieurs jours : le jour fait partie de la clé
    groups: "OrderedDict[Tuple[str, date], List[ScanUploadItem]]" = OrderedDict()
    for scan in valid:
        groups.setdefault((scan.session_id, scan.scanned_at.date()), []).append(scan)

    # Un échec de création pour une session ne bloque pas les autres
    session_ids: Dict[Tuple[str, date], str] = {}
    for key, group in groups.items():
        try:
            session_ids[key] = _find_or_create_session(db, event_id, key[0], group[0])
        except SQLAlchemyError as exc:
            logger.warning(
                "Création de la session %s impossible (événement %s) : %s",
                key[0], event_id, exc,
            )

    uploaded_ids: List[str] = []
    duplicate_ids: List[str] = []
    errors = 0

    for scan in valid:
        db_session_id = session_ids.get((scan.session_id, scan.scanned_at.date()))
        if db_session_id is None:
            errors += 1
            continue

        if _attendance_exists(db, db_session_id, scan.student_id):
            duplicate_ids.append(scan.id)
            logger.debug("Présence déjà enregistrée, scan %s ignoré", scan.id)
            continue

        log = AttendanceLog(
            event_session_id=db_session_id,
            student_id=scan.student_id,
            scanned_at=scan.scanned_at,
            status="present" if scan.status == PRESENT else "late",
        )
        try:
            with db.begin_nested():
                db.add(log)
        except IntegrityError as exc:
            # Insérée entre-temps par un autre appareil : doublon. Sinon, vraie erreur.
            if _attendance_exists(db, db_session_id, scan.student_id):
                duplicate_ids.append(scan.id)
            else:
                errors += 1
                logger.error("Insertion du scan %s refusée : %s", scan.id, exc)
        except SQLAlchemyError as exc:
            errors += 1
            logger.error("Insertion du scan %s impossible : %s", scan.id, exc)
        else:
            uploaded_ids.append(scan.id)

    db.commit()

    logger.info(
        "Upload événement %s : %d reçus, %d insérés, %d doublons, %d ignorés, %d erreurs",
        event_id, len(scans), len(uploaded_ids), len(duplicate_ids), skipped, errors,
    )

    return ScanUploadResponse(
        uploaded=len(uploaded_ids),
        duplicates=len(duplicate_ids),
        skipped=skipped,
        errors=errors,
        uploaded_ids=uploaded_ids,
        duplicate_ids=duplicate_ids,
        message=f"Successfully uploaded {len(uploaded_ids)} scan(s).",
    )
