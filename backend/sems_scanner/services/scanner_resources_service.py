"""
Service de génération du bundle scanner (store distant).
Endpoint : GET /api/sems/events/{event_id}/scanner-resources

Agrège en une seule réponse tout ce dont l'appareil a besoin pour scanner
sans réseau : événement + planning des sessions + élèves autorisés.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from sems_scanner.models.event import Event
from sems_scanner.models.student import Level, Section, Student
from sems_scanner.schemas.audience import EventAudienceConfig
from sems_scanner.schemas.scanner_resources import (
    ScannerEventInfo,
    ScannerResources,
    ScannerStudentResource,
)
from sems_scanner.schemas.session_config import EventSessionConfig

logger = logging.getLogger(__name__)


def _matches(rule, student: Student, section_to_level: Dict[str, str]) -> bool:
    if rule.kind == "ALL_STUDENTS":
        return True
    if rule.kind == "LEVEL":
        level_id = section_to_level.get(student.section_id) if student.section_id else None
        return level_id is not None and level_id in rule.level_ids
    if rule.kind == "SECTION":
        return student.section_id is not None and student.section_id in rule.section_ids
    if rule.kind == "STUDENT":
        return student.id in rule.student_ids
    return False


def filter_students_by_audience(
    students: List[Student],
    section_to_level: Dict[str, str],
    audience: Optional[EventAudienceConfig],
) -> List[Student]:
    """
    Filtre les élèves selon le public cible de l'événement.

    1. Ensemble vide
    2. Les règles "include" ajoutent les élèves correspondants
    3. Les règles "exclude" retirent les élèves correspondants

    Sans règle, tous les élèves sont renvoyés.
    """
    if audience is None or not audience.rules:
        return students

    allowed = set()
    for rule in audience.rules:
        if rule.effect == "include":
            allowed.update(s.id for s in students if _matches(rule, s, section_to_level))

    for rule in audience.rules:
        if rule.effect == "exclude":
            allowed.difference_update(s.id for s in students if _matches(rule, s, section_to_level))

    return [s for s in students if s.id in allowed]


def _parse_audience(event: Event) -> Optional[EventAudienceConfig]:
    if not event.audience_config:
        return None
    try:
        return EventAudienceConfig.model_validate(event.audience_config)
    except ValidationError as exc:
        # Configuration illisible : on retombe sur "tous les élèves" comme sans règle
        logger.warning("Public cible illisible pour l'événement %s : %s", event.id, exc)
        return None


def get_scanner_resources(db: Session, event_id: str) -> ScannerResources:
    """
    Génère le bundle complet de données offline pour un événement.

    Contenu :
    - Infos de l'événement et planning des sessions
    - Élèves actifs filtrés par le public cible, avec niveau, section et QR

    Lève ValueError si l'événement est introuvable ou si son planning est invalide.
    """
    event = db.get(Event, event_id)
    if event is None:
        raise ValueError(f"Événement {event_id} introuvable.")

    students = db.execute(
        select(Student)
        .where(Student.is_active.is_(True))
        .order_by(Student.last_name, Student.first_name)
    ).scalars().all()

    sections = {s.id: s for s in db.execute(select(Section)).scalars().all()}
    levels = {lv.id: lv for lv in db.execute(select(Level)).scalars().all()}
    section_to_level = {s.id: s.level_id for s in sections.values() if s.level_id}

    filtered = filter_students_by_audience(list(students), section_to_level, _parse_audience(event))

    resources = []
    for student in filtered:
        section = sections.get(student.section_id) if student.section_id else None
        level = levels.get(section.level_id) if section and section.level_id else None
        resources.append(
            ScannerStudentResource(
                id=student.id,
                full_name=f"{student.first_name} {student.last_name}".strip(),
                lrn=student.student_school_id,
                level_id=section.level_id if section else None,
                level_name=level.name if level else None,
                section_id=section.id if section else None,
                section_name=section.name if section else None,
                qr_hash=student.qr_hash,
            )
        )

    session_config = None
    if event.session_config:
        try:
            session_config = EventSessionConfig.model_validate(event.session_config)
        except ValidationError as exc:
            # Planning illisible : téléchargement refusé (400)
            logger.error("Planning des sessions illisible pour l'événement %s : %s", event_id, exc)
            raise ValueError(
                f"Le planning des sessions de l'événement {event_id} est invalide : "
                f"corrigez-le avant de télécharger les données du scanner."
            ) from exc

    logger.info(
        "Bundle scanner généré — événement %s : %d élèves autorisés sur %d actifs",
        event_id, len(resources), len(students),
    )

    return ScannerResources(
        event=ScannerEventInfo(
            id=event.id,
            title=event.title,
            start_date=event.start_date,
            end_date=event.end_date,
            venue=event.venue,
            session_config=session_config,
        ),
        students=resources,
        generated_at=datetime.now(timezone.utc),
    )
