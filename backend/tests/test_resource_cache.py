"""
Tests du cache local des ressources d'un événement.
Couverture : remplacement atomique, échec d'écriture sans effet, recherche par QR,
suppression des données locales (scans conservés).
"""

from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from sems_scanner.models.allowed_student import AllowedStudent
from sems_scanner.models.scan_record import ScanRecord
from sems_scanner.models.scanner_event import ScannerEvent
from sems_scanner.schemas.scanner_resources import (
    ScannerEventInfo,
    ScannerResources,
    ScannerStudentResource,
)
from sems_scanner.services.resource_cache import ResourceCache, ResourceCacheError
from sems_scanner.services.scan_queue import ScanQueue

from conftest import SESSION_CONFIG

EVENT = "event-1"


# --- Helpers ---

def make_student(student_id, qr_hash, name="Alice Reyes"):
    return ScannerStudentResource(
        id=student_id,
        full_name=name,
        lrn="100000000001",
        level_name="Grade 7",
        section_name="Rizal",
        qr_hash=qr_hash,
    )


def make_resources(students=None, title="Foundation Day", session_config=SESSION_CONFIG):
    return ScannerResources(
        event=ScannerEventInfo(
            id=EVENT,
            title=title,
            start_date=date(2026, 3, 2),
            end_date=date(2026, 3, 2),
            venue="Main Gymnasium",
            session_config=session_config,
        ),
        students=students if students is not None else [make_student("stu-1", "QR-1")],
        generated_at=datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc),
    )


# ============================================================
# store / get
# ============================================================

def test_store_puis_lecture(local_db):
    cache = ResourceCache(local_db)
    cache.store(make_resources([make_student("stu-1", "QR-1"), make_student("stu-2", "QR-2", "Bob")]))

    snapshot = cache.get(EVENT)
    assert snapshot.title == "Foundation Day"
    assert snapshot.venue == "Main Gymnasium"
    assert snapshot.start_date == "2026-03-02"
    assert cache.count(EVENT) == 2

    allowed = cache.lookup_allowed(EVENT, "QR-2")
    assert allowed.student_id == "stu-2"
    assert allowed.full_name == "Bob"
    assert allowed.grade == "Grade 7"
    assert allowed.section == "Rizal"


def test_lookup_autre_evenement(local_db):
    cache = ResourceCache(local_db)
    cache.store(make_resources())

    assert cache.lookup_allowed("event-2", "QR-1") is None
    assert cache.lookup_allowed(EVENT, "QR-INCONNU") is None


def test_get_schedule(local_db):
    cache = ResourceCache(local_db)
    cache.store(make_resources())

    schedule = cache.get_schedule(EVENT)
    assert schedule.dates[0].sessions[0].name == "Morning In"
    assert schedule.dates[0].sessions[0].late_after is not None


def test_get_schedule_absent(local_db):
    cache = ResourceCache(local_db)
    cache.store(make_resources(session_config=None))

    assert cache.get_schedule(EVENT) is None
    assert cache.get_schedule("event-2") is None


def test_redownload_remplace_tout(local_db):
    """Le second téléchargement remplace le snapshot et la liste, sans doublon de snapshot."""
    cache = ResourceCache(local_db)
    cache.store(make_resources([make_student("stu-1", "QR-1"), make_student("stu-2", "QR-2")]))

    cache.store(make_resources([make_student("stu-3", "QR-3")], title="Foundation Day (v2)"))

    assert local_db.query(ScannerEvent).count() == 1
    assert cache.get(EVENT).title == "Foundation Day (v2)"
    assert cache.count(EVENT) == 1
    assert cache.lookup_allowed(EVENT, "QR-1") is None
    assert cache.lookup_allowed(EVENT, "QR-3").student_id == "stu-3"


def test_redownload_ne_touche_pas_les_autres_evenements(local_db):
    cache = ResourceCache(local_db)
    local_db.add(AllowedStudent(event_id="event-2", student_id="x", qr_hash="QR-1", full_name="X"))
    local_db.commit()

    cache.store(make_resources())

    assert cache.count("event-2") == 1


def test_echec_ecriture_rollback_et_erreur():
    """Échec du commit → rollback, ResourceCacheError, aucune écriture partielle visible."""
    db = MagicMock()
    db.get.return_value = None
    db.commit.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))

    with pytest.raises(ResourceCacheError):
        ResourceCache(db).store(make_resources())

    db.rollback.assert_called_once()


def test_echec_ecriture_conserve_ancien_snapshot(local_db, monkeypatch):
    cache = ResourceCache(local_db)
    cache.store(make_resources([make_student("stu-1", "QR-1")]))

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("database or disk is full"))

    monkeypatch.setattr(local_db, "commit", failing_commit)
    with pytest.raises(ResourceCacheError):
        cache.store(make_resources([make_student("stu-9", "QR-9")], title="Nouveau"))
    monkeypatch.undo()

    assert cache.get(EVENT).title == "Foundation Day"
    assert cache.lookup_allowed(EVENT, "QR-1") is not None
    assert cache.lookup_allowed(EVENT, "QR-9") is None


def test_download_utilise_le_store_distant(local_db):
    remote = MagicMock()
    remote.fetch_event_snapshot.return_value = make_resources()

    snapshot = ResourceCache(local_db).download(remote, EVENT)

    remote.fetch_event_snapshot.assert_called_once_with(EVENT)
    assert snapshot.id == EVENT


def test_download_erreur_reseau_rien_ecrit(local_db):
    remote = MagicMock()
    remote.fetch_event_snapshot.side_effect = RuntimeError("offline")

    with pytest.raises(RuntimeError):
        ResourceCache(local_db).download(remote, EVENT)

    assert ResourceCache(local_db).get(EVENT) is None


# ============================================================
# clear / list_events
# ============================================================

def test_clear_conserve_les_scans(local_db):
    cache = ResourceCache(local_db)
    cache.store(make_resources())
    ScanQueue(local_db).append(ScanRecord(
        id="scan-1", event_id=EVENT, student_id="stu-1", qr_hash="QR-1",
        scanned_at=datetime(2026, 3, 2, 7, 10), status="PRESENT",
        created_at=datetime(2026, 3, 2, 7, 10),
    ))

    assert cache.clear(EVENT) is True

    assert cache.get(EVENT) is None
    assert cache.count(EVENT) == 0
    assert local_db.get(ScanRecord, "scan-1") is not None


def test_clear_evenement_absent(local_db):
    assert ResourceCache(local_db).clear("inconnu") is False


def test_list_events(local_db):
    cache = ResourceCache(local_db)
    cache.store(make_resources())

    assert [e.id for e in cache.list_events()] == [EVENT]
