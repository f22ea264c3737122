"""
Tests du service d'insertion des scans côté store distant (SQLite mémoire).
Couverture : création des sessions à la volée, filtrage, idempotence,
échec de création d'une session, événement introuvable.
"""

import uuid
from datetime import date, datetime, time
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from sems_scanner.models.attendance_log import AttendanceLog
from sems_scanner.models.event_session import EventSession
from sems_scanner.schemas.sync import ScanUploadItem
from sems_scanner.services import scan_upload_service
from sems_scanner.services.scan_upload_service import to_session_name, to_session_type, upload_scans

from conftest import EVENT_ID

MORNING_IN = "2026-03-02-morning_in"
MORNING_OUT = "2026-03-02-morning_out"


# --- Helpers ---

def make_item(student_id="stu-alice", status="PRESENT", session_id=MORNING_IN, **kwargs) -> ScanUploadItem:
    morning_in = session_id == MORNING_IN
    return ScanUploadItem(
        id=kwargs.get("id", str(uuid.uuid4())),
        student_id=student_id,
        qr_hash=f"QR-{student_id}",
        scanned_at=kwargs.get("scanned_at", datetime(2026, 3, 2, 7, 10)),
        status=status,
        session_id=session_id,
        session_name=kwargs.get("session_name", "Morning In" if morning_in else "Morning Out"),
        session_direction="in" if morning_in else "out",
        session_period="morning",
        session_opens=time(7, 0) if morning_in else time(11, 0),
        session_closes=time(8, 0) if morning_in else time(12, 0),
        session_late_after=time(7, 15) if morning_in else None,
    )


def count(db, model) -> int:
    return db.execute(select(func.count()).select_from(model)).scalar()


# ============================================================
# Insertion
# ============================================================

def test_to_session_type():
    assert to_session_type("morning", "in") == "morning_in"
    assert to_session_type("Afternoon", "OUT") == "afternoon_out"
    assert to_session_type(None, None) == "morning_in"


def test_upload_cree_la_session_et_les_presences(seeded_remote):
    alice = make_item("stu-alice")
    bob = make_item("stu-bob", status="LATE", scanned_at=datetime(2026, 3, 2, 7, 20))

    result = upload_scans(seeded_remote, EVENT_ID, [alice, bob])

    assert result.uploaded == 2
    assert result.duplicates == 0
    assert result.uploaded_ids == [alice.id, bob.id]
    assert result.message == "Successfully uploaded 2 scan(s)."

    session = seeded_remote.execute(select(EventSession)).scalar()
    assert session.name == "Morning In (2026-03-02)"
    assert session.session_type == "morning_in"
    assert session.start_time == time(7, 0)
    assert session.late_threshold_time == time(7, 15)
    assert session.end_time == time(8, 0)

    statuses = {
        log.student_id: log.status
        for log in seeded_remote.execute(select(AttendanceLog)).scalars()
    }
    assert statuses == {"stu-alice": "present", "stu-bob": "late"}


def test_session_existante_reutilisee(seeded_remote):
    upload_scans(seeded_remote, EVENT_ID, [make_item("stu-alice")])
    upload_scans(seeded_remote, EVENT_ID, [make_item("stu-bob")])

    assert count(seeded_remote, EventSession) == 1
    assert count(seeded_remote, AttendanceLog) == 2


def test_une_session_par_groupe(seeded_remote):
    upload_scans(seeded_remote, EVENT_ID, [
        make_item("stu-alice"),
        make_item("stu-alice", session_id=MORNING_OUT, scanned_at=datetime(2026, 3, 2, 11, 5)),
    ])

    types = sorted(s.session_type for s in seeded_remote.execute(select(EventSession)).scalars())
    assert types == ["morning_in", "morning_out"]
    assert count(seeded_remote, AttendanceLog) == 2


def test_session_sans_nom_utilise_l_identifiant(seeded_remote):
    upload_scans(seeded_remote, EVENT_ID, [make_item(session_name=None)])

    assert seeded_remote.execute(select(EventSession.name)).scalar() == f"{MORNING_IN} (2026-03-02)"


# ============================================================
# Filtrage et idempotence
# ============================================================

def test_statuts_non_presents_ignores(seeded_remote):
    result = upload_scans(seeded_remote, EVENT_ID, [
        make_item("stu-alice"),
        make_item("", status="DENIED"),
        make_item("stu-alice", status="DUPLICATE"),
        make_item("stu-bob", session_id=None),
    ])

    assert result.uploaded == 1
    assert result.skipped == 3
    assert count(seeded_remote, AttendanceLog) == 1


def test_rien_de_valide(seeded_remote):
    result = upload_scans(seeded_remote, EVENT_ID, [make_item("", status="DENIED")])

    assert result.uploaded == 0
    assert result.skipped == 1
    assert result.message == "No valid scans to upload."
    assert count(seeded_remote, EventSession) == 0


def test_reupload_identique_que_des_doublons(seeded_remote):
    scans = [make_item("stu-alice"), make_item("stu-bob")]
    upload_scans(seeded_remote, EVENT_ID, scans)

    again = upload_scans(seeded_remote, EVENT_ID, scans)

    assert again.uploaded == 0
    assert again.duplicates == 2
    assert again.duplicate_ids == [s.id for s in scans]
    assert count(seeded_remote, AttendanceLog) == 2


def test_meme_eleve_deux_appareils_une_seule_presence(seeded_remote):
    """Deux scans distincts (ids différents) du même élève pour la même session."""
    first = make_item("stu-alice", scanned_at=datetime(2026, 3, 2, 7, 5))
    second = make_item("stu-alice", scanned_at=datetime(2026, 3, 2, 7, 6))

    result = upload_scans(seeded_remote, EVENT_ID, [first, second])

    assert result.uploaded_ids == [first.id]
    assert result.duplicate_ids == [second.id]
    log = seeded_remote.execute(select(AttendanceLog)).scalar()
    assert log.scanned_at == datetime(2026, 3, 2, 7, 5)


# ============================================================
# Erreurs
# ============================================================

def test_evenement_introuvable():
    db = MagicMock()
    db.get.return_value = None

    with pytest.raises(ValueError, match="introuvable"):
        upload_scans(db, "inconnu", [make_item()])

    db.commit.assert_not_called()


def test_echec_creation_session_compte_en_erreurs(seeded_remote, monkeypatch):
    real = scan_upload_service._find_or_create_session

    def failing(db, event_id, config_session_id, first):
        if config_session_id == MORNING_OUT:
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        return real(db, event_id, config_session_id, first)

    monkeypatch.setattr(scan_upload_service, "_find_or_create_session", failing)

    result = upload_scans(seeded_remote, EVENT_ID, [
        make_item("stu-alice"),
        make_item("stu-alice", session_id=MORNING_OUT),
        make_item("stu-bob", session_id=MORNING_OUT),
    ])

    assert result.uploaded == 1
    assert result.errors == 2
    assert count(seeded_remote, AttendanceLog) == 1


def test_eleve_inconnu_compte_en_erreur_pas_en_doublon(seeded_remote):
    """Violation de clé étrangère (élève supprimé côté serveur) : erreur, le scan reste pending."""
    removed = make_item("stu-removed")
    alice = make_item("stu-alice")

    result = upload_scans(seeded_remote, EVENT_ID, [removed, alice])

    assert result.errors == 1
    assert result.duplicates == 0
    assert result.duplicate_ids == []
    assert result.uploaded_ids == [alice.id]
    assert count(seeded_remote, AttendanceLog) == 1


def test_eleve_inconnu_au_reupload_toujours_en_erreur(seeded_remote):
    removed = make_item("stu-removed")
    upload_scans(seeded_remote, EVENT_ID, [removed])

    again = upload_scans(seeded_remote, EVENT_ID, [removed])

    assert again.errors == 1
    assert again.duplicate_ids == []


# ============================================================
# Plusieurs jours
# ============================================================

def test_to_session_name():
    assert to_session_name("Morning In", date(2026, 3, 3)) == "Morning In (2026-03-03)"


def test_meme_nom_deux_jours_deux_presences(seeded_remote):
    day1 = make_item("stu-alice")
    day2 = make_item(
        "stu-alice",
        session_id="2026-03-03-morning_in",
        session_name="Morning In",
        scanned_at=datetime(2026, 3, 3, 7, 10),
    )

    first = upload_scans(seeded_remote, EVENT_ID, [day1])
    second = upload_scans(seeded_remote, EVENT_ID, [day2])

    assert first.uploaded_ids == [day1.id]
    assert second.uploaded_ids == [day2.id]
    assert second.duplicates == 0
    assert count(seeded_remote, EventSession) == 2
    assert count(seeded_remote, AttendanceLog) == 2


def test_meme_identifiant_de_session_sur_deux_jours(seeded_remote):
    """Un id de session non daté reste distinct d'un jour à l'autre."""
    day1 = make_item("stu-alice", session_id="morning_in", session_name="Morning In")
    day2 = make_item(
        "stu-alice", session_id="morning_in", session_name="Morning In",
        scanned_at=datetime(2026, 3, 3, 7, 10),
    )

    result = upload_scans(seeded_remote, EVENT_ID, [day1, day2])

    assert result.uploaded == 2
    names = sorted(s.name for s in seeded_remote.execute(select(EventSession)).scalars())
    assert names == ["Morning In (2026-03-02)", "Morning In (2026-03-03)"]
