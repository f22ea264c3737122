"""
Résolution de la session active à partir du planning et de l'horloge de l'appareil.

Fonctions pures : aucune lecture d'horloge, aucun accès BDD. Appelées à chaque scan,
elles peuvent être réévaluées sans dérive.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from sems_scanner.schemas.session_config import EventSessionConfig, SessionConfig

NO_EVENT_TODAY = "No event today."
NOT_OPEN = "Scanning is not open at this time."
DONE_FOR_TODAY = "Scanning is done for today."


@dataclass(frozen=True)
class ActiveSessionResult:
    session: Optional[SessionConfig]
    date: Optional[date]
    reason: Optional[str]

    @property
    def is_active(self) -> bool:
        return self.session is not None


def format_time_friendly(value: time) -> str:
    """07:00 → "7 AM", 19:30 → "7:30 PM"."""
    period = "PM" if value.hour >= 12 else "AM"
    hour12 = value.hour % 12 or 12
    if value.minute == 0:
        return f"{hour12} {period}"
    return f"{hour12}:{value.minute:02d} {period}"


def resolve_active_session(
    schedule: Optional[EventSessionConfig],
    now: datetime,
) -> ActiveSessionResult:
    """
    Trouve la session ouverte à l'instant `now`.

    1. Cherche l'entrée du planning dont la date est celle de `now`
    2. Parmi ses sessions, retient la première (ordre du planning) telle que
       opens <= heure < closes
    3. Sinon renvoie session=None et une raison lisible

    Si deux fenêtres se chevauchent (planning mal formé), la première définie gagne.
    """
    today = now.date()
    current = now.time()

    day = None
    if schedule is not None:
        day = next((d for d in schedule.dates if d.date == today), None)

    if day is None or not day.sessions:
        return ActiveSessionResult(session=None, date=today, reason=NO_EVENT_TODAY)

    for session in day.sessions:
        if session.opens <= current < session.closes:
            return ActiveSessionResult(session=session, date=today, reason=None)

    upcoming = [s for s in day.sessions if s.opens > current]
    if upcoming:
        next_session = min(upcoming, key=lambda s: s.opens)
        hint = f"{next_session.name} starts at {format_time_friendly(next_session.opens)}."
    else:
        hint = DONE_FOR_TODAY

    return ActiveSessionResult(session=None, date=today, reason=f"{NOT_OPEN} {hint}")


def is_late(session: SessionConfig, now: datetime) -> bool:
    """Retard à partir de late_after inclus ; jamais de retard sans seuil."""
    if session.late_after is None:
        return False
    return now.time() >= session.late_after


def find_session(
    schedule: Optional[EventSessionConfig],
    session_id: str,
    on_date: Optional[date] = None,
) -> Optional[SessionConfig]:
    """
    Retrouve une session du planning par son id.
    Si `on_date` est fourni, la date correspondante est examinée en premier.
    """
    if schedule is None:
        return None
    days = sorted(schedule.dates, key=lambda d: d.date != on_date)
    for day in days:
        for session in day.sessions:
            if session.id == session_id:
                return session
    return None
