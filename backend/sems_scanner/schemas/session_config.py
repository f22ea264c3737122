"""
Schémas Pydantic du planning des sessions d'un événement.

Format versionné (version 2) : une liste de dates, chacune avec ses sessions.
Les heures sont au format HH:MM (heure locale de l'appareil).

    {"version": 2, "dates": [{"date": "2026-03-02", "sessions": [
        {"id": "morning_in", "name": "Morning In", "period": "morning",
         "direction": "in", "opens": "07:00", "lateAfter": "07:15", "closes": "08:00"}
    ]}]}
"""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

VALID_PERIODS = {"morning", "afternoon", "evening"}
VALID_DIRECTIONS = {"in", "out"}


class SessionConfig(BaseModel):
    """Fenêtre de scan d'une journée : [opens, closes[, retard à partir de late_after."""

    id: str
    name: str
    period: str
    direction: str
    opens: dt.time
    closes: dt.time
    late_after: Optional[dt.time] = Field(default=None, alias="lateAfter")

    model_config = {"populate_by_name": True}

    @field_validator("period")
    @classmethod
    def valid_period(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_PERIODS:
            raise ValueError(f"Période invalide. Valeurs acceptées : {VALID_PERIODS}")
        return v

    @field_validator("direction")
    @classmethod
    def valid_direction(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_DIRECTIONS:
            raise ValueError(f"Direction invalide. Valeurs acceptées : {VALID_DIRECTIONS}")
        return v

    @field_validator("late_after", mode="before")
    @classmethod
    def empty_late_after_is_none(cls, v):
        if v == "":
            return None
        return v


class DateSessionConfig(BaseModel):
    """Sessions prévues pour une date donnée, dans l'ordre du planning."""

    date: dt.date
    sessions: List[SessionConfig] = []


class EventSessionConfig(BaseModel):
    """Planning complet d'un événement (éventuellement sur plusieurs jours)."""

    version: int = 2
    dates: List[DateSessionConfig] = []
