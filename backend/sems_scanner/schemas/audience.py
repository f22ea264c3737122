"""
Schémas Pydantic du public cible d'un événement.

Les règles "include" sont appliquées d'abord, puis les règles "exclude".
Sans aucune règle, tous les élèves actifs sont autorisés.
"""

from typing import List

from pydantic import BaseModel, Field, field_validator

VALID_EFFECTS = {"include", "exclude"}
VALID_KINDS = {"ALL_STUDENTS", "LEVEL", "SECTION", "STUDENT"}


class AudienceRule(BaseModel):
    effect: str
    kind: str
    level_ids: List[str] = Field(default=[], alias="levelIds")
    section_ids: List[str] = Field(default=[], alias="sectionIds")
    student_ids: List[str] = Field(default=[], alias="studentIds")

    model_config = {"populate_by_name": True}

    @field_validator("effect")
    @classmethod
    def valid_effect(cls, v: str) -> str:
        if v not in VALID_EFFECTS:
            raise ValueError(f"Effet invalide. Valeurs acceptées : {VALID_EFFECTS}")
        return v

    @field_validator("kind")
    @classmethod
    def valid_kind(cls, v: str) -> str:
        if v not in VALID_KINDS:
            raise ValueError(f"Type de règle invalide. Valeurs acceptées : {VALID_KINDS}")
        return v


class EventAudienceConfig(BaseModel):
    rules: List[AudienceRule] = []
