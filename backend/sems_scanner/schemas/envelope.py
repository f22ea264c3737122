"""
Enveloppe commune des réponses du store distant.

Succès : {"success": true, "data": {...}, "meta": {"timestamp": ...}}
Erreur : {"success": false, "error": {"code": ..., "message": ...}, "meta": {...}}
"""

from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiMeta(BaseModel):
    timestamp: datetime = Field(default_factory=_utcnow)


class ApiError(BaseModel):
    code: str
    message: str


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    error: Optional[ApiError] = None
    meta: ApiMeta = Field(default_factory=ApiMeta)
